"""
Manuals: titled documents with nested numbered sections, loaded from YAML.

    manuals:
      - title: Syntax
        abstract: How scripts are written.
        sections:
          - title: Commands
            body: ...
            sections: [...]
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from enum import IntFlag
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

import yaml

logger = logging.getLogger(__name__)


class ManualLookup(IntFlag):
    """Where `ManualLibrary.find` looks for a match."""
    TITLE = 1
    ABSTRACT = 2
    SECTION_TITLES = 4
    SECTION_BODIES = 8


@dataclass
class Section:
    title: str
    body: str = ""
    subsections: List["Section"] = field(default_factory=list)

    def walk(self) -> Iterator["Section"]:
        yield self
        for sub in self.subsections:
            yield from sub.walk()


@dataclass
class Manual:
    title: str
    abstract: str = ""
    sections: List[Section] = field(default_factory=list)

    def walk(self) -> Iterator[Section]:
        for section in self.sections:
            yield from section.walk()


class ManualLibrary:
    """A set of manuals keyed by title."""

    def __init__(self):
        self._lock = threading.Lock()
        self._manuals: Dict[str, Manual] = {}

    def __len__(self):
        with self._lock:
            return len(self._manuals)

    def __iter__(self):
        with self._lock:
            return iter(list(self._manuals.values()))

    def add(self, manual: Manual, overwrite: bool = False) -> bool:
        with self._lock:
            if manual.title in self._manuals and not overwrite:
                return False
            self._manuals[manual.title] = manual
        return True

    def get(self, title: str) -> Optional[Manual]:
        with self._lock:
            return self._manuals.get(title)

    def load(self, path: Union[str, Path]) -> int:
        count = 0
        for manual in load_manuals(path):
            if self.add(manual, overwrite=True):
                count += 1
        logger.debug("Loaded %d manual(s) from %s", count, path)
        return count

    def find(self, pattern: Union[str, re.Pattern], locations: ManualLookup = ManualLookup.TITLE) -> List[Manual]:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        found = []
        for manual in self:
            if self._matches(manual, regex, locations):
                found.append(manual)
        return sorted(found, key=lambda m: m.title)

    @staticmethod
    def _matches(manual: Manual, regex: re.Pattern, locations: ManualLookup) -> bool:
        if ManualLookup.TITLE in locations and regex.search(manual.title):
            return True
        if ManualLookup.ABSTRACT in locations and regex.search(manual.abstract):
            return True
        for section in manual.walk():
            if ManualLookup.SECTION_TITLES in locations and regex.search(section.title):
                return True
            if ManualLookup.SECTION_BODIES in locations and regex.search(section.body):
                return True
        return False


def section_at(manual: Manual, path: Sequence[int]) -> Optional[Section]:
    """Looks a section up by 1-based index path, e.g. [2, 1] for section 2.1."""
    sections = manual.sections
    section = None
    for index in path:
        if index < 1 or index > len(sections):
            return None
        section = sections[index - 1]
        sections = section.subsections
    return section


def index_text(manual: Manual) -> str:
    """Numbered table of contents."""
    lines: List[str] = []

    def visit(sections: List[Section], prefix: str, level: int):
        for n, section in enumerate(sections, 1):
            number = f"{prefix}{n}."
            lines.append(f"{'  ' * level}{number} {section.title}")
            visit(section.subsections, number, level + 1)

    visit(manual.sections, "", 0)
    return "\n".join(lines)


def render_text(manual: Manual) -> str:
    """The whole manual as plain text."""
    out = [manual.title]
    if manual.abstract:
        out.append(manual.abstract)

    def visit(sections: List[Section], prefix: str):
        for n, section in enumerate(sections, 1):
            number = f"{prefix}{n}."
            out.append("")
            out.append(f"{number} {section.title}")
            if section.body:
                out.append(section.body.rstrip())
            visit(section.subsections, number)

    visit(manual.sections, "")
    return "\n".join(out)


def _section_from_dict(raw: dict) -> Section:
    return Section(
        title=str(raw["title"]),
        body=str(raw.get("body") or ""),
        subsections=[_section_from_dict(s) for s in raw.get("sections") or []],
    )


def load_manuals(path: Union[str, Path]) -> List[Manual]:
    """Reads the `manuals:` list from a YAML file."""
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    manuals = []
    for entry in raw.get("manuals") or []:
        if "title" not in entry:
            raise ValueError(f"Manual without a title in {path}")
        manuals.append(Manual(
            title=str(entry["title"]),
            abstract=str(entry.get("abstract") or ""),
            sections=[_section_from_dict(s) for s in entry.get("sections") or []],
        ))
    return manuals
