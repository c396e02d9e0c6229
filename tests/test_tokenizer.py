import pytest

from vcmd.vcmd_config import Limits
from vcmd.vcmd_errors import NestingLimitError, ScriptSyntaxError
from vcmd.vcmd_tokenizer import TokenType, quote, tokenize

T = TokenType


def kinds(script):
    return [(t.type, t.content) for t in tokenize(script)]


# --- Test Cases ---

# Each entry is a tuple: (test_id, variants, expected_tokens)
# Every variant of a case must produce the same tokens.
TEST_CASES = [
    ("plain_command", [
        "A B C", " A B C ", "A    B     C", "   A     B    C  ",
    ], [(T.COMMAND_NAME, "A"), (T.ARGUMENT, "B"), (T.ARGUMENT, "C")]),

    ("toggler", [
        "+blah", " +blah", "+blah ", " +blah ", " + blah ",
    ], [(T.TOGGLER, "+"), (T.COMMAND_NAME, "blah")]),

    ("toggler_with_arguments", [
        "-A B C", " -A B C ", "-A    B     C", "   -A     B    C  ", "-   A     B    C  ",
    ], [(T.TOGGLER, "-"), (T.COMMAND_NAME, "A"), (T.ARGUMENT, "B"), (T.ARGUMENT, "C")]),

    ("toggler_escaped_name", [
        "+\\blah", "+b\\lah", "+bla\\h", "+\\b\\l\\a\\h",
    ], [(T.TOGGLER, "+"), (T.COMMAND_NAME, "blah")]),

    ("escaped_toggler", [
        "\\+blah", " \\+blah", "\\+blah ", " \\+blah ",
    ], [(T.COMMAND_NAME, "+blah")]),

    ("toggler_then_escaped_toggler", [
        "-\\+blah", "- \\+blah", "-\\+blah ", " -\\+blah ",
    ], [(T.TOGGLER, "-"), (T.COMMAND_NAME, "+blah")]),

    ("escaped_togglers_in_series", [
        "-\\+asd;+\\-fgh m\\ e\\ h",
        " -\\+asd ;+\\-fgh m\\ e\\ h ",
        "- \\+asd; + \\-fgh m\\ e\\ h",
        "- \\+asd ; + \\-fgh m\\ e\\ h ",
    ], [
        (T.TOGGLER, "-"), (T.COMMAND_NAME, "+asd"), (T.SEPARATOR, ";"),
        (T.TOGGLER, "+"), (T.COMMAND_NAME, "-fgh"), (T.ARGUMENT, "m e h"),
    ]),

    ("string_argument", [
        'A "B C"', ' A "B C" ', '      A        "B C"        ',
    ], [(T.COMMAND_NAME, "A"), (T.ARGUMENT, "B C")]),

    ("string_command", [
        '"A B" C', ' "A B" C ', '      "A B"      C       ',
    ], [(T.COMMAND_NAME, "A B"), (T.ARGUMENT, "C")]),

    ("empty_string_argument", [
        '+"A B" "C D" "" E', '      +"A B"        "C D"      ""    E    ',
    ], [(T.TOGGLER, "+"), (T.COMMAND_NAME, "A B"), (T.ARGUMENT, "C D"), (T.ARGUMENT, ""), (T.ARGUMENT, "E")]),

    ("strings_glued_to_text", [
        '+"A B" rata"C D"touille "" E',
        "+A\\ B rataC\\ Dtouille \"\" E",
        "    +   A\\ B     rataC\\ Dtouille      \"\"    E    ",
    ], [(T.TOGGLER, "+"), (T.COMMAND_NAME, "A B"), (T.ARGUMENT, "rataC Dtouille"), (T.ARGUMENT, ""), (T.ARGUMENT, "E")]),

    ("whitespace_arguments", [
        "+yada \\ \\  \\  \\ ", "   +   yada    \\ \\     \\     \\     ",
    ], [(T.TOGGLER, "+"), (T.COMMAND_NAME, "yada"), (T.ARGUMENT, "  "), (T.ARGUMENT, " "), (T.ARGUMENT, " ")]),

    ("compound_single", [
        "a [b]", " a [ b] ", "a [b ]", " a [ b ] ",
    ], [(T.COMMAND_NAME, "a"), (T.COMPOUND_ARGUMENT_START, "["), (T.COMMAND_NAME, "b"), (T.COMPOUND_ARGUMENT_END, "]")]),

    ("bracket_inside_word_is_content", [
        "a b[c", " a  b[c  ",
    ], [(T.COMMAND_NAME, "a"), (T.ARGUMENT, "b[c")]),
]


@pytest.mark.parametrize(
    "test_id, variants, expected",
    TEST_CASES,
    ids=[case[0] for case in TEST_CASES],
)
def test_tokenizer_cases(test_id, variants, expected):
    for script in variants:
        assert kinds(script) == expected, script


@pytest.mark.parametrize("sep, kind", [(";", T.SEPARATOR), ("?", T.INCLUDE), (":", T.OTHERWISE), ("!", T.EXCLUDE)])
def test_separators(sep, kind):
    for script in (f"a{sep}b", f"a {sep}b", f"a{sep} b", f" a        {sep}         b "):
        assert kinds(script) == [(T.COMMAND_NAME, "a"), (kind, sep), (T.COMMAND_NAME, "b")]


def test_nested_compound_arguments():
    tokens = kinds(" a [ b [ c [ d ] ] ] ")
    assert [k for k, _ in tokens] == [
        T.COMMAND_NAME, T.COMPOUND_ARGUMENT_START, T.COMMAND_NAME, T.COMPOUND_ARGUMENT_START,
        T.COMMAND_NAME, T.COMPOUND_ARGUMENT_START, T.COMMAND_NAME,
        T.COMPOUND_ARGUMENT_END, T.COMPOUND_ARGUMENT_END, T.COMPOUND_ARGUMENT_END,
    ]


def test_everything_at_once():
    script = ("+A\\ B rataC\\ Dtouille \"\" E;-\\lol\\ mao\"yaong \" brah;yet more\\\"s\\;u\\;f ; "
              "even [more [fricking] ] [arguments] ! mara\\ are\\ mere")
    assert kinds(script) == [
        (T.TOGGLER, "+"), (T.COMMAND_NAME, "A B"), (T.ARGUMENT, "rataC Dtouille"), (T.ARGUMENT, ""), (T.ARGUMENT, "E"),
        (T.SEPARATOR, ";"),
        (T.TOGGLER, "-"), (T.COMMAND_NAME, "lol maoyaong "), (T.ARGUMENT, "brah"),
        (T.SEPARATOR, ";"),
        (T.COMMAND_NAME, "yet"), (T.ARGUMENT, 'more"s;u;f'),
        (T.SEPARATOR, ";"),
        (T.COMMAND_NAME, "even"),
        (T.COMPOUND_ARGUMENT_START, "["), (T.COMMAND_NAME, "more"),
        (T.COMPOUND_ARGUMENT_START, "["), (T.COMMAND_NAME, "fricking"), (T.COMPOUND_ARGUMENT_END, "]"),
        (T.COMPOUND_ARGUMENT_END, "]"),
        (T.COMPOUND_ARGUMENT_START, "["), (T.COMMAND_NAME, "arguments"), (T.COMPOUND_ARGUMENT_END, "]"),
        (T.EXCLUDE, "!"),
        (T.COMMAND_NAME, "mara are mere"),
    ]


def test_token_positions():
    tokens = list(tokenize("ab cd"))
    assert [t.position for t in tokens] == [2, 5]


def test_tokenize_is_lazy():
    tokens = tokenize("a b]")
    first = next(tokens)
    assert first.content == "a"
    with pytest.raises(ScriptSyntaxError):
        list(tokens)


# --- Error Cases ---

ERROR_CASES = [
    ("trailing_backslash", "+blah \\", "backslash"),
    ("unterminated_string", 'echo "abc', "unterminated string"),
    ("lone_toggler", "+", "full command name"),
    ("toggler_after_name", "a +b", "unusual place"),
    ("double_toggler", "+-a", "unusual place"),
    ("missing_compound_end", "a [b", "Missing 1 compound argument ending"),
    ("missing_nested_compound_end", "a [b [c]", "Missing 1 compound argument ending"),
    ("excess_compound_end", "a b]", "no matching start"),
    ("excess_after_compound", "a [b] c]", "no matching start"),
    ("separator_without_command", "; a", "preceded by an empty command"),
    ("double_separator", "a;; b", "preceded by an empty command"),
    ("trailing_separator", "a;", "full command name"),
    ("compound_as_command", "[a]", "cannot start where a command name is expected"),
    ("empty_compound", "a []", "ends with an empty command"),
]


@pytest.mark.parametrize(
    "test_id, script, message",
    ERROR_CASES,
    ids=[case[0] for case in ERROR_CASES],
)
def test_tokenizer_errors(test_id, script, message):
    with pytest.raises(ScriptSyntaxError) as excinfo:
        list(tokenize(script))
    assert message in str(excinfo.value)
    assert excinfo.value.script == script


@pytest.mark.parametrize("script", ["", "   ", "\t\n"])
def test_empty_script_fails_immediately(script):
    with pytest.raises(ScriptSyntaxError):
        tokenize(script)


def test_script_length_limit():
    with pytest.raises(NestingLimitError) as excinfo:
        tokenize("echo " + "a" * 20, Limits(max_script_length=10))
    assert excinfo.value.limit == 10
    assert "Script length" in str(excinfo.value)


def test_nesting_depth_limit():
    with pytest.raises(NestingLimitError):
        list(tokenize("a [b [c [d]]]", Limits(max_nesting_depth=2)))


def test_error_context_points_at_position():
    with pytest.raises(ScriptSyntaxError) as excinfo:
        list(tokenize("a b]"))
    lines = excinfo.value.format_with_context().splitlines()
    assert lines[1] == "  a b]"
    assert lines[2] == "     ^"


@pytest.mark.parametrize("text, expected", [
    ("plain", "plain"),
    ("", '""'),
    ("two words", '"two words"'),
    ('say "hi"', '"say \\"hi\\""'),
    ("a;b", '"a;b"'),
    ("back\\slash", '"back\\\\slash"'),
])
def test_quote(text, expected):
    assert quote(text) == expected


@pytest.mark.parametrize("text", ["plain", "", "two words", 'say "hi"', "a;b", "x-y", "[z]", "back\\slash"])
def test_quoted_text_reads_back_as_one_argument(text):
    assert kinds("cmd " + quote(text)) == [(T.COMMAND_NAME, "cmd"), (T.ARGUMENT, text)]
