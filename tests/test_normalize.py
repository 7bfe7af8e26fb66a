from pagewise.text.normalize import normalize


SAMPLES = [
    "",
    "   ",
    '{"a": 1}',
    '{“intent”: “HIGHLIGHT”, "highlights": ["x",] }',
    '﻿{"a": [1, 2, ], }',
    '`{"a": 1}`',
    "``",
    '```json\n{"a": 1}\n```',
    "` ` ` ,}",
    "`,]`",
    "​​` {} `",
    '{"s": "keep, } this"}',
    '{"s": "escaped \\" quote,]"}',
    "it’s ‘fine’",
    ",\n\t]",
    "``` ```",
    "`​`",
    " ` ` ",
]


def test_normalize_is_idempotent() -> None:
    for sample in SAMPLES:
        once = normalize(sample)
        assert normalize(once) == once, sample


def test_normalize_fixes_quotes_and_trailing_commas() -> None:
    raw = '{“intent”: “HIGHLIGHT”, "highlights": ["x",] }'
    assert normalize(raw) == '{"intent": "HIGHLIGHT", "highlights": ["x"] }'


def test_normalize_keeps_commas_inside_strings() -> None:
    assert normalize('{"s": "a,}"}') == '{"s": "a,}"}'


def test_normalize_strips_invisible_characters_and_stray_backticks() -> None:
    assert normalize('﻿{"a":​1}') == '{"a":1}'
    assert normalize('`{"a": 1}`') == '{"a": 1}'
    assert normalize("```") == "```"


def test_normalize_replaces_non_breaking_spaces() -> None:
    assert normalize('{"a": 1}') == '{"a": 1}'


def test_normalize_keeps_curly_quotes_inside_straight_strings() -> None:
    raw = '{"draft": "He said “hi” and ‘bye’"}'
    assert normalize(raw) == raw


def test_normalize_escapes_straight_quote_in_curly_string() -> None:
    assert normalize('{“a”: “say "x"”}') == '{"a": "say \\"x\\""}'
