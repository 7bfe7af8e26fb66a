import json
import time

from pagewise.decoding.completion import complete

PAYLOAD_TEXT = (
    '{"intent": "SUMMARIZE", "tldr": "Short \\"quoted\\" tl;dr \\\\ caf\\u00e9", '
    '"bullets": ["a, b", "c: d", "{not json}"], '
    '"meta": {"n": -12.5e+3, "ok": true, "off": false, "none": null}, '
    '"confidence": 0.75}'
)


def test_every_truncation_offset_completes_to_valid_json() -> None:
    json.loads(PAYLOAD_TEXT)
    first_key_end = len('{"intent"')
    for offset in range(first_key_end, len(PAYLOAD_TEXT) + 1):
        truncated = PAYLOAD_TEXT[:offset]
        repaired = complete(truncated)
        try:
            json.loads(repaired)
        except ValueError as exc:  # pragma: no cover - assertion message
            raise AssertionError(f"offset {offset}: {truncated!r} -> {repaired!r}") from exc


def test_truncated_string_value_is_closed() -> None:
    assert complete('{"intent":"WRITE","draft":"Hello wor') == (
        '{"intent":"WRITE","draft":"Hello wor"}'
    )


def test_dangling_key_colon_and_comma_are_repaired() -> None:
    assert json.loads(complete('{"intent": "NONE", "explain"')) == {
        "intent": "NONE",
        "explain": None,
    }
    assert json.loads(complete('{"intent": "NONE", "explain": ')) == {
        "intent": "NONE",
        "explain": None,
    }
    assert json.loads(complete('{"intent": "NONE", ')) == {"intent": "NONE"}
    assert json.loads(complete('{"bullets": ["a", ')) == {"bullets": ["a"]}


def test_partial_literals_and_numbers_are_finished() -> None:
    assert json.loads(complete('{"ok": tr')) == {"ok": True}
    assert json.loads(complete('{"n": -12.')) == {"n": -12}
    assert json.loads(complete('{"n": -')) == {"n": None}


def test_nested_containers_close_innermost_first() -> None:
    assert complete('{"a": [1, 2, {"b": "x') == '{"a": [1, 2, {"b": "x"}]}'


def test_trailing_text_after_complete_value_is_dropped() -> None:
    assert complete('{"a": 1} and then some') == '{"a": 1}'
    assert complete("no json here") == "no json here"


def test_completion_starts_at_the_unclosed_object() -> None:
    text = 'Example {"a": 1} answer {"intent":"WRITE","draft":"Hi'
    assert complete(text) == '{"intent":"WRITE","draft":"Hi"}'


def test_unclosed_repetition_loop_completes_quickly() -> None:
    started = time.perf_counter()
    completed = complete("Answer: " + "[" * 50_000)
    elapsed = time.perf_counter() - started

    assert completed == "[" * 50_000 + "]" * 50_000
    assert elapsed < 2.0
