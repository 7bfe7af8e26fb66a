from pagewise.config import ContextConfig
from pagewise.context.packer import ContextItem, ContextPacker, pack, truncate_at_sentence


def test_truncate_prefers_sentence_end_in_window() -> None:
    text = "a" * 25 + ". " + "b" * 20
    assert truncate_at_sentence(text, 30) == "a" * 25 + "."

    question = "c" * 24 + "? " + "d" * 20
    assert truncate_at_sentence(question, 30) == "c" * 24 + "?"


def test_truncate_hard_cuts_without_nearby_sentence_end() -> None:
    text = "Short. " + "x" * 50
    assert truncate_at_sentence(text, 30) == text[:30]
    assert truncate_at_sentence("fits.", 30) == "fits."


def test_selection_is_clipped_and_packed_first() -> None:
    items = [
        ContextItem(kind="tab", text="Tab text.", title="Docs", tab_id=2),
        ContextItem(kind="selection", text="x" * 5000, tab_id=2),
        ContextItem(kind="selection", text="second selection", tab_id=3),
    ]

    text, meta = pack("Explain this", items)

    assert text.startswith('USER REQUEST: "Explain this"')
    assert "SELECTION CONTEXT (from tab 2):" in text
    assert text.index("SELECTION CONTEXT") < text.index("PAGE CONTEXT (Docs)")
    assert "second selection" not in text
    assert meta.included[0].index == 1
    assert meta.included[0].chars == 3000
    assert meta.included[0].clipped is True
    assert meta.skipped == [2]
    assert meta.truncated is False


def test_budget_stops_packing_and_marks_truncation() -> None:
    items = [
        ContextItem(kind="tab", text="y" * 6000, title=f"Tab {n}", tab_id=n) for n in range(3)
    ]

    text, meta = ContextPacker(ContextConfig()).pack("Compare", items)

    assert meta.truncated is True
    assert meta.total_chars == 10000
    assert [item.index for item in meta.included] == [0, 1]
    assert meta.skipped == [2]
    assert all(item.chars == 5000 for item in meta.included)
    assert "PAGE CONTEXT (Tab 2)" not in text


def test_custom_limits_and_empty_context() -> None:
    config = ContextConfig(selection_max_chars=100, tab_max_chars=100, budget_chars=150)
    items = [
        ContextItem(kind="tab", text="z" * 400, url="https://example.test/a"),
        ContextItem(kind="tab", text="   "),
        ContextItem(kind="tab", text="w" * 400, tab_id=9),
    ]

    text, meta = pack("Go", items, config)

    assert meta.included[0].label == "https://example.test/a"
    assert meta.skipped == [1, 2]
    assert meta.truncated is True

    bare, bare_meta = pack("Only the question", [])
    assert bare == 'USER REQUEST: "Only the question"'
    assert bare_meta.included == []
    assert bare_meta.truncated is False
