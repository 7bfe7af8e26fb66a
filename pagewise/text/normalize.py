"""Idempotent cleanup of raw model output before JSON parsing."""

from __future__ import annotations

import unicodedata

_CURLY_DOUBLE = frozenset("\u201c\u201d\u201e\u201f")

# Applied outside string values only; text inside a string is kept verbatim.
_PUNCT_TRANSLATION = str.maketrans(
    {
        "\u2018": "'",
        "\u2019": "'",
        "\u201a": "'",
        "\u201b": "'",
        "\u00a0": " ",
        "\u202f": " ",
        "\u2007": " ",
    }
)

# String states for the delimiter pass.
_STRAIGHT = '"'
_CURLY = "curly"


def normalize(text: str) -> str:
    """Return ``text`` cleaned for JSON parsing.

    Steps run until a fixed point, so ``normalize(normalize(x)) == normalize(x)``.
    """

    if not text:
        return ""
    previous = None
    while text != previous:
        previous = text
        text = _normalize_once(text)
    return text


def _normalize_once(text: str) -> str:
    text = _strip_invisible(text)
    text = _straighten_delimiters(text)
    text = _strip_edges(text)
    return _drop_trailing_commas(text)


def _strip_invisible(text: str) -> str:
    # BOM and zero-width characters all live in the Cf (format) category.
    return "".join(ch for ch in text if unicodedata.category(ch) != "Cf")


def _straighten_delimiters(text: str) -> str:
    """Turn curly quotes that open or close a string into ``"``.

    Curly quotes inside a straight-quoted string are content and stay as they
    are. A straight quote inside a curly-quoted string is escaped.
    """

    out: list[str] = []
    quote: str | None = None
    escape = False
    for ch in text:
        if quote is None:
            if ch == '"':
                quote = _STRAIGHT
            elif ch in _CURLY_DOUBLE:
                ch = '"'
                quote = _CURLY
            else:
                ch = ch.translate(_PUNCT_TRANSLATION)
        elif escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote == _STRAIGHT:
            if ch == '"':
                quote = None
        elif ch in _CURLY_DOUBLE:
            ch = '"'
            quote = None
        elif ch == '"':
            ch = '\\"'
        out.append(ch)
    return "".join(out)


def _strip_edges(text: str) -> str:
    text = text.strip()
    if text.startswith("`") and not text.startswith("``"):
        text = text[1:]
    if text.endswith("`") and not text.endswith("``"):
        text = text[:-1]
    return text.strip()


def _drop_trailing_commas(text: str) -> str:
    out: list[str] = []
    in_string = False
    escape = False
    length = len(text)
    for idx, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == ",":
            nxt = idx + 1
            while nxt < length and text[nxt].isspace():
                nxt += 1
            if nxt < length and text[nxt] in "}]":
                continue
        out.append(ch)
    return "".join(out)
