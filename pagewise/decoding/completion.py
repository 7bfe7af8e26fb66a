"""EOF recovery for JSON text cut off mid-stream."""

from __future__ import annotations

from dataclasses import dataclass, field

from .candidates import next_opener, scan_spans

_LITERALS = ("true", "false", "null")
_NUMBER_CHARS = frozenset("0123456789+-.eE")
_NUMBER_TAIL = "+-.eE"

# What a container expects next.
_KEY = "key"
_COLON = "colon"
_VALUE = "value"
_COMMA = "comma"


@dataclass
class _Frame:
    closer: str
    expect: str


@dataclass
class _ScanState:
    stack: list[_Frame] = field(default_factory=list)
    in_string: bool = False
    string_is_key: bool = False
    escape: bool = False
    string_start: int = 0
    token_start: int | None = None
    done_at: int | None = None


def complete(text: str) -> str:
    """Close whatever ``text`` left open so it parses as JSON.

    Scanning starts at the first ``{`` or ``[``; anything after the first
    top-level value closes is dropped. Strings are closed first, then dangling
    keys, colons, commas and partial scalars are repaired, then containers are
    closed innermost first.
    """

    start = _first_opener(text)
    if start is None:
        return text
    body = text[start:]
    state = _scan(body)
    if state.done_at is not None:
        return body[: state.done_at]
    return _repair(body, state)


def _first_opener(text: str) -> int | None:
    """Return the first opener whose span never closes, else the first opener."""

    unclosed = scan_spans(text).first_unclosed
    if unclosed is not None:
        return unclosed
    return next_opener(text, 0)


def _scan(body: str) -> _ScanState:
    state = _ScanState()
    for idx, ch in enumerate(body):
        if state.in_string:
            if state.escape:
                state.escape = False
            elif ch == "\\":
                state.escape = True
            elif ch == '"':
                state.in_string = False
                _finish_value(state, was_key=state.string_is_key)
            continue
        if state.token_start is not None:
            if ch.isalnum() or ch in _NUMBER_CHARS:
                continue
            state.token_start = None
            _finish_value(state, was_key=False)
        if ch.isspace():
            continue
        top = state.stack[-1] if state.stack else None
        if ch == '"':
            state.in_string = True
            state.string_start = idx
            state.string_is_key = top is not None and top.expect == _KEY
        elif ch in "{[":
            if top is not None:
                top.expect = _COMMA
            closer = "}" if ch == "{" else "]"
            state.stack.append(_Frame(closer=closer, expect=_KEY if ch == "{" else _VALUE))
        elif ch in "}]":
            if state.stack:
                state.stack.pop()
            if not state.stack:
                state.done_at = idx + 1
                return state
        elif ch == ":":
            if top is not None and top.expect == _COLON:
                top.expect = _VALUE
        elif ch == ",":
            if top is not None:
                top.expect = _KEY if top.closer == "}" else _VALUE
        else:
            state.token_start = idx
    return state


def _finish_value(state: _ScanState, *, was_key: bool) -> None:
    if not state.stack:
        return
    top = state.stack[-1]
    if was_key:
        top.expect = _COLON
    else:
        top.expect = _COMMA


def _repair(body: str, state: _ScanState) -> str:
    out = body
    if state.in_string:
        out = _close_string(out, state)
    elif state.token_start is not None:
        out = _finish_token(out, state)
    out = out.rstrip()
    top = state.stack[-1] if state.stack else None
    if top is not None:
        if top.expect == _COLON:
            out += ":null"
        elif top.expect == _VALUE and top.closer == "}":
            out += "null"
        elif top.expect in (_KEY, _VALUE) and out.endswith(","):
            out = out[:-1].rstrip()
    return out + "".join(frame.closer for frame in reversed(state.stack))


def _close_string(out: str, state: _ScanState) -> str:
    if state.escape:
        out = out[:-1]
    else:
        out = _drop_partial_unicode_escape(out, state.string_start)
    _finish_value(state, was_key=state.string_is_key)
    return out + '"'


def _drop_partial_unicode_escape(out: str, string_start: int) -> str:
    tail_start = max(string_start + 1, len(out) - 6)
    slash = out.rfind("\\u", tail_start)
    if slash == -1:
        return out
    # Count the backslashes before ``\u``; an odd run means a real escape.
    run = 0
    pos = slash
    while pos >= string_start + 1 and out[pos] == "\\":
        run += 1
        pos -= 1
    if run % 2 == 1 and len(out) - slash < 6:
        return out[:slash]
    return out


def _finish_token(out: str, state: _ScanState) -> str:
    start = state.token_start
    token = out[start:]
    for literal in _LITERALS:
        if literal.startswith(token):
            _finish_value(state, was_key=False)
            return out + literal[len(token) :]
    if all(ch in _NUMBER_CHARS for ch in token):
        trimmed = token.rstrip(_NUMBER_TAIL)
        if trimmed and trimmed[-1].isdigit():
            _finish_value(state, was_key=False)
            return out[:start] + trimmed
        # Nothing numeric left: behave as if the value never started.
        return out[:start]
    return out
