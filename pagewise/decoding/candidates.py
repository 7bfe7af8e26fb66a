"""Locate fenced blocks and bracket-balanced spans in raw model output."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

MAX_CANDIDATES = 10

_FENCE_RE = re.compile(r"(```|~~~)[ \t]*[\w+.-]*[ \t]*\r?\n?(.*?)\1", re.DOTALL)
_CLOSERS = {"{": "}", "[": "]"}


@dataclass(frozen=True)
class Candidate:
    text: str
    kind: Literal["object", "array", "fence"]
    start: int
    end: int


def extract_candidates(text: str, *, limit: int = MAX_CANDIDATES) -> list[Candidate]:
    """Return candidates in left-to-right order.

    A fenced block wins outright and is returned alone; otherwise the
    bracket-balanced spans of ``text`` are returned, at most ``limit`` of them.
    """

    fenced = find_fenced_block(text)
    if fenced is not None:
        return [fenced]
    return scan_balanced(text, limit=limit)


def find_fenced_block(text: str) -> Candidate | None:
    if not text:
        return None
    match = _FENCE_RE.search(text)
    if match is None:
        return None
    inner = match.group(2).strip()
    if not inner:
        return None
    return Candidate(text=inner, kind="fence", start=match.start(2), end=match.end(2))


@dataclass(frozen=True)
class SpanScan:
    """Closed top-level spans, plus the first opener that never closed."""

    spans: list[tuple[int, int]]
    first_unclosed: int | None


def scan_balanced(text: str, *, limit: int = MAX_CANDIDATES) -> list[Candidate]:
    candidates: list[Candidate] = []
    for start, end in scan_spans(text).spans[:limit]:
        kind = "object" if text[start] == "{" else "array"
        candidates.append(Candidate(text=text[start:end], kind=kind, start=start, end=end))
    return candidates


def scan_spans(text: str) -> SpanScan:
    """Find bracket-balanced spans in one forward pass per capture.

    A capture starts at an opener outside any span and keeps a stack of open
    positions, recording every span that closes. When a capture hits a
    mismatched closer or the end of the text, its open positions are dropped
    and spans recorded inside it stand on their own. Scanning resumes after
    the capture, or at the first opener it saw inside a string, since that
    opener may start a real span once the quote is read as prose.
    """

    closed: dict[int, int] = {}
    first_unclosed: int | None = None
    length = len(text)
    pos = next_opener(text, 0)
    while pos is not None:
        stack: list[tuple[int, str]] = []
        in_string = False
        escape = False
        quoted_opener: int | None = None
        idx = pos
        while idx < length:
            ch = text[idx]
            if in_string:
                if escape:
                    escape = False
                elif ch == "\\":
                    escape = True
                elif ch == '"':
                    in_string = False
                elif ch in _CLOSERS and quoted_opener is None:
                    quoted_opener = idx
            elif ch == '"':
                in_string = True
            elif ch in _CLOSERS:
                stack.append((idx, _CLOSERS[ch]))
            elif ch in "}]":
                if stack[-1][1] != ch:
                    break
                start, _ = stack.pop()
                closed.setdefault(start, idx + 1)
                if quoted_opener is not None and quoted_opener > start:
                    # Already inside a closed span; restarting there finds nothing new.
                    quoted_opener = None
                if not stack:
                    break
            idx += 1
        if not stack:
            pos = next_opener(text, idx + 1)
            continue
        if first_unclosed is None:
            first_unclosed = pos
        resume = quoted_opener if quoted_opener is not None else idx + 1
        pos = next_opener(text, resume) if resume < length else None
    return SpanScan(spans=_outermost(closed), first_unclosed=first_unclosed)


def _outermost(closed: dict[int, int]) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    last_end = -1
    for start in sorted(closed):
        if start >= last_end:
            spans.append((start, closed[start]))
            last_end = closed[start]
    return spans


def next_opener(text: str, pos: int) -> int | None:
    brace = text.find("{", pos)
    bracket = text.find("[", pos)
    found = [idx for idx in (brace, bracket) if idx != -1]
    return min(found) if found else None
