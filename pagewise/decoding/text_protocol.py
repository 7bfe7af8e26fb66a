"""Label-based plain-text response protocol.

Models without structured output answer in labelled sections instead of JSON::

    INTENT: SUMMARIZE
    TLDR: One line.
    BULLETS:
    - first point
    - second point
    END

The parser is a line-oriented state machine. Anything after an ``END`` line
is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..context.prompts import TEXT_PROTOCOL_INSTRUCTIONS
from ..errors import MalformedResponse
from ..intents.coerce import infer_intent
from ..intents.schemas import BULLET_MAX_CHARS, MAX_ITEMS, TEXT_MAX_CHARS, TLDR_MAX_CHARS
from ..logging_utils import get_logger
from ..text.clip import clip_text
from .base import TEXT_PROTOCOL, AcceptFn, DecodeOutcome, ProtocolDecoder, RecoveryAttempt
from .json_mode import JsonProtocolDecoder

_log = get_logger("decoding.text")

_HEADER_RE = re.compile(
    r"^[#>*_\s]*(INTENT|TLDR|BULLETS|DRAFT|CORRECTION|HIGHLIGHTS|EXPLAIN|CONFIDENCE)"
    r"[*_\s]*:[*_\s]*(.*)$",
    re.IGNORECASE,
)
_LIST_MARKERS = ("- ", "• ")


class ParseState(str, Enum):
    SEEKING_HEADER = "seeking-header"
    IN_BULLETS = "in-bullets"
    IN_HIGHLIGHTS = "in-highlights"
    IN_DRAFT = "in-draft"
    IN_CORRECTION = "in-correction"


@dataclass
class _Sections:
    intent: str | None = None
    tldr: str | None = None
    bullets: list[str] = field(default_factory=list)
    highlights: list[str] = field(default_factory=list)
    draft: list[str] | None = None
    correction: list[str] | None = None
    explain: str | None = None
    confidence: float | None = None


class TextProtocolParser:
    """Feed lines one at a time; read ``fields()`` when done."""

    def __init__(self) -> None:
        self.state = ParseState.SEEKING_HEADER
        self.finished = False
        self._sections = _Sections()

    def feed(self, line: str) -> None:
        if self.finished:
            return
        line = line.strip()
        if line.upper() == "END":
            self.finished = True
            return
        match = _HEADER_RE.match(line)
        if match and self._is_header(match.group(1)):
            self._on_header(match.group(1).upper(), match.group(2).strip())
            return
        self._on_body(line)

    def _is_header(self, label: str) -> bool:
        # Inside free text only labels written as instructed (upper case) end
        # the block; "Explain: ..." there is part of the draft.
        if self.state in (ParseState.IN_DRAFT, ParseState.IN_CORRECTION):
            return label.isupper()
        return True

    def _on_header(self, label: str, inline: str) -> None:
        sections = self._sections
        self.state = ParseState.SEEKING_HEADER
        if label == "INTENT":
            sections.intent = inline or None
        elif label == "TLDR":
            sections.tldr = clip_text(inline, TLDR_MAX_CHARS) if inline else None
        elif label == "EXPLAIN":
            sections.explain = inline or None
        elif label == "CONFIDENCE":
            sections.confidence = _parse_confidence(inline)
        elif label == "BULLETS":
            self.state = ParseState.IN_BULLETS
            self._on_body(inline)
        elif label == "HIGHLIGHTS":
            self.state = ParseState.IN_HIGHLIGHTS
            self._on_body(inline)
        elif label == "DRAFT":
            self.state = ParseState.IN_DRAFT
            sections.draft = [inline] if inline else []
        elif label == "CORRECTION":
            self.state = ParseState.IN_CORRECTION
            sections.correction = [inline] if inline else []

    def _on_body(self, line: str) -> None:
        sections = self._sections
        if self.state is ParseState.IN_BULLETS:
            item = _list_item(line)
            if item and len(sections.bullets) < MAX_ITEMS:
                sections.bullets.append(clip_text(item, BULLET_MAX_CHARS))
        elif self.state is ParseState.IN_HIGHLIGHTS:
            item = _list_item(line)
            if item and len(sections.highlights) < MAX_ITEMS:
                sections.highlights.append(item)
        elif self.state is ParseState.IN_DRAFT:
            sections.draft.append(line)
        elif self.state is ParseState.IN_CORRECTION:
            sections.correction.append(line)

    def fields(self) -> dict[str, Any]:
        sections = self._sections
        out: dict[str, Any] = {}
        draft = _join_block(sections.draft)
        correction = _join_block(sections.correction)
        if draft:
            out["draft"] = draft
        if correction:
            out["correction"] = correction
        if sections.highlights:
            out["highlights"] = list(sections.highlights)
        if sections.tldr:
            out["tldr"] = sections.tldr
        if sections.bullets:
            out["bullets"] = list(sections.bullets)
        if sections.explain:
            out["explain"] = sections.explain
        if sections.confidence is not None:
            out["confidence"] = sections.confidence
        intent = sections.intent
        if intent is None:
            inferred = infer_intent(out)
            intent = inferred.value if inferred else None
        if intent is not None:
            out["intent"] = intent
        return out


def decode_text_protocol(raw_text: str) -> dict[str, Any]:
    """Parse labelled sections into a plain, unvalidated field map."""

    parser = TextProtocolParser()
    for line in (raw_text or "").splitlines():
        parser.feed(line)
        if parser.finished:
            break
    return parser.fields()


class TextProtocolDecoder(ProtocolDecoder):
    name = "text"
    supports_continuation = False

    def __init__(self, *, json_fallback: JsonProtocolDecoder | None = None) -> None:
        self._json_fallback = json_fallback or JsonProtocolDecoder()

    def format_instructions(self) -> str:
        return TEXT_PROTOCOL_INSTRUCTIONS

    def decode(self, raw_text: str, *, accept: AcceptFn | None = None) -> DecodeOutcome:
        fields = decode_text_protocol(raw_text)
        if fields:
            attempt = RecoveryAttempt(tiers=[TEXT_PROTOCOL], succeeded=TEXT_PROTOCOL)
            return DecodeOutcome(data=fields, attempt=attempt)
        # Some models answer in JSON even when asked for labels.
        _log.debug("No labelled sections found; trying JSON recovery")
        try:
            outcome = self._json_fallback.decode(raw_text, accept=accept)
        except MalformedResponse:
            raise MalformedResponse(
                "No labelled sections or JSON object in output.", tiers=[TEXT_PROTOCOL]
            ) from None
        outcome.attempt.tiers.insert(0, TEXT_PROTOCOL)
        return outcome


def _list_item(line: str) -> str | None:
    for marker in _LIST_MARKERS:
        if line.startswith(marker):
            item = line[len(marker) :].strip()
            return item or None
    return None


def _join_block(lines: list[str] | None) -> str | None:
    if lines is None:
        return None
    text = "\n".join(lines).strip()
    if not text:
        return None
    return clip_text(text, TEXT_MAX_CHARS)


def _parse_confidence(value: str) -> float | None:
    try:
        return float(value.rstrip("%")) / (100.0 if value.endswith("%") else 1.0)
    except ValueError:
        return None
