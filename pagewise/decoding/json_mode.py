"""Tiered JSON recovery for model output."""

from __future__ import annotations

import json
from typing import Any, Iterator

from ..context.prompts import JSON_FORMAT_INSTRUCTIONS
from ..errors import MalformedResponse
from ..intents.schemas import response_json_schema
from ..logging_utils import get_logger
from ..text.normalize import normalize
from .base import (
    BALANCED_SCAN,
    EOF_COMPLETION,
    FAST_PATH,
    FENCE,
    AcceptFn,
    DecodeOutcome,
    ProtocolDecoder,
    RecoveryAttempt,
)
from .candidates import MAX_CANDIDATES, find_fenced_block, scan_balanced
from .completion import complete

_log = get_logger("decoding.json")


class JsonProtocolDecoder(ProtocolDecoder):
    name = "json"
    supports_continuation = True

    def __init__(self, *, max_candidates: int = MAX_CANDIDATES) -> None:
        self._max_candidates = max_candidates

    def format_instructions(self) -> str:
        return JSON_FORMAT_INSTRUCTIONS

    def response_constraint(self) -> dict[str, Any] | None:
        return response_json_schema()

    def decode(self, raw_text: str, *, accept: AcceptFn | None = None) -> DecodeOutcome:
        """Try each recovery tier in order; the first acceptable object wins.

        Without ``accept`` the first object that parses is returned. With it,
        parseable objects the predicate rejects are passed over for later
        candidates, and the first parseable one is used only if nothing is
        accepted.
        """

        if not raw_text or not raw_text.strip():
            raise MalformedResponse("Empty model output.")
        attempt = RecoveryAttempt()
        first_parsed: tuple[str, dict[str, Any]] | None = None
        for tier, source in self._tiers(normalize(raw_text)):
            attempt.tried(tier)
            data = parse_object(normalize(source))
            if data is None:
                continue
            if accept is None or accept(data):
                attempt.succeeded = tier
                _log.debug("Decoded JSON via {} after tiers {}", tier, attempt.tiers)
                return DecodeOutcome(data=data, attempt=attempt)
            if first_parsed is None:
                first_parsed = (tier, data)
        if first_parsed is not None:
            attempt.succeeded = first_parsed[0]
            _log.debug("No candidate accepted; using first parseable from {}", first_parsed[0])
            return DecodeOutcome(data=first_parsed[1], attempt=attempt)
        _log.debug("JSON recovery failed after tiers {}", attempt.tiers)
        raise MalformedResponse("No JSON object found in output.", tiers=attempt.tiers)

    def _tiers(self, normalized: str) -> Iterator[tuple[str, str]]:
        yield FAST_PATH, normalized
        fenced = find_fenced_block(normalized)
        if fenced is not None:
            yield FENCE, fenced.text
        for candidate in scan_balanced(normalized, limit=self._max_candidates):
            yield BALANCED_SCAN, candidate.text
        yield EOF_COMPLETION, complete(normalized)


def parse_object(text: str) -> dict[str, Any] | None:
    """Parse ``text`` as a plain object, unwrapping a one-object array."""

    if not text:
        return None
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and len(value) == 1 and isinstance(value[0], dict):
        return value[0]
    return None


def decode_json(raw_text: str) -> dict[str, Any]:
    """Recover the first parseable object from ``raw_text``."""

    return JsonProtocolDecoder().decode(raw_text).data
