"""Decoders that recover objects from raw model output."""

from __future__ import annotations

from .base import DecodeOutcome, ProtocolDecoder, RecoveryAttempt
from .candidates import Candidate, extract_candidates
from .completion import complete
from .factory import select_protocol_decoder
from .json_mode import JsonProtocolDecoder, decode_json
from .text_protocol import ParseState, TextProtocolDecoder, decode_text_protocol

__all__ = [
    "Candidate",
    "DecodeOutcome",
    "JsonProtocolDecoder",
    "ParseState",
    "ProtocolDecoder",
    "RecoveryAttempt",
    "TextProtocolDecoder",
    "complete",
    "decode_json",
    "decode_text_protocol",
    "extract_candidates",
    "select_protocol_decoder",
]
