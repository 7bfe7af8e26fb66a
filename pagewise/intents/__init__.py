"""Intent tags, payload schemas, coercion and validation."""

from __future__ import annotations

from .coerce import coerce_intent, infer_intent
from .schemas import (
    CorrectPayload,
    DecodedResult,
    HighlightPayload,
    Intent,
    NonePayload,
    Payload,
    SummarizePayload,
    WritePayload,
)
from .validate import validate_payload

__all__ = [
    "CorrectPayload",
    "DecodedResult",
    "HighlightPayload",
    "Intent",
    "NonePayload",
    "Payload",
    "SummarizePayload",
    "WritePayload",
    "coerce_intent",
    "infer_intent",
    "validate_payload",
]
