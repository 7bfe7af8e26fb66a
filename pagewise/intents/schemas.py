"""Pydantic schemas for intent payloads."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints

TLDR_MAX_CHARS = 150
BULLET_MAX_CHARS = 120
TEXT_MAX_CHARS = 1200
MAX_ITEMS = 5


class Intent(str, Enum):
    SUMMARIZE = "SUMMARIZE"
    WRITE = "WRITE"
    CORRECT = "CORRECT"
    HIGHLIGHT = "HIGHLIGHT"
    NONE = "NONE"


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


# Free text is returned as written: drafts keep indentation, highlights stay
# exact page phrases.
NonEmpty = Annotated[str, AfterValidator(_not_blank)]
Tldr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=TLDR_MAX_CHARS)
]
Bullet = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=BULLET_MAX_CHARS)
]
LongText = Annotated[
    str, StringConstraints(max_length=TEXT_MAX_CHARS), AfterValidator(_not_blank)
]


class _PayloadBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    explain: str | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0)


class SummarizePayload(_PayloadBase):
    intent: Literal[Intent.SUMMARIZE] = Intent.SUMMARIZE
    tldr: Tldr
    bullets: tuple[Bullet, ...] = Field(min_length=1, max_length=MAX_ITEMS)


class WritePayload(_PayloadBase):
    intent: Literal[Intent.WRITE] = Intent.WRITE
    draft: LongText


class CorrectPayload(_PayloadBase):
    intent: Literal[Intent.CORRECT] = Intent.CORRECT
    correction: LongText


class HighlightPayload(_PayloadBase):
    intent: Literal[Intent.HIGHLIGHT] = Intent.HIGHLIGHT
    highlights: tuple[NonEmpty, ...] = Field(min_length=1, max_length=MAX_ITEMS)


class NonePayload(_PayloadBase):
    intent: Literal[Intent.NONE] = Intent.NONE
    explain: NonEmpty


Payload = Union[SummarizePayload, WritePayload, CorrectPayload, HighlightPayload, NonePayload]

PAYLOAD_MODELS: dict[Intent, type[_PayloadBase]] = {
    Intent.SUMMARIZE: SummarizePayload,
    Intent.WRITE: WritePayload,
    Intent.CORRECT: CorrectPayload,
    Intent.HIGHLIGHT: HighlightPayload,
    Intent.NONE: NonePayload,
}


@dataclass(frozen=True)
class DecodedResult:
    payload: Payload
    recovered: bool = False
    synthetic: bool = False

    @property
    def intent(self) -> Intent:
        return self.payload.intent

    def to_json(self) -> dict:
        return {
            "payload": self.payload.model_dump(mode="json", exclude_none=True),
            "recovered": self.recovered,
            "synthetic": self.synthetic,
        }


def response_json_schema() -> dict:
    """JSON schema handed to models that accept a response constraint."""

    return {
        "type": "object",
        "properties": {
            "intent": {"type": "string", "enum": [intent.value for intent in Intent]},
            "tldr": {"type": "string", "maxLength": TLDR_MAX_CHARS},
            "bullets": {
                "type": "array",
                "items": {"type": "string", "maxLength": BULLET_MAX_CHARS},
                "maxItems": MAX_ITEMS,
            },
            "draft": {"type": "string", "maxLength": TEXT_MAX_CHARS},
            "correction": {"type": "string", "maxLength": TEXT_MAX_CHARS},
            "highlights": {
                "type": "array",
                "description": "Exact text phrases from the document to highlight.",
                "items": {"type": "string"},
                "maxItems": MAX_ITEMS,
            },
            "explain": {"type": "string"},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
        "required": ["intent"],
    }
