"""Deterministic terminal payload for answers nothing could interpret."""

from __future__ import annotations

from ..intents.schemas import DecodedResult, SummarizePayload
from ..text.clip import clip_text

FALLBACK_TLDR = "The model's answer could not be interpreted."
FALLBACK_BULLETS = (
    "The response did not match any supported answer format.",
    "Nothing was changed on the page.",
    "Try rephrasing the request or narrowing the selected context.",
)
_PROMPT_ECHO_CHARS = 200


def build_fallback(original_prompt: str) -> DecodedResult:
    """Return the synthetic SUMMARIZE result; never raises."""

    request = " ".join((original_prompt or "").split())
    if request:
        explain = f'Fallback answer for the request "{clip_text(request, _PROMPT_ECHO_CHARS)}".'
    else:
        explain = "Fallback answer for an empty request."
    payload = SummarizePayload(
        tldr=FALLBACK_TLDR,
        bullets=FALLBACK_BULLETS,
        explain=explain,
        confidence=0.0,
    )
    return DecodedResult(payload=payload, recovered=False, synthetic=True)
