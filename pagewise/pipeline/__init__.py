"""Request orchestration around the decoders."""

from __future__ import annotations

from .continuation import ContinuationController, merge_continuation
from .fallback import build_fallback
from .service import IntentPipeline, RunOutcome

__all__ = [
    "ContinuationController",
    "IntentPipeline",
    "RunOutcome",
    "build_fallback",
    "merge_continuation",
]
