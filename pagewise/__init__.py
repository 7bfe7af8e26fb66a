"""Recover validated intent payloads from untrusted model output."""

from __future__ import annotations

from .config import AppConfig, load_config
from .errors import (
    CancellationError,
    DecodeError,
    MalformedResponse,
    PagewiseError,
    SessionError,
    ValidationError,
)
from .intents import DecodedResult, Intent
from .logging_utils import configure_logging, get_logger
from .pipeline import IntentPipeline, RunOutcome, build_fallback

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "CancellationError",
    "DecodeError",
    "DecodedResult",
    "Intent",
    "IntentPipeline",
    "MalformedResponse",
    "PagewiseError",
    "RunOutcome",
    "SessionError",
    "ValidationError",
    "build_fallback",
    "configure_logging",
    "get_logger",
    "load_config",
]
