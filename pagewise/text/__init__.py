"""Text cleanup helpers shared by the decoders."""

from __future__ import annotations

from .clip import ELLIPSIS, clip_text
from .normalize import normalize

__all__ = ["ELLIPSIS", "clip_text", "normalize"]
