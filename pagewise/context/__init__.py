"""Input-side prompt assembly."""

from __future__ import annotations

from .packer import ContextItem, ContextPacker, IncludedContext, PackMeta, pack, truncate_at_sentence
from .prompts import build_prompt, continuation_prompt

__all__ = [
    "ContextItem",
    "ContextPacker",
    "IncludedContext",
    "PackMeta",
    "build_prompt",
    "continuation_prompt",
    "pack",
    "truncate_at_sentence",
]
