"""Length caps for model-produced strings."""

from __future__ import annotations

ELLIPSIS = "…"


def clip_text(text: str, limit: int, *, marker: str = ELLIPSIS) -> str:
    """Cap ``text`` at ``limit`` characters, ending in ``marker`` when cut."""

    if len(text) <= limit:
        return text
    if limit <= len(marker):
        return text[:limit]
    return text[: limit - len(marker)] + marker
