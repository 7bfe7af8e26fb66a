"""Normalization of the discriminating ``intent`` tag."""

from __future__ import annotations

from typing import Any

from .schemas import Intent

_INTENT_SYNONYM_KEYS = ("type", "action")

_INTENT_ALIASES = {
    "SUMMARY": Intent.SUMMARIZE.value,
    "SUMMARISE": Intent.SUMMARIZE.value,
    "HIGHLIGHTS": Intent.HIGHLIGHT.value,
    "CORRECTION": Intent.CORRECT.value,
    "DRAFT": Intent.WRITE.value,
}

# Inference order when no tag is present: most specific section first.
_INFERENCE_ORDER: tuple[tuple[tuple[str, ...], Intent], ...] = (
    (("draft",), Intent.WRITE),
    (("correction",), Intent.CORRECT),
    (("highlights",), Intent.HIGHLIGHT),
    (("tldr", "bullets"), Intent.SUMMARIZE),
)


def coerce_intent(obj: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``obj`` with a normalized ``intent`` where one can be found.

    Never raises; an object with no recognizable intent comes back without one
    and is rejected by validation.
    """

    data = dict(obj)
    intent = data.get("intent")
    if _is_blank(intent):
        for key in _INTENT_SYNONYM_KEYS:
            if not _is_blank(data.get(key)):
                intent = data[key]
                break
    _lift_nested_summary(data)
    if isinstance(intent, str):
        tag = intent.strip().upper()
        intent = _INTENT_ALIASES.get(tag, tag)
    if _is_blank(intent):
        inferred = infer_intent(data)
        intent = inferred.value if inferred else None
    if intent is None:
        data.pop("intent", None)
    else:
        data["intent"] = intent
    return data


def infer_intent(fields: dict[str, Any]) -> Intent | None:
    for keys, intent in _INFERENCE_ORDER:
        if any(_is_populated(fields.get(key)) for key in keys):
            return intent
    return None


def _lift_nested_summary(data: dict[str, Any]) -> None:
    summary = data.get("summary")
    if not isinstance(summary, dict):
        return
    for key in ("tldr", "bullets"):
        if not _is_populated(data.get(key)) and key in summary:
            data[key] = summary[key]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _is_populated(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return value is not None
