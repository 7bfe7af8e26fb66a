"""Per-intent field contract enforcement."""

from __future__ import annotations

from typing import Any

import pydantic

from ..errors import ValidationError
from .schemas import PAYLOAD_MODELS, Intent, Payload


def validate_payload(obj: dict[str, Any]) -> Payload:
    """Return the typed payload for ``obj`` or raise ``ValidationError``.

    Only the variant's own fields (plus ``explain`` and ``confidence``) survive;
    anything else the model emitted is dropped.
    """

    if not isinstance(obj, dict):
        raise ValidationError("payload is not an object")
    try:
        intent = Intent(obj.get("intent"))
    except (TypeError, ValueError):
        raise ValidationError("missing or invalid intent", field="intent") from None
    model = PAYLOAD_MODELS[intent]
    fields = {key: value for key, value in obj.items() if key != "intent"}
    try:
        return model.model_validate(fields)
    except pydantic.ValidationError as exc:
        field = _first_error_field(exc)
        raise ValidationError(
            f"{intent.value}: missing or invalid field {field!r}", field=field
        ) from exc


def _first_error_field(exc: pydantic.ValidationError) -> str | None:
    errors = exc.errors()
    if not errors or not errors[0].get("loc"):
        return None
    return str(errors[0]["loc"][0])
