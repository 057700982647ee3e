"""
Submission-time checks for the open form_data bag against a package's configured fields.
The workflow itself never looks inside form_data.
"""
from __future__ import annotations

from typing import Any

from services.errors import ValidationError

PRIMITIVE_TYPES = (str, int, float, bool, type(None))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_form_data(form_fields: list[dict[str, Any]] | None, form_data: dict[str, Any]) -> dict[str, Any]:
    """
    Return form_data unchanged if every required field is present and every value is a
    primitive; otherwise raise ValidationError naming the offending fields.
    """
    if not isinstance(form_data, dict):
        raise ValidationError("formData must be an object")

    bad_types = sorted(k for k, v in form_data.items() if not isinstance(v, PRIMITIVE_TYPES))
    if bad_types:
        raise ValidationError(
            f"formData values must be strings, numbers, booleans or null: {', '.join(bad_types)}",
            missing=bad_types,
        )

    missing = [
        f["name"]
        for f in (form_fields or [])
        if f.get("required") and _is_blank(form_data.get(f["name"]))
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing=missing)

    for f in form_fields or []:
        options = f.get("options")
        value = form_data.get(f["name"])
        if options and not _is_blank(value) and value not in options:
            raise ValidationError(f"Invalid value for {f['name']}: expected one of {', '.join(map(str, options))}")
    return form_data
