"""Structural and semantic validation of templates before they are persisted."""

from __future__ import annotations

from typing import Any, List, Mapping

import soupsieve

from fieldmark.templates.matcher import PATTERN_ERRORS, compile_url_pattern
from fieldmark.types import UNIVERSAL_PATTERN, DataType, Template, ValidationResult


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def selector_error(selector: str) -> str | None:
    """Describe why ``selector`` cannot be used, or return None when it can.

    Pseudo-elements and at-rules parse in a browser but never select an
    element, so they are reported as unsupported.
    """

    try:
        soupsieve.compile(selector)
    except soupsieve.SelectorSyntaxError as exc:
        return f"invalid CSS selector - {str(exc).splitlines()[0]}"
    except NotImplementedError as exc:
        return f"unsupported CSS selector - {exc}"
    return None


def validate_field(field: Any, position: int) -> List[str]:
    """Validate one field; ``position`` is 1-based and used in messages."""

    label = f"Field {position}"
    if not isinstance(field, Mapping):
        return [f"{label}: field must be an object"]

    errors: List[str] = []
    if _blank(field.get("id")):
        errors.append(f"{label}: field ID is required")
    if _blank(field.get("name")):
        errors.append(f"{label}: field name is required")

    selector = field.get("selector")
    if _blank(selector):
        errors.append(f"{label}: CSS selector is required")
    else:
        problem = selector_error(selector)
        if problem:
            errors.append(f"{label}: {problem}")

    data_type = field.get("dataType")
    if data_type and data_type not in DataType.values():
        errors.append(
            f"{label}: invalid data type (allowed: {', '.join(DataType.values())})"
        )
    return errors


def validate(template: Template | Mapping[str, Any]) -> ValidationResult:
    """Check a template and report every violation found, in a stable order."""

    raw = template.to_dict() if isinstance(template, Template) else template
    errors: List[str] = []

    if _blank(raw.get("name")):
        errors.append("Template name is required")
    if _blank(raw.get("id")):
        errors.append("Template ID is required")

    fields = raw.get("fields")
    if not isinstance(fields, list):
        errors.append("Template fields must be a list")
    else:
        seen: set[str] = set()
        for position, field in enumerate(fields, start=1):
            errors.extend(validate_field(field, position))
            field_id = field.get("id") if isinstance(field, Mapping) else None
            if isinstance(field_id, str) and field_id.strip():
                if field_id in seen:
                    errors.append(f"Field {position}: duplicate field ID '{field_id}'")
                seen.add(field_id)

    url = raw.get("url")
    if url and url != UNIVERSAL_PATTERN:
        try:
            compile_url_pattern(str(url))
        except PATTERN_ERRORS as exc:
            errors.append(f"Invalid URL pattern: {exc}")

    return ValidationResult(valid=not errors, errors=errors)
