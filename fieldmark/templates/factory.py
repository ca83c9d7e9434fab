"""Constructors for templates and fields."""

from __future__ import annotations

import copy
import logging
import re
import uuid

from fieldmark.types import UNIVERSAL_PATTERN, DataType, Template, TemplateField
from fieldmark.utils import utc_now_iso


LOGGER = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "New template"
DEFAULT_FIELD_NAME = "New field"

_NTH_CHILD = re.compile(r":nth-child\(\d+\)")
_WHITESPACE = re.compile(r"\s+")


def generate_template_id() -> str:
    return f"tmpl_{uuid.uuid4().hex}"


def generate_field_id() -> str:
    return f"field_{uuid.uuid4().hex}"


def create_empty_template(name: str | None = None, url: str | None = None) -> Template:
    """Return a new, unsaved template with a fresh id and no fields."""

    now = utc_now_iso()
    return Template(
        id=generate_template_id(),
        name=name or DEFAULT_TEMPLATE_NAME,
        url=url or UNIVERSAL_PATTERN,
        fields=[],
        created_at=now,
        updated_at=now,
    )


def create_field(
    name: str | None = None,
    selector: str | None = None,
    data_type: DataType | str | None = None,
) -> TemplateField:
    if isinstance(data_type, DataType):
        data_type = data_type.value
    return TemplateField(
        id=generate_field_id(),
        name=name or DEFAULT_FIELD_NAME,
        selector=selector or "",
        data_type=data_type or DataType.TEXT_CONTENT.value,
    )


def clone_template(template: Template, new_name: str | None = None) -> Template:
    """Deep-copy ``template`` under a new id; every field also gets a new id."""

    cloned = copy.deepcopy(template)
    now = utc_now_iso()
    cloned.id = generate_template_id()
    cloned.name = new_name or f"{template.name} (copy)"
    cloned.created_at = now
    cloned.updated_at = now
    for item in cloned.fields:
        item.id = generate_field_id()
    return cloned


def normalize_selector(selector: str | None) -> str | None:
    """Trim and collapse whitespace in a selector."""

    if not selector:
        return selector
    normalized = _WHITESPACE.sub(" ", selector.strip())
    for match in _NTH_CHILD.findall(normalized):
        LOGGER.warning(
            "Positional selector %s detected in %r; prefer ids, classes or attributes",
            match,
            normalized,
        )
    return normalized
