"""Template repository, matching, validation and construction helpers."""

from .factory import (
    clone_template,
    create_empty_template,
    create_field,
    generate_field_id,
    generate_template_id,
    normalize_selector,
)
from .matcher import (
    compile_url_pattern,
    filter_templates,
    get_templates_for_url,
    is_universal,
    matches_url,
    rank_templates,
)
from .repository import METADATA_KEY, TEMPLATE_KEY_PREFIX, TemplateRepository, storage_key
from .validator import validate, validate_field

__all__ = [
    "METADATA_KEY",
    "TEMPLATE_KEY_PREFIX",
    "TemplateRepository",
    "clone_template",
    "compile_url_pattern",
    "create_empty_template",
    "create_field",
    "filter_templates",
    "generate_field_id",
    "generate_template_id",
    "get_templates_for_url",
    "is_universal",
    "matches_url",
    "normalize_selector",
    "rank_templates",
    "storage_key",
    "validate",
    "validate_field",
]
