"""URL-pattern matching and ranking for templates.

Patterns are globs: ``*`` matches any run of characters and ``?`` is a literal
question mark. The single pattern ``*`` (or no pattern at all) marks a
universal template that applies to every page.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable, List, Pattern

from fieldmark.types import UNIVERSAL_PATTERN, Template


LOGGER = logging.getLogger(__name__)

# Raised by re.compile for malformed patterns and for oversized repeat counts.
PATTERN_ERRORS = (re.error, OverflowError, RecursionError)


def pattern_to_regex(pattern: str) -> str:
    """Translate a URL glob into an (unanchored) regular expression source."""

    # Order matters: dots first, so the ".*" produced for stars stays unescaped.
    return (
        pattern.replace(".", r"\.")
        .replace("*", ".*")
        .replace("?", r"\?")
    )


@lru_cache(maxsize=512)
def compile_url_pattern(pattern: str) -> Pattern[str]:
    """Compile a URL glob; raises one of :data:`PATTERN_ERRORS` for unusable patterns."""

    return re.compile(pattern_to_regex(pattern), re.IGNORECASE)


def is_universal(template: Template) -> bool:
    return not template.url or template.url == UNIVERSAL_PATTERN


def matches_url(template: Template, url: str) -> bool:
    """Return True when ``template`` applies to ``url``."""

    if is_universal(template):
        return True
    try:
        regex = compile_url_pattern(template.url)
    except PATTERN_ERRORS as exc:
        LOGGER.warning("Invalid URL pattern in template %r: %s", template.name, exc)
        return False
    return regex.fullmatch(url) is not None


def rank_templates(templates: Iterable[Template]) -> List[Template]:
    """Order URL-specific templates before universal ones, newest first within each group."""

    newest_first = sorted(templates, key=lambda t: t.updated_at or "", reverse=True)
    return sorted(newest_first, key=is_universal)


def get_templates_for_url(templates: Iterable[Template], url: str) -> List[Template]:
    """Return the templates that apply to ``url`` in presentation order."""

    return rank_templates(t for t in templates if matches_url(t, url))


def filter_templates(templates: Iterable[Template], query: str) -> List[Template]:
    """Case-insensitive search over template names, URL patterns and field names."""

    items = list(templates)
    needle = (query or "").strip().lower()
    if not needle:
        return items
    return [
        template
        for template in items
        if needle in template.name.lower()
        or needle in (template.url or "").lower()
        or any(needle in item.name.lower() for item in template.fields)
    ]
