"""
Fieldmark: reusable extraction templates for web pages.

A template is a named, URL-scoped list of fields, each pairing a CSS selector
with the DOM accessor to read (``value``, ``textContent``, ``innerText`` or
``innerHTML``). Templates are persisted in a key-value record store together
with a metadata index, and matched against page URLs.

Main Components:
- TemplateRepository: save/load/list/delete, import/export, storage usage
- matches_url / get_templates_for_url: URL glob matching and ranking
- validate: structural and semantic template checks
- TemplateManager: workflows used by the REST API and command line

Example:
    >>> import asyncio
    >>> from fieldmark import MemoryRecordStore, TemplateRepository, create_field
    >>>
    >>> repository = TemplateRepository(MemoryRecordStore())
    >>> template = repository.create_empty("Users", "https://example.com/admin/users/*")
    >>> template.fields.append(create_field("Name", "#name", "value"))
    >>> saved = asyncio.run(repository.save(template))
"""

from fieldmark.errors import (
    FieldmarkError,
    FormatError,
    ImportIncompleteError,
    IndexUpdateError,
    SerializationError,
    StoreError,
    ValidationError,
)
from fieldmark.store import MemoryRecordStore, RecordStore, SqlRecordStore
from fieldmark.templates import (
    TemplateRepository,
    clone_template,
    create_empty_template,
    create_field,
    get_templates_for_url,
    matches_url,
    validate,
)
from fieldmark.types import (
    DataType,
    ExtensionSettings,
    ImportResult,
    StorageStats,
    Template,
    TemplateField,
    ValidationResult,
)

__version__ = "0.1.0"

__all__ = [
    "DataType",
    "ExtensionSettings",
    "FieldmarkError",
    "FormatError",
    "ImportIncompleteError",
    "ImportResult",
    "IndexUpdateError",
    "MemoryRecordStore",
    "RecordStore",
    "SerializationError",
    "SqlRecordStore",
    "StorageStats",
    "StoreError",
    "Template",
    "TemplateField",
    "TemplateRepository",
    "ValidationError",
    "ValidationResult",
    "clone_template",
    "create_empty_template",
    "create_field",
    "get_templates_for_url",
    "matches_url",
    "validate",
]
