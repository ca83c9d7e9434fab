"""Shared dataclasses and type definitions for extraction templates."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from fieldmark.errors import ImportIncompleteError

Record = Dict[str, Any]

UNIVERSAL_PATTERN = "*"


class DataType(str, Enum):
    """DOM accessor applied to the element matched by a field selector."""

    VALUE = "value"
    TEXT_CONTENT = "textContent"
    INNER_TEXT = "innerText"
    INNER_HTML = "innerHTML"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)


@dataclass(slots=True)
class TemplateField:
    """One named selector/accessor pair inside a template."""

    id: str
    name: str
    selector: str
    data_type: str = DataType.TEXT_CONTENT.value

    def to_dict(self) -> Record:
        return {
            "id": self.id,
            "name": self.name,
            "selector": self.selector,
            "dataType": self.data_type,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "TemplateField":
        if not isinstance(raw, Mapping):
            raise TypeError(f"Field must be an object, got {type(raw).__name__}")
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            selector=str(raw.get("selector") or ""),
            data_type=str(raw.get("dataType") or DataType.TEXT_CONTENT.value),
        )


@dataclass(slots=True)
class Template:
    """A named, URL-scoped collection of field extraction rules."""

    id: str
    name: str
    url: Optional[str] = UNIVERSAL_PATTERN
    fields: List[TemplateField] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Record:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "fields": [item.to_dict() for item in self.fields],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Template":
        if not isinstance(raw, Mapping):
            raise TypeError(f"Template must be an object, got {type(raw).__name__}")
        fields = raw.get("fields")
        if fields is None:
            fields = []
        if not isinstance(fields, list):
            raise TypeError("Template fields must be a list")
        url = raw.get("url")
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            url=str(url) if url is not None else None,
            fields=[TemplateField.from_dict(item) for item in fields],
            created_at=raw.get("createdAt"),
            updated_at=raw.get("updatedAt"),
        )


@dataclass(slots=True, frozen=True)
class MetadataEntry:
    """Lightweight summary stored in the metadata index."""

    name: str
    updated_at: Optional[str]

    def to_dict(self) -> Record:
        return {"name": self.name, "updatedAt": self.updated_at}


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a template."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Record:
        return {"valid": self.valid, "errors": list(self.errors)}


@dataclass(slots=True, frozen=True)
class ImportFailure:
    """A single template that could not be imported."""

    index: int
    name: str
    message: str

    def describe(self) -> str:
        return f"{self.name}: {self.message}"


@dataclass(slots=True)
class ImportResult:
    """Outcome of an import batch; partial success is a normal result."""

    imported: int = 0
    template_ids: List[str] = field(default_factory=list)
    failures: List[ImportFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def messages(self) -> List[str]:
        return [failure.describe() for failure in self.failures]

    def raise_for_failures(self) -> None:
        """Raise :class:`ImportIncompleteError` if any item failed."""

        if self.failures:
            raise ImportIncompleteError(self.imported, self.messages)

    def to_dict(self) -> Record:
        return {
            "imported": self.imported,
            "templateIds": list(self.template_ids),
            "errors": self.messages,
        }


@dataclass(slots=True, frozen=True)
class StorageStats:
    """Usage of the underlying record store."""

    bytes_in_use: int
    bytes_in_use_formatted: str
    quota_bytes: int
    percentage_used: int

    def to_dict(self) -> Record:
        return {
            "bytesInUse": self.bytes_in_use,
            "bytesInUseFormatted": self.bytes_in_use_formatted,
            "quotaBytes": self.quota_bytes,
            "percentageUsed": self.percentage_used,
        }


@dataclass(slots=True, frozen=True)
class TemplateStats:
    """Aggregate figures over all stored templates."""

    total_templates: int = 0
    total_fields: int = 0
    templates_with_specific_url: int = 0
    universal_templates: int = 0
    average_fields_per_template: float = 0.0
    last_updated: Optional[str] = None
    oldest_template: Optional[str] = None

    def to_dict(self) -> Record:
        return {
            "totalTemplates": self.total_templates,
            "totalFields": self.total_fields,
            "templatesWithSpecificUrl": self.templates_with_specific_url,
            "universalTemplates": self.universal_templates,
            "averageFieldsPerTemplate": self.average_fields_per_template,
            "lastUpdated": self.last_updated,
            "oldestTemplate": self.oldest_template,
        }


@dataclass(slots=True)
class IndexRepairReport:
    """Differences found between the metadata index and stored records."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    refreshed: List[str] = field(default_factory=list)

    @property
    def drifted(self) -> bool:
        return bool(self.added or self.removed or self.refreshed)

    def to_dict(self) -> Record:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "refreshed": list(self.refreshed),
        }


@dataclass(slots=True)
class ExtensionSettings:
    """User preferences shared by the UI surfaces."""

    auto_copy: bool = True
    show_notifications: bool = True
    highlight_fields: bool = False

    def to_dict(self) -> Record:
        return {
            "autoCopy": self.auto_copy,
            "showNotifications": self.show_notifications,
            "highlightFields": self.highlight_fields,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "ExtensionSettings":
        defaults = cls()
        if not raw:
            return defaults
        return cls(
            auto_copy=bool(raw.get("autoCopy", defaults.auto_copy)),
            show_notifications=bool(raw.get("showNotifications", defaults.show_notifications)),
            highlight_fields=bool(raw.get("highlightFields", defaults.highlight_fields)),
        )


__all__ = [
    "DataType",
    "ExtensionSettings",
    "ImportFailure",
    "ImportResult",
    "IndexRepairReport",
    "MetadataEntry",
    "Record",
    "StorageStats",
    "Template",
    "TemplateField",
    "TemplateStats",
    "UNIVERSAL_PATTERN",
    "ValidationResult",
]
