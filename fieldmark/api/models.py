"""Pydantic models for API request/response schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from fieldmark.types import DataType, ExtensionSettings, Template


class CamelModel(BaseModel):
    """Base model serialising to the camelCase keys used in stored records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Common Models
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")


# ============================================================================
# Template Models
# ============================================================================


class FieldModel(CamelModel):
    """A selector/accessor pair inside a template."""

    id: str = Field("", description="Field identifier, generated when empty")
    name: str = Field(..., description="Display name")
    selector: str = Field(..., description="CSS selector")
    data_type: str = Field(DataType.TEXT_CONTENT.value, description="DOM accessor to read")


class TemplateCreate(CamelModel):
    """Request to create a template."""

    name: str = Field(..., description="Template name")
    url: Optional[str] = Field(None, description="URL glob; '*' or empty matches every page")
    fields: List[FieldModel] = Field(default_factory=list, description="Ordered fields")


class TemplateUpdate(CamelModel):
    """Full replacement of a stored template."""

    name: str = Field(..., description="Template name")
    url: Optional[str] = Field("*", description="URL glob")
    fields: List[FieldModel] = Field(default_factory=list, description="Ordered fields")


class TemplateModel(CamelModel):
    """Stored template."""

    id: str
    name: str
    url: Optional[str] = None
    fields: List[FieldModel] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_template(cls, template: Template) -> "TemplateModel":
        return cls.model_validate(template.to_dict())


class CloneRequest(CamelModel):
    """Optional name for a cloned template."""

    name: Optional[str] = Field(None, description="Name of the copy")


class ValidationResponse(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class ImportResponse(CamelModel):
    imported: int = Field(..., description="Number of templates saved")
    template_ids: List[str] = Field(default_factory=list, description="Ids assigned to imported templates")
    errors: List[str] = Field(default_factory=list, description="Per-item failure messages")


class TemplateStatsResponse(CamelModel):
    total_templates: int
    total_fields: int
    templates_with_specific_url: int
    universal_templates: int
    average_fields_per_template: float
    last_updated: Optional[str] = None
    oldest_template: Optional[str] = None


# ============================================================================
# Storage and Settings Models
# ============================================================================


class StorageStatsResponse(CamelModel):
    bytes_in_use: int
    bytes_in_use_formatted: str
    quota_bytes: int
    percentage_used: int


class IndexRepairResponse(BaseModel):
    added: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    refreshed: List[str] = Field(default_factory=list)


class SettingsModel(CamelModel):
    auto_copy: bool = True
    show_notifications: bool = True
    highlight_fields: bool = False

    def to_settings(self) -> ExtensionSettings:
        return ExtensionSettings(
            auto_copy=self.auto_copy,
            show_notifications=self.show_notifications,
            highlight_fields=self.highlight_fields,
        )
