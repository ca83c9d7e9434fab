"""Exception hierarchy for template storage and matching."""

from __future__ import annotations

from typing import Sequence


class FieldmarkError(Exception):
    """Base error for fieldmark failures."""


class StoreError(FieldmarkError):
    """Raised when the underlying record store is unavailable or rejects a write."""


class IndexUpdateError(StoreError):
    """Raised when a template record was written but the metadata index was not updated."""

    def __init__(self, template_id: str, message: str) -> None:
        super().__init__(message)
        self.template_id = template_id


class ValidationError(FieldmarkError):
    """Raised when a template is missing required data."""

    def __init__(self, message: str, errors: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [message])


class FormatError(FieldmarkError):
    """Raised when an import payload does not have the export shape."""


class SerializationError(FieldmarkError):
    """Raised when templates cannot be serialized for export."""


class ImportIncompleteError(FieldmarkError):
    """Raised when some templates of an import batch failed to save."""

    def __init__(self, imported: int, messages: Sequence[str]) -> None:
        super().__init__(
            "Some templates failed to import: " + ", ".join(messages)
        )
        self.imported = imported
        self.messages = list(messages)
