"""Template persistence on top of a record store.

Each template lives under its own key (``template_<id>``) and a metadata
index (``templates_metadata``) maps every id to ``{name, updatedAt}`` so that
templates can be listed without scanning the store. The store has no
multi-key transactions: a record write and its index update are two separate
operations. When the second one fails the record is left in place and
:class:`~fieldmark.errors.IndexUpdateError` is raised; :meth:`repair_index`
rebuilds the index from the records.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Optional

from fieldmark.errors import (
    FieldmarkError,
    FormatError,
    IndexUpdateError,
    SerializationError,
    StoreError,
    ValidationError,
)
from fieldmark.observability.events import EventRecorder, get_event_recorder
from fieldmark.store.base import RecordStore
from fieldmark.templates.factory import create_empty_template, generate_template_id
from fieldmark.types import (
    ImportFailure,
    ImportResult,
    IndexRepairReport,
    MetadataEntry,
    StorageStats,
    Template,
)
from fieldmark.utils import format_bytes, parse_timestamp, utc_now_iso


LOGGER = logging.getLogger(__name__)

TEMPLATE_KEY_PREFIX = "template_"
METADATA_KEY = "templates_metadata"
EXPORT_VERSION = "1.0"

MetadataIndex = Dict[str, Dict[str, Any]]


def storage_key(template_id: str) -> str:
    return TEMPLATE_KEY_PREFIX + template_id


def _blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


class TemplateRepository:
    """CRUD, import/export and usage statistics for templates."""

    def __init__(
        self,
        store: RecordStore,
        *,
        recorder: EventRecorder | None = None,
    ) -> None:
        self._store = store
        self._recorder = recorder or get_event_recorder("templates.repository")

    @property
    def store(self) -> RecordStore:
        return self._store

    async def save(self, template: Template) -> Template:
        """
        Persist ``template`` as a whole-record replacement.

        Sets ``updated_at`` (and ``created_at`` when missing) on the given
        instance, writes the record, then updates the metadata index.

        Raises:
            ValidationError: ``id`` or ``name`` is blank. Nothing is written.
            StoreError: the record write failed.
            IndexUpdateError: the record was written but the index was not;
                call :meth:`load` to confirm state or :meth:`repair_index`.
        """
        if _blank(template.id) or _blank(template.name):
            raise ValidationError("Template must have id and name")

        now = utc_now_iso()
        template.updated_at = now
        if not template.created_at:
            template.created_at = now

        await self._store.set(storage_key(template.id), template.to_dict())
        try:
            await self._put_index_entry(
                template.id, MetadataEntry(name=template.name, updated_at=now)
            )
        except StoreError as exc:
            self._recorder.record(
                "index.update_failed",
                {"template_id": template.id, "operation": "save", "error": str(exc)},
            )
            raise IndexUpdateError(
                template.id,
                f"Template {template.id} was written but the metadata index "
                f"update failed: {exc}",
            ) from exc

        self._recorder.record(
            "template.saved", {"template_id": template.id, "name": template.name}
        )
        return template

    async def load(self, template_id: str) -> Optional[Template]:
        key = storage_key(template_id)
        raw = await self._store.get(key)
        if raw is None:
            return None
        return self._from_record(key, raw)

    async def get_all(self) -> List[Template]:
        """Return every indexed template, most recently updated first."""

        index = await self._read_index()
        if not index:
            return []

        keys = [storage_key(template_id) for template_id in index]
        records = await self._store.get_many(keys)
        templates: List[Template] = []
        for template_id, key in zip(index, keys):
            raw = records.get(key)
            if raw is None:
                LOGGER.warning(
                    "Metadata index lists template %s but its record is missing", template_id
                )
                continue
            templates.append(self._from_record(key, raw))

        templates.sort(key=lambda t: parse_timestamp(t.updated_at), reverse=True)
        return templates

    async def delete(self, template_id: str) -> None:
        """Remove the record, then its index entry."""

        await self._store.remove(storage_key(template_id))
        try:
            await self._drop_index_entry(template_id)
        except StoreError as exc:
            self._recorder.record(
                "index.update_failed",
                {"template_id": template_id, "operation": "delete", "error": str(exc)},
            )
            raise IndexUpdateError(
                template_id,
                f"Template {template_id} was removed but the metadata index "
                f"update failed: {exc}",
            ) from exc
        self._recorder.record("template.deleted", {"template_id": template_id})

    @staticmethod
    def create_empty(name: str | None = None, url: str | None = None) -> Template:
        return create_empty_template(name, url)

    async def export_all(self) -> str:
        templates = await self.get_all()
        payload = {
            "version": EXPORT_VERSION,
            "exportDate": utc_now_iso(),
            "templates": [template.to_dict() for template in templates],
        }
        try:
            return json.dumps(payload, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"Unable to serialize templates: {exc}") from exc

    async def import_all(self, payload: str | bytes) -> ImportResult:
        """
        Import templates from an export payload.

        Every item gets a new id and a fresh ``updatedAt`` and is saved before
        the next one starts. Item failures are collected in the result; call
        :meth:`ImportResult.raise_for_failures` to turn them into an error.

        Raises:
            FormatError: the payload is not JSON or has no ``templates`` list.
                Nothing is written in that case.
        """
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise FormatError(f"Import payload is not valid JSON: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("templates"), list):
            raise FormatError("Invalid import format: expected an object with a 'templates' list")

        items = data["templates"]
        result = ImportResult()
        for position, item in enumerate(items):
            label = self._import_label(item, position)
            try:
                template = Template.from_dict(item)
                template.id = generate_template_id()
                template.updated_at = utc_now_iso()
                await self.save(template)
            except (FieldmarkError, TypeError, ValueError) as exc:
                LOGGER.debug("Import of %s failed: %s", label, exc)
                result.failures.append(ImportFailure(index=position, name=label, message=str(exc)))
                continue
            result.imported += 1
            result.template_ids.append(template.id)

        self._recorder.record(
            "import.complete",
            {"imported": result.imported, "failed": len(result.failures), "total": len(items)},
        )
        return result

    async def storage_stats(self) -> StorageStats:
        used = await self._store.bytes_in_use(None)
        quota = self._store.quota_bytes
        percentage = int(math.floor(used / quota * 100 + 0.5)) if quota else 0
        return StorageStats(
            bytes_in_use=used,
            bytes_in_use_formatted=format_bytes(used),
            quota_bytes=quota,
            percentage_used=percentage,
        )

    async def index_drift(self) -> IndexRepairReport:
        """Compare the index against stored records without writing anything."""

        index = await self._read_index()
        rebuilt = await self._rebuild_index()
        return self._diff(index, rebuilt)

    async def repair_index(self) -> IndexRepairReport:
        """Rebuild the metadata index from a full scan of template records."""

        index = await self._read_index()
        rebuilt = await self._rebuild_index()
        report = self._diff(index, rebuilt)
        if report.drifted:
            await self._store.set(METADATA_KEY, rebuilt)
            self._recorder.record("index.repaired", report.to_dict())
        return report

    async def _rebuild_index(self) -> MetadataIndex:
        keys = await self._store.keys(TEMPLATE_KEY_PREFIX)
        records = await self._store.get_many(keys)
        rebuilt: MetadataIndex = {}
        for key, raw in records.items():
            if not isinstance(raw, dict):
                LOGGER.warning("Skipping malformed template record %s", key)
                continue
            template_id = key[len(TEMPLATE_KEY_PREFIX):]
            rebuilt[template_id] = MetadataEntry(
                name=str(raw.get("name") or ""), updated_at=raw.get("updatedAt")
            ).to_dict()
        return rebuilt

    @staticmethod
    def _diff(index: MetadataIndex, rebuilt: MetadataIndex) -> IndexRepairReport:
        return IndexRepairReport(
            added=sorted(set(rebuilt) - set(index)),
            removed=sorted(set(index) - set(rebuilt)),
            refreshed=sorted(
                template_id
                for template_id in set(index) & set(rebuilt)
                if index[template_id] != rebuilt[template_id]
            ),
        )

    async def _read_index(self) -> MetadataIndex:
        index = await self._store.get(METADATA_KEY)
        if index is None:
            return {}
        if not isinstance(index, dict):
            LOGGER.warning("Metadata index is malformed (%s); treating it as empty", type(index).__name__)
            return {}
        return index

    async def _put_index_entry(self, template_id: str, entry: MetadataEntry) -> None:
        index = await self._read_index()
        index[template_id] = entry.to_dict()
        await self._store.set(METADATA_KEY, index)

    async def _drop_index_entry(self, template_id: str) -> None:
        index = await self._read_index()
        index.pop(template_id, None)
        await self._store.set(METADATA_KEY, index)

    @staticmethod
    def _from_record(key: str, raw: Any) -> Template:
        try:
            return Template.from_dict(raw)
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Stored record {key} is malformed: {exc}") from exc

    @staticmethod
    def _import_label(item: Any, position: int) -> str:
        if isinstance(item, dict) and item.get("name"):
            return str(item["name"])
        return f"template #{position + 1}"
