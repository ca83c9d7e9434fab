"""High-level template workflows used by the API and command line."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from fieldmark.configuration import FieldmarkConfig
from fieldmark.errors import ValidationError
from fieldmark.observability.events import get_event_recorder
from fieldmark.observability.logging import attach_logging_observer
from fieldmark.settings import SettingsStore
from fieldmark.store import RecordStore, create_record_store
from fieldmark.templates.factory import clone_template
from fieldmark.templates.matcher import filter_templates, get_templates_for_url, is_universal
from fieldmark.templates.repository import TemplateRepository
from fieldmark.templates.validator import validate
from fieldmark.types import Template, TemplateStats
from fieldmark.utils import parse_timestamp


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TemplateManager:
    repository: TemplateRepository

    @property
    def store(self) -> RecordStore:
        return self.repository.store

    def settings(self) -> SettingsStore:
        return SettingsStore(self.store)

    async def templates_for_url(self, url: str) -> List[Template]:
        templates = await self.repository.get_all()
        return get_templates_for_url(templates, url)

    async def search(self, query: str) -> List[Template]:
        return filter_templates(await self.repository.get_all(), query)

    async def validate_and_save(self, template: Template) -> Template:
        """Run full validation, then save; raises ValidationError listing every problem."""

        result = validate(template)
        if not result.valid:
            raise ValidationError(
                "Template is invalid: " + "; ".join(result.errors), result.errors
            )
        return await self.repository.save(template)

    async def clone(self, template_id: str, new_name: str | None = None) -> Optional[Template]:
        """Copy a stored template under a new id; returns None when the source is missing."""

        source = await self.repository.load(template_id)
        if source is None:
            return None
        return await self.repository.save(clone_template(source, new_name))

    async def template_stats(self) -> TemplateStats:
        templates = await self.repository.get_all()
        if not templates:
            return TemplateStats()

        total_fields = sum(len(template.fields) for template in templates)
        universal = sum(1 for template in templates if is_universal(template))
        dates = sorted(
            (template.updated_at for template in templates if template.updated_at),
            key=parse_timestamp,
        )
        return TemplateStats(
            total_templates=len(templates),
            total_fields=total_fields,
            templates_with_specific_url=len(templates) - universal,
            universal_templates=universal,
            average_fields_per_template=math.floor(total_fields / len(templates) * 10 + 0.5) / 10,
            last_updated=dates[-1] if dates else None,
            oldest_template=dates[0] if dates else None,
        )

    async def close(self) -> None:
        await self.store.close()


async def create_manager(config: FieldmarkConfig) -> TemplateManager:
    """Build the record store, repository and manager described by ``config``."""

    recorder = get_event_recorder("templates")
    recorder.enabled = config.observability.enable_template_events
    attach_logging_observer(recorder)

    store = create_record_store(config)
    repository = TemplateRepository(store, recorder=recorder.scoped("repository"))
    if config.store.repair_index_on_startup:
        report = await repository.repair_index()
        if report.drifted:
            LOGGER.warning("Metadata index was out of step with stored templates: %s", report.to_dict())
    return TemplateManager(repository)
