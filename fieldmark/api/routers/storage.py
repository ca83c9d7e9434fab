"""Import/export, storage usage and settings endpoints."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from fieldmark.api.dependencies import get_manager, get_repository
from fieldmark.api.models import (
    ImportResponse,
    IndexRepairResponse,
    SettingsModel,
    StorageStatsResponse,
)
from fieldmark.templates.repository import TemplateRepository
from fieldmark.templates.service import TemplateManager

router = APIRouter()

EXPORT_FILENAME = "templates-export.json"


@router.get("/export")
async def export_templates(repository: TemplateRepository = Depends(get_repository)):
    """Download every template as an export payload."""
    payload = await repository.export_all()
    return Response(
        content=payload,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_templates(
    request: Request,
    repository: TemplateRepository = Depends(get_repository),
):
    """Import an export payload sent as the raw request body.

    Partial failures are reported in ``errors``; a malformed payload is
    rejected with 400 before anything is written.
    """
    body = await request.body()
    result = await repository.import_all(body)
    return ImportResponse.model_validate(result.to_dict())


@router.get("/storage", response_model=StorageStatsResponse)
async def storage_stats(repository: TemplateRepository = Depends(get_repository)):
    stats = await repository.storage_stats()
    return StorageStatsResponse.model_validate(stats.to_dict())


@router.get("/storage/drift", response_model=IndexRepairResponse)
async def index_drift(repository: TemplateRepository = Depends(get_repository)):
    """Report how the metadata index differs from stored records, without repairing it."""
    report = await repository.index_drift()
    return IndexRepairResponse.model_validate(report.to_dict())


@router.post("/storage/repair"
, response_model=IndexRepairResponse)
async def repair_index(repository: TemplateRepository = Depends(get_repository)):
    """Rebuild the metadata index from stored template records."""
    report = await repository.repair_index()
    return IndexRepairResponse.model_validate(report.to_dict())


@router.get("/settings", response_model=SettingsModel)
async def read_settings(manager: TemplateManager = Depends(get_manager)):
    settings = await manager.settings().load()
    return SettingsModel.model_validate(settings.to_dict())


@router.put("/settings", response_model=SettingsModel)
async def update_settings(
    request: SettingsModel,
    manager: TemplateManager = Depends(get_manager),
):
    saved = await manager.settings().save(request.to_settings())
    return SettingsModel.model_validate(saved.to_dict())
