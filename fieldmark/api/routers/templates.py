"""Template CRUD, matching and validation endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from fieldmark.api.dependencies import get_manager, get_repository, get_template
from fieldmark.api.models import (
    CloneRequest,
    FieldModel,
    TemplateCreate,
    TemplateModel,
    TemplateStatsResponse,
    TemplateUpdate,
    ValidationResponse,
)
from fieldmark.templates.factory import generate_field_id
from fieldmark.templates.repository import TemplateRepository
from fieldmark.templates.service import TemplateManager
from fieldmark.templates.validator import validate
from fieldmark.types import Template, TemplateField

router = APIRouter()


def _to_fields(models: List[FieldModel]) -> List[TemplateField]:
    return [
        TemplateField(
            id=model.id or generate_field_id(),
            name=model.name,
            selector=model.selector,
            data_type=model.data_type,
        )
        for model in models
    ]


@router.get("/templates", response_model=List[TemplateModel])
async def list_templates(
    q: Optional[str] = Query(None, description="Search in names, URL patterns and field names"),
    manager: TemplateManager = Depends(get_manager),
):
    """List templates, most recently updated first.

    Args:
        q: Optional search query

    Returns:
        Stored templates
    """
    if q:
        templates = await manager.search(q)
    else:
        templates = await manager.repository.get_all()
    return [TemplateModel.from_template(template) for template in templates]


@router.post(
    "/templates",
    response_model=TemplateModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    request: TemplateCreate,
    manager: TemplateManager = Depends(get_manager),
):
    """Create and save a new template.

    Raises:
        ValidationError: mapped to 422 with the list of problems
    """
    template = manager.repository.create_empty(request.name, request.url)
    template.fields = _to_fields(request.fields)
    saved = await manager.validate_and_save(template)
    return TemplateModel.from_template(saved)


@router.get("/templates/match", response_model=List[TemplateModel])
async def match_templates(
    url: str = Query(..., description="Page URL"),
    manager: TemplateManager = Depends(get_manager),
):
    """Templates applicable to a page, URL-specific ones first."""
    templates = await manager.templates_for_url(url)
    return [TemplateModel.from_template(template) for template in templates]


@router.get("/templates/stats", response_model=TemplateStatsResponse)
async def template_stats(manager: TemplateManager = Depends(get_manager)):
    stats = await manager.template_stats()
    return TemplateStatsResponse.model_validate(stats.to_dict())


@router.post("/templates/validate", response_model=ValidationResponse)
async def validate_template(payload: Dict[str, Any]):
    """Validate a raw template document without saving it."""
    result = validate(payload)
    return ValidationResponse(valid=result.valid, errors=result.errors)


@router.get("/templates/{template_id}", response_model=TemplateModel)
async def read_template(template: Template = Depends(get_template)):
    return TemplateModel.from_template(template)


@router.put("/templates/{template_id}", response_model=TemplateModel)
async def replace_template(
    request: TemplateUpdate,
    existing: Template = Depends(get_template),
    manager: TemplateManager = Depends(get_manager),
):
    """Replace a stored template; ``createdAt`` is kept from the stored record."""
    replacement = Template(
        id=existing.id,
        name=request.name,
        url=request.url,
        fields=_to_fields(request.fields),
        created_at=existing.created_at,
    )
    saved = await manager.validate_and_save(replacement)
    return TemplateModel.from_template(saved)


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    existing: Template = Depends(get_template),
    repository: TemplateRepository = Depends(get_repository),
):
    await repository.delete(existing.id)
    return None


@router.post(
    "/templates/{template_id}/clone",
    response_model=TemplateModel,
    status_code=status.HTTP_201_CREATED,
)
async def clone_template(
    existing: Template = Depends(get_template),
    request: Optional[CloneRequest] = None,
    manager: TemplateManager = Depends(get_manager),
):
    """Copy a template under a new id with new field ids."""
    cloned = await manager.clone(existing.id, request.name if request else None)
    return TemplateModel.from_template(cloned)
