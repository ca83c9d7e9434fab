"""Dependency injection helpers for FastAPI."""

from fastapi import Depends, HTTPException, Request, status

from fieldmark.templates.repository import TemplateRepository
from fieldmark.templates.service import TemplateManager
from fieldmark.types import Template


def get_manager(request: Request) -> TemplateManager:
    """Return the manager created during application startup."""
    return request.app.state.manager


def get_repository(manager: TemplateManager = Depends(get_manager)) -> TemplateRepository:
    return manager.repository


async def get_template(
    template_id: str,
    repository: TemplateRepository = Depends(get_repository),
) -> Template:
    """Load a template by id or raise 404.

    Raises:
        HTTPException: 404 if the template does not exist
    """
    template = await repository.load(template_id)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template not found: {template_id}",
        )
    return template
