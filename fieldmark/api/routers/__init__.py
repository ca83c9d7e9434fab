"""API routers."""

from fieldmark.api.routers import storage, templates

__all__ = ["storage", "templates"]
