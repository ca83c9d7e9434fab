"""REST API for fieldmark template storage and matching."""

from fieldmark.api.main import app, create_app

__all__ = ["app", "create_app"]
