"""
Configuration for fieldmark's record store, logging and HTTP application.

Everything hangs off :class:`FieldmarkConfig`. The CLI and the API resolve one
instance at startup and hand it to :func:`fieldmark.templates.service.create_manager`,
which picks the record store backend and the startup index repair from it.

A workspace normally keeps its settings in a ``config.py`` (``fieldmark
init-config`` writes one) that assigns ``FIELDMARK_CONFIG``::

    from fieldmark.configuration import FieldmarkConfig, StoreSettings

    FIELDMARK_CONFIG = FieldmarkConfig.with_root(
        "~/fieldmark", store=StoreSettings(backend="memory")
    )

:func:`resolve_config` loads that file from an explicit path or from the
``FIELDMARK_CONFIG`` environment variable, and otherwise falls back to
:func:`default_config`.
"""

from __future__ import annotations

import os
import runpy
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from fieldmark.errors import FieldmarkError
from fieldmark.store.base import DEFAULT_QUOTA_BYTES


DEFAULT_STORAGE_ROOT_NAME = "fieldmark_storage"
CONFIG_SYMBOL_NAME = "FIELDMARK_CONFIG"
CONFIG_ENV_VAR = "FIELDMARK_CONFIG"

STORE_BACKENDS = ("sqlite", "memory")


class ConfigurationError(FieldmarkError):
    """Raised when a configuration value or file cannot be used."""


def _absolute(path: Path | str) -> Path:
    candidate = Path(path).expanduser()
    return candidate if candidate.is_absolute() else candidate.resolve()


@dataclass(slots=True)
class StoragePaths:
    """Filesystem locations used by fieldmark."""

    root: Path
    record_store_path: Path
    log_dir: Path

    def ensure_directories(self) -> None:
        """Create the root, log and database directories if they are missing."""
        for directory in {self.root, self.log_dir, self.record_store_path.parent}:
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def record_store_url(self) -> str:
        """Return the SQLAlchemy URL for the record store."""
        return f"sqlite:///{self.record_store_path}"


@dataclass(slots=True)
class StoreSettings:
    """Record store backend selection and limits."""

    backend: str = "sqlite"
    database_url: str | None = None
    quota_bytes: int = DEFAULT_QUOTA_BYTES
    repair_index_on_startup: bool = True

    def __post_init__(self) -> None:
        if self.backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"Unknown record store backend {self.backend!r}; "
                f"expected one of {', '.join(STORE_BACKENDS)}"
            )
        if self.quota_bytes <= 0:
            raise ConfigurationError("quota_bytes must be positive")


@dataclass(slots=True)
class ObservabilitySettings:
    """Log level and template event switch."""

    log_level: str = "INFO"
    enable_template_events: bool = True


@dataclass(slots=True)
class ApiSettings:
    """Options for the HTTP application."""

    allow_origins: tuple[str, ...] = ("*",)
    title: str = "Fieldmark API"


@dataclass(slots=True)
class FieldmarkConfig:
    """
    Root configuration structure for fieldmark.

    Attributes:
        storage: Filesystem paths for the record store and logs.
        store: Record store backend settings.
        observability: Logging and event configuration.
        api: HTTP application settings.
        extras: User-defined metadata dictionary.
    """

    storage: StoragePaths
    store: StoreSettings = field(default_factory=StoreSettings)
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)
    api: ApiSettings = field(default_factory=ApiSettings)
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def record_store_url(self) -> str:
        """Database URL for the SQL backend, honouring an explicit override."""
        return self.store.database_url or self.storage.record_store_url

    @classmethod
    def with_root(
        cls,
        root: Path | str,
        *,
        store: StoreSettings | None = None,
        observability: ObservabilitySettings | None = None,
        api: ApiSettings | None = None,
        extras: Mapping[str, Any] | None = None,
    ) -> "FieldmarkConfig":
        """
        Create a FieldmarkConfig with storage paths derived from a root directory.

        Args:
            root: Root directory for all storage.
            store: Optional record store settings.
            observability: Optional observability settings.
            api: Optional HTTP application settings.
            extras: Optional user-defined metadata.

        Returns:
            Configured FieldmarkConfig instance.
        """
        root_path = _absolute(root)
        storage = StoragePaths(
            root=root_path,
            record_store_path=root_path / "records" / "templates.db",
            log_dir=root_path / "logs",
        )
        return cls(
            storage=storage,
            store=store or StoreSettings(),
            observability=observability or ObservabilitySettings(),
            api=api or ApiSettings(),
            extras=MappingProxyType(dict(extras or {})),
        )


def default_config(root: Path | None = None) -> FieldmarkConfig:
    """Configuration rooted at ``root``, or at ``<cwd>/fieldmark_storage``."""
    return FieldmarkConfig.with_root(root or Path.cwd() / DEFAULT_STORAGE_ROOT_NAME)


def render_default_config(root: Path | None = None) -> str:
    """Source of a ``config.py`` that reproduces :func:`default_config` for ``root``."""
    config = default_config(root)
    origins: Sequence[str] = config.api.allow_origins
    return textwrap.dedent(
        f"""\
        from pathlib import Path

        from fieldmark.configuration import (
            ApiSettings,
            FieldmarkConfig,
            ObservabilitySettings,
            StoreSettings,
        )


        storage_root = Path({str(config.storage.root)!r})

        # backend is "sqlite" (persistent) or "memory" (lost on exit).
        store = StoreSettings(
            backend={config.store.backend!r},
            database_url=None,
            quota_bytes={config.store.quota_bytes},
            repair_index_on_startup={config.store.repair_index_on_startup},
        )

        observability = ObservabilitySettings(
            log_level={config.observability.log_level!r},
            enable_template_events={config.observability.enable_template_events},
        )

        api = ApiSettings(
            allow_origins={tuple(origins)!r},
        )

        FIELDMARK_CONFIG = FieldmarkConfig.with_root(
            storage_root,
            store=store,
            observability=observability,
            api=api,
        )
        """
    )


def load_config_from_file(path: Path | str) -> FieldmarkConfig:
    """
    Run a ``config.py`` and return the ``FIELDMARK_CONFIG`` it defines.

    Raises:
        ConfigurationError: the file is missing, fails to run, or does not
            assign a :class:`FieldmarkConfig` to ``FIELDMARK_CONFIG``.
    """
    source = Path(path).expanduser()
    if not source.is_file():
        raise ConfigurationError(f"Configuration file not found: {source}")

    try:
        module_globals = runpy.run_path(str(source), run_name="fieldmark_config")
    except FieldmarkError:
        raise
    except Exception as exc:
        raise ConfigurationError(f"Failed to execute configuration file {source}: {exc}") from exc

    try:
        loaded = module_globals[CONFIG_SYMBOL_NAME]
    except KeyError:
        raise ConfigurationError(
            f"Configuration file {source} must define `{CONFIG_SYMBOL_NAME}`"
        ) from None
    if not isinstance(loaded, FieldmarkConfig):
        raise ConfigurationError(
            f"{CONFIG_SYMBOL_NAME} in {source} must be a FieldmarkConfig, "
            f"not {type(loaded).__name__}"
        )
    return loaded


def resolve_config(path: Path | str | None = None) -> FieldmarkConfig:
    """Load ``path``, else the file named by ``$FIELDMARK_CONFIG``, else the defaults."""
    target = path or os.environ.get(CONFIG_ENV_VAR)
    if target:
        return load_config_from_file(target)
    return default_config()


__all__ = [
    "ApiSettings",
    "CONFIG_ENV_VAR",
    "CONFIG_SYMBOL_NAME",
    "ConfigurationError",
    "DEFAULT_STORAGE_ROOT_NAME",
    "FieldmarkConfig",
    "ObservabilitySettings",
    "StoragePaths",
    "StoreSettings",
    "default_config",
    "load_config_from_file",
    "render_default_config",
    "resolve_config",
]
