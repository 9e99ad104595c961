"""
registry.py — Read-Only Access to the App Registry

Purpose:
- Turn registry rows into ProjectConfig records for both the aggregator
  (all connectable apps) and the write-back translator (one app by name).

Failure policy:
- Registry read failure is fatal for both callers (RegistryUnavailableError).
- An unknown app name is fatal for write-back (AppNotFoundError); this
  module never falls back to a default app.
"""

from __future__ import annotations

from typing import List, Optional

from watchtower.core.config import settings
from watchtower.core.logging import get_logger
from watchtower.models.project_config import ProjectConfig
from watchtower.services.db_client import SupabaseDBClient


logger = get_logger(__name__)


class RegistryError(RuntimeError):
    """Base exception for registry lookups."""


class RegistryUnavailableError(RegistryError):
    """Raised when the registry table itself cannot be read."""


class AppNotFoundError(RegistryError):
    """Raised when no registry row matches the requested app name."""

    def __init__(self, app_name: str):
        self.app_name = app_name
        super().__init__(f'App "{app_name}" not found in registry')


class ProjectRegistry:
    def __init__(self, db: SupabaseDBClient, local_ref: Optional[str] = None) -> None:
        self._db = db
        self._local_ref = settings.WATCHTOWER_PROJECT_REF if local_ref is None else local_ref

    def list_projects(self) -> List[ProjectConfig]:
        """
        Every registered app with resolvable connection info.

        Rows missing connection info are dropped here, before any fan-out.
        """
        try:
            rows = self._db.list_registry_rows()
        except RuntimeError as e:
            raise RegistryUnavailableError(str(e)) from e

        configs: List[ProjectConfig] = []
        for row in rows:
            if not row.get("name"):
                logger.warning("Skipping registry row %s without a name", row.get("id"))
                continue
            config = ProjectConfig.from_registry_row(row, self._local_ref)
            if not config.is_connectable:
                logger.warning("Skipping %s: registry row has no usable connection info", config.app_name)
                continue
            configs.append(config)
        return configs

    def get_project(self, app_name: str) -> ProjectConfig:
        try:
            row = self._db.get_registry_row(app_name)
        except RuntimeError as e:
            raise RegistryUnavailableError(str(e)) from e
        if not row:
            raise AppNotFoundError(app_name)
        return ProjectConfig.from_registry_row(row, self._local_ref)
