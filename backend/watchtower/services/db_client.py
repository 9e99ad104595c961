"""
Supabase database client helpers for the shared Watchtower project.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from supabase import Client

from watchtower.core.config import settings
from watchtower.core.database import create_supabase_client
from watchtower.core.logging import get_logger


logger = get_logger(__name__)

REGISTRY_COLUMNS = "id, name, supabase_url, supabase_ref, users_table"


class SupabaseDBClient:
    """
    Thin wrapper providing typed helpers around the shared project's tables.

    Every helper raises RuntimeError (chained to the underlying PostgREST
    error) so callers only deal with one failure type.
    """

    def __init__(self, client: Optional[Client] = None):
        self._client = client or create_supabase_client()

    # ------------------------------------------------------------------ #
    # Registry helpers
    def list_registry_rows(self) -> List[Dict[str, Any]]:
        """Registry rows that carry a project URL (rows without one are not connectable)."""
        try:
            response = (
                self._client.table(settings.APP_REGISTRY_TABLE)
                .select(REGISTRY_COLUMNS)
                .not_.is_("supabase_url", "null")
                .execute()
            )
        except Exception as e:
            raise RuntimeError(f"Failed to read app registry: {e}") from e
        return response.data or []

    def get_registry_row(self, app_name: str) -> Optional[Dict[str, Any]]:
        try:
            response = (
                self._client.table(settings.APP_REGISTRY_TABLE)
                .select(REGISTRY_COLUMNS)
                .eq("name", app_name)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise RuntimeError(f"Failed to read app registry: {e}") from e
        data = response.data or []
        return data[0] if data else None

    # ------------------------------------------------------------------ #
    # Local user tables
    def fetch_rows(self, table: str, limit: int) -> List[Dict[str, Any]]:
        try:
            response = self._client.table(table).select("*").limit(limit).execute()
        except Exception as e:
            raise RuntimeError(f"Failed to read {table}: {e}") from e
        return response.data or []

    def update_row(self, table: str, row_id: str, payload: Dict[str, Any]) -> None:
        try:
            self._client.table(table).update(payload).eq("id", row_id).execute()
        except Exception as e:
            raise RuntimeError(f"Failed to update {table} row {row_id}: {e}") from e

    # ------------------------------------------------------------------ #
    # Activity log
    def insert_activity(self, payload: Dict[str, Any]) -> None:
        try:
            self._client.table(settings.APP_ACTIVITY_TABLE).insert(payload).execute()
        except Exception as e:
            raise RuntimeError(f"Failed to insert activity event: {e}") from e


def get_db_client() -> SupabaseDBClient:
    return SupabaseDBClient()
