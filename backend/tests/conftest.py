"""
Shared in-memory fakes for the Supabase wrapper and the remote REST client.

No test touches the network: the shared project is a dict of tables and
each remote project is a canned list of rows (or an exception to raise).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

LOCAL_REF = "wtlocal"


class FakeDBClient:
    """Stands in for SupabaseDBClient."""

    def __init__(
        self,
        registry_rows: Optional[List[Dict[str, Any]]] = None,
        tables: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.registry_rows = registry_rows or []
        self.tables = tables or {}
        self.registry_error: Optional[str] = None
        self.update_error: Optional[str] = None
        self.insert_error: Optional[str] = None
        self.updates: List[Dict[str, Any]] = []
        self.activities: List[Dict[str, Any]] = []

    def list_registry_rows(self) -> List[Dict[str, Any]]:
        if self.registry_error:
            raise RuntimeError(self.registry_error)
        return [row for row in self.registry_rows if row.get("supabase_url") is not None]

    def get_registry_row(self, app_name: str) -> Optional[Dict[str, Any]]:
        if self.registry_error:
            raise RuntimeError(self.registry_error)
        for row in self.registry_rows:
            if row.get("name") == app_name:
                return row
        return None

    def fetch_rows(self, table: str, limit: int) -> List[Dict[str, Any]]:
        rows = self.tables.get(table, [])
        if isinstance(rows, Exception):
            raise RuntimeError(f"Failed to read {table}: {rows}")
        return list(rows)[:limit]

    def update_row(self, table: str, row_id: str, payload: Dict[str, Any]) -> None:
        if self.update_error:
            raise RuntimeError(self.update_error)
        self.updates.append({"table": table, "id": row_id, "payload": payload})

    def insert_activity(self, payload: Dict[str, Any]) -> None:
        if self.insert_error:
            raise RuntimeError(self.insert_error)
        self.activities.append(payload)


class FakeRestClient:
    """Stands in for ProjectRestClient; responses are keyed by app name."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None) -> None:
        self.responses = responses or {}
        self.fetches: List[Dict[str, Any]] = []
        self.patches: List[Dict[str, Any]] = []
        self.patch_error: Optional[Exception] = None

    def fetch_users(self, app_name: str, base_url: str, table: str, service_key: str) -> List[Dict[str, Any]]:
        self.fetches.append({"app": app_name, "base_url": base_url, "table": table, "key": service_key})
        response = self.responses.get(app_name, [])
        if callable(response):
            response = response()
        if isinstance(response, Exception):
            raise response
        return response

    def patch_user(self, app_name, base_url, table, user_id, payload, service_key) -> None:
        if self.patch_error:
            raise self.patch_error
        self.patches.append(
            {"app": app_name, "base_url": base_url, "table": table, "id": user_id, "payload": payload, "key": service_key}
        )


def registry_row(name: str, ref: str, url: Optional[str] = "https://example.supabase.co", users_table: Optional[str] = None) -> Dict[str, Any]:
    return {"id": f"reg-{name}", "name": name, "supabase_ref": ref, "supabase_url": url, "users_table": users_table}


@pytest.fixture
def registry_rows() -> List[Dict[str, Any]]:
    return [
        registry_row("Watchtower", LOCAL_REF, url="https://wtlocal.supabase.co", users_table="wt_users_view"),
        registry_row("BuybidHQ", "buybid", url="https://buybid.supabase.co"),
        registry_row("SalesboardHQ", "salesboard", url="https://salesboard.supabase.co"),
        registry_row("Demolight", "demolight", url="https://demolight.supabase.co"),
    ]


@pytest.fixture
def service_keys() -> Dict[str, str]:
    return {"buybid": "key-buybid", "salesboard": "key-salesboard", "demolight": "key-demolight"}
