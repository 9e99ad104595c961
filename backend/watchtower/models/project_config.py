"""
project_config.py — Registry Record for One Registered App

Purpose:
- Represent one row of the app registry in the shape the aggregator and
  the write-back translator need.
- Decide whether an app lives on the shared project or a remote one.

Used by:
- services/registry.py (construction)
- services/users/aggregator.py, services/users/write_back.py (dispatch)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

DEFAULT_USERS_TABLE = "users"


@dataclass(frozen=True)
class ProjectConfig:
    app_name: str
    is_local: bool
    remote_base_url: Optional[str] = None
    remote_ref: Optional[str] = None
    users_table: str = DEFAULT_USERS_TABLE

    @classmethod
    def from_registry_row(cls, row: Dict[str, Any], local_ref: str) -> "ProjectConfig":
        """
        Build a config from a raw registry row.

        A row is local when its `supabase_ref` equals the shared project's ref.
        Remote rows keep their URL and ref; local rows drop them.
        """
        ref = (row.get("supabase_ref") or "").strip() or None
        url = (row.get("supabase_url") or "").strip().rstrip("/") or None
        is_local = bool(local_ref) and ref == local_ref
        return cls(
            app_name=row["name"],
            is_local=is_local,
            remote_base_url=None if is_local else url,
            remote_ref=None if is_local else ref,
            users_table=(row.get("users_table") or "").strip() or DEFAULT_USERS_TABLE,
        )

    @property
    def is_connectable(self) -> bool:
        """Local apps always are; remote apps need both a URL and a ref."""
        return self.is_local or bool(self.remote_base_url and self.remote_ref)
