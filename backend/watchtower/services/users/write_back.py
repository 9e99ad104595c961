"""
write_back.py — Translate a Normalized User Edit Back into an App's Schema

Purpose:
- Take `(user_id, app_name, fields)` where `fields` uses normalized names
  (firstName, lastName, email, phone, role, status) and apply it as ONE
  update against the real row in that app's real users table.

Sequence:
1. Look up the app's registry record (unknown app -> AppNotFoundError).
2. Map normalized fields onto the app's columns (mappings.py).
3. Stamp `updated_at`; reject payloads with nothing else in them.
4. Resolve the writable table (view -> table overrides).
5. Dispatch one write: local update by id, or remote REST PATCH by id.

Guarantees:
- Exactly one app is touched per call. No fan-out, no retries.
- Missing credentials for a remote app fail loudly (unlike aggregation).
- Last write wins; there is no concurrency control on the target row.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

import requests

from watchtower.core.config import get_service_key, settings
from watchtower.core.logging import get_logger
from watchtower.models.project_config import ProjectConfig
from watchtower.models.user import NormalizedUser
from watchtower.services.clients.project_rest_client import ProjectRestClient
from watchtower.services.db_client import SupabaseDBClient
from watchtower.services.registry import ProjectRegistry
from watchtower.services.users.mappings import (
    COMBINED_NAME_COLUMNS,
    EDITABLE_FIELDS,
    STATUS_FLAG_COLUMNS,
    activation_flag_columns_for,
    column_map_for,
    users_table_override_for,
)


logger = get_logger(__name__)

UPDATED_AT_COLUMN = "updated_at"


class WriteBackError(RuntimeError):
    """Base exception for write-back failures (surfaced as 500 unless subclassed)."""


class NoValidFieldsError(WriteBackError):
    """Raised when an edit maps to nothing beyond the updated_at stamp."""

    def __init__(self) -> None:
        super().__init__("No valid fields to update")


# --------------------------------------------------------------------------- #
# Payload construction (pure)
# --------------------------------------------------------------------------- #

def build_update_payload(
    app_name: str,
    fields: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Translate normalized edit fields into an update payload for `app_name`.

    Empty values are treated as "not submitted". The result always carries
    `updated_at`; callers decide whether that alone is acceptable.
    """
    mapping = column_map_for(app_name)
    first_name = fields.get("firstName")
    last_name = fields.get("lastName")
    payload: Dict[str, Any] = {}

    name_column = mapping.get("firstName")
    if name_column in COMBINED_NAME_COLUMNS and (first_name or last_name):
        payload[name_column] = " ".join(part for part in (first_name, last_name) if part)
    else:
        if first_name and mapping.get("firstName"):
            payload[mapping["firstName"]] = first_name
        if last_name and mapping.get("lastName"):
            payload[mapping["lastName"]] = last_name

    for field_name in ("email", "phone", "role"):
        value = fields.get(field_name)
        if value and mapping.get(field_name):
            payload[mapping[field_name]] = value

    status = fields.get("status")
    if status:
        if mapping.get("status"):
            payload[mapping["status"]] = status
        else:
            # No status column: the app tracks activity as a boolean flag
            is_active = status == "active"
            for flag_column in STATUS_FLAG_COLUMNS:
                payload[flag_column] = is_active
            if is_active:
                for flag_column in activation_flag_columns_for(app_name):
                    payload[flag_column] = True

    payload[UPDATED_AT_COLUMN] = (now or datetime.now(timezone.utc)).isoformat()
    return payload


def has_effective_changes(payload: Mapping[str, Any]) -> bool:
    return any(key != UPDATED_AT_COLUMN for key in payload)


def resolve_target_table(
    project: ProjectConfig,
    extra_overrides: Optional[Mapping[str, str]] = None,
) -> str:
    override = users_table_override_for(project.app_name, project.is_local, extra_overrides)
    return override or project.users_table


def changed_fields(user: NormalizedUser, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Drop submitted fields that equal the user's current normalized values.

    The name is compared as the space-joined first/last against `user.name`,
    so an untouched name is dropped as a whole.
    """
    submitted = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v}
    current = {
        "email": user.email,
        "phone": user.phone,
        "role": user.role,
        "status": user.status,
    }
    changed = {k: v for k, v in submitted.items() if k in current and v != current[k]}

    full_name = " ".join(submitted[k] for k in ("firstName", "lastName") if submitted.get(k))
    if full_name and full_name != user.name:
        for k in ("firstName", "lastName"):
            if submitted.get(k):
                changed[k] = submitted[k]
    return changed


# --------------------------------------------------------------------------- #
# Dispatch
# --------------------------------------------------------------------------- #

class UserWriteBack:
    def __init__(
        self,
        registry: ProjectRegistry,
        db: SupabaseDBClient,
        rest_client: ProjectRestClient,
        key_resolver: Callable[[Optional[str]], Optional[str]] = get_service_key,
        table_overrides: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._registry = registry
        self._db = db
        self._rest = rest_client
        self._resolve_key = key_resolver
        self._table_overrides = settings.USERS_TABLE_OVERRIDES if table_overrides is None else table_overrides

    def update_user(
        self,
        user_id: str,
        app_name: str,
        fields: Mapping[str, Any],
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Apply one normalized edit to one user row and return the applied payload.

        Raises:
            AppNotFoundError: app not in the registry.
            RegistryUnavailableError: registry unreadable.
            NoValidFieldsError: nothing to write beyond updated_at.
            ProjectClientError: remote project rejected the PATCH.
            WriteBackError: missing credential/URL, transport or local failure.
        """
        project = self._registry.get_project(app_name)

        payload = build_update_payload(app_name, fields, now=now)
        if not has_effective_changes(payload):
            raise NoValidFieldsError()

        table = resolve_target_table(project, self._table_overrides)
        if project.is_local:
            self._update_local(project, table, user_id, payload)
        else:
            self._update_remote(project, table, user_id, payload)

        logger.info("Updated user %s on %s (%s): %s", user_id, app_name, table, sorted(payload))
        return payload

    def _update_local(self, project: ProjectConfig, table: str, user_id: str, payload: Dict[str, Any]) -> None:
        try:
            self._db.update_row(table, user_id, payload)
        except RuntimeError as e:
            logger.error("Local update failed on %s: %s", project.app_name, e)
            raise WriteBackError(f"Update failed on {project.app_name}: {e}") from e

    def _update_remote(self, project: ProjectConfig, table: str, user_id: str, payload: Dict[str, Any]) -> None:
        if not project.remote_base_url:
            raise WriteBackError(f"No project URL for {project.app_name}")
        service_key = self._resolve_key(project.remote_ref)
        if not service_key:
            logger.error("No service key for %s (%s)", project.app_name, project.remote_ref)
            raise WriteBackError(f"No service key for {project.app_name}")
        try:
            self._rest.patch_user(
                project.app_name,
                project.remote_base_url,
                table,
                user_id,
                payload,
                service_key,
            )
        except requests.RequestException as e:
            logger.error("Remote update failed on %s: %s", project.app_name, e)
            raise WriteBackError(f"Update failed on {project.app_name}: {e}") from e
