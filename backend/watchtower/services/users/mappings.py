"""
Static mapping tables for user normalization and write-back.

Per-app schema differences are expressed as data keyed by app name. Apps
without an entry use the DEFAULT_* value; lookups go through the helper
functions at the bottom so the fallback lives in one place.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping, Optional, Tuple

# Normalization (read side) ------------------------------------------------ #

DEFAULT_ROLE = "user"
DEFAULT_STATUS = "active"
UNKNOWN_NAME = "Unknown"

# Raw role -> canonical role. Roles not listed pass through unchanged.
ROLE_SYNONYMS: Dict[str, str] = {
    "super_admin": "admin",
    "admin": "admin",
    "manager": "manager",
    "consultant": "user",
    "member": "user",
    "user": "user",
    "viewer": "viewer",
    "dealer": "user",
    "wholesaler": "user",
}

# Source columns tried in order; first truthy value wins.
NAME_COLUMNS: Tuple[str, ...] = ("display_name", "name")
PHONE_COLUMNS: Tuple[str, ...] = ("phone", "mobile", "mfa_phone")
LAST_SIGN_IN_COLUMNS: Tuple[str, ...] = ("last_sign_in_at", "last_login_at", "updated_at")

# Write-back (edit side) --------------------------------------------------- #

# Normalized edit fields accepted from the dashboard.
EDITABLE_FIELDS: Tuple[str, ...] = ("firstName", "lastName", "email", "phone", "role", "status")

# Columns that hold the whole "first last" name in one value.
COMBINED_NAME_COLUMNS: FrozenSet[str] = frozenset({"name", "display_name"})

DEFAULT_COLUMN_MAP: Dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "role": "role",
    "status": "status",
}

# App name -> normalized field -> literal column. A missing field means the
# app has no column for it and the edit is dropped.
APP_COLUMN_MAPS: Dict[str, Dict[str, str]] = {
    "Watchtower": dict(DEFAULT_COLUMN_MAP),
    "BuybidHQ": {"firstName": "name", "email": "email", "phone": "mobile", "role": "role", "status": "status"},
    "SalesboardHQ": {"firstName": "name", "email": "email", "phone": "mobile", "role": "role"},
    "Demolight": {"firstName": "first_name", "lastName": "last_name", "email": "email", "phone": "phone", "role": "role"},
    "SalesLogHQ": {"firstName": "display_name", "email": "email", "phone": "phone", "role": "role"},
}

# Boolean columns written when an app has no status column.
STATUS_FLAG_COLUMNS: Tuple[str, ...] = ("is_active",)

# Legacy flags that are only ever set on activation, never cleared.
APP_ACTIVATION_FLAG_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "SalesboardHQ": ("active",),
}

# Apps whose registry users_table is a read view; writes go to the real table.
USERS_TABLE_OVERRIDES: Dict[str, str] = {
    "Watchtower": "wt_users",
    "SalesLogHQ": "sl_users",
    "Agentflow": "af_users",
    "CUDL Rate Capture": "cr_users",
}

# Same, but only when the app's data lives on the shared project.
LOCAL_USERS_TABLE_OVERRIDES: Dict[str, str] = {
    "Demolight": "dl_users",
}


# Lookup helpers ----------------------------------------------------------- #

def column_map_for(app_name: str) -> Mapping[str, str]:
    return APP_COLUMN_MAPS.get(app_name, DEFAULT_COLUMN_MAP)


def activation_flag_columns_for(app_name: str) -> Tuple[str, ...]:
    return APP_ACTIVATION_FLAG_COLUMNS.get(app_name, ())


def users_table_override_for(
    app_name: str,
    is_local: bool,
    extra_overrides: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """
    Writable table for an app, or None to use the registry's users_table.

    `extra_overrides` (from settings) take precedence over the built-in tables.
    """
    if extra_overrides and app_name in extra_overrides:
        return extra_overrides[app_name]
    if app_name in USERS_TABLE_OVERRIDES:
        return USERS_TABLE_OVERRIDES[app_name]
    if is_local and app_name in LOCAL_USERS_TABLE_OVERRIDES:
        return LOCAL_USERS_TABLE_OVERRIDES[app_name]
    return None
