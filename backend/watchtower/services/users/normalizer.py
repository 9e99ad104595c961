"""
Normalize raw user rows from heterogeneous app schemas into NormalizedUser.

Raw rows are loosely-typed dicts whose column names vary per app
(`display_name` vs `name` vs `first_name`/`last_name`, `mobile` vs `phone`,
`is_active` vs `status` vs `banned_until` vs `deleted_at`). Every rule below
is a first-match fallback chain; none of them raises on odd input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from watchtower.models.user import NormalizedUser
from watchtower.services.users.mappings import (
    DEFAULT_ROLE,
    DEFAULT_STATUS,
    LAST_SIGN_IN_COLUMNS,
    NAME_COLUMNS,
    PHONE_COLUMNS,
    ROLE_SYNONYMS,
    UNKNOWN_NAME,
)


def _first_truthy(row: Dict[str, Any], columns: Sequence[str]) -> Any:
    for column in columns:
        value = row.get(column)
        if value:
            return value
    return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def derive_name(row: Dict[str, Any]) -> str:
    """display_name -> name -> "first last" -> email -> "Unknown"."""
    name = _first_truthy(row, NAME_COLUMNS)
    if name:
        return str(name)
    joined = " ".join(str(part) for part in (row.get("first_name"), row.get("last_name")) if part)
    if joined:
        return joined
    if row.get("email"):
        return str(row["email"])
    return UNKNOWN_NAME


def normalize_role(raw_role: Any) -> str:
    """Map known synonyms onto the canonical set; anything else passes through."""
    role = str(raw_role) if raw_role else DEFAULT_ROLE
    return ROLE_SYNONYMS.get(role, role)


def derive_status(row: Dict[str, Any]) -> str:
    """
    First matching rule wins:
        explicit status -> verbatim
        is_active / active is False -> inactive
        banned_until set -> suspended
        deleted_at set -> inactive
        otherwise -> active
    """
    if row.get("status"):
        return str(row["status"])
    if row.get("is_active") is False or row.get("active") is False:
        return "inactive"
    if row.get("banned_until"):
        return "suspended"
    if row.get("deleted_at"):
        return "inactive"
    return DEFAULT_STATUS


def derive_phone(row: Dict[str, Any]) -> Optional[str]:
    return _as_text(_first_truthy(row, PHONE_COLUMNS))


def normalize_user_row(row: Dict[str, Any], app_name: str) -> NormalizedUser:
    return NormalizedUser(
        id=_as_text(row.get("id")) or "",
        name=derive_name(row),
        email=str(row.get("email") or ""),
        phone=derive_phone(row),
        role=normalize_role(row.get("role")),
        status=derive_status(row),
        app=app_name,
        created_at=_as_text(row.get("created_at")),
        last_sign_in_at=_as_text(_first_truthy(row, LAST_SIGN_IN_COLUMNS)),
    )


def normalize_user_rows(rows: Iterable[Dict[str, Any]], app_name: str) -> List[NormalizedUser]:
    return [normalize_user_row(row, app_name) for row in rows]


# --------------------------------------------------------------------------- #
# Ordering
# --------------------------------------------------------------------------- #

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (PostgREST style included) to an aware datetime.

    Returns None for missing or unparseable values. Naive values are UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _created_at_sort_key(user: NormalizedUser) -> Tuple[int, float]:
    parsed = parse_timestamp(user.created_at)
    if parsed is None:
        return (1, 0.0)
    return (0, -parsed.timestamp())


def sort_newest_first(users: Iterable[NormalizedUser]) -> List[NormalizedUser]:
    """created_at descending; missing/unparseable timestamps last, otherwise stable."""
    return sorted(users, key=_created_at_sort_key)
