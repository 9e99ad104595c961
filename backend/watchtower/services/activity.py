"""
activity.py — Cross-App Activity Event Recording

Purpose:
- Validate and store one activity event reported by a registered app
  (sign-ups, logins, feature usage) in the shared activity table.

This module does NOT:
- Check that `app_slug` exists in the registry; events are accepted as sent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from watchtower.core.logging import get_logger
from watchtower.services.db_client import SupabaseDBClient


logger = get_logger(__name__)


class ActivityValidationError(ValueError):
    """Raised when a required event field is missing or blank."""


@dataclass
class ActivityEvent:
    app_slug: str
    event_type: str
    user_email: Optional[str] = None
    user_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ActivityEvent":
        app_slug = payload.get("app_slug")
        if not isinstance(app_slug, str) or not app_slug.strip():
            raise ActivityValidationError("app_slug is required")
        event_type = payload.get("event_type")
        if not isinstance(event_type, str) or not event_type.strip():
            raise ActivityValidationError("event_type is required")
        metadata = payload.get("metadata")
        return cls(
            app_slug=app_slug.strip(),
            event_type=event_type.strip(),
            user_email=payload.get("user_email") or None,
            user_id=payload.get("user_id") or None,
            metadata=metadata if isinstance(metadata, dict) else {},
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "app_slug": self.app_slug,
            "event_type": self.event_type,
            "user_email": self.user_email,
            "user_id": self.user_id,
            "metadata": self.metadata,
        }


def record_activity(db: SupabaseDBClient, event: ActivityEvent) -> None:
    """Insert the event; RuntimeError from the client propagates."""
    db.insert_activity(event.to_row())
    logger.debug("Recorded %s event for %s", event.event_type, event.app_slug)
