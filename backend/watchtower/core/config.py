"""
config.py — Centralized Application Configuration Loader

Purpose:
- Define a single source of truth for Watchtower backend settings.
- Load and validate environment variables from `.env` or OS environment.
- Resolve per-project service credentials at call time.

Core Workflow:
1. Read the app registry from the shared Watchtower project.
2. Fan out to every registered project (local or remote) for user rows.
3. Write normalized edits back into the owning project's users table.

This module does NOT:
- Execute any DB connections.
- Make external API calls.
- Modify runtime settings.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find .env file relative to backend directory
# config.py is at: backend/watchtower/core/config.py
# .env should be at: backend/.env
_CONFIG_DIR = Path(__file__).parent  # backend/watchtower/core
_BACKEND_DIR = _CONFIG_DIR.parent.parent  # backend
_ENV_FILE = _BACKEND_DIR / ".env"

if _ENV_FILE.exists():
    _ENV_FILE_PATH = str(_ENV_FILE.resolve())
else:
    # Fallback: use relative path (pydantic will look in CWD)
    _ENV_FILE_PATH = ".env"

SERVICE_KEY_ENV_PREFIX = "SERVICE_KEY_"


class Settings(BaseSettings):
    """
    Settings container for the aggregation + write-back backend.

    Per-project service keys are NOT declared here one by one: they are
    looked up dynamically as `SERVICE_KEY_<ref>` (see `get_service_key`).
    """
    # Shared (local) Watchtower project
    SUPABASE_URL: str = Field(
        "",
        description="Supabase URL of the shared Watchtower project",
    )
    SUPABASE_SERVICE_ROLE_KEY: str = Field(
        "",
        description="Service role key for the shared Watchtower project",
    )
    WATCHTOWER_PROJECT_REF: str = Field(
        "",
        description="Project ref of the shared instance; registry rows with this ref are local",
    )

    # Tables on the shared project
    APP_REGISTRY_TABLE: str = Field(
        "wt_app_registry",
        description="Table holding one connection record per registered app",
    )
    APP_ACTIVITY_TABLE: str = Field(
        "wt_app_activity",
        description="Table receiving cross-app activity events",
    )

    # Fan-out limits
    USERS_FETCH_LIMIT: int = Field(
        200,
        description="Maximum user rows fetched per project per aggregation",
    )
    REMOTE_REQUEST_TIMEOUT_SECONDS: float = Field(
        20.0,
        description="HTTP timeout for calls to remote project REST endpoints (seconds)",
    )
    AGGREGATOR_MAX_WORKERS: Optional[int] = Field(
        None,
        description="Optional ceiling on concurrent project fetches (unset: one worker per project)",
    )

    # Credentials and per-app overrides (JSON objects in the environment)
    SERVICE_KEYS: Dict[str, str] = Field(
        default_factory=dict,
        description="Fallback map of project ref -> service key",
    )
    USERS_TABLE_OVERRIDES: Dict[str, str] = Field(
        default_factory=dict,
        description="Map of app name -> writable users table, merged over the built-in overrides",
    )

    LOG_LEVEL: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("SUPABASE_URL", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> str:
        """Strip whitespace and trailing slash from the project URL."""
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v or ""

    @field_validator("USERS_FETCH_LIMIT", "AGGREGATOR_MAX_WORKERS")
    @classmethod
    def must_be_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("must be >= 1")
        return v

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Singleton pattern — settings imported anywhere will reference same object.
settings = Settings()


def get_service_key(project_ref: Optional[str]) -> Optional[str]:
    """
    Resolve the service key for an external project.

    Lookup order:
        1. Environment variable `SERVICE_KEY_<ref>` (read at call time)
        2. `settings.SERVICE_KEYS[ref]`

    Returns None when no credential is configured; callers decide whether
    that is a skip (aggregation) or a hard failure (write-back).
    """
    if not project_ref:
        return None
    key = os.environ.get(f"{SERVICE_KEY_ENV_PREFIX}{project_ref}", "").strip()
    if key:
        return key
    key = (settings.SERVICE_KEYS.get(project_ref) or "").strip()
    return key or None
