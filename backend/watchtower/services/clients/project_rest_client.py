"""
project_rest_client.py — HTTP client for externally hosted app projects.

Responsibilities:
- Read an app's users table over the project's REST endpoint
- Patch one user row by primary key
- Authenticate with the project's service key (apikey + bearer headers)
- Single attempt per call: no caching, no retries
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from watchtower.core.config import settings
from watchtower.core.logging import get_logger


logger = get_logger(__name__)


REST_BASE_HEADERS = {
    "Accept": "application/json",
}

USERS_URL_TEMPLATE = "{base_url}/rest/v1/{table}"


class ProjectClientError(RuntimeError):
    """Raised when a remote project answers with a non-2xx status."""

    def __init__(self, app_name: str, status_code: int, body: str, action: str = "Request"):
        self.app_name = app_name
        self.status_code = status_code
        self.body = body
        super().__init__(f"{action} failed on {app_name}: {status_code} {body}")


class ProjectClientConfigurationError(RuntimeError):
    """Raised when a remote call is attempted without a URL or service key."""


@dataclass(frozen=True)
class ProjectRestClientSettings:
    timeout_seconds: float
    fetch_limit: int

    @classmethod
    def from_app_settings(cls) -> "ProjectRestClientSettings":
        return cls(
            timeout_seconds=settings.REMOTE_REQUEST_TIMEOUT_SECONDS,
            fetch_limit=settings.USERS_FETCH_LIMIT,
        )


class ProjectRestClient:
    """
    Thin wrapper over `requests.Session` for PostgREST-style project APIs.

    One session is shared by the concurrent fetches of a single aggregation;
    each call carries its own credential headers.
    """

    def __init__(self, session: Optional[requests.Session] = None, config: Optional[ProjectRestClientSettings] = None):
        self._session = session or requests.Session()
        self._config = config or ProjectRestClientSettings.from_app_settings()

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def fetch_users(self, app_name: str, base_url: str, table: str, service_key: str) -> List[Dict[str, Any]]:
        """
        GET {base_url}/rest/v1/{table}?select=*&limit=N

        Returns the raw rows. Raises ProjectClientError on non-2xx and lets
        `requests.RequestException` propagate for transport failures.
        """
        url = self._users_url(app_name, base_url, table)
        response = self._session.get(
            url,
            params={"select": "*", "limit": str(self._config.fetch_limit)},
            headers=self._auth_headers(app_name, service_key),
            timeout=self._config.timeout_seconds,
        )
        if not response.ok:
            raise ProjectClientError(app_name, response.status_code, response.text, action="Fetch")
        data = response.json()
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            raise ProjectClientError(app_name, response.status_code, "expected a JSON array of row objects", action="Fetch")
        return data

    def patch_user(
        self,
        app_name: str,
        base_url: str,
        table: str,
        user_id: str,
        payload: Dict[str, Any],
        service_key: str,
    ) -> None:
        """
        PATCH {base_url}/rest/v1/{table}?id=eq.{user_id} with `Prefer: return=minimal`.
        """
        url = self._users_url(app_name, base_url, table)
        headers = {
            **self._auth_headers(app_name, service_key),
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }
        response = self._session.patch(
            url,
            params={"id": f"eq.{user_id}"},
            json=payload,
            headers=headers,
            timeout=self._config.timeout_seconds,
        )
        if not response.ok:
            raise ProjectClientError(app_name, response.status_code, response.text, action="Update")

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #
    def _users_url(self, app_name: str, base_url: str, table: str) -> str:
        if not base_url:
            raise ProjectClientConfigurationError(f"No project URL configured for {app_name}")
        return USERS_URL_TEMPLATE.format(base_url=base_url.rstrip("/"), table=table)

    def _auth_headers(self, app_name: str, service_key: str) -> Dict[str, str]:
        if not service_key:
            raise ProjectClientConfigurationError(f"No service key for {app_name}")
        return {
            **REST_BASE_HEADERS,
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }


def get_project_rest_client() -> ProjectRestClient:
    return ProjectRestClient()
