"""
aggregator.py — Cross-Project User Aggregation

Purpose:
- Fan out to every registered app project, fetch its raw user rows, and
  merge them into one list of NormalizedUser sorted newest first.

Flow:
1. Read connectable projects from the registry (fatal if unreadable).
2. Fetch every project concurrently:
     local  -> shared project's users table via the Supabase client
     remote -> REST GET with the project's service key
3. Settle all fetches; a failed or unauthenticated project is logged and
   skipped, never aborting its siblings.
4. Concatenate in registry order, then sort by created_at descending.

This module does NOT:
- Cache anything between calls.
- Retry failed fetches.
- Deduplicate users across apps (`id` is only unique per app).
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from watchtower.core.config import get_service_key, settings
from watchtower.core.logging import get_logger
from watchtower.models.project_config import ProjectConfig
from watchtower.models.user import NormalizedUser
from watchtower.services.clients.project_rest_client import ProjectRestClient
from watchtower.services.db_client import SupabaseDBClient
from watchtower.services.registry import ProjectRegistry
from watchtower.services.users.normalizer import normalize_user_rows, sort_newest_first


logger = get_logger(__name__)


@dataclass
class ProjectFetch:
    """Outcome of fetching one project; `error` is set when it was skipped."""
    app_name: str
    users: List[NormalizedUser] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class AggregationResult:
    users: List[NormalizedUser]
    project_count: int
    skipped: List[ProjectFetch] = field(default_factory=list)

    @property
    def info_header(self) -> str:
        return f"configs={self.project_count},users={len(self.users)},skipped={len(self.skipped)}"


class UserAggregator:
    def __init__(
        self,
        registry: ProjectRegistry,
        db: SupabaseDBClient,
        rest_client: ProjectRestClient,
        fetch_limit: Optional[int] = None,
        max_workers: Optional[int] = None,
        key_resolver: Callable[[Optional[str]], Optional[str]] = get_service_key,
    ) -> None:
        self._registry = registry
        self._db = db
        self._rest = rest_client
        self._fetch_limit = fetch_limit or settings.USERS_FETCH_LIMIT
        self._max_workers = max_workers or settings.AGGREGATOR_MAX_WORKERS
        self._resolve_key = key_resolver

    def aggregate(self) -> AggregationResult:
        """
        Aggregate users across every registered project.

        Raises:
            RegistryUnavailableError: only when the registry cannot be read.
        """
        projects = self._registry.list_projects()
        outcomes = self._fetch_all(projects)

        users: List[NormalizedUser] = []
        skipped: List[ProjectFetch] = []
        for outcome in outcomes:
            if outcome.ok:
                users.extend(outcome.users)
            else:
                skipped.append(outcome)

        _warn_on_duplicate_keys(users)
        result = AggregationResult(
            users=sort_newest_first(users),
            project_count=len(projects),
            skipped=skipped,
        )
        logger.info("Aggregated users: %s", result.info_header)
        return result

    # ------------------------------------------------------------------ #
    def _fetch_all(self, projects: List[ProjectConfig]) -> List[ProjectFetch]:
        if not projects:
            return []
        # one worker per project unless a ceiling is configured
        workers = len(projects)
        if self._max_workers:
            workers = min(self._max_workers, workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="user-fetch") as pool:
            # map() keeps registry order; _fetch_project never raises
            return list(pool.map(self._fetch_project, projects))

    def _fetch_project(self, project: ProjectConfig) -> ProjectFetch:
        try:
            if project.is_local:
                rows = self._db.fetch_rows(project.users_table, self._fetch_limit)
            else:
                service_key = self._resolve_key(project.remote_ref)
                if not service_key:
                    logger.warning("No service key for %s (%s)", project.app_name, project.remote_ref)
                    return ProjectFetch(project.app_name, error="missing service key")
                rows = self._rest.fetch_users(
                    project.app_name,
                    project.remote_base_url,
                    project.users_table,
                    service_key,
                )
            users = normalize_user_rows(rows, project.app_name)
        except Exception as e:
            reason = str(e) or type(e).__name__
            logger.error("Failed to fetch users for %s: %s", project.app_name, reason)
            return ProjectFetch(project.app_name, error=reason)

        return ProjectFetch(project.app_name, users=users)


def _warn_on_duplicate_keys(users: Iterable[NormalizedUser]) -> None:
    counts = Counter(user.key for user in users)
    duplicates = [key for key, count in counts.items() if count > 1]
    if duplicates:
        logger.warning("Duplicate (app, id) pairs in aggregation: %s", duplicates[:10])


# --------------------------------------------------------------------------- #
# Listing helpers (applied after aggregation)
# --------------------------------------------------------------------------- #

def filter_users(
    users: Iterable[NormalizedUser],
    search: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
    app: Optional[str] = None,
) -> List[NormalizedUser]:
    """Search matches name or email, case-insensitive; other filters are exact."""
    needle = (search or "").strip().lower()
    filtered: List[NormalizedUser] = []
    for user in users:
        if needle and needle not in user.name.lower() and needle not in user.email.lower():
            continue
        if role and user.role != role:
            continue
        if status and user.status != status:
            continue
        if app and user.app != app:
            continue
        filtered.append(user)
    return filtered


def summarize_users(users: Iterable[NormalizedUser]) -> Dict[str, object]:
    users = list(users)
    by_status = Counter(user.status for user in users)
    by_app = Counter(user.app for user in users)
    return {
        "total": len(users),
        "active": by_status.get("active", 0),
        "inactive": by_status.get("inactive", 0),
        "suspended": by_status.get("suspended", 0),
        "by_app": dict(by_app),
    }
