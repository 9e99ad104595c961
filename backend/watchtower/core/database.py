"""
database.py — Shared Watchtower Project Connection

Purpose:
- Create the Supabase client for the shared (local) Watchtower project.

Key Characteristics:
- The shared project hosts the app registry, the activity table, and the
  user tables of every app flagged as local.
- A client is created per call; nothing is cached between invocations.

This module does NOT:
- Talk to external projects (see services/clients/project_rest_client.py).
- Perform any queries or business logic.
"""

from supabase import Client, create_client

from watchtower.core.config import settings


def create_supabase_client() -> Client:
    """
    Build a service-role client for the shared project.

    Raises:
        RuntimeError: If SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is empty.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError(
            "Shared Watchtower project is not configured. Please set SUPABASE_URL "
            "and SUPABASE_SERVICE_ROLE_KEY."
        )
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
