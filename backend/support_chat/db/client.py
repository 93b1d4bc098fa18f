"""Shared Supabase client for the inbox tables.

The widget API and the operator inbox both talk to Supabase with the service
role key, so one process-wide client is created on first use.
"""

import logging
import threading
from urllib.parse import urlparse

from supabase import Client, create_client

from ..core.config import get_settings

logger = logging.getLogger(__name__)

_client: Client | None = None
_client_lock = threading.Lock()


class SupabaseNotConfiguredError(ValueError):
    """SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing."""


def _connect() -> Client:
    settings = get_settings()
    missing = [
        env
        for env, value in (
            ("SUPABASE_URL", settings.supabase_url),
            ("SUPABASE_SERVICE_ROLE_KEY", settings.supabase_service_role_key),
        )
        if not value
    ]
    if missing:
        raise SupabaseNotConfiguredError(
            f"Inbox storage unavailable, set {' and '.join(missing)}"
        )
    client = create_client(settings.supabase_url, settings.supabase_service_role_key)
    logger.info("Inbox storage connected (%s)", urlparse(settings.supabase_url).netloc)
    return client


def get_supabase() -> Client:
    """Return the shared client, connecting on first call.

    Raises:
        SupabaseNotConfiguredError: credentials are not configured.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = _connect()
    return _client


def reset_supabase() -> None:
    """Drop the shared client so the next call reconnects with fresh settings."""
    global _client
    with _client_lock:
        _client = None
