# zephyr/auth.py
"""
Auth Token Manager

Supplies the bearer token attached to API calls. The SDK does not log users
in; it reads the access token of an existing session and caches it.

Usage:
    from zephyr.auth import AuthTokenManager, SupabaseSessionProvider, get_supabase_client

    auth = AuthTokenManager(SupabaseSessionProvider(get_supabase_client()))
    headers = auth.get_auth_headers()
"""

import os
import threading
import time
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

# Session tokens typically expire after 60 minutes
DEFAULT_TOKEN_TTL = 55 * 60

# One Supabase client per (url, key)
_supabase_clients: Dict[Tuple[str, str], Any] = {}


class SessionProvider(Protocol):
    """Anything that can hand out the current access token."""

    def get_access_token(self) -> Optional[str]:
        ...


class StaticTokenProvider:
    """Returns a fixed token, e.g. an API key."""

    def __init__(self, token: Optional[str]):
        self._token = token

    def get_access_token(self) -> Optional[str]:
        return self._token


class CallableTokenProvider:
    """Wraps a zero-argument callable returning a token."""

    def __init__(self, func: Callable[[], Optional[str]]):
        self._func = func

    def get_access_token(self) -> Optional[str]:
        return self._func()


class SupabaseSessionProvider:
    """Reads the access token of the current Supabase auth session."""

    def __init__(self, client):
        self._client = client

    def get_access_token(self) -> Optional[str]:
        if self._client is None:
            return None
        session = self._client.auth.get_session()
        if session is None:
            return None
        return getattr(session, "access_token", None)


def get_supabase_client(url: Optional[str] = None, key: Optional[str] = None):
    """
    Get the shared Supabase client for a project URL and key.

    Explicit arguments win over SUPABASE_URL and SUPABASE_KEY.

    Returns:
        Supabase client or None if not configured
    """
    supabase_url = url or os.environ.get("SUPABASE_URL")
    supabase_key = key or os.environ.get("SUPABASE_KEY") or os.environ.get("SUPABASE_ANON_KEY")

    if not supabase_url or not supabase_key:
        logger.warning("⚠️ Supabase not configured (missing SUPABASE_URL or SUPABASE_KEY)")
        return None

    cache_key = (supabase_url, supabase_key)
    if cache_key in _supabase_clients:
        return _supabase_clients[cache_key]

    from supabase import create_client

    _supabase_clients[cache_key] = create_client(supabase_url, supabase_key)
    logger.info(f"✅ Supabase session source: {supabase_url}")
    return _supabase_clients[cache_key]


class AuthTokenManager:
    """
    Caches the session token and builds auth headers.

    A provider failure clears the cache and yields no token, so callers
    continue unauthenticated rather than failing.
    """

    def __init__(
        self,
        provider: Optional[SessionProvider] = None,
        ttl_seconds: float = DEFAULT_TOKEN_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._provider = provider
        self._ttl = ttl_seconds
        self._clock = clock
        self._cached_token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_valid_token(self) -> Optional[str]:
        """Return the cached token, refreshing it when stale."""
        if self._cached_token and self._clock() < self._expires_at:
            return self._cached_token

        with self._lock:
            # Another caller may have refreshed while we waited
            if self._cached_token and self._clock() < self._expires_at:
                return self._cached_token
            return self._refresh()

    def _refresh(self) -> Optional[str]:
        if self._provider is None:
            return None
        try:
            token = self._provider.get_access_token()
        except Exception as e:
            logger.error(f"Failed to refresh auth token: {e}")
            self._cached_token = None
            self._expires_at = 0.0
            return None

        if token:
            self._cached_token = token
            self._expires_at = self._clock() + self._ttl
            logger.debug("🔐 Auth token cached")
        else:
            self._cached_token = None
            self._expires_at = 0.0
        return token or None

    def get_auth_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.get_valid_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def clear_cache(self) -> None:
        """Forget the cached token (e.g. on logout)."""
        with self._lock:
            self._cached_token = None
            self._expires_at = 0.0
