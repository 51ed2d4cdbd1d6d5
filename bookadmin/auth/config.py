from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

DEV_SESSION_SECRET = "default-secret"
DEFAULT_SESSION_TTL_SECONDS = 60 * 60 * 24 * 30  # 30 days


@dataclass(frozen=True)
class DashboardConfig:
    # Backend REST API
    api_url: str
    api_prefix: str
    api_timeout_seconds: Optional[float]

    # Session configuration
    session_secret: str
    session_ttl_seconds: int
    cookie_secure: bool

    # Drop the local session when the backend rejects the stored token.
    logout_on_unauthorized: bool = True

    @property
    def base_url(self) -> str:
        return f"{self.api_url}{self.api_prefix}"

    @property
    def uses_dev_secret(self) -> bool:
        return self.session_secret == DEV_SESSION_SECRET


def _parse_bool(value: Optional[str]) -> Optional[bool]:
    v = (value or "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return None


@lru_cache(maxsize=1)
def load_config() -> DashboardConfig:
    """
    Load dashboard configuration from environment variables.

    Read once per process; the result is passed explicitly to the session
    guard, the API client and the app factory.
    """
    api_url = (os.getenv("API_URL", "") or "").strip().rstrip("/") or "http://localhost:8000"

    prefix = (os.getenv("API_PREFIX", "") or "/api/v2").strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix

    session_secret = (os.getenv("SESSION_SECRET", "") or "").strip()
    if not session_secret:
        logger.warning("SESSION_SECRET is not set; using the development secret (do not run like this in production)")
        session_secret = DEV_SESSION_SECRET

    cookie_secure = _parse_bool(os.getenv("SESSION_COOKIE_SECURE"))
    if cookie_secure is None:
        cookie_secure = (os.getenv("APP_ENV", "") or "").strip().lower() == "production"

    ttl = int(float((os.getenv("SESSION_TTL_SECONDS", "") or str(DEFAULT_SESSION_TTL_SECONDS)).strip()))
    if ttl <= 60:
        ttl = 60

    timeout_raw = (os.getenv("API_TIMEOUT_SECONDS", "") or "30").strip()
    timeout = float(timeout_raw)
    # 0 disables the client-side timeout entirely.
    api_timeout: Optional[float] = timeout if timeout > 0 else None

    logout_on_unauthorized = _parse_bool(os.getenv("LOGOUT_ON_UNAUTHORIZED"))

    return DashboardConfig(
        api_url=api_url,
        api_prefix=prefix,
        api_timeout_seconds=api_timeout,
        session_secret=session_secret,
        session_ttl_seconds=ttl,
        cookie_secure=cookie_secure,
        logout_on_unauthorized=True if logout_on_unauthorized is None else logout_on_unauthorized,
    )
