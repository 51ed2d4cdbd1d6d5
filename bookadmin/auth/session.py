from __future__ import annotations

import json
from typing import Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from bookadmin.auth.config import DashboardConfig
from bookadmin.auth.models import SessionData

SESSION_COOKIE_NAME = "RB_session"
SESSION_SALT = "bookadmin-dashboard-session-v1"


def session_cookie_name(cfg: DashboardConfig) -> str:
    # Fixed name; `__Host-` is not used because local dev runs over plain HTTP.
    return SESSION_COOKIE_NAME


def _serializer(cfg: DashboardConfig) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=cfg.session_secret, salt=SESSION_SALT)


def encode_session(cfg: DashboardConfig, data: SessionData) -> str:
    raw = json.dumps(
        {"userId": data.user_id, "accessToken": data.access_token},
        separators=(",", ":"),
        sort_keys=True,
    )
    return _serializer(cfg).dumps(raw)


def decode_session(cfg: DashboardConfig, value: str | None) -> Optional[SessionData]:
    if not value:
        return None
    try:
        raw = _serializer(cfg).loads(value, max_age=cfg.session_ttl_seconds)
        data = json.loads(raw)
    except (BadSignature, BadTimeSignature, ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None
    user_id = data.get("userId")
    token = data.get("accessToken")
    if not isinstance(user_id, str) or not user_id:
        return None
    return SessionData(user_id=user_id, access_token=token if isinstance(token, str) else "")


def _cookie_kwargs(cfg: DashboardConfig, value: str, max_age: int) -> dict:
    return dict(
        key=session_cookie_name(cfg),
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=cfg.cookie_secure,
    )


def session_cookie_kwargs(cfg: DashboardConfig, value: str) -> dict:
    """`Response.set_cookie` arguments for a freshly signed session."""
    return _cookie_kwargs(cfg, value, cfg.session_ttl_seconds)


def clear_session_cookie_kwargs(cfg: DashboardConfig) -> dict:
    """Same cookie attributes, expired immediately."""
    return _cookie_kwargs(cfg, "", 0)
