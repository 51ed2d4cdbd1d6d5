from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionData:
    """Contents of the session cookie."""

    user_id: str
    access_token: str  # opaque bearer token issued by the backend; never parsed


@dataclass(frozen=True)
class RequestContext:
    """Identity resolved once per request and handed to every handler."""

    user_id: str
    access_token: str
