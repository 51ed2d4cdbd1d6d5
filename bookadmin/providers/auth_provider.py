"""Login against the backend token endpoint."""

from __future__ import annotations

import logging
from typing import Any

import requests

from bookadmin.auth.config import DashboardConfig
from bookadmin.core.models import AuthResponse, LoginCredentials
from bookadmin.providers.api_client import JSON_HEADERS, ApiError, HttpError, InvalidPayload, parse_payload

logger = logging.getLogger(__name__)


def login(cfg: DashboardConfig, credentials: LoginCredentials, *, session: Any = None) -> AuthResponse:
    """
    Exchange email/password for a bearer token (`POST /token`).

    This is the only backend call made without an access token.
    """
    http = session if session is not None else requests
    path = "/token"
    try:
        resp = http.request(
            "POST",
            f"{cfg.base_url}{path}",
            headers=dict(JSON_HEADERS),
            json=credentials.model_dump(),
            timeout=cfg.api_timeout_seconds,
        )
    except requests.exceptions.RequestException as e:
        logger.warning("Login request failed (%s)", type(e).__name__)
        raise ApiError(f"Login request failed: {e}", method="POST", path=path) from e

    if not 200 <= resp.status_code < 300:
        # Avoid logging the email/password; status is enough.
        logger.warning("Login failed with status: %d", resp.status_code)
        raise HttpError(
            f"Login failed with status: {resp.status_code}", status=resp.status_code, method="POST", path=path
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise InvalidPayload("Invalid JSON in login response", status=resp.status_code, method="POST", path=path) from e
    return parse_payload(AuthResponse, data, method="POST", path=path)
