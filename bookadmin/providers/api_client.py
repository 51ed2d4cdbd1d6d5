"""
Backend REST API client.

One `ApiClient` per request, bound to the access token from that request's
session. The client is a pass-through: no retries, no caching. Failures are
logged once here and re-raised as `ApiError` subclasses.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from bookadmin.auth.config import DashboardConfig

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class ApiError(Exception):
    """Any failed backend call. `status` is None when no HTTP response arrived."""

    def __init__(self, message: str, *, status: Optional[int] = None, method: str = "", path: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.method = method
        self.path = path


class HttpError(ApiError):
    """Backend answered with a non-2xx status."""


class Unauthorized(HttpError):
    """Backend rejected the bearer token (401)."""


class InvalidPayload(ApiError):
    """Response body was not valid JSON or did not match the expected schema."""


def _dump_body(body: Any) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump(exclude_none=True)
    return body


def _wants_json(method: str, resp: requests.Response) -> bool:
    if method == "DELETE" or resp.status_code == 204:
        return False
    if (resp.headers.get("content-length") or "").strip() == "0":
        return False
    if not resp.content:
        return False
    return "application/json" in (resp.headers.get("content-type") or "").lower()


class ApiClient:
    """
    Authenticated client for the backend REST API.

    Args:
        cfg: Dashboard configuration (base URL, timeout)
        access_token: Bearer token taken from the session
        session: Optional `requests.Session`-like object (defaults to the `requests` module)
    """

    def __init__(self, cfg: DashboardConfig, access_token: str, *, session: Any = None) -> None:
        if not access_token:
            raise ValueError("access_token is required to call the backend")
        self.base_url = cfg.base_url
        self.timeout = cfg.api_timeout_seconds
        self._access_token = access_token
        self._http = session

    def _headers(self) -> Dict[str, str]:
        headers = dict(JSON_HEADERS)
        headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        method = method.upper()
        url = f"{self.base_url}{path}"
        http = self._http if self._http is not None else requests

        kwargs: Dict[str, Any] = {"headers": self._headers(), "timeout": self.timeout}
        if params:
            kwargs["params"] = params
        if body is not None:
            kwargs["json"] = _dump_body(body)

        try:
            resp = http.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            logger.warning("API request failed: %s %s (%s)", method, path, type(e).__name__)
            raise ApiError(f"Request to backend failed: {e}", method=method, path=path) from e

        status = resp.status_code
        if not 200 <= status < 300:
            logger.warning("API request failed: %s %s - status %d", method, path, status)
            if status == 401:
                raise Unauthorized("Unauthorized", status=status, method=method, path=path)
            raise HttpError(f"HTTP error! Status: {status}", status=status, method=method, path=path)

        if not _wants_json(method, resp):
            return {}
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("API response was not valid JSON: %s %s - status %d", method, path, status)
            raise InvalidPayload("Invalid JSON in backend response", status=status, method=method, path=path) from e

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, body: Any) -> Any:
        return self.request("POST", path, body)

    def put(self, path: str, body: Any) -> Any:
        return self.request("PUT", path, body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)


def create_client(cfg: DashboardConfig, access_token: str, *, session: Any = None) -> ApiClient:
    return ApiClient(cfg, access_token, session=session)


def parse_payload(model: type[ModelT], data: Any, *, method: str = "", path: str = "") -> ModelT:
    """Validate a decoded response body into `model`; schema drift becomes `InvalidPayload`."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "API response did not match %s: %s %s (%d errors)", model.__name__, method, path, e.error_count()
        )
        raise InvalidPayload(f"Unexpected {model.__name__} payload from backend", method=method, path=path) from e
