"""
Pytest config.

Local imports like `import bookadmin` rely on the repo root being on sys.path.
In some environments (e.g. when invoking a global `pytest` entrypoint) that
doesn't happen reliably during collection, so we pin it here.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

import pytest  # noqa: E402
import requests  # noqa: E402

from bookadmin.auth.config import DashboardConfig  # noqa: E402
from bookadmin.auth.guard import SessionGuard  # noqa: E402

API_URL = "http://backend.test"


def make_response(
    status: int = 200, body: Any = None, *, headers: Optional[Dict[str, str]] = None, raw: Optional[bytes] = None
) -> requests.Response:
    """Build a real `requests.Response` the way the backend would send it."""
    resp = requests.Response()
    resp.status_code = status
    if raw is not None:
        resp._content = raw
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    else:
        resp._content = b""
    resp.headers.update(headers or {})
    return resp


class FakeBackend:
    """
    Stand-in for a `requests.Session`: routes (METHOD, path) to canned responses
    and records every call.
    """

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self.routes: Dict[Tuple[str, str], Callable[[Dict[str, Any]], requests.Response] | requests.Response] = {}
        self.calls: List[Dict[str, Any]] = []

    def on(self, method: str, path: str, response: Any) -> None:
        self.routes[(method.upper(), path)] = response

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        assert url.startswith(self.base_url), url
        path = url[len(self.base_url) :]
        self.calls.append({"method": method, "path": path, **kwargs})
        handler = self.routes.get((method.upper(), path))
        if handler is None:
            return make_response(404, {"detail": "Not found"})
        if callable(handler):
            return handler(kwargs)
        return handler


@pytest.fixture
def cfg() -> DashboardConfig:
    return DashboardConfig(
        api_url=API_URL,
        api_prefix="/api/v2",
        api_timeout_seconds=5.0,
        session_secret="test-secret-key-for-testing-purposes-only",
        session_ttl_seconds=60 * 60 * 24 * 30,
        cookie_secure=False,
    )


@pytest.fixture
def guard(cfg: DashboardConfig) -> SessionGuard:
    return SessionGuard(cfg)


@pytest.fixture
def backend(cfg: DashboardConfig) -> FakeBackend:
    return FakeBackend(cfg.base_url)
