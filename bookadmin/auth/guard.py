"""
Session guard for dashboard routes.

Every failure here is a navigation: callers get a redirect to the login page
(or to the dashboard when already signed in), never an inline error payload.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse

from bookadmin.auth.config import DashboardConfig
from bookadmin.auth.models import RequestContext, SessionData
from bookadmin.auth.session import (
    clear_session_cookie_kwargs,
    decode_session,
    encode_session,
    session_cookie_kwargs,
    session_cookie_name,
)
from bookadmin.auth.util import sanitize_next_path

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
HOME_PATH = "/dashboard/home"


class RedirectRequired(Exception):
    """Raised by the guard; the app turns it into a redirect response."""

    def __init__(self, location: str, *, clear_session: bool = False) -> None:
        super().__init__(location)
        self.location = location
        self.clear_session = clear_session


class SessionGuard:
    def __init__(self, cfg: DashboardConfig, *, login_path: str = LOGIN_PATH, home_path: str = HOME_PATH) -> None:
        self.cfg = cfg
        self.login_path = login_path
        self.home_path = home_path

    def read_session(self, request: Request) -> Optional[SessionData]:
        return decode_session(self.cfg, request.cookies.get(session_cookie_name(self.cfg)))

    def get_user_id(self, request: Request) -> Optional[str]:
        data = self.read_session(request)
        return data.user_id if data else None

    def get_access_token(self, request: Request) -> Optional[str]:
        data = self.read_session(request)
        if data is None or not data.access_token:
            return None
        return data.access_token

    def login_redirect(self, redirect_to: Optional[str] = None) -> str:
        target = sanitize_next_path(redirect_to, default="")
        if not target:
            return self.login_path
        return f"{self.login_path}?{urlencode({'redirectTo': target})}"

    def require_authenticated(self, request: Request, redirect_to: Optional[str] = None) -> str:
        user_id = self.get_user_id(request)
        if not user_id:
            raise RedirectRequired(self.login_redirect(redirect_to or request.url.path))
        return user_id

    def require_anonymous(self, request: Request) -> None:
        if self.get_user_id(request):
            raise RedirectRequired(self.home_path)
        return None

    def require_context(self, request: Request) -> RequestContext:
        """
        Resolve user id + access token for a protected handler.

        A session without a token cannot call the backend, so it is treated
        the same as no session at all.
        """
        user_id = self.require_authenticated(request)
        token = self.get_access_token(request)
        if not token:
            logger.info("Session for user %s carries no access token; sending to login", user_id)
            raise RedirectRequired(self.login_redirect(request.url.path), clear_session=True)
        return RequestContext(user_id=user_id, access_token=token)

    def create_session(self, user_id: str, access_token: str, redirect_to: str) -> RedirectResponse:
        if not user_id or not access_token:
            raise ValueError("user_id and access_token are required to create a session")
        value = encode_session(self.cfg, SessionData(user_id=str(user_id), access_token=access_token))
        resp = RedirectResponse(url=sanitize_next_path(redirect_to), status_code=302)
        resp.headers["Cache-Control"] = "no-store"
        resp.set_cookie(**session_cookie_kwargs(self.cfg, value))
        return resp

    def destroy_session(self, request: Optional[Request] = None) -> RedirectResponse:
        return self.redirect(self.login_path, clear_session=True)

    def redirect(self, location: str, *, clear_session: bool = False) -> RedirectResponse:
        resp = RedirectResponse(url=location, status_code=302)
        if clear_session:
            resp.headers["Cache-Control"] = "no-store"
            resp.set_cookie(**clear_session_cookie_kwargs(self.cfg))
        return resp
