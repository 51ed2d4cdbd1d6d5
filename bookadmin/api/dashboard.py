from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from bookadmin.auth.config import DashboardConfig, load_config
from bookadmin.auth.guard import RedirectRequired, SessionGuard
from bookadmin.auth.models import RequestContext
from bookadmin.auth.rate_limit import RateLimiter
from bookadmin.auth.util import sanitize_next_path
from bookadmin.core.formatting import format_date
from bookadmin.core.forms import parse_author_form, parse_book_form, parse_id, parse_profile_form
from bookadmin.core.models import AuthorPage, Book, BookPage, ListQuery, LoginCredentials
from bookadmin.providers import auth_provider
from bookadmin.providers.api_client import ApiClient, ApiError, Unauthorized, create_client
from bookadmin.providers.authors_provider import create_author, delete_author, get_author, list_authors
from bookadmin.providers.books_provider import create_book, delete_book, get_book, list_books, update_book
from bookadmin.providers.fanout import gather_calls
from bookadmin.providers.users_provider import get_current_user, update_user

logger = logging.getLogger(__name__)

# Author dropdowns on the book forms load one large page.
AUTHOR_SELECT_QUERY = ListQuery(order_by="id", direction="ASC", limit=100, page=1)

router = APIRouter()


# ---- Per-request wiring ----


def _cfg(request: Request) -> DashboardConfig:
    return request.app.state.cfg


def _guard(request: Request) -> SessionGuard:
    return request.app.state.guard


def current_context(request: Request) -> RequestContext:
    """Dependency for every /dashboard route: user id + token, or a redirect to login."""
    return _guard(request).require_context(request)


def _client(request: Request, ctx: RequestContext) -> ApiClient:
    return create_client(_cfg(request), ctx.access_token, session=request.app.state.http)


def _flag(request: Request, name: str) -> bool:
    return (request.query_params.get(name) or "").strip().lower() == "true"


def _page_error(
    request: Request, exc: ApiError, message: str, *, return_to: Optional[str] = None, **defaults: Any
) -> Response:
    """
    Render a failed backend call as an inline banner.

    A rejected token is the exception: when configured, the stale session is
    dropped and the user is sent back to login. POST-only action routes pass
    `return_to` so that login lands on a page that can be fetched with GET.
    """
    if isinstance(exc, Unauthorized) and _cfg(request).logout_on_unauthorized:
        logger.info("Backend rejected session token (%s %s); clearing session", exc.method, exc.path)
        guard = _guard(request)
        return guard.redirect(guard.login_redirect(return_to or request.url.path), clear_session=True)
    logger.error("%s: %s", message, exc)
    content: Dict[str, Any] = {"ok": False, "error": message}
    content.update(defaults)
    return JSONResponse(content=content)


def _form_error(request: Request, exc: ApiError, message: str, values: Dict[str, str]) -> Response:
    return _page_error(request, exc, message, errors={"_form": message}, values=values)


def _book_row(book: Book) -> Dict[str, Any]:
    row = book.model_dump()
    row["release_date_display"] = format_date(book.release_date)
    return row


def _book_page_payload(page: BookPage) -> Dict[str, Any]:
    payload = page.model_dump(exclude={"items"})
    payload["items"] = [_book_row(b) for b in page.items]
    return payload


# ---- Public routes ----


@router.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


@router.get("/")
def index(request: Request) -> RedirectResponse:
    return _guard(request).redirect(_guard(request).login_path)


@router.get("/login")
def login_page(request: Request) -> Dict[str, Any]:
    _guard(request).require_anonymous(request)
    return {"ok": True, "redirectTo": sanitize_next_path(request.query_params.get("redirectTo"))}


@router.post("/login")
async def login_action(request: Request) -> Response:
    guard = _guard(request)
    guard.require_anonymous(request)
    form = await request.form()

    email = str(form.get("email") or "").strip()
    password = str(form.get("password") or "")
    redirect_to = sanitize_next_path(str(form.get("redirectTo") or request.query_params.get("redirectTo") or ""))
    if not email or not password:
        return JSONResponse(content={"ok": False, "error": "Invalid credentials"})

    limiter: RateLimiter = request.app.state.login_limiter
    allowed, _remaining = limiter.check_and_increment(email)
    if not allowed:
        return JSONResponse(
            status_code=429,
            content={"ok": False, "error": "Too many failed login attempts. Please try again later."},
        )

    credentials = LoginCredentials(email=email, password=password)
    try:
        auth = await asyncio.to_thread(auth_provider.login, _cfg(request), credentials, session=request.app.state.http)
    except ApiError as e:
        logger.info("Login rejected by backend (status=%s)", e.status)
        return JSONResponse(content={"ok": False, "error": "Invalid credentials"})

    limiter.reset(email)
    logger.info("User %s signed in", auth.user.id)
    return guard.create_session(str(auth.user.id), auth.token_key, redirect_to)


@router.api_route("/logout", methods=["GET", "POST"])
def logout(request: Request) -> RedirectResponse:
    return _guard(request).destroy_session(request)


# ---- Dashboard ----


@router.get("/dashboard")
def dashboard_root(request: Request, ctx: RequestContext = Depends(current_context)) -> RedirectResponse:
    return _guard(request).redirect(_guard(request).home_path)


@router.get("/dashboard/home")
def dashboard_home(ctx: RequestContext = Depends(current_context)) -> Dict[str, Any]:
    return {"ok": True, "userId": ctx.user_id}


# Authors


@router.get("/dashboard/authors")
def authors_index(request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    query = ListQuery.from_params(dict(request.query_params))
    try:
        page = list_authors(_client(request, ctx), query)
    except ApiError as e:
        empty = AuthorPage.empty(limit=query.limit, order_by=query.order_by, direction=query.direction)
        return _page_error(
            request, e, "Failed to load authors", authors=empty.model_dump(), params=query.model_dump()
        )
    return {
        "ok": True,
        "error": None,
        "authors": page.model_dump(),
        "params": query.model_dump(),
        "created": _flag(request, "created"),
        "deleteSuccess": _flag(request, "deleteSuccess"),
        "deleteError": _flag(request, "deleteError"),
    }


@router.post("/dashboard/authors")
async def authors_create(request: Request, ctx: RequestContext = Depends(current_context)) -> Response:
    author, errors, values = parse_author_form(await request.form())
    if author is None:
        return JSONResponse(status_code=400, content={"ok": False, "errors": errors, "values": values})
    try:
        await asyncio.to_thread(create_author, _client(request, ctx), author)
    except ApiError as e:
        return _form_error(request, e, "Failed to create author. Please try again.", values)
    return _guard(request).redirect("/dashboard/authors?created=true")


@router.get("/dashboard/authors/{author_id}")
def authors_detail(author_id: int, request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    try:
        author = get_author(_client(request, ctx), author_id)
    except ApiError as e:
        return _page_error(request, e, "Failed to fetch author details", author=None)
    payload = author.model_dump()
    payload["full_name"] = author.full_name
    payload["birthday_display"] = format_date(author.birthday)
    payload["books"] = [_book_row(b) for b in author.books]
    return {"ok": True, "error": None, "author": payload}


@router.post("/dashboard/authors/{author_id}/delete")
def authors_delete(author_id: int, request: Request, ctx: RequestContext = Depends(current_context)) -> Response:
    try:
        delete_author(_client(request, ctx), author_id)
    except Unauthorized as e:
        return _page_error(request, e, "Failed to delete author.", return_to="/dashboard/authors")
    except ApiError as e:
        logger.error("Failed to delete author %s: %s", author_id, e)
        return _guard(request).redirect("/dashboard/authors?deleteError=true")
    return _guard(request).redirect("/dashboard/authors?deleteSuccess=true")


# Books


@router.get("/dashboard/books")
def books_index(request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    query = ListQuery.from_params(dict(request.query_params))
    try:
        page = list_books(_client(request, ctx), query)
    except ApiError as e:
        empty = BookPage.empty(limit=query.limit, order_by=query.order_by, direction=query.direction)
        return _page_error(
            request,
            e,
            "Failed to load books",
            books=empty.model_dump(),
            params=query.model_dump(),
            created=False,
            edited=False,
            deleteSuccess=False,
            deleteError=False,
        )
    return {
        "ok": True,
        "error": None,
        "books": _book_page_payload(page),
        "params": query.model_dump(),
        "created": _flag(request, "created"),
        "edited": _flag(request, "edited"),
        "deleteSuccess": _flag(request, "deleteSuccess"),
        "deleteError": _flag(request, "deleteError"),
    }


@router.post("/dashboard/books")
async def books_action(request: Request, ctx: RequestContext = Depends(current_context)) -> Response:
    form = await request.form()
    if (form.get("intent") or "") != "delete":
        return JSONResponse(status_code=400, content={"ok": False, "error": "Invalid action"})

    book_id = parse_id(form.get("bookId"))
    if book_id is None:
        return JSONResponse(status_code=400, content={"ok": False, "error": "Book ID is required"})
    try:
        await asyncio.to_thread(delete_book, _client(request, ctx), book_id)
    except ApiError as e:
        return _page_error(request, e, "Failed to delete book.", return_to="/dashboard/books")
    return JSONResponse(content={"ok": True, "error": None})


@router.get("/dashboard/books/new")
def books_new(request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    try:
        authors = list_authors(_client(request, ctx), AUTHOR_SELECT_QUERY)
    except ApiError as e:
        empty = AuthorPage.empty(limit=AUTHOR_SELECT_QUERY.limit, order_by="first_name")
        return _page_error(request, e, "Failed to load authors for selection", authors=empty.model_dump())
    return {"ok": True, "error": None, "authors": authors.model_dump()}


@router.post("/dashboard/books/new")
async def books_create(request: Request, ctx: RequestContext = Depends(current_context)) -> Response:
    book, errors, values = parse_book_form(await request.form())
    if book is None:
        return JSONResponse(status_code=400, content={"ok": False, "errors": errors, "values": values})
    try:
        await asyncio.to_thread(create_book, _client(request, ctx), book)
    except ApiError as e:
        return _form_error(request, e, "Failed to create book. Please try again.", values)
    return _guard(request).redirect("/dashboard/books?created=true")


@router.get("/dashboard/books/{book_id}/edit")
async def books_edit(book_id: int, request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    client = _client(request, ctx)
    try:
        book, authors = await gather_calls(
            lambda: get_book(client, book_id),
            lambda: list_authors(client, AUTHOR_SELECT_QUERY),
        )
    except ApiError as e:
        empty = AuthorPage.empty(limit=AUTHOR_SELECT_QUERY.limit, order_by="first_name")
        return _page_error(
            request, e, "Failed to load book data or authors for selection", book=None, authors=empty.model_dump()
        )
    return {"ok": True, "error": None, "book": _book_row(book), "authors": authors.model_dump()}


@router.post("/dashboard/books/{book_id}/edit")
async def books_update(book_id: int, request: Request, ctx: RequestContext = Depends(current_context)) -> Response:
    book, errors, values = parse_book_form(await request.form())
    if book is None:
        return JSONResponse(status_code=400, content={"ok": False, "errors": errors, "values": values})
    try:
        await asyncio.to_thread(update_book, _client(request, ctx), book_id, book)
    except ApiError as e:
        return _form_error(request, e, "Failed to update book. Please try again.", values)
    return _guard(request).redirect("/dashboard/books?edited=true")


# Profile


def _load_profile(request: Request, ctx: RequestContext) -> Any:
    try:
        user = get_current_user(_client(request, ctx))
    except ApiError as e:
        return _page_error(request, e, "Failed to load user profile", user=None)
    payload = user.model_dump()
    payload["created_at_display"] = format_date(user.created_at)
    return {"ok": True, "error": None, "user": payload, "updated": _flag(request, "updated")}


@router.get("/dashboard/profile")
def profile_index(request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    return _load_profile(request, ctx)


@router.get("/dashboard/profile/edit")
def profile_edit(request: Request, ctx: RequestContext = Depends(current_context)) -> Any:
    return _load_profile(request, ctx)


@router.post("/dashboard/profile/edit")
async def profile_update(request: Request, ctx: RequestContext = Depends(current_context)) -> Response:
    update, errors, values = parse_profile_form(await request.form())
    if update is None:
        return JSONResponse(status_code=400, content={"ok": False, "errors": errors, "values": values})
    try:
        await asyncio.to_thread(update_user, _client(request, ctx), ctx.user_id, update)
    except ApiError as e:
        return _form_error(request, e, "Failed to update profile. Please try again.", values)
    return _guard(request).redirect("/dashboard/profile?updated=true")


# ---- App factory ----


def create_app(cfg: Optional[DashboardConfig] = None, *, http: Any = None) -> FastAPI:
    """
    Build the dashboard app.

    Args:
        cfg: Configuration (defaults to `load_config()`, i.e. the environment)
        http: Optional `requests.Session`-like object shared by backend calls
    """
    cfg = cfg or load_config()
    app = FastAPI(title="Books admin dashboard")
    app.state.cfg = cfg
    app.state.guard = SessionGuard(cfg)
    app.state.http = http
    app.state.login_limiter = RateLimiter(max_attempts=5, window_seconds=300)

    @app.exception_handler(RedirectRequired)
    async def _redirect_required(request: Request, exc: RedirectRequired) -> Response:
        return app.state.guard.redirect(exc.location, clear_session=exc.clear_session)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s failed after %.3fs", request.method, request.url.path, time.perf_counter() - started
            )
            raise
        logger.debug(
            "%s %s -> %d in %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - started,
        )
        return response

    app.include_router(router)
    return app


app = create_app()


UVICORN_LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


def run(host: str = "0.0.0.0", port: int = 3000) -> None:
    """Serve the module-level app with uvicorn; `LOG_LEVEL` drives both loggers."""
    import uvicorn

    level_name = (os.getenv("LOG_LEVEL") or "info").strip().lower()
    if level_name not in UVICORN_LOG_LEVELS:
        level_name = "info"
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = app.state.cfg
    if cfg.uses_dev_secret:
        logger.warning("Dashboard is signing sessions with the development secret; set SESSION_SECRET")
    logger.info("Dashboard listening on %s:%d, backend %s", host, port, cfg.base_url)
    uvicorn.run(app, host=host, port=port, log_level=level_name)
