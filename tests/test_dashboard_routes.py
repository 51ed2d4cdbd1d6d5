from __future__ import annotations

import logging
from dataclasses import replace
from urllib.parse import parse_qs

import pytest
from fastapi.testclient import TestClient

from bookadmin.api.dashboard import create_app
from bookadmin.auth.models import SessionData
from bookadmin.auth.session import SESSION_COOKIE_NAME, encode_session
from conftest import make_response

USER = {"id": 42, "email": "admin@example.com", "first_name": "Ada", "last_name": "Admin", "active": True}
BOOK = {"id": 1, "title": "Dune", "author": {"id": 2}, "release_date": "1965-08-01"}
AUTHOR = {"id": 2, "first_name": "Frank", "last_name": "Herbert", "birthday": "1920-10-08"}


def _page(items, limit=12):
    return {
        "total_results": len(items),
        "total_pages": 1,
        "current_page": 1,
        "limit": limit,
        "offset": 0,
        "order_by": "id",
        "direction": "ASC",
        "items": items,
    }


@pytest.fixture
def client(cfg, backend) -> TestClient:
    return TestClient(create_app(cfg, http=backend))


@pytest.fixture
def signed_in(client, cfg) -> TestClient:
    client.cookies.set(SESSION_COOKIE_NAME, encode_session(cfg, SessionData(user_id="42", access_token="tok")))
    return client


def test_healthz_is_public(client) -> None:
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_dashboard_requires_session_and_makes_no_backend_call(client, backend) -> None:
    r = client.get("/dashboard/books", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login?redirectTo=%2Fdashboard%2Fbooks"
    assert backend.calls == []


def test_login_page_redirects_signed_in_user(signed_in) -> None:
    r = signed_in.get("/login", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/dashboard/home"


def test_login_page_for_anonymous(client) -> None:
    r = client.get("/login?redirectTo=/dashboard/books")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "redirectTo": "/dashboard/books"}


def test_login_success_sets_session_and_redirects(client, backend) -> None:
    backend.on("POST", "/token", make_response(200, {"token_key": "fresh-token", "user": USER}))
    r = client.post("/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "/dashboard"
    assert SESSION_COOKIE_NAME in r.headers["set-cookie"]

    home = client.get("/dashboard/home")
    assert home.status_code == 200
    assert home.json() == {"ok": True, "userId": "42"}


def test_login_honours_safe_redirect_target(client, backend) -> None:
    backend.on("POST", "/token", make_response(200, {"token_key": "t", "user": USER}))
    r = client.post(
        "/login",
        data={"email": "admin@example.com", "password": "pw", "redirectTo": "/dashboard/books"},
        follow_redirects=False,
    )
    assert r.headers["location"] == "/dashboard/books"


def test_login_failure_shows_banner(client, backend) -> None:
    backend.on("POST", "/token", make_response(401))
    r = client.post("/login", data={"email": "admin@example.com", "password": "wrong"}, follow_redirects=False)
    assert r.status_code == 200
    assert r.json() == {"ok": False, "error": "Invalid credentials"}
    assert "set-cookie" not in r.headers


def test_login_missing_fields_skips_backend(client, backend) -> None:
    r = client.post("/login", data={"email": "admin@example.com"})
    assert r.json()["ok"] is False
    assert backend.calls == []


def test_login_is_rate_limited(client, backend) -> None:
    backend.on("POST", "/token", make_response(401))
    for _ in range(5):
        client.post("/login", data={"email": "admin@example.com", "password": "wrong"})
    r = client.post("/login", data={"email": "admin@example.com", "password": "wrong"})
    assert r.status_code == 429
    assert len(backend.calls) == 5


def test_logout_clears_session(client, backend) -> None:
    backend.on("POST", "/token", make_response(200, {"token_key": "t", "user": USER}))
    client.post("/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=False)
    assert client.get("/dashboard/home").status_code == 200

    r = client.post("/logout", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login"
    assert "max-age=0" in r.headers["set-cookie"].lower()

    after = client.get("/dashboard/home", follow_redirects=False)
    assert after.status_code == 302


def test_dashboard_root_redirects_home(signed_in) -> None:
    r = signed_in.get("/dashboard", follow_redirects=False)
    assert r.headers["location"] == "/dashboard/home"


def test_books_list(signed_in, backend) -> None:
    backend.on("GET", "/books", make_response(200, _page([BOOK])))
    r = signed_in.get("/dashboard/books?query=dune&direction=desc&limit=500&created=true")
    body = r.json()

    assert body["ok"] is True
    assert body["created"] is True
    assert body["books"]["items"][0]["release_date_display"] == "August 1, 1965"
    assert body["params"]["limit"] == 100
    call = backend.calls[0]
    assert call["headers"]["Authorization"] == "Bearer tok"
    assert call["params"]["direction"] == "DESC"


def test_books_list_failure_keeps_page_usable(signed_in, backend) -> None:
    backend.on("GET", "/books", make_response(500))
    r = signed_in.get("/dashboard/books")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is False
    assert body["error"] == "Failed to load books"
    assert body["books"]["items"] == []


def test_backend_401_drops_session(signed_in, backend) -> None:
    backend.on("GET", "/books", make_response(401))
    r = signed_in.get("/dashboard/books", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"].startswith("/login?redirectTo=")
    assert "max-age=0" in r.headers["set-cookie"].lower()


def test_backend_401_banner_when_logout_disabled(cfg, backend) -> None:
    app = create_app(replace(cfg, logout_on_unauthorized=False), http=backend)
    c = TestClient(app)
    c.cookies.set(SESSION_COOKIE_NAME, encode_session(cfg, SessionData(user_id="42", access_token="tok")))
    backend.on("GET", "/books", make_response(401))

    r = c.get("/dashboard/books", follow_redirects=False)
    assert r.status_code == 200
    assert r.json()["error"] == "Failed to load books"


def test_delete_book_action(signed_in, backend) -> None:
    backend.on("DELETE", "/books/1", make_response(204))
    r = signed_in.post("/dashboard/books", data={"intent": "delete", "bookId": "1"})
    assert r.json() == {"ok": True, "error": None}
    assert backend.calls[0]["method"] == "DELETE"


def test_books_action_rejects_unknown_intent(signed_in, backend) -> None:
    r = signed_in.post("/dashboard/books", data={"intent": "archive", "bookId": "1"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid action"
    assert backend.calls == []


def test_new_book_form_loads_authors(signed_in, backend) -> None:
    backend.on("GET", "/authors", make_response(200, _page([AUTHOR], limit=100)))
    r = signed_in.get("/dashboard/books/new")
    assert r.json()["authors"]["items"][0]["first_name"] == "Frank"
    assert backend.calls[0]["params"]["limit"] == "100"


def test_create_book_validation(signed_in, backend) -> None:
    r = signed_in.post("/dashboard/books/new", data={"title": ""})
    assert r.status_code == 400
    assert r.json()["errors"] == {"authorId": "Author is required", "title": "Title is required"}
    assert backend.calls == []


def test_create_book_redirects_to_list(signed_in, backend) -> None:
    backend.on("POST", "/books", make_response(200, BOOK))
    r = signed_in.post(
        "/dashboard/books/new",
        data={"authorId": "2", "title": "Dune", "numberOfPages": "412", "isbn": ""},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert r.headers["location"] == "/dashboard/books?created=true"
    assert backend.calls[0]["json"] == {"author": {"id": 2}, "title": "Dune", "number_of_pages": 412}


def test_create_book_backend_failure(signed_in, backend) -> None:
    backend.on("POST", "/books", make_response(422))
    r = signed_in.post("/dashboard/books/new", data={"authorId": "2", "title": "Dune"})
    body = r.json()
    assert body["ok"] is False
    assert body["errors"] == {"_form": "Failed to create book. Please try again."}
    assert body["values"]["title"] == "Dune"


def test_edit_book_loads_book_and_authors(signed_in, backend) -> None:
    backend.on("GET", "/books/1", make_response(200, BOOK))
    backend.on("GET", "/authors", make_response(200, _page([AUTHOR], limit=100)))
    r = signed_in.get("/dashboard/books/1/edit")
    body = r.json()
    assert body["ok"] is True
    assert body["book"]["title"] == "Dune"
    assert len(body["authors"]["items"]) == 1


def test_edit_book_fails_when_either_load_fails(signed_in, backend) -> None:
    backend.on("GET", "/books/1", make_response(200, BOOK))
    backend.on("GET", "/authors", make_response(500))
    r = signed_in.get("/dashboard/books/1/edit")
    body = r.json()
    assert body["ok"] is False
    assert body["error"] == "Failed to load book data or authors for selection"
    assert body["book"] is None


def test_update_book(signed_in, backend) -> None:
    backend.on("PUT", "/books/1", make_response(200, BOOK))
    r = signed_in.post("/dashboard/books/1/edit", data={"authorId": "2", "title": "Dune"}, follow_redirects=False)
    assert r.headers["location"] == "/dashboard/books?edited=true"


def test_author_detail(signed_in, backend) -> None:
    backend.on("GET", "/authors/2", make_response(200, dict(AUTHOR, books=[BOOK])))
    body = signed_in.get("/dashboard/authors/2").json()
    assert body["author"]["full_name"] == "Frank Herbert"
    assert body["author"]["birthday_display"] == "October 8, 1920"
    assert body["author"]["books"][0]["title"] == "Dune"


def test_author_detail_failure(signed_in, backend) -> None:
    r = signed_in.get("/dashboard/authors/99")
    assert r.json() == {"ok": False, "error": "Failed to fetch author details", "author": None}


def test_delete_author_failure_redirects_with_flag(signed_in, backend) -> None:
    backend.on("DELETE", "/authors/2", make_response(409))
    r = signed_in.post("/dashboard/authors/2/delete", follow_redirects=False)
    assert r.headers["location"] == "/dashboard/authors?deleteError=true"


def test_create_author(signed_in, backend) -> None:
    backend.on("POST", "/authors", make_response(200, AUTHOR))
    r = signed_in.post(
        "/dashboard/authors", data={"first_name": "Frank", "last_name": "Herbert"}, follow_redirects=False
    )
    assert r.headers["location"] == "/dashboard/authors?created=true"


def test_profile_update_targets_session_user(signed_in, backend) -> None:
    backend.on("PUT", "/users/42", make_response(200, USER))
    r = signed_in.post(
        "/dashboard/profile/edit",
        data={"firstName": "Ada", "lastName": "Lovelace", "gender": "female"},
        follow_redirects=False,
    )
    assert r.status_code == 302
    assert parse_qs(r.headers["location"].split("?", 1)[1]) == {"updated": ["true"]}
    assert backend.calls[0]["json"] == {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "gender": "female",
        "active": True,
        "email_confirmed": True,
    }


def test_profile_failure_banner(signed_in, backend) -> None:
    backend.on("GET", "/me", make_response(503))
    r = signed_in.get("/dashboard/profile")
    assert r.json() == {"ok": False, "error": "Failed to load user profile", "user": None}


def test_login_failure_log_omits_email(client, backend, caplog) -> None:
    backend.on("POST", "/token", make_response(401))
    with caplog.at_level(logging.INFO, logger="bookadmin.api.dashboard"):
        client.post("/login", data={"email": "admin@example.com", "password": "wrong"})
    assert "status=401" in caplog.text
    assert "admin@example.com" not in caplog.text


@pytest.mark.parametrize("book_id", ["", "abc", "²", "-3"])
def test_delete_book_rejects_malformed_id(signed_in, backend, book_id) -> None:
    r = signed_in.post("/dashboard/books", data={"intent": "delete", "bookId": book_id})
    assert r.status_code == 400
    assert r.json()["error"] == "Book ID is required"
    assert backend.calls == []


def test_create_book_rejects_non_ascii_author_id(signed_in, backend) -> None:
    r = signed_in.post("/dashboard/books/new", data={"authorId": "²", "title": "Dune"})
    assert r.status_code == 400
    assert r.json()["errors"] == {"authorId": "Author is invalid"}
    assert backend.calls == []


def test_delete_author_401_returns_to_author_list(signed_in, backend) -> None:
    backend.on("DELETE", "/authors/2", make_response(401))
    r = signed_in.post("/dashboard/authors/2/delete", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login?redirectTo=%2Fdashboard%2Fauthors"
    assert "max-age=0" in r.headers["set-cookie"].lower()


def test_delete_book_401_returns_to_book_list(signed_in, backend) -> None:
    backend.on("DELETE", "/books/1", make_response(401))
    r = signed_in.post("/dashboard/books", data={"intent": "delete", "bookId": "1"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/login?redirectTo=%2Fdashboard%2Fbooks"
