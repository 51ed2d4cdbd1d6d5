#!/usr/bin/env python3
"""Mock books/authors REST API for local development.

Run it, then start the dashboard with API_URL=http://localhost:18500.
Any email works with password "password".
"""

import sys
import uuid

from flask import Flask, abort, jsonify, request

app = Flask(__name__)

PREFIX = "/api/v2"

_tokens = {}
_users = {
    1: {
        "id": 1,
        "email": "admin@example.com",
        "first_name": "Ada",
        "last_name": "Admin",
        "gender": "female",
        "active": True,
        "email_confirmed": True,
        "created_at": "2024-01-05T10:00:00Z",
        "updated_at": "2024-01-05T10:00:00Z",
    }
}
_authors = {
    1: {
        "id": 1,
        "first_name": "Ursula",
        "last_name": "Le Guin",
        "birthday": "1929-10-21",
        "biography": "",
        "gender": "female",
        "place_of_birth": "Berkeley",
    },
}
_books = {
    1: {"id": 1, "author": {"id": 1}, "title": "The Dispossessed", "release_date": "1974-05-01", "number_of_pages": 387},
}


def _require_token():
    header = request.headers.get("Authorization", "")
    token = header[len("Bearer ") :] if header.startswith("Bearer ") else ""
    if token not in _tokens:
        abort(401)
    return _tokens[token]


def _page(items):
    q = (request.args.get("query") or "").lower()
    if q:
        items = [i for i in items if q in " ".join(str(v) for v in i.values()).lower()]
    order_by = request.args.get("orderBy") or "id"
    reverse = (request.args.get("direction") or "ASC").upper() == "DESC"
    items = sorted(items, key=lambda i: str(i.get(order_by, "")), reverse=reverse)
    limit = max(int(request.args.get("limit") or 12), 1)
    page = max(int(request.args.get("page") or 1), 1)
    offset = (page - 1) * limit
    return {
        "total_results": len(items),
        "total_pages": (len(items) + limit - 1) // limit,
        "current_page": page,
        "limit": limit,
        "offset": offset,
        "order_by": order_by,
        "direction": "DESC" if reverse else "ASC",
        "items": items[offset : offset + limit],
    }


def _author_with_books(author):
    return dict(author, books=[b for b in _books.values() if b["author"]["id"] == author["id"]])


@app.route(f"{PREFIX}/token", methods=["POST"])
def token():
    body = request.get_json(silent=True) or {}
    if body.get("password") != "password":
        abort(401)
    token = uuid.uuid4().hex
    _tokens[token] = 1
    return jsonify({"token_key": token, "refresh_token_key": uuid.uuid4().hex, "user": _users[1]})


@app.route(f"{PREFIX}/me")
def me():
    return jsonify(_users[_require_token()])


@app.route(f"{PREFIX}/users/<int:user_id>", methods=["PUT"])
def update_user(user_id):
    _require_token()
    if user_id not in _users:
        abort(404)
    _users[user_id].update(request.get_json(silent=True) or {})
    return jsonify(_users[user_id])


@app.route(f"{PREFIX}/authors", methods=["GET", "POST"])
def authors():
    _require_token()
    if request.method == "POST":
        new_id = max(_authors, default=0) + 1
        _authors[new_id] = dict(request.get_json(silent=True) or {}, id=new_id)
        return jsonify(_author_with_books(_authors[new_id]))
    return jsonify(_page([_author_with_books(a) for a in _authors.values()]))


@app.route(f"{PREFIX}/authors/<int:author_id>", methods=["GET", "DELETE"])
def author(author_id):
    _require_token()
    if author_id not in _authors:
        abort(404)
    if request.method == "DELETE":
        del _authors[author_id]
        return "", 204
    return jsonify(_author_with_books(_authors[author_id]))


@app.route(f"{PREFIX}/books", methods=["GET", "POST"])
def books():
    _require_token()
    if request.method == "POST":
        new_id = max(_books, default=0) + 1
        _books[new_id] = dict(request.get_json(silent=True) or {}, id=new_id)
        return jsonify(_books[new_id])
    return jsonify(_page(list(_books.values())))


@app.route(f"{PREFIX}/books/<int:book_id>", methods=["GET", "PUT", "DELETE"])
def book(book_id):
    _require_token()
    if book_id not in _books:
        abort(404)
    if request.method == "DELETE":
        del _books[book_id]
        return "", 204
    if request.method == "PUT":
        _books[book_id].update(request.get_json(silent=True) or {})
    return jsonify(_books[book_id])


@app.route("/healthz")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    print("Mock books API starting on http://0.0.0.0:18500", file=sys.stderr)
    app.run(host="0.0.0.0", port=18500, debug=False)
