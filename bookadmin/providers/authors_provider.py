from __future__ import annotations

from bookadmin.core.models import Author, AuthorCreate, AuthorPage, ListQuery
from bookadmin.providers.api_client import ApiClient, parse_payload


def list_authors(client: ApiClient, query: ListQuery) -> AuthorPage:
    data = client.get("/authors", params=query.to_params())
    return parse_payload(AuthorPage, data, method="GET", path="/authors")


def get_author(client: ApiClient, author_id: int) -> Author:
    path = f"/authors/{author_id}"
    return parse_payload(Author, client.get(path), method="GET", path=path)


def create_author(client: ApiClient, author: AuthorCreate) -> Author:
    return parse_payload(Author, client.post("/authors", author), method="POST", path="/authors")


def delete_author(client: ApiClient, author_id: int) -> None:
    client.delete(f"/authors/{author_id}")
