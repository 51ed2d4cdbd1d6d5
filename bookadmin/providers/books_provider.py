from __future__ import annotations

from bookadmin.core.models import Book, BookCreate, BookPage, BookUpdate, ListQuery
from bookadmin.providers.api_client import ApiClient, parse_payload


def list_books(client: ApiClient, query: ListQuery) -> BookPage:
    data = client.get("/books", params=query.to_params())
    return parse_payload(BookPage, data, method="GET", path="/books")


def get_book(client: ApiClient, book_id: int) -> Book:
    path = f"/books/{book_id}"
    return parse_payload(Book, client.get(path), method="GET", path=path)


def create_book(client: ApiClient, book: BookCreate) -> Book:
    return parse_payload(Book, client.post("/books", book), method="POST", path="/books")


def update_book(client: ApiClient, book_id: int, book: BookCreate | BookUpdate) -> Book:
    path = f"/books/{book_id}"
    return parse_payload(Book, client.put(path, book), method="PUT", path=path)


def delete_book(client: ApiClient, book_id: int) -> None:
    client.delete(f"/books/{book_id}")
