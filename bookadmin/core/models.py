"""Backend payload models.

The backend owns these shapes; we validate them at the client boundary so a
drifting API fails loudly in one place instead of deep inside a handler.
Unknown keys are ignored.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

Direction = Literal["ASC", "DESC"]

MAX_PAGE_LIMIT = 100
DEFAULT_PAGE_LIMIT = 12


class BaseModelIgnoreExtra(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AuthorRef(BaseModelIgnoreExtra):
    id: int


class BookFields(BaseModelIgnoreExtra):
    release_date: Optional[str] = None
    description: Optional[str] = None
    isbn: Optional[str] = None
    format: Optional[str] = None
    number_of_pages: Optional[int] = None


class Book(BookFields):
    id: int
    author: AuthorRef
    title: str


class BookCreate(BookFields):
    author: AuthorRef
    title: str


class BookUpdate(BookFields):
    author: Optional[AuthorRef] = None
    title: Optional[str] = None


class AuthorFields(BaseModelIgnoreExtra):
    birthday: Optional[str] = None
    biography: Optional[str] = None
    gender: Optional[str] = None
    place_of_birth: Optional[str] = None


class Author(AuthorFields):
    id: int
    first_name: str
    last_name: str
    books: List[Book] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AuthorCreate(AuthorFields):
    first_name: str
    last_name: str


class User(BaseModelIgnoreExtra):
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    gender: Optional[str] = None
    active: bool = True
    email_confirmed: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class UserUpdate(BaseModelIgnoreExtra):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    active: Optional[bool] = None
    email_confirmed: Optional[bool] = None


class LoginCredentials(BaseModelIgnoreExtra):
    email: str
    password: str


class AuthResponse(BaseModelIgnoreExtra):
    token_key: str
    refresh_token_key: Optional[str] = None
    user: User
    expires_at: Optional[str] = None
    refresh_expires_at: Optional[str] = None

    @field_validator("token_key")
    @classmethod
    def _token_nonempty(cls, v: str) -> str:
        if not v:
            raise ValueError("token_key must not be empty")
        return v


class PageEnvelope(BaseModelIgnoreExtra):
    total_results: int = 0
    total_pages: int = 0
    current_page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT
    offset: int = 0
    order_by: str = "id"
    direction: str = "ASC"

    @classmethod
    def empty(cls, *, limit: int = DEFAULT_PAGE_LIMIT, order_by: str = "id", direction: str = "ASC"):
        return cls(limit=limit, order_by=order_by, direction=direction)


class AuthorPage(PageEnvelope):
    items: List[Author] = Field(default_factory=list)


class BookPage(PageEnvelope):
    items: List[Book] = Field(default_factory=list)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


class ListQuery(BaseModel):
    """Search/sort/paginate parameters shared by the list pages."""

    model_config = ConfigDict(extra="forbid")

    query: Optional[str] = None
    order_by: str = "id"
    direction: Direction = "ASC"
    limit: int = DEFAULT_PAGE_LIMIT
    page: int = 1

    @classmethod
    def from_params(cls, params: Dict[str, Any], *, default_limit: int = DEFAULT_PAGE_LIMIT) -> "ListQuery":
        """Lenient parse of request query params; junk falls back to defaults."""
        query = str(params.get("query") or "").strip() or None
        order_by = str(params.get("orderBy") or "").strip() or "id"
        direction = str(params.get("direction") or "").strip().upper()
        limit = _as_int(params.get("limit"), default_limit)
        page = _as_int(params.get("page"), 1)
        return cls(
            query=query,
            order_by=order_by,
            direction="DESC" if direction == "DESC" else "ASC",
            limit=min(max(limit, 1), MAX_PAGE_LIMIT),
            page=max(page, 1),
        )

    def to_params(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.query:
            out["query"] = self.query
        out["orderBy"] = self.order_by
        out["direction"] = self.direction
        out["limit"] = str(self.limit)
        out["page"] = str(self.page)
        return out
