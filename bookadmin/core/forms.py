"""Form parsing for the dashboard's create/edit actions.

Each parser returns `(model | None, errors, values)`: `errors` maps a field
name to a message, `values` echoes the submitted form so the page can
re-render it.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from bookadmin.core.models import AuthorCreate, AuthorRef, BookCreate, UserUpdate

FormErrors = Dict[str, str]


def _text(form: Mapping[str, Any], key: str) -> str:
    v = form.get(key)
    return str(v).strip() if v is not None else ""


def _optional_text(form: Mapping[str, Any], key: str) -> Optional[str]:
    return _text(form, key) or None


def _values(form: Mapping[str, Any]) -> Dict[str, str]:
    return {str(k): str(v) for k, v in form.items()}


def parse_id(raw: Any) -> Optional[int]:
    """Record id posted by a form, or None unless it is a plain ASCII number."""
    s = str(raw).strip() if raw is not None else ""
    if not s.isascii() or not s.isdigit():
        return None
    return int(s)


def parse_book_form(form: Mapping[str, Any]) -> Tuple[Optional[BookCreate], FormErrors, Dict[str, str]]:
    errors: FormErrors = {}
    values = _values(form)

    author_raw = _text(form, "authorId")
    author_id = parse_id(author_raw)
    title = _text(form, "title")
    pages_raw = _text(form, "numberOfPages")

    if not author_raw:
        errors["authorId"] = "Author is required"
    elif author_id is None:
        errors["authorId"] = "Author is invalid"
    if not title:
        errors["title"] = "Title is required"

    number_of_pages: Optional[int] = None
    if pages_raw:
        try:
            number_of_pages = int(pages_raw)
        except ValueError:
            errors["numberOfPages"] = "Number of pages must be a whole number"
        else:
            if number_of_pages < 0:
                errors["numberOfPages"] = "Number of pages must be a whole number"

    if errors:
        return None, errors, values

    book = BookCreate(
        author=AuthorRef(id=author_id),
        title=title,
        release_date=_optional_text(form, "releaseDate"),
        description=_optional_text(form, "description"),
        isbn=_optional_text(form, "isbn"),
        format=_optional_text(form, "format"),
        number_of_pages=number_of_pages,
    )
    return book, errors, values


def parse_author_form(form: Mapping[str, Any]) -> Tuple[Optional[AuthorCreate], FormErrors, Dict[str, str]]:
    errors: FormErrors = {}
    values = _values(form)

    first_name = _text(form, "first_name")
    last_name = _text(form, "last_name")
    if not first_name:
        errors["first_name"] = "First name is required"
    if not last_name:
        errors["last_name"] = "Last name is required"
    if errors:
        return None, errors, values

    author = AuthorCreate(
        first_name=first_name,
        last_name=last_name,
        birthday=_optional_text(form, "birthday"),
        biography=_optional_text(form, "biography"),
        gender=_optional_text(form, "gender"),
        place_of_birth=_optional_text(form, "place_of_birth"),
    )
    return author, errors, values


def parse_profile_form(form: Mapping[str, Any]) -> Tuple[Optional[UserUpdate], FormErrors, Dict[str, str]]:
    errors: FormErrors = {}
    values = _values(form)

    first_name = _text(form, "firstName")
    last_name = _text(form, "lastName")
    if not first_name:
        errors["firstName"] = "First name is required"
    if not last_name:
        errors["lastName"] = "Last name is required"
    if errors:
        return None, errors, values

    # The profile form always re-asserts these two flags.
    update = UserUpdate(
        first_name=first_name,
        last_name=last_name,
        gender=_text(form, "gender"),
        active=True,
        email_confirmed=True,
    )
    return update, errors, values
