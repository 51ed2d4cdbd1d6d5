from __future__ import annotations

DEFAULT_NEXT_PATH = "/dashboard"

# Prefixes a browser resolves against another origin.
_FOREIGN_PREFIXES = ("//", "/\\")


def sanitize_next_path(next_path: str | None, default: str = DEFAULT_NEXT_PATH) -> str:
    """
    Return `next_path` when it stays on this site (e.g. `/dashboard/books?page=2`),
    otherwise `default`. CR/LF are dropped so the value is safe in a Location header.
    """
    path = "".join(ch for ch in (next_path or "").strip() if ch not in "\r\n")
    if not path.startswith("/") or path.startswith(_FOREIGN_PREFIXES):
        return default
    return path
