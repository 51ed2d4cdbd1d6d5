from __future__ import annotations

from typing import Optional

from dateutil import parser as date_parser


def format_date(value: Optional[str]) -> str:
    """Format an ISO date for display ("January 5, 2024"); unparseable input is returned as-is."""
    if not value:
        return ""
    try:
        dt = date_parser.isoparse(value)
    except (ValueError, TypeError, OverflowError):
        return value
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"
