"""
Shared utility functions for the SchemaForm engine.
"""

import re
from datetime import date, datetime
from typing import Any

from dateutil import parser as dateutil_parser
from pydantic import AnyUrl, TypeAdapter, ValidationError

_EMAIL_RE = re.compile(
    r"^(?!\.)(?!.*\.\.)[A-Za-z0-9_'+\-.]*[A-Za-z0-9_+\-]"
    r"@(?:[A-Za-z0-9][A-Za-z0-9\-]*\.)+[A-Za-z]{2,}$"
)

_url_adapter = TypeAdapter(AnyUrl)


def parse_date(value: str) -> date | None:
    """Parse a date string into a date object.

    Supports ISO 8601 formats (YYYY-MM-DD) and datetime strings.
    Returns None if the value cannot be parsed.
    """
    if not value or not isinstance(value, str):
        return None

    try:
        parsed = dateutil_parser.parse(value)
        if isinstance(parsed, datetime):
            return parsed.date()
        return parsed
    except (ValueError, TypeError, OverflowError):
        return None


def is_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def is_url(value: str) -> bool:
    """True if the value parses as an absolute URL."""
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def is_blank(value: Any) -> bool:
    """True for None and for strings containing only whitespace."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
