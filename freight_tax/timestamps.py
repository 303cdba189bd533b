"""
Timestamp parsing and display.

Users type delivery, invoice and payment times in exactly one of two
forms, ``MM/DD/YYYY HH:MM`` (24-hour) or ``MM/DD/YYYY`` (midnight).
Components are read positionally from the match, so the result does not
depend on the process locale.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from freight_tax.errors import TimestampFormatError

_FULL_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{1,2})$")
_DATE_ONLY_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

MISSING_DATE = "-"


def parse_timestamp(text: str) -> datetime:
    """
    Parse a user-entered timestamp.

    Raises TimestampFormatError for anything other than the two accepted
    forms, including well-formed text naming an impossible date such as
    ``02/30/2024``.
    """
    if not isinstance(text, str):
        raise TimestampFormatError(repr(text))
    candidate = text.strip()

    match = _FULL_PATTERN.match(candidate)
    if match:
        month, day, year, hour, minute = (int(g) for g in match.groups())
    else:
        match = _DATE_ONLY_PATTERN.match(candidate)
        if not match:
            raise TimestampFormatError(text)
        month, day, year = (int(g) for g in match.groups())
        hour = minute = 0

    try:
        return datetime(year, month, day, hour, minute)
    except ValueError as exc:
        raise TimestampFormatError(text) from exc


def parse_optional_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Blank input means "no date"; anything else must parse."""
    if text is None or not str(text).strip():
        return None
    return parse_timestamp(text)


def format_timestamp(value: Optional[datetime]) -> str:
    """Render as ``MM/DD/YYYY HH:MM``, or ``-`` when absent."""
    if value is None:
        return MISSING_DATE
    return value.strftime("%m/%d/%Y %H:%M")
