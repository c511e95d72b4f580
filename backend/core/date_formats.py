# core/date_formats.py
"""
Date and birthday handling for the ``us`` and ``eur`` field settings.

``us``  -> MM/DD/YYYY, birthdays MM/DD
``eur`` -> DD/MM/YYYY, birthdays DD/MM

Birthdays are stored as a date in a fixed leap year so that Feb 29 is valid.
"""
import re
from datetime import date, datetime
from typing import Optional, Union

DATE_FORMATS = ("us", "eur")
BIRTHDAY_YEAR = 2000

_DATE_PATTERN = re.compile(r"^\s*(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})\s*$")
_BIRTHDAY_PATTERN = re.compile(r"^\s*(\d{1,2})[/.\-](\d{1,2})\s*$")


def _check_format(date_format: Optional[str]) -> str:
    date_format = date_format or "eur"
    if date_format not in DATE_FORMATS:
        raise ValueError(f"Unknown date format: {date_format!r}")
    return date_format


def _as_date(value: Union[date, datetime, str]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        # ISO strings come back from JSON round trips
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def _build(year: int, first: int, second: int, date_format: str) -> Optional[date]:
    month, day = (first, second) if date_format == "us" else (second, first)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_date(date_format: Optional[str], value) -> str:
    date_format = _check_format(date_format)
    value = _as_date(value)
    if value is None:
        return ""
    if date_format == "us":
        return f"{value.month:02d}/{value.day:02d}/{value.year:04d}"
    return f"{value.day:02d}/{value.month:02d}/{value.year:04d}"


def format_birthday(date_format: Optional[str], value) -> str:
    date_format = _check_format(date_format)
    value = _as_date(value)
    if value is None:
        return ""
    if date_format == "us":
        return f"{value.month:02d}/{value.day:02d}"
    return f"{value.day:02d}/{value.month:02d}"


def parse_date(date_format: Optional[str], text: Optional[str]) -> Optional[date]:
    date_format = _check_format(date_format)
    if not text:
        return None
    match = _DATE_PATTERN.match(text)
    if not match:
        return None
    first, second, year = (int(part) for part in match.groups())
    return _build(year, first, second, date_format)


def parse_birthday(date_format: Optional[str], text: Optional[str]) -> Optional[date]:
    date_format = _check_format(date_format)
    if not text:
        return None
    match = _BIRTHDAY_PATTERN.match(text)
    if match:
        first, second = (int(part) for part in match.groups())
        return _build(BIRTHDAY_YEAR, first, second, date_format)
    # A full date is accepted too, the year is dropped
    full = parse_date(date_format, text)
    if full is None:
        return None
    return _build(BIRTHDAY_YEAR, *((full.month, full.day) if date_format == "us" else (full.day, full.month)), date_format)
