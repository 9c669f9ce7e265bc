"""
Date recognition and normalisation.

Timeline and Gantt parsers share these helpers so that every notation
normalises dates identically: ``2024-01-15``, ``2024/01/15``,
``January 15, 2024`` and ``Jan 15 2024`` all become ``date(2024, 1, 15)``.
Numeric day/month orderings such as ``03/04/2024`` are ambiguous and never
normalise.
"""

import datetime
import re
from typing import Optional, Tuple

MONTHS = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}
MONTH_ABBREVIATIONS = {name[:3]: number for name, number in MONTHS.items()}
MONTH_ABBREVIATIONS["sept"] = 9

_MONTH_NAMES = "|".join(
    sorted(list(MONTHS) + list(MONTH_ABBREVIATIONS), key=len, reverse=True)
)

ISO_DATE = re.compile(r"(?<!\d)(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?!\d)")
WRITTEN_DATE = re.compile(
    rf"\b({_MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})(?!\d)",
    re.IGNORECASE,
)
# Any token that looks like a date, valid or not. Used by scanners so that
# an out-of-range date such as 2024-13-45 is still recognised as a date
# position and reported rather than read as title text.
DATE_TOKEN = re.compile(
    rf"(?<!\d)(?:\d{{4}}[-/.]\d{{1,2}}[-/.]\d{{1,2}}"
    rf"|\d{{1,2}}[-/.]\d{{1,2}}[-/.]\d{{2,4}}"
    rf"|\b(?:{_MONTH_NAMES})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}})(?!\d)",
    re.IGNORECASE,
)
LEADING_DATE = re.compile(
    rf"^\s*(?:[-*+]\s+|\d+[.)]\s+)?(?P<token>{DATE_TOKEN.pattern})",
    re.IGNORECASE,
)


def _safe_date(year: int, month: int, day: int) -> Optional[datetime.date]:
    try:
        return datetime.date(year, month, day)
    except ValueError:
        return None


def normalize_date(token: str) -> Optional[datetime.date]:
    """
    Normalise a date token to a calendar date.

    Args:
        token: Text such as "2024-01-15" or "January 15, 2024".

    Returns:
        The date, or None when the token is unparseable, out of range or
        ambiguous (numeric day/month orderings).
    """
    if token is None:
        return None
    text = token.strip()

    match = ISO_DATE.fullmatch(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    match = WRITTEN_DATE.fullmatch(text)
    if match:
        month_name, day, year = match.groups()
        month = MONTHS.get(month_name.lower()) or MONTH_ABBREVIATIONS.get(
            month_name.lower()
        )
        if month is None:
            return None
        return _safe_date(int(year), month, int(day))

    return None


def find_date(text: str) -> Optional[Tuple[str, int, int]]:
    """
    Locate the first date-like token in text.

    Returns:
        (token, start, end) or None if no token is present.
    """
    match = DATE_TOKEN.search(text)
    if not match:
        return None
    return match.group(0), match.start(), match.end()


def split_leading_date(line: str) -> Optional[Tuple[str, str]]:
    """
    Split a line that starts with a date token (after an optional bullet).

    Returns:
        (token, remainder) or None if the line does not start with a date.
    """
    match = LEADING_DATE.match(line)
    if not match:
        return None
    return match.group("token"), line[match.end():]


def is_date_token(text: str) -> bool:
    """Return True if the whole text looks like a date (valid or not)."""
    return DATE_TOKEN.fullmatch(text.strip()) is not None


def add_days(value: datetime.date, days: int) -> datetime.date:
    """Shift a date by a whole number of days."""
    return value + datetime.timedelta(days=days)


def month_starts(first: datetime.date, last: datetime.date):
    """Yield the first day of every month that starts within [first, last]."""
    year, month = first.year, first.month
    if first.day != 1:
        month += 1
        if month > 12:
            year, month = year + 1, 1
    while True:
        current = datetime.date(year, month, 1)
        if current > last:
            return
        yield current
        month += 1
        if month > 12:
            year, month = year + 1, 1
