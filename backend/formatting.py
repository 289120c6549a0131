"""
pt-BR display formatting.

The dashboard renders every date and number for Brazilian Portuguese:
    short month   jan. fev. mar. ... dez.
    date          dd/mm/yyyy
    number        1.234,567  (at most 3 fraction digits, trailing zeros dropped)
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional, Union

MONTHS_SHORT = (
    "jan.", "fev.", "mar.", "abr.", "mai.", "jun.",
    "jul.", "ago.", "set.", "out.", "nov.", "dez.",
)


def parse_date(value: Any) -> Optional[datetime]:
    """Accept ISO strings (with or without 'Z'), dates and datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        s = str(value).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        dt = datetime.fromisoformat(s)
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def month_label(value: Any) -> str:
    dt = parse_date(value)
    if dt is None:
        return str(value)
    return MONTHS_SHORT[dt.month - 1]


def format_date(value: Union[date, datetime, str, None]) -> str:
    dt = parse_date(value)
    if dt is None:
        return ""
    return dt.strftime("%d/%m/%Y")


def format_number(value: float, max_fraction_digits: int = 3) -> str:
    """Format a number the way pt-BR Number.toLocaleString() does."""
    text = f"{abs(value):,.{max_fraction_digits}f}"
    integer, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0")
    integer = integer.replace(",", ".")
    sign = "-" if value < 0 and (integer.strip("0.") or fraction) else ""
    return f"{sign}{integer},{fraction}" if fraction else f"{sign}{integer}"


def format_currency(value: float) -> str:
    return f"R$ {format_number(value)}"
