"""
Human-readable bucket labels.

Month names follow the tr-TR locale so labels match what the tracker
has always shown, independent of the host locale.
"""

from datetime import date
from typing import Optional

MONTHS_LONG = [
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
]

MONTHS_SHORT = [
    "Oca", "Şub", "Mar", "Nis", "May", "Haz",
    "Tem", "Ağu", "Eyl", "Eki", "Kas", "Ara",
]


def parse_date(value: str) -> Optional[date]:
    """Parse a YYYY-MM-DD string, returning None when it is not a calendar date."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def month_label(month_key: str) -> str:
    """Label a YYYY-MM key as "<month> <yy>", e.g. "Mayıs 24"."""
    parsed = parse_date(f"{month_key}-01")
    if parsed is None:
        return month_key
    return f"{MONTHS_LONG[parsed.month - 1]} {parsed.year % 100:02d}"


def day_label(date_key: str) -> str:
    """Label a YYYY-MM-DD key as "<day> <mon>", e.g. "20 May"."""
    parsed = parse_date(date_key)
    if parsed is None:
        return date_key
    return f"{parsed.day} {MONTHS_SHORT[parsed.month - 1]}"


def format_display_date(date_key: str) -> str:
    """Render a stored date as dd.mm.yyyy for the history table."""
    parsed = parse_date(date_key)
    if parsed is None:
        return date_key
    return parsed.strftime("%d.%m.%Y")
