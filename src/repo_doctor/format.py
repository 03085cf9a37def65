"""Display helpers shared by the analyzer and the renderers."""

from __future__ import annotations

from datetime import datetime

from .models import Grade

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: int) -> str:
    """Format a byte count with binary prefixes: 1536 -> '1.5 KB'."""
    if num_bytes <= 0:
        return "0 B"

    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    value = round(value, 1)
    if value.is_integer():
        return f"{int(value)} {SIZE_UNITS[unit]}"
    return f"{value} {SIZE_UNITS[unit]}"


def format_date(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def format_days_ago(days: int) -> str:
    """Human phrase for an age in whole days."""
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def calculate_grade(score: float) -> Grade:
    return Grade.from_score(score)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """'1 file', '2 files', '5 branches' (with an explicit plural)."""
    if count == 1:
        return f"{count} {singular}"
    return f"{count} {plural or singular + 's'}"
