from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from .models import Vacancy

_EPOCH = datetime(1970, 1, 1)


def parse_published(value: str | None) -> datetime | None:
    """
    Parse YYYY-MM-DD (or a full ISO-8601 date-time) into a naive UTC datetime.
    Returns None when the text is not a calendar date.
    """
    if not value:
        return None
    s = value.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
        if dt.tzinfo is not None:
            # Offsets at the edges of the datetime range overflow here.
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None
    return dt


def published_sort_key(vacancy: Vacancy) -> tuple[bool, datetime]:
    """Valid dates rank above every unparsable one, which all share the epoch."""
    dt = parse_published(vacancy.published_date)
    if dt is None:
        return (False, _EPOCH)
    return (True, dt)


def sort_by_published_date(vacancies: Iterable[Vacancy]) -> list[Vacancy]:
    """
    Newest first. The collaborator's own ordering is advisory only, so every
    batch is re-sorted here. `sorted` is stable under reverse=True, so equal keys
    keep their batch order.
    """
    return sorted(vacancies, key=published_sort_key, reverse=True)
