"""
Record normalizer: one untrusted raw record -> one well-formed Vacancy.

Defaulting is total. The only failure is a record that is not an object at all
(`MalformedRecord`); the assembler skips such records one at a time.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from typing import Any

from .models import DEFAULT_SITE_URL, MalformedRecord, RawVacancy, SourceRef, Vacancy
from .provenance import resolve_source_url
from .utils import today_iso

__all__ = [
    "DEFAULTS",
    "DEFAULT_CATEGORY",
    "MalformedRecord",
    "make_vacancy_id",
    "normalize_category",
    "normalize_record",
]

# Field-specific sentinels. Kept distinct so a fallback is always traceable to its field.
DEFAULTS: dict[str, str] = {
    "title": "Unknown Title",
    "organization": "Unspecified organization",
    "description": "Description not available.",
    "location": "Nepal",
    "level": "Level not specified",
    "qualification": "Qualification not specified",
    "eligibility": "Eligibility not specified",
    "deadline": "See notice",
    "vacancy_number": "N/A",
}

DEFAULT_CATEGORY: tuple[str, ...] = ("General",)


def _text(value: Any) -> str | None:
    """Non-empty stripped string, or None. Numbers are accepted as text; bools are not."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def normalize_category(value: Any) -> tuple[str, ...]:
    """
    list/tuple of strings -> kept (blank and non-string entries dropped)
    single non-empty string -> wrapped
    anything else, or nothing left -> ("General",)
    """
    if isinstance(value, str):
        s = value.strip()
        return (s,) if s else DEFAULT_CATEGORY
    if isinstance(value, (list, tuple)):
        cats = tuple(c.strip() for c in value if isinstance(c, str) and c.strip())
        return cats or DEFAULT_CATEGORY
    return DEFAULT_CATEGORY


def make_vacancy_id(index: int) -> str:
    """vac-<ns timestamp>-<batch index>-<9 random hex chars>"""
    return f"vac-{time.time_ns()}-{index}-{uuid.uuid4().hex[:9]}"


def normalize_record(
    raw: Any,
    index: int,
    *,
    sources: Sequence[SourceRef] = (),
    default_source_url: str = DEFAULT_SITE_URL,
    today: str | None = None,
) -> Vacancy:
    """
    Convert one raw record into a Vacancy.

    Args:
        raw: mapping (or RawVacancy) from the collaborator; shape is not trusted
        index: position within the batch, folded into the generated id
        sources: the batch's provenance list used to resolve `sourceUrl`
        default_source_url: fallback when no provenance is available
        today: override for the `publishedDate` default (YYYY-MM-DD)

    Raises:
        MalformedRecord: `raw` is not a structured object.
    """
    rec = RawVacancy.from_mapping(raw)

    def pick(name: str) -> str:
        return _text(getattr(rec, name)) or DEFAULTS[name]

    return Vacancy(
        id=make_vacancy_id(index),
        title=pick("title"),
        organization=pick("organization"),
        description=pick("description"),
        location=pick("location"),
        level=pick("level"),
        qualification=pick("qualification"),
        eligibility=pick("eligibility"),
        deadline=pick("deadline"),
        # Not validated here; the sorter decides what parses.
        published_date=_text(rec.published_date) or today or today_iso(),
        vacancy_number=pick("vacancy_number"),
        source_url=resolve_source_url(_text(rec.source_url), sources, default_source_url),
        category=normalize_category(rec.category),
        deadline_double=_text(rec.deadline_double),
        days_remaining=_text(rec.days_remaining),
    )
