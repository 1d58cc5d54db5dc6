from __future__ import annotations

from collections.abc import Iterable

from .models import Vacancy

ALL = "All"

# Labels offered to the user, in display order.
CATEGORIES: tuple[str, ...] = (ALL, "Technical", "Non-Technical", "Government", "Banking", "Internship")


class UnknownCategory(ValueError):
    """Raised when a label outside CATEGORIES is selected."""


def canonical_category(label: str) -> str:
    """Map a user-typed label onto CATEGORIES (case-insensitive)."""
    wanted = (label or "").strip().casefold()
    for cat in CATEGORIES:
        if cat.casefold() == wanted:
            return cat
    raise UnknownCategory(f"Unknown category {label!r}; expected one of {', '.join(CATEGORIES)}.")


def filter_by_category(vacancies: Iterable[Vacancy], label: str) -> list[Vacancy]:
    """
    Derived view, recomputed on each call; the input is never touched.
    "All" keeps everything. Any other label needs an exact, case-insensitive
    match against at least one of the vacancy's category entries.
    """
    wanted = (label or ALL).strip().casefold()
    if wanted == ALL.casefold():
        return list(vacancies)
    return [v for v in vacancies if any(c.casefold() == wanted for c in v.category)]
