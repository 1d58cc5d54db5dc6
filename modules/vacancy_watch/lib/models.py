from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

DEFAULT_SITE_URL = "https://www.collegenp.com/vacancy"

# Marker the collaborator appends to titles of contract (karar) posts.
CONTRACT_MARKER = "(करार सेवा)"


class MalformedRecord(ValueError):
    """A raw vacancy record is not a structured object (mapping)."""


class LoadingState(str, enum.Enum):
    IDLE = "IDLE"
    SEARCHING = "SEARCHING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class SourceRef:
    """
    A provenance entry (where a batch's information was found).
    Unique by `uri` within a batch and within a session's cumulative list.
    """

    title: str
    uri: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "uri": self.uri}


@dataclass(frozen=True)
class Vacancy:
    """
    A single vacancy as shown to the user.

    Created only by the batch assembler from one raw record and never mutated
    afterwards. `id` is generated locally; the collaborator supplies none.
    `deadline_double` / `days_remaining` are None when not applicable.
    """

    id: str
    title: str
    organization: str
    description: str
    location: str
    level: str
    qualification: str
    eligibility: str
    deadline: str
    published_date: str
    vacancy_number: str
    source_url: str
    category: tuple[str, ...]
    deadline_double: str | None = None
    days_remaining: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape (camelCase keys) for JSON output."""
        return {
            "id": self.id,
            "title": self.title,
            "organization": self.organization,
            "description": self.description,
            "location": self.location,
            "level": self.level,
            "qualification": self.qualification,
            "eligibility": self.eligibility,
            "deadline": self.deadline,
            "deadlineDouble": self.deadline_double,
            "daysRemaining": self.days_remaining,
            "publishedDate": self.published_date,
            "vacancyNumber": self.vacancy_number,
            "sourceUrl": self.source_url,
            "category": list(self.category),
        }


@dataclass(frozen=True)
class SearchResult:
    """One batch: the unit returned by a single collaborator call and merged into a session."""

    vacancies: tuple[Vacancy, ...] = ()
    raw_summary: str = ""
    sources: tuple[SourceRef, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "vacancies": [v.to_dict() for v in self.vacancies],
            "rawSummary": self.raw_summary,
            "sources": [s.to_dict() for s in self.sources],
        }


# Wire key -> RawVacancy attribute
_RAW_KEYS = {
    "title": "title",
    "organization": "organization",
    "description": "description",
    "location": "location",
    "level": "level",
    "qualification": "qualification",
    "eligibility": "eligibility",
    "deadline": "deadline",
    "deadlineDouble": "deadline_double",
    "daysRemaining": "days_remaining",
    "publishedDate": "published_date",
    "vacancyNumber": "vacancy_number",
    "sourceUrl": "source_url",
    "category": "category",
}


@dataclass(frozen=True)
class RawVacancy:
    """
    Untrusted record as emitted by the collaborator. Every field is optional and
    untyped; `normalize.normalize_record` turns it into a Vacancy.
    """

    title: Any = None
    organization: Any = None
    description: Any = None
    location: Any = None
    level: Any = None
    qualification: Any = None
    eligibility: Any = None
    deadline: Any = None
    deadline_double: Any = None
    days_remaining: Any = None
    published_date: Any = None
    vacancy_number: Any = None
    source_url: Any = None
    category: Any = None
    extra: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_mapping(cls, raw: Any) -> RawVacancy:
        if isinstance(raw, RawVacancy):
            return raw
        if not isinstance(raw, Mapping):
            raise MalformedRecord(f"expected an object, got {type(raw).__name__}")
        known: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in raw.items():
            attr = _RAW_KEYS.get(str(key))
            if attr is None and str(key) in _SNAKE_FIELDS:
                attr = str(key)
            if attr:
                known[attr] = value
            else:
                extra[str(key)] = value
        return cls(**known, extra=extra)


_SNAKE_FIELDS = {f.name for f in fields(RawVacancy)} - {"extra"}
