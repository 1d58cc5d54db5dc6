# modules/vacancy_watch/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience.
# Importing the collaborators package registers the built-in kinds.
from .assembler import assemble_batch, fetch_vacancies
from .collaborators import BaseCollaborator, CollaboratorFailure, UnparsableResponse
from .config import ConfigError, Settings
from .filters import ALL, CATEGORIES, UnknownCategory, filter_by_category
from .models import LoadingState, MalformedRecord, RawVacancy, SearchResult, SourceRef, Vacancy
from .normalize import normalize_record
from .notify import EmailNotifier, LogNotifier, Notifier
from .ordering import sort_by_published_date
from .provenance import collect_sources, merge_sources, resolve_source_url
from .session import RequestTimeout, SearchInProgress, VacancySession

__all__ = [
    "ALL",
    "CATEGORIES",
    "BaseCollaborator",
    "CollaboratorFailure",
    "ConfigError",
    "EmailNotifier",
    "LoadingState",
    "LogNotifier",
    "MalformedRecord",
    "Notifier",
    "RawVacancy",
    "RequestTimeout",
    "SearchInProgress",
    "SearchResult",
    "Settings",
    "SourceRef",
    "UnknownCategory",
    "UnparsableResponse",
    "Vacancy",
    "VacancySession",
    "assemble_batch",
    "collect_sources",
    "fetch_vacancies",
    "filter_by_category",
    "merge_sources",
    "normalize_record",
    "resolve_source_url",
    "sort_by_published_date",
]
