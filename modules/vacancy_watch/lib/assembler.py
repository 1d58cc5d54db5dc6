"""
Batch assembly: raw collaborator envelope -> SearchResult.

Order of work per batch:
  1. provenance list (filtered, deduped by uri)
  2. each raw vacancy normalized in original order, sourceUrl resolved
  3. (fetch_vacancies only) chronological re-sort
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from . import logging_bridge
from .collaborators.base import BaseCollaborator, CollaboratorFailure
from .models import DEFAULT_SITE_URL, MalformedRecord, SearchResult, Vacancy
from .normalize import normalize_record
from .ordering import sort_by_published_date
from .provenance import collect_sources

DEFAULT_SUMMARY = "Latest notices..."


def assemble_batch(
    payload: Any,
    *,
    default_source_url: str = DEFAULT_SITE_URL,
    today: str | None = None,
) -> SearchResult:
    """
    Normalize a raw envelope without reordering it.

    A missing or non-list `vacancies` field is an empty batch, not an error.
    A record that is not an object is skipped and logged; the rest survive.
    """
    envelope: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}

    sources = collect_sources(envelope.get("sources"))

    raw_items = envelope.get("vacancies")
    if not isinstance(raw_items, (list, tuple)):
        raw_items = []

    vacancies: list[Vacancy] = []
    skipped = 0
    for index, raw in enumerate(raw_items):
        try:
            vacancies.append(
                normalize_record(
                    raw,
                    index,
                    sources=sources,
                    default_source_url=default_source_url,
                    today=today,
                )
            )
        except MalformedRecord as e:
            skipped += 1
            logging_bridge.error({
                "component": "vacancy_watch.assembler",
                "op": "skip_record",
                "index": index,
                "error": str(e),
            })

    summary = envelope.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = DEFAULT_SUMMARY

    logging_bridge.activity({
        "component": "vacancy_watch.assembler",
        "op": "assembled",
        "raw": len(raw_items),
        "kept": len(vacancies),
        "skipped": skipped,
        "sources": len(sources),
    })
    return SearchResult(vacancies=tuple(vacancies), raw_summary=summary.strip(), sources=sources)


def fetch_vacancies(
    collaborator: BaseCollaborator,
    existing_titles: Sequence[str] = (),
    *,
    default_source_url: str = DEFAULT_SITE_URL,
) -> SearchResult:
    """
    One complete batch: collaborator call, assembly, then newest-first sort.

    Raises:
        CollaboratorFailure: the collaborator call itself failed, whatever it raised.
    Errors from local assembly or sorting propagate with their own type.
    """
    try:
        payload = collaborator.fetch(list(existing_titles))
    except CollaboratorFailure:
        raise
    except Exception as e:
        raise CollaboratorFailure(str(e)) from e
    batch = assemble_batch(payload, default_source_url=default_source_url)
    return SearchResult(
        vacancies=tuple(sort_by_published_date(batch.vacancies)),
        raw_summary=batch.raw_summary,
        sources=batch.sources,
    )
