"""
Session accumulator: owns the cumulative vacancy list across one initial
search and any number of load-more fetches.

State machine:
    IDLE -> SEARCHING -> COMPLETED | ERROR
    COMPLETED | ERROR -> SEARCHING   (new search, load more, retry)

Only one fetch may be in flight; a second request while SEARCHING is rejected
with SearchInProgress. Each fetch runs on a single worker thread and races a
timer; when the timer wins, the late result is discarded.

Accumulation policy: every batch is sorted newest-first on its own, and
load-more batches are appended after everything already shown. There is no
global re-sort across batch boundaries.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime
from typing import Any

from . import logging_bridge
from .assembler import fetch_vacancies
from .collaborators.base import BaseCollaborator, CollaboratorFailure
from .filters import ALL, canonical_category, filter_by_category
from .models import DEFAULT_SITE_URL, LoadingState, SearchResult, SourceRef, Vacancy
from .notify import Notifier
from .provenance import merge_sources
from .utils import now_utc

REQUEST_TIMEOUT_S = 120.0

TIMEOUT_MESSAGE = "Request timed out. Please try again."
BUSY_MESSAGE = "Failed to fetch vacancies. The AI service might be busy."
INTERNAL_MESSAGE = "Could not process the vacancies received. Please try again."


class SearchInProgress(RuntimeError):
    """A fetch was requested while another one is still running."""


class RequestTimeout(Exception):
    """The collaborator did not answer within the session timeout."""


class VacancySession:
    def __init__(
        self,
        collaborator: BaseCollaborator,
        *,
        notifier: Notifier | None = None,
        timeout_s: float = REQUEST_TIMEOUT_S,
        default_source_url: str = DEFAULT_SITE_URL,
    ) -> None:
        self._collaborator = collaborator
        self._notifier = notifier
        self._timeout_s = float(timeout_s)
        self._default_source_url = default_source_url

        self._state = LoadingState.IDLE
        self._vacancies: tuple[Vacancy, ...] = ()
        self._sources: tuple[SourceRef, ...] = ()
        self._summary = ""
        self._last_updated_at: datetime | None = None
        self._error: str | None = None
        self._last_failure: Exception | None = None
        self._active_category = ALL

    # ------------------------------------------------------------------ views
    @property
    def state(self) -> LoadingState:
        return self._state

    @property
    def vacancies(self) -> tuple[Vacancy, ...]:
        return self._vacancies

    @property
    def sources(self) -> tuple[SourceRef, ...]:
        return self._sources

    @property
    def summary(self) -> str:
        return self._summary

    @property
    def last_updated_at(self) -> datetime | None:
        return self._last_updated_at

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_failure(self) -> Exception | None:
        """The exception behind `error`: RequestTimeout, CollaboratorFailure, or a local processing error."""
        return self._last_failure

    @property
    def active_category(self) -> str:
        return self._active_category

    @property
    def can_fetch(self) -> bool:
        return self._state is not LoadingState.SEARCHING

    def set_category(self, label: str) -> str:
        """Select the filter label (validated against CATEGORIES). Returns the canonical label."""
        self._active_category = canonical_category(label)
        return self._active_category

    def visible_vacancies(self) -> list[Vacancy]:
        return filter_by_category(self._vacancies, self._active_category)

    def snapshot(self) -> dict[str, Any]:
        """Everything the presentation layer reads, as plain data."""
        visible = self.visible_vacancies()
        return {
            "state": self._state.value,
            "active_category": self._active_category,
            "total": len(self._vacancies),
            "visible": [v.to_dict() for v in visible],
            "summary": self._summary,
            "sources": [s.to_dict() for s in self._sources],
            "last_updated_at": self._last_updated_at.isoformat() if self._last_updated_at else None,
            "error": self._error,
        }

    # ------------------------------------------------------------- operations
    def start_initial_search(self) -> SearchResult | None:
        """
        Fresh search: clears the list and the category filter, then fetches with
        no seen-titles hint. On success the batch replaces all state and the
        notifier fires with the batch size (when non-zero).
        Returns the batch, or None when the fetch failed (see `error`).
        """
        self._begin("initial_search")
        self._vacancies = ()
        self._active_category = ALL

        result = self._run_fetch((), op="initial_search")
        if result is None:
            return None

        self._vacancies = result.vacancies
        self._sources = result.sources
        self._summary = result.raw_summary
        self._complete("initial_search", result)

        if result.vacancies:
            self._notify(len(result.vacancies))
        return result

    def load_more(self) -> SearchResult | None:
        """
        Append the next batch after everything already accumulated, passing the
        current titles as a hint. A failure keeps the accumulated data intact.
        """
        self._begin("load_more")
        titles = [v.title for v in self._vacancies]

        result = self._run_fetch(titles, op="load_more")
        if result is None:
            return None

        self._vacancies = self._vacancies + result.vacancies
        self._sources = merge_sources(self._sources, result.sources)
        if not self._summary:
            self._summary = result.raw_summary
        self._complete("load_more", result)
        return result

    def retry(self) -> SearchResult | None:
        """Retry after an error; uses load-more semantics so nothing is discarded."""
        return self.load_more()

    # ---------------------------------------------------------------- helpers
    def _begin(self, op: str) -> None:
        if self._state is LoadingState.SEARCHING:
            raise SearchInProgress(f"{op} rejected: a search is already running")
        self._state = LoadingState.SEARCHING
        self._error = None
        self._last_failure = None

    def _run_fetch(self, titles: Sequence[str], *, op: str) -> SearchResult | None:
        t0 = time.perf_counter_ns()
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vacancy-fetch")
        try:
            fut = pool.submit(
                fetch_vacancies,
                self._collaborator,
                list(titles),
                default_source_url=self._default_source_url,
            )
            return fut.result(timeout=self._timeout_s)
        except FutureTimeout:
            self._fail(op, RequestTimeout(TIMEOUT_MESSAGE), t0)
        except CollaboratorFailure as e:
            self._fail(op, e, t0)
        except Exception as e:
            # A local bug while assembling or sorting; keep its real type for the log.
            self._fail(op, e, t0, message=INTERNAL_MESSAGE)
        finally:
            # Do not wait for an abandoned request; its result is simply dropped.
            pool.shutdown(wait=False, cancel_futures=True)
        return None

    def _complete(self, op: str, result: SearchResult) -> None:
        self._last_updated_at = now_utc()
        self._state = LoadingState.COMPLETED
        logging_bridge.activity({
            "component": "vacancy_watch.session",
            "op": op,
            "batch": len(result.vacancies),
            "total": len(self._vacancies),
            "sources": len(self._sources),
        })

    def _fail(self, op: str, failure: Exception, t0: int, *, message: str | None = None) -> None:
        if message is None:
            if isinstance(failure, RequestTimeout):
                message = TIMEOUT_MESSAGE
            else:
                message = str(failure).strip() or BUSY_MESSAGE
        self._error = message
        self._last_failure = failure
        self._state = LoadingState.ERROR
        logging_bridge.error({
            "component": "vacancy_watch.session",
            "op": op,
            "error_type": type(failure).__name__,
            "error": message,
            "kept": len(self._vacancies),
            "elapsed_us": int((time.perf_counter_ns() - t0) // 1000),
        })

    def _notify(self, count: int) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(count)
        except Exception as e:
            logging_bridge.error({
                "component": "vacancy_watch.session",
                "op": "notify",
                "count": count,
                "error": repr(e),
            })
