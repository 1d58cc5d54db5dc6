# tests/test_session.py
import threading

import pytest

from modules.vacancy_watch.lib import assembler
from modules.vacancy_watch.lib.collaborators.base import BaseCollaborator, CollaboratorFailure
from modules.vacancy_watch.lib.models import LoadingState, SourceRef
from modules.vacancy_watch.lib.session import (
    BUSY_MESSAGE,
    INTERNAL_MESSAGE,
    TIMEOUT_MESSAGE,
    RequestTimeout,
    SearchInProgress,
    VacancySession,
)


class _BlockingCollaborator(BaseCollaborator):
    """Never answers until released; used to lose the race against the timer."""

    kind = "blocking-test"

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.finished = threading.Event()

    def fetch(self, existing_titles=()):
        self.release.wait(5)
        self.finished.set()
        raise CollaboratorFailure("late answer")


class _ReentrantCollaborator(BaseCollaborator):
    """Tries to start a second fetch while the first is still running."""

    kind = "reentrant-test"

    def __init__(self):
        super().__init__()
        self.session = None
        self.rejected = None

    def fetch(self, existing_titles=()):
        try:
            self.session.load_more()
        except SearchInProgress as e:
            self.rejected = e
        return {"vacancies": [{"title": "only"}], "summary": "s"}


class _ExplodingCollaborator(BaseCollaborator):
    kind = "exploding-test"

    def fetch(self, existing_titles=()):
        raise ValueError("socket closed")


# ----------------------------------------------------------------------
# 1. Initial search
# ----------------------------------------------------------------------
def test_new_session_is_idle(stub_collaborator):
    s = VacancySession(stub_collaborator())
    assert s.state is LoadingState.IDLE
    assert s.vacancies == ()
    assert s.summary == ""
    assert s.last_updated_at is None
    assert s.can_fetch


def test_initial_search_replaces_state(stub_collaborator, make_batch, log_notifier):
    collab = stub_collaborator(
        make_batch(("A", "2024-01-01"), ("B", "2024-02-01"), summary="first", sources=[{"title": "X", "uri": "http://x"}]),
    )
    s = VacancySession(collab, notifier=log_notifier)
    result = s.start_initial_search()

    assert s.state is LoadingState.COMPLETED
    assert [v.title for v in s.vacancies] == ["B", "A"]
    assert result.vacancies == s.vacancies
    assert s.summary == "first"
    assert s.sources == (SourceRef("X", "http://x"),)
    assert s.error is None
    assert s.last_updated_at is not None
    assert collab.calls == [[]]
    assert log_notifier.sent == [2]


def test_empty_initial_search_does_not_notify(stub_collaborator, make_batch, log_notifier):
    s = VacancySession(stub_collaborator(make_batch()), notifier=log_notifier)
    s.start_initial_search()
    assert s.state is LoadingState.COMPLETED
    assert s.vacancies == ()
    assert log_notifier.sent == []


def test_new_search_discards_previous_results_and_filter(stub_collaborator, make_batch):
    collab = stub_collaborator(
        make_batch(("A", "2024-01-01")),
        make_batch(("Z", "2024-06-01"), summary="second"),
    )
    s = VacancySession(collab)
    s.start_initial_search()
    s.set_category("Banking")

    s.start_initial_search()
    assert [v.title for v in s.vacancies] == ["Z"]
    assert s.summary == "second"
    assert s.active_category == "All"
    assert collab.calls == [[], []]


# ----------------------------------------------------------------------
# 2. Load more
# ----------------------------------------------------------------------
def test_load_more_appends_after_existing(stub_collaborator, make_batch, log_notifier):
    collab = stub_collaborator(
        make_batch(("A", "2024-03-01"), ("B", "2024-02-01"), summary="first"),
        make_batch(("D", "2024-01-01"), ("C", "2024-05-01"), summary="second"),
    )
    s = VacancySession(collab, notifier=log_notifier)
    s.start_initial_search()
    s.load_more()

    assert [v.title for v in s.vacancies] == ["A", "B", "C", "D"]
    assert collab.calls == [[], ["A", "B"]]
    assert s.summary == "first"
    assert log_notifier.sent == [2]


def test_load_more_sets_summary_only_when_empty(stub_collaborator, make_batch):
    s = VacancySession(stub_collaborator({"vacancies": []}, make_batch(("A", "2024-01-01"), summary="later")))
    s.start_initial_search()
    assert s.summary == "Latest notices..."
    s.load_more()
    assert s.summary == "Latest notices..."

    s2 = VacancySession(stub_collaborator(make_batch(summary="from more")))
    s2.load_more()
    assert s2.summary == "from more"


def test_sources_dedupe_across_batches_first_title_wins(stub_collaborator, make_batch):
    collab = stub_collaborator(
        make_batch(("A", "2024-01-01"), sources=[{"title": "X", "uri": "http://x"}]),
        make_batch(("B", "2024-01-01"), sources=[{"title": "X2", "uri": "http://x"}, {"title": "Y", "uri": "http://y"}]),
    )
    s = VacancySession(collab)
    s.start_initial_search()
    s.load_more()
    assert s.sources == (SourceRef("X", "http://x"), SourceRef("Y", "http://y"))


def test_load_more_on_fresh_session_behaves_like_append(stub_collaborator, make_batch):
    s = VacancySession(stub_collaborator(make_batch(("A", "2024-01-01"))))
    s.load_more()
    assert s.state is LoadingState.COMPLETED
    assert [v.title for v in s.vacancies] == ["A"]


# ----------------------------------------------------------------------
# 3. Failures
# ----------------------------------------------------------------------
def test_collaborator_failure_message_is_shown(stub_collaborator):
    s = VacancySession(stub_collaborator(fail_with="quota exceeded"))
    assert s.start_initial_search() is None
    assert s.state is LoadingState.ERROR
    assert s.error == "quota exceeded"
    assert isinstance(s.last_failure, CollaboratorFailure)
    assert s.vacancies == ()


def test_failure_without_message_uses_busy_message(stub_collaborator):
    s = VacancySession(stub_collaborator(fail_with=""))
    s.start_initial_search()
    assert s.error == BUSY_MESSAGE


def test_unexpected_exception_is_wrapped():
    s = VacancySession(_ExplodingCollaborator())
    s.start_initial_search()
    assert s.state is LoadingState.ERROR
    assert s.error == "socket closed"
    assert isinstance(s.last_failure, CollaboratorFailure)


def test_load_more_failure_keeps_accumulated_data(stub_collaborator, make_batch):
    collab = stub_collaborator(make_batch(("A", "2024-01-01"), ("B", "2024-01-02"), summary="kept"))
    s = VacancySession(collab)
    s.start_initial_search()
    before = s.vacancies
    stamp = s.last_updated_at

    collab.params["fail_with"] = "busy"
    s.load_more()
    assert s.state is LoadingState.ERROR
    assert s.error == "busy"
    assert s.vacancies == before
    assert s.summary == "kept"
    assert s.last_updated_at == stamp


def test_local_processing_error_is_not_a_collaborator_failure(stub_collaborator, make_batch, monkeypatch, tmp_path):
    def broken_sort(vacancies):
        raise KeyError("bad key")

    monkeypatch.setattr(assembler, "sort_by_published_date", broken_sort)
    s = VacancySession(stub_collaborator(make_batch(("A", "2024-01-01"))))
    s.start_initial_search()

    assert s.state is LoadingState.ERROR
    assert s.error == INTERNAL_MESSAGE
    assert isinstance(s.last_failure, KeyError)
    assert not isinstance(s.last_failure, CollaboratorFailure)

    errors = next((tmp_path / "logs").glob("error-test*.jsonl")).read_text(encoding="utf-8")
    assert '"error_type":"KeyError"' in errors


def test_collaborator_errors_are_wrapped_at_the_call(stub_collaborator, make_batch):
    with pytest.raises(CollaboratorFailure, match="socket closed") as exc:
        assembler.fetch_vacancies(_ExplodingCollaborator())
    assert isinstance(exc.value.__cause__, ValueError)

    result = assembler.fetch_vacancies(stub_collaborator(make_batch(("A", "2024-01-01"))))
    assert [v.title for v in result.vacancies] == ["A"]


def test_timeout_moves_to_error_and_drops_late_result():
    collab = _BlockingCollaborator()
    s = VacancySession(collab, timeout_s=0.05)
    try:
        assert s.start_initial_search() is None
        assert s.state is LoadingState.ERROR
        assert s.error == TIMEOUT_MESSAGE
        assert "timed out" in s.error
        assert isinstance(s.last_failure, RequestTimeout)
        assert s.vacancies == ()
    finally:
        collab.release.set()
    assert collab.finished.wait(5)
    assert s.state is LoadingState.ERROR
    assert s.error == TIMEOUT_MESSAGE


def test_retry_after_error_keeps_data_and_appends(stub_collaborator, make_batch):
    collab = stub_collaborator(make_batch(("A", "2024-01-01")), make_batch(("B", "2024-01-01")))
    s = VacancySession(collab)
    s.start_initial_search()

    collab.params["fail_with"] = "down"
    s.load_more()
    assert s.state is LoadingState.ERROR

    del collab.params["fail_with"]
    s.retry()
    assert s.state is LoadingState.COMPLETED
    assert s.error is None
    assert [v.title for v in s.vacancies] == ["A", "B"]


def test_notifier_errors_do_not_fail_the_search(stub_collaborator, make_batch):
    class Broken:
        def notify(self, count):
            raise RuntimeError("smtp down")

    s = VacancySession(stub_collaborator(make_batch(("A", "2024-01-01"))), notifier=Broken())
    s.start_initial_search()
    assert s.state is LoadingState.COMPLETED
    assert len(s.vacancies) == 1


# ----------------------------------------------------------------------
# 4. Single flight
# ----------------------------------------------------------------------
def test_second_fetch_while_searching_is_rejected():
    collab = _ReentrantCollaborator()
    s = VacancySession(collab)
    collab.session = s
    s.start_initial_search()

    assert isinstance(collab.rejected, SearchInProgress)
    assert s.state is LoadingState.COMPLETED
    assert [v.title for v in s.vacancies] == ["only"]


# ----------------------------------------------------------------------
# 5. Filter view
# ----------------------------------------------------------------------
def test_visible_vacancies_follow_category(stub_collaborator, raw_vacancy):
    payload = {
        "vacancies": [
            raw_vacancy(title="bank", category=["Banking"]),
            raw_vacancy(title="tech", category=["Technical"]),
        ]
    }
    s = VacancySession(stub_collaborator(payload))
    s.start_initial_search()

    assert s.set_category("banking") == "Banking"
    assert [v.title for v in s.visible_vacancies()] == ["bank"]
    assert len(s.vacancies) == 2

    snap = s.snapshot()
    assert snap["state"] == "COMPLETED"
    assert snap["total"] == 2
    assert [v["title"] for v in snap["visible"]] == ["bank"]


def test_unknown_category_is_rejected(stub_collaborator):
    from modules.vacancy_watch.lib.filters import UnknownCategory

    s = VacancySession(stub_collaborator())
    with pytest.raises(UnknownCategory):
        s.set_category("Sports")
    assert s.active_category == "All"
