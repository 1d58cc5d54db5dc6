# tests/test_ordering.py
from datetime import datetime

import pytest

from modules.vacancy_watch.lib.models import LoadingState
from modules.vacancy_watch.lib.normalize import normalize_record
from modules.vacancy_watch.lib.ordering import parse_published, published_sort_key, sort_by_published_date
from modules.vacancy_watch.lib.session import VacancySession


def _vacs(raw_vacancy, *pairs):
    return [normalize_record(raw_vacancy(title=t, publishedDate=d), i) for i, (t, d) in enumerate(pairs)]


def test_newest_first(raw_vacancy):
    vacs = _vacs(raw_vacancy, ("A", "2024-01-01"), ("B", "2024-03-01"), ("C", "2024-02-01"))
    assert [v.title for v in sort_by_published_date(vacs)] == ["B", "C", "A"]


def test_equal_dates_keep_batch_order(raw_vacancy):
    vacs = _vacs(
        raw_vacancy,
        ("first", "2024-02-01"),
        ("older", "2024-01-01"),
        ("second", "2024-02-01"),
        ("third", "2024-02-01"),
    )
    assert [v.title for v in sort_by_published_date(vacs)] == ["first", "second", "third", "older"]


def test_unparsable_dates_sort_last_in_input_order(raw_vacancy):
    vacs = _vacs(
        raw_vacancy,
        ("bad1", "not-a-date"),
        ("good", "2001-05-05"),
        ("bad2", "2024-13-45"),
    )
    assert [v.title for v in sort_by_published_date(vacs)] == ["good", "bad1", "bad2"]


def test_sort_does_not_mutate_input(raw_vacancy):
    vacs = _vacs(raw_vacancy, ("A", "2024-01-01"), ("B", "2024-03-01"))
    before = list(vacs)
    sort_by_published_date(vacs)
    assert vacs == before


def test_parse_published_variants():
    assert parse_published("2024-01-05") == datetime(2024, 1, 5)
    assert parse_published("2024-01-05T23:30:00+05:45") == datetime(2024, 1, 5, 17, 45)
    assert parse_published("2024-01-05T10:00:00Z") == datetime(2024, 1, 5, 10, 0)
    assert parse_published("Today") is None
    assert parse_published("") is None
    assert parse_published(None) is None


def test_sort_key_flags_validity(raw_vacancy):
    good, bad = _vacs(raw_vacancy, ("g", "2024-01-01"), ("b", "yesterday"))
    assert published_sort_key(good)[0] is True
    assert published_sort_key(bad) == (False, datetime(1970, 1, 1))


@pytest.mark.parametrize("value", ["0001-01-01T00:00:00+05:00", "9999-12-31T23:59:59-05:00"])
def test_out_of_range_offset_dates_sort_last(raw_vacancy, value):
    assert parse_published(value) is None
    vacs = _vacs(raw_vacancy, ("edge", value), ("good", "2024-01-01"))
    assert [v.title for v in sort_by_published_date(vacs)] == ["good", "edge"]


def test_session_survives_out_of_range_date(stub_collaborator, make_batch):
    s = VacancySession(stub_collaborator(make_batch(("edge", "0001-01-01T00:00:00+05:00"), ("good", "2024-01-01"))))
    s.start_initial_search()
    assert s.state is LoadingState.COMPLETED
    assert [v.title for v in s.vacancies] == ["good", "edge"]
