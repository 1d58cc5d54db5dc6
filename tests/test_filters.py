# tests/test_filters.py
import pytest

from modules.vacancy_watch.lib.filters import CATEGORIES, UnknownCategory, canonical_category, filter_by_category
from modules.vacancy_watch.lib.normalize import normalize_record


@pytest.fixture
def vacs(raw_vacancy):
    cats = [["Technical", "Government"], ["Banking"], "internship", [], ["Technical-Support"]]
    return tuple(normalize_record(raw_vacancy(title=f"v{i}", category=c), i) for i, c in enumerate(cats))


def test_all_returns_everything_unchanged(vacs):
    out = filter_by_category(vacs, "All")
    assert out == list(vacs)
    assert filter_by_category(out, "All") == out


def test_match_is_case_insensitive(vacs):
    assert [v.title for v in filter_by_category(vacs, "technical")] == ["v0"]
    assert [v.title for v in filter_by_category(vacs, "Internship")] == ["v2"]


def test_match_is_exact_not_substring(vacs):
    titles = [v.title for v in filter_by_category(vacs, "Technical")]
    assert "v4" not in titles


def test_general_default_only_matches_general(vacs):
    assert [v.title for v in filter_by_category(vacs, "General")] == ["v3"]
    assert filter_by_category(vacs, "Non-Technical") == []


def test_filter_leaves_source_untouched(vacs):
    snapshot = tuple(vacs)
    filter_by_category(vacs, "Banking")
    assert vacs == snapshot


def test_canonical_category():
    assert canonical_category(" banking ") == "Banking"
    assert canonical_category("ALL") == "All"
    assert set(CATEGORIES) >= {"Technical", "Non-Technical", "Government", "Banking", "Internship"}
    with pytest.raises(UnknownCategory):
        canonical_category("Sports")
