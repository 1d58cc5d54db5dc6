# tests/conftest.py
import os
import warnings

import pytest
from freezegun import freeze_time

from modules.vacancy_watch.lib.collaborators.stub import StubCollaborator
from modules.vacancy_watch.lib.notify import LogNotifier

warnings.filterwarnings("error", category=DeprecationWarning, module="modules")


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    monkeypatch.delenv("LOG_DISABLE", raising=False)

    for name in (
        "VACANCY_COLLABORATOR",
        "VACANCY_SITE_URL",
        "VACANCY_REQUEST_TIMEOUT_S",
        "VACANCY_NOTIFY",
        "VACANCY_EMAIL_TO",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def no_email_env(monkeypatch):
    monkeypatch.setenv("SEND_EMAIL", "0")
    monkeypatch.setenv("VACANCY_DRY_RUN", "1")
    yield


@pytest.fixture
def frozen_day():
    with freeze_time("2025-01-15T09:30:00"):
        yield


# ---------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------
@pytest.fixture
def raw_vacancy():
    """Factory for a complete raw record; override or drop (value=None) fields per test."""

    def _make(**overrides):
        rec = {
            "title": "IT Officer",
            "organization": "CDS and Clearing Limited",
            "category": ["Technical", "Government"],
            "level": "Officer",
            "qualification": "Bachelor in IT",
            "eligibility": "18-35 years",
            "publishedDate": "2025-01-10",
            "deadline": "2025-01-25",
            "deadlineDouble": "2025-02-01",
            "daysRemaining": "10 days left",
            "description": "Two lines of description.",
            "location": "Kathmandu",
            "vacancyNumber": "3",
            "sourceUrl": "https://www.collegenp.com/vacancy/it-officer",
        }
        for k, v in overrides.items():
            if v is None:
                rec.pop(k, None)
            else:
                rec[k] = v
        return rec

    return _make


@pytest.fixture
def make_batch(raw_vacancy):
    """Raw envelope with one record per (title, publishedDate) pair."""

    def _make(*items, summary="summary", sources=None):
        return {
            "vacancies": [raw_vacancy(title=t, publishedDate=d) for t, d in items],
            "summary": summary,
            "sources": sources if sources is not None else [],
        }

    return _make


@pytest.fixture
def stub_collaborator():
    """Build a StubCollaborator replaying the given raw envelopes in order."""

    def _make(*batches, **params):
        return StubCollaborator(batches=list(batches), **params)

    return _make


@pytest.fixture
def log_notifier():
    return LogNotifier()
