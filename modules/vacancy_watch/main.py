from __future__ import annotations

from typing import Any

from .lib import render, utils
from .lib.collaborators import registry
from .lib.config import Settings
from .lib.logging_bridge import activity as log_activity
from .lib.models import LoadingState
from .lib.notify import build_notifier
from .lib.session import VacancySession


def build_session(settings: Settings) -> VacancySession:
    """Wire collaborator + notifier + timeout from settings into a fresh session."""
    collaborator_cls = registry.get(settings.effective_collaborator())
    return VacancySession(
        collaborator_cls(**settings.collaborator_kwargs()),
        notifier=build_notifier(settings),
        timeout_s=settings.request_timeout_s,
        default_source_url=settings.site_url,
    )


def collect(settings: Settings, session: VacancySession | None = None) -> VacancySession:
    """
    Initial search, then up to (pages - 1) load-mores; stops at the first failure.
    The configured category is applied last, since a new search resets it.
    """
    session = session or build_session(settings)
    session.start_initial_search()
    for _ in range(settings.pages - 1):
        if session.state is not LoadingState.COMPLETED:
            break
        session.load_more()
    session.set_category(settings.category)
    return session


def render_session(session: VacancySession) -> tuple[str, dict]:
    """Cards for the current filter view plus a meta dict with the run counts."""
    visible = session.visible_vacancies()
    category = session.active_category

    label = "All Opportunities" if category == "All" else f"{category} Opportunities"
    intro = f"{label} ({len(visible)} of {len(session.vacancies)})"
    parts = []
    if session.summary:
        parts.append(f"<p>{utils.esc(session.summary)}</p>")
    parts.append(render.build_cards(visible))
    sources_html = render.build_sources(session.sources)
    if sources_html:
        parts.append(sources_html)
    html = render.wrap_document("\n".join(parts), heading="Vacancy Watch", intro=intro)

    meta = {
        "message": intro,
        "subject": f"Vacancy Watch: {len(visible)} {label.lower()}",
        "state": session.state.value,
        "error": session.error,
        "category": category,
        "total": len(session.vacancies),
        "visible": len(visible),
        "sources": len(session.sources),
        "summary": session.summary,
        "last_updated_at": session.last_updated_at.isoformat() if session.last_updated_at else None,
        "vacancies": [v.to_dict() for v in visible],
    }
    return html, meta


def run(**kwargs: Any) -> tuple[str, dict] | None:
    """
    Entry point for the 'vacancy_watch' module.

    Accepts kwargs (see Settings.from_env_and_kwargs), notably:
      pages: int = 1           initial search + (pages - 1) load-mores
      category: str = "All"    filter applied to the rendered view
      skip_network: bool       use the stub collaborator
      notify: none|log|email

    Returns:
      - None when the initial search failed and nothing was accumulated, or
      - (html: str, meta: dict) with the rendered cards and run counts.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "vacancy_watch.main",
        "op": "start",
        "ts": utils.now_iso(),
        "collaborator": settings.effective_collaborator(),
        "pages": settings.pages,
        "category": settings.category,
        "notify": settings.notify,
    })

    session = collect(settings)
    if session.state is LoadingState.ERROR and not session.vacancies:
        log_activity({
            "component": "vacancy_watch.main",
            "op": "failed",
            "error": session.error,
        })
        return None
    return render_session(session)
