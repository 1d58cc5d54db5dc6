from __future__ import annotations

from collections.abc import Iterable, Sequence

from . import utils
from .models import CONTRACT_MARKER, SourceRef, Vacancy

_URGENT_MARKERS = ("1 day", "2 days", "today")


def split_contract_marker(title: str) -> tuple[str, bool]:
    """'IT Officer (करार सेवा)' -> ('IT Officer', True)"""
    if CONTRACT_MARKER in title:
        return title.replace(CONTRACT_MARKER, "").strip(), True
    return title, False


def is_urgent(days_remaining: str | None) -> bool:
    low = (days_remaining or "").lower()
    return any(m in low for m in _URGENT_MARKERS)


def alert_text(count: int) -> str:
    return f"Found {count} active vacancies."


def alert_html(count: int) -> str:
    return f"<div><h2>Vacancy Alert!</h2>\n<p>{utils.esc(alert_text(count))}</p></div>"


def format_line(vacancy: Vacancy) -> str:
    """
    One line for terminal output:
      2024-01-05 | IT Officer [contract] | CDSC | deadline 2024-01-20 (5 days left) [URGENT] | Technical, Government
    """
    title, contract = split_contract_marker(vacancy.title)
    parts = [vacancy.published_date, title + (" [contract]" if contract else ""), vacancy.organization]
    deadline = f"deadline {vacancy.deadline}"
    if vacancy.days_remaining:
        deadline += f" ({vacancy.days_remaining})"
    if is_urgent(vacancy.days_remaining):
        deadline += " [URGENT]"
    parts.append(deadline)
    parts.append(", ".join(vacancy.category))
    return " | ".join(parts)


def build_card(vacancy: Vacancy) -> str:
    title, contract = split_contract_marker(vacancy.title)
    tags = " ".join(f"<span class='tag'>{utils.esc(c)}</span>" for c in vacancy.category)
    contract_html = f" <span class='contract'>{utils.esc(CONTRACT_MARKER)}</span>" if contract else ""

    deadline_html = f"<b>Deadline:</b> {utils.esc(vacancy.deadline)}"
    if vacancy.days_remaining:
        cls = "urgent" if is_urgent(vacancy.days_remaining) else "remaining"
        deadline_html += f" <span class='{cls}'>{utils.esc(vacancy.days_remaining)}</span>"
    if vacancy.deadline_double:
        deadline_html += f"<br/><b>Double fee deadline:</b> {utils.esc(vacancy.deadline_double)}"

    rows = [
        ("Level", vacancy.level),
        ("Qualification", vacancy.qualification),
        ("Eligibility", vacancy.eligibility),
        ("Location", vacancy.location),
        ("Seats", vacancy.vacancy_number),
        ("Published", vacancy.published_date),
    ]
    details = "".join(f"<tr><th>{k}</th><td>{utils.esc(v)}</td></tr>" for k, v in rows)
    url = utils.esc(vacancy.source_url)
    return (
        f"<div class='vacancy' id='{utils.esc(vacancy.id)}'>"
        f"<div>{tags}</div>"
        f"<h3>{utils.esc(title)}{contract_html}</h3>"
        f"<p><b>{utils.esc(vacancy.organization)}</b></p>"
        f"<table border='1' cellspacing='0' cellpadding='4'>{details}</table>"
        f"<p>{deadline_html}</p>"
        f"<p>{utils.esc(vacancy.description)}</p>"
        f"<p><a href=\"{url}\">{url}</a></p>"
        "</div>"
    )


def build_cards(vacancies: Iterable[Vacancy]) -> str:
    cards = [build_card(v) for v in vacancies]
    if not cards:
        return "<p>No vacancies found.</p>"
    return "\n".join(cards)


def build_sources(sources: Sequence[SourceRef]) -> str:
    if not sources:
        return ""
    items = "".join(f'<li><a href="{utils.esc(s.uri)}">{utils.esc(s.title)}</a></li>' for s in sources)
    return f"<h4>Sources</h4>\n<ul>{items}</ul>"


def wrap_document(content_html: str, *, heading: str | None = None, intro: str | None = None) -> str:
    """
    Wrap cards in a minimal document structure (heading + summary line).
    """
    parts: list[str] = ["<div>"]
    if heading:
        parts.append(f"<h2>{utils.esc(heading)}</h2>")
    if intro:
        parts.append(f"<p>{utils.esc(intro)}</p>")
    parts.append(content_html)
    parts.append("</div>")
    return "\n".join(parts)
