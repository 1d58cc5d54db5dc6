from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from service import emailer

from . import logging_bridge, render

if TYPE_CHECKING:
    from .config import Settings

ALERT_SUBJECT = "Vacancy Alert!"


class Notifier(Protocol):
    """Fire-and-forget alert, called once per successful initial search."""

    def notify(self, count: int) -> None: ...


class LogNotifier:
    """Records the alert in the activity log only."""

    def __init__(self) -> None:
        self.sent: list[int] = []

    def notify(self, count: int) -> None:
        self.sent.append(count)
        logging_bridge.activity({
            "component": "vacancy_watch.notify",
            "op": "alert",
            "channel": "log",
            "message": render.alert_text(count),
            "count": count,
        })


class EmailNotifier:
    """
    Sends the alert as a short HTML email through service.emailer.
    Delivery failures are logged, never raised; the search result stands either way.
    """

    def __init__(self, to: Sequence[str], *, subject: str = ALERT_SUBJECT) -> None:
        self.to = list(to)
        self.subject = subject

    def notify(self, count: int) -> None:
        if not emailer.email_enabled():
            logging_bridge.activity({
                "component": "vacancy_watch.notify",
                "op": "alert_suppressed",
                "reason": "email disabled",
                "count": count,
            })
            return
        try:
            message_id = emailer.send_html(subject=self.subject, html=render.alert_html(count), to=self.to)
        except emailer.EmailSendError as e:
            logging_bridge.error({
                "component": "vacancy_watch.notify",
                "op": "alert",
                "channel": "email",
                "error": str(e),
            })
            return
        logging_bridge.activity({
            "component": "vacancy_watch.notify",
            "op": "alert",
            "channel": "email",
            "count": count,
            "message_id": message_id,
        })


def build_notifier(settings: Settings) -> Notifier | None:
    """'none' -> None, 'log' -> LogNotifier, 'email' -> EmailNotifier(settings.email_to)."""
    if settings.notify == "none":
        return None
    if settings.notify == "email":
        return EmailNotifier(settings.email_to)
    return LogNotifier()
