# service/emailer.py
from __future__ import annotations

import os
import smtplib
import ssl
import time
import uuid
from collections.abc import Iterable
from datetime import datetime
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

# ---- Errors -----------------------------------------------------------------


class EmailSendError(RuntimeError):
    """Raised when an email cannot be delivered."""


# ---- Env / Settings ----------------------------------------------------------


def _getenv_any(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v != "":
            return v
    return default


def _env_flag(name: str, default: str) -> bool:
    return (_getenv_any(name, default=default) or default).strip().lower() in {"1", "true", "yes", "on"}


def email_enabled() -> bool:
    """
    Global gate: SEND_EMAIL (default on) and VACANCY_DRY_RUN (default off).
    Dry-run wins over everything.
    """
    if _env_flag("VACANCY_DRY_RUN", "0"):
        return False
    return _env_flag("SEND_EMAIL", "1")


def resolve_smtp_settings() -> dict:
    """
    Resolve SMTP settings from env:
      - SMTP_HOST / SMTP_PORT (default 127.0.0.1:1025)
      - SMTP_USERNAME / SMTP_PASSWORD
      - SMTP_USE_SSL = "true" | "false"
      - SMTP_STARTTLS = "true" | "false" | "auto" (default)
      - SMTP_FROM / SMTP_FROM_NAME (default: username)
      - SMTP_INSECURE_TLS = "true" to skip certificate checks
    """
    host = _getenv_any("SMTP_HOST", default="127.0.0.1")
    port = int(_getenv_any("SMTP_PORT", default="1025") or 1025)

    username = _getenv_any("SMTP_USERNAME")
    password = _getenv_any("SMTP_PASSWORD")

    use_ssl = _env_flag("SMTP_USE_SSL", "false")
    starttls = (_getenv_any("SMTP_STARTTLS", default="auto") or "auto").strip().lower()
    if use_ssl:
        starttls = "false"

    return {
        "host": host,
        "port": port,
        "username": username,
        "password": password,
        "use_ssl": use_ssl,
        "starttls": starttls,  # "true" | "false" | "auto"
        "default_from_addr": _getenv_any("SMTP_FROM", default=username or ""),
        "default_from_name": _getenv_any("SMTP_FROM_NAME", default="Vacancy Watch"),
        "insecure_tls": _env_flag("SMTP_INSECURE_TLS", "false"),
    }


# ---- Helpers ----------------------------------------------------------------


def _as_list(values: Iterable[str] | str | None) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(",")
    return [v for v in (s.strip() for s in values if isinstance(s, str)) if v]


def _should_starttls(port: int, starttls_setting: str) -> bool:
    if starttls_setting == "true":
        return True
    if starttls_setting == "false":
        return False
    # "auto": on, except for the usual cleartext relay ports
    return port not in (25, 1025, 2525)


def build_message(
    *,
    subject: str,
    html: str,
    to: list[str],
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
    from_name: str | None,
    from_addr: str,
) -> EmailMessage:
    cc = cc or []
    bcc = bcc or []
    if not subject or not subject.strip():
        raise EmailSendError("Missing subject.")
    if not html or not html.strip():
        raise EmailSendError("Missing HTML body.")
    if not to and not cc and not bcc:
        raise EmailSendError("No recipients (to/cc/bcc).")

    msg = EmailMessage()
    msg["From"] = f"{from_name} <{from_addr}>" if from_name else from_addr
    if to:
        msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    msg["Reply-To"] = from_addr
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()

    stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    nonce = uuid.uuid4().hex[:8]
    msg.set_content("This message requires an HTML-capable client.")
    msg.add_alternative(html.rstrip() + f"\n<!-- mailer-ts:{stamp} nonce:{nonce} -->", subtype="html", charset="utf-8")
    return msg


def _open_smtp(settings: dict) -> smtplib.SMTP:
    host = settings["host"]
    port = settings["port"]
    context = ssl._create_unverified_context() if settings["insecure_tls"] else ssl.create_default_context()
    server = smtplib.SMTP_SSL(host, port, context=context) if settings["use_ssl"] else smtplib.SMTP(host, port)
    server.ehlo()
    if not settings["use_ssl"] and _should_starttls(port, settings["starttls"]):
        server.starttls(context=context)
        server.ehlo()
    if settings["username"] and settings["password"]:
        server.login(settings["username"], settings["password"])
    return server


# ---- Public API --------------------------------------------------------------


def send_html(
    *,
    subject: str,
    html: str,
    to: list[str] | str,
    cc: list[str] | None = None,
    bcc: list[str] | None = None,
) -> str:
    """
    Send an HTML email.

    Returns:
        message_id (str): RFC-822 Message-ID generated by the sender.

    Raises:
        EmailSendError on any failure (connection/auth/SMTP/validation/etc).
    """
    settings = resolve_smtp_settings()
    to_l, cc_l, bcc_l = _as_list(to), _as_list(cc), _as_list(bcc)

    from_addr = (settings["default_from_addr"] or "").strip()
    if not from_addr:
        raise EmailSendError("No from address resolved. Set SMTP_FROM or SMTP_USERNAME.")

    msg = build_message(
        subject=subject,
        html=html,
        to=to_l,
        cc=cc_l,
        bcc=bcc_l,
        from_name=(settings["default_from_name"] or "").strip() or None,
        from_addr=from_addr,
    )
    rcpt_to = [*to_l, *cc_l, *bcc_l]

    last_err: Exception | None = None
    for attempt in range(3):
        try:
            with _open_smtp(settings) as server:
                server.send_message(msg, to_addrs=rcpt_to)
            return str(msg["Message-ID"])
        except smtplib.SMTPServerDisconnected as e:  # noqa: PERF203
            last_err = e
            time.sleep(2**attempt)  # 1s, 2s, 4s
        except Exception as e:
            raise EmailSendError(f"SMTP send failed: {e}") from e
    raise EmailSendError(f"SMTP send failed after retries: {last_err}")


def ping() -> bool:
    """
    Lightweight health check against the SMTP relay.
    Returns True if the session opens; raises EmailSendError otherwise.
    """
    settings = resolve_smtp_settings()
    try:
        with _open_smtp(settings):
            return True
    except Exception as e:
        raise EmailSendError(f"SMTP health check failed: {e}") from e
