# service/cli.py
"""
User-facing command-line entrypoints.

Subcommands
-----------
search [--pages N] [--category C] [--print-html] [--json] [--no-email] [--kwargs k=v ...]
    - Runs an initial search plus (N - 1) load-mores and prints the result
    - Exit code 1 when the search ended in an error with nothing to show

interactive [--kwargs k=v ...]
    - Small REPL over one session: search, more, retry, filter <category>,
      show, sources, summary, help, quit

validate-config [--ping-smtp] [--kwargs k=v ...]
    - Builds Settings from env + kwargs and returns nonzero on error
    - With --ping-smtp, also opens a session against the SMTP relay
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from collections.abc import Callable, Iterable
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from modules.vacancy_watch import main as vacancy_main
from modules.vacancy_watch.lib import render
from modules.vacancy_watch.lib.config import ConfigError, Settings
from modules.vacancy_watch.lib.filters import CATEGORIES, UnknownCategory
from modules.vacancy_watch.lib.models import LoadingState
from modules.vacancy_watch.lib.session import SearchInProgress, VacancySession
from service import emailer
from service import logging_utils as L

LOG = logging.getLogger("service.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "WARNING").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.WARNING),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except json.JSONDecodeError:
            out[k] = v
    return out


@contextmanager
def _env_overrides(env: dict[str, str]):
    """Temporarily set environment variables."""
    old = {}
    try:
        for k, v in env.items():
            old[k] = os.environ.get(k)
            os.environ[k] = v
        yield
    finally:
        for k, v in old.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


def _print_table(rows: Iterable[tuple[str, str]], headers: tuple[str, str] = ("KEY", "VALUE")) -> None:
    """Very simple two-column table printer."""
    rows = list(rows)
    w0 = max(len(headers[0]), *(len(r[0]) for r in rows)) if rows else len(headers[0])
    w1 = max(len(headers[1]), *(len(r[1]) for r in rows)) if rows else len(headers[1])
    sep = f"+-{'-' * w0}-+-{'-' * w1}-+"
    print(sep)
    print(f"| {headers[0].ljust(w0)} | {headers[1].ljust(w1)} |")
    print(sep)
    for c0, c1 in rows:
        print(f"| {c0.ljust(w0)} | {c1.ljust(w1)} |")
    print(sep)


def _print_session(session: VacancySession, out: Callable[[str], None] = print) -> None:
    visible = session.visible_vacancies()
    label = session.active_category
    heading = "All Opportunities" if label == "All" else f"{label} Opportunities"
    out(f"{heading} ({len(visible)} of {len(session.vacancies)})")
    if not visible:
        out(f'  No vacancies found for "{label}".')
    for i, v in enumerate(visible, 1):
        out(f"{i:3d}. {render.format_line(v)}")
    if session.last_updated_at:
        out(f"Last checked: {session.last_updated_at.astimezone():%H:%M:%S}")


def _print_status(session: VacancySession, out: Callable[[str], None] = print) -> None:
    if session.state is LoadingState.ERROR:
        out(f"ERROR: {session.error}  (type 'retry' to try again)")


def _now_iso():
    return datetime.now().astimezone().isoformat()


def _settings_from_args(args: argparse.Namespace) -> Settings:
    kwargs = _parse_kv_pairs(getattr(args, "kwargs", None) or [])
    if getattr(args, "pages", None):
        kwargs["pages"] = args.pages
    if getattr(args, "category", None):
        kwargs["category"] = args.category
    return Settings.from_env_and_kwargs(kwargs)


# ------------------------------ Subcommands ----------------------------------
def cmd_validate_config(args: argparse.Namespace) -> int:
    try:
        settings = _settings_from_args(args)
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    _print_table(
        [
            ("collaborator", settings.effective_collaborator()),
            ("site_url", settings.site_url),
            ("request_timeout_s", f"{settings.request_timeout_s:g}"),
            ("pages", str(settings.pages)),
            ("category", settings.category),
            ("notify", settings.notify),
            ("email_to", ", ".join(settings.email_to) or "-"),
        ],
        headers=("SETTING", "VALUE"),
    )
    print("OK: configuration is valid.")
    if getattr(args, "ping_smtp", False):
        try:
            emailer.ping()
        except emailer.EmailSendError as e:
            print(f"ERROR: SMTP relay unreachable: {e}", file=sys.stderr)
            return 1
        print("OK: SMTP relay reachable.")
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    start_time = time.monotonic()
    env = {"VACANCY_DRY_RUN": "1"} if args.no_email else {}

    try:
        settings = _settings_from_args(args)
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2

    try:
        with _env_overrides(env):
            session = vacancy_main.collect(settings)
    except KeyboardInterrupt:
        return 130

    duration_ms = int((time.monotonic() - start_time) * 1000)
    L.write_activity_log({
        "ts": _now_iso(),
        "event": "cli_search",
        "state": session.state.value,
        "total": len(session.vacancies),
        "pages": settings.pages,
        "category": settings.category,
        "duration_ms": duration_ms,
    })

    if args.print_html or args.json:
        html, meta = vacancy_main.render_session(session)
        if args.json:
            print(json.dumps(meta, ensure_ascii=False, indent=2))
        else:
            print(html)
    else:
        if session.summary:
            print(session.summary)
            print()
        _print_session(session)

    if session.state is LoadingState.ERROR:
        print(f"FAILURE: {session.error}", file=sys.stderr)
        return 1 if not session.vacancies else 0
    return 0


_HELP = (
    "commands: search | more | retry | filter <"
    + "|".join(CATEGORIES)
    + "> | show | sources | summary | help | quit"
)


def repl(
    session: VacancySession,
    read: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> int:
    """Drive one session from typed commands until 'quit' or EOF."""
    out(_HELP)
    while True:
        try:
            line = read("vacancy> ").strip()
        except EOFError:
            return 0
        if not line:
            continue
        cmd, _, arg = line.partition(" ")
        cmd = cmd.lower()
        try:
            if cmd in {"quit", "exit", "q"}:
                return 0
            if cmd == "help":
                out(_HELP)
            elif cmd == "search":
                session.start_initial_search()
                _print_status(session, out)
                _print_session(session, out)
            elif cmd in {"more", "retry"}:
                if cmd == "more" and session.active_category != "All":
                    out("Switch to 'filter All' before loading more.")
                    continue
                session.load_more()
                _print_status(session, out)
                _print_session(session, out)
            elif cmd == "filter":
                session.set_category(arg or "All")
                _print_session(session, out)
            elif cmd == "show":
                _print_session(session, out)
            elif cmd == "sources":
                for s in session.sources:
                    out(f" - {s.title}: {s.uri}")
                if not session.sources:
                    out("No sources yet.")
            elif cmd == "summary":
                out(session.summary or "No summary yet.")
            else:
                out(f"Unknown command {cmd!r}. {_HELP}")
        except (UnknownCategory, SearchInProgress) as e:
            out(f"ERROR: {e}")


def cmd_interactive(args: argparse.Namespace) -> int:
    try:
        settings = _settings_from_args(args)
    except (ConfigError, argparse.ArgumentTypeError) as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    try:
        return repl(vacancy_main.build_session(settings))
    except KeyboardInterrupt:
        return 130


# ------------------------------- Argparse ------------------------------------
def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vacancy-watch",
        description="Search, page through and filter job vacancies.",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_kwargs(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--kwargs",
            metavar="k=v",
            nargs="*",
            help="Extra settings (JSON values supported), e.g. skip_network=true notify=none.",
        )

    # search
    sp = sub.add_parser("search", help="Run a search (plus optional load-mores) and print the result.")
    sp.add_argument("--pages", type=int, help="Number of batches to fetch (1 = initial search only).")
    sp.add_argument("--category", help=f"Filter the output: one of {', '.join(CATEGORIES)}.")
    sp.add_argument("--print-html", action="store_true", help="Print rendered HTML cards instead of text.")
    sp.add_argument("--json", action="store_true", help="Print the result meta (with vacancies) as JSON.")
    sp.add_argument("--no-email", action="store_true", help="Never send alert emails (dry-run).")
    add_kwargs(sp)
    sp.set_defaults(func=cmd_search)

    # interactive
    sp = sub.add_parser("interactive", help="Interactive session: search, more, filter.")
    add_kwargs(sp)
    sp.set_defaults(func=cmd_interactive)

    # validate-config
    sp = sub.add_parser("validate-config", help="Verify configuration correctness.")
    sp.add_argument("--ping-smtp", action="store_true", help="Also check that a session with the SMTP relay opens.")
    add_kwargs(sp)
    sp.set_defaults(func=cmd_validate_config)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
