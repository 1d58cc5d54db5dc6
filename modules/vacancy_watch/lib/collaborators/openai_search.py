# ruff: noqa: E501
"""
Vacancy search through an OpenAI model with web search enabled.

The model is asked to act as a scraper for one listing site and to answer with
a JSON document; the cited pages become the batch's provenance list. Nothing
about the answer is trusted: parse failures degrade to an empty batch and all
field-level cleanup is left to the assembler.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from datetime import date
from typing import Any

from modules._shared import utils as shared_utils

from .. import logging_bridge
from ..models import CONTRACT_MARKER, DEFAULT_SITE_URL
from .base import BaseCollaborator, CollaboratorFailure
from .registry import register

NO_INFO_SUMMARY = "No information received."

# Only this many seen titles go into the prompt; the rest are dropped.
_MAX_HINT_TITLES = 80

_FENCE_RE = re.compile(r"```(?:json)?", re.I)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _as_timeout(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class UnparsableResponse(ValueError):
    """The model's answer did not contain a JSON object."""


def parse_payload(text: str | None) -> dict[str, Any]:
    """
    Best-effort extraction of the JSON object from a model answer:
    strip code fences, take the outermost {...}, json.loads it.

    Raises:
        UnparsableResponse: no JSON object could be decoded.
    """
    clean = _FENCE_RE.sub("", text or "").strip()
    match = _OBJECT_RE.search(clean)
    candidate = match.group(0) if match else clean
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, TypeError) as e:
        raise UnparsableResponse(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise UnparsableResponse(f"expected a JSON object, got {type(data).__name__}")
    return data


def build_prompt(
    existing_titles: Sequence[str] = (),
    *,
    site_url: str = DEFAULT_SITE_URL,
    language: str = "Nepali",
    today: date | None = None,
) -> tuple[str, str]:
    """Return (system, user) messages for one batch request."""
    d = today or date.today()
    long_date = f"{d:%B} {d.day}, {d.year}"

    system = (
        f"You are a precision scraper for the vacancy listing at {site_url}. "
        "You only report vacancies you actually found on that site or on the official notices it links to. "
        "You answer with a single JSON object and nothing else."
    )

    seen = [t.strip() for t in existing_titles if isinstance(t, str) and t.strip()][:_MAX_HINT_TITLES]
    if seen:
        skip_block = (
            "**ALREADY LISTED (do not repeat these; continue further down the list):**\n"
            + "\n".join(f" - {t}" for t in seen)
            + "\n\n"
        )
    else:
        skip_block = ""

    user = (
        f"**CURRENT DATE:** {long_date}\n\n"
        "**CORE OBJECTIVE:**\n"
        f"Fetch the LATEST vacancy list from {site_url}. The site lists vacancies newest first; start from the top and go down.\n"
        "Extract 20-25 active vacancies.\n\n"
        f"{skip_block}"
        "**MANDATORY SEARCH TARGETS:**\n"
        "1. CDS and Clearing Limited (CDSC): IT Officer / Senior Officer and technical or admin roles.\n"
        "2. Nepal Electricity Authority (NEA): recent notices.\n"
        "3. Government and banking: Rastriya Banijya Bank, NTC, Lok Sewa.\n\n"
        "**DATA EXTRACTION RULES:**\n"
        f'1. Contract posts: if the notice says "Contract", "Karar", "Temporary" or "Sewakarar", append "{CONTRACT_MARKER}" to the title.\n'
        f"2. Language: description is two lines in {language}; summary is in {language}.\n"
        f'3. Dates: publishedDate is "YYYY-MM-DD" (convert "Today", "2 days ago" etc. using the current date, e.g. "{d.isoformat()}"). '
        "Sort the array newest first.\n"
        "4. Categories: Technical (IT, Engineering, Health), Non-Technical (Admin, Accounting), "
        "Government (CDSC, NEA, NTC, Sansthan), Banking, Internship. A vacancy may have several.\n\n"
        "**OUTPUT JSON SCHEMA:**\n"
        "{\n"
        '  "vacancies": [\n'
        "    {\n"
        '      "title": "Job Title",\n'
        '      "organization": "Org Name",\n'
        '      "category": ["Technical", "Government"],\n'
        '      "level": "Level",\n'
        '      "qualification": "Education",\n'
        '      "eligibility": "Age",\n'
        '      "publishedDate": "YYYY-MM-DD",\n'
        '      "deadline": "YYYY-MM-DD",\n'
        '      "deadlineDouble": "YYYY-MM-DD",\n'
        '      "daysRemaining": "e.g. 5 days left",\n'
        '      "description": "...",\n'
        '      "location": "Location",\n'
        '      "vacancyNumber": "Seats",\n'
        '      "sourceUrl": "http..."\n'
        "    }\n"
        "  ],\n"
        '  "summary": "..."\n'
        "}\n"
    )
    return system, user


@register
class OpenAISearchCollaborator(BaseCollaborator):
    """
    params:
      - model_env: str = "OPENAI_MODEL_VACANCY"   env var holding the model name
      - temp_env: str | None = None               env var holding the temperature
      - default_model: str = "gpt-4o-mini-search-preview"
      - site_url: str = DEFAULT_SITE_URL
      - language: str = "Nepali"
      - timeout_s: float | None = None            HTTP timeout for the OpenAI client
    """

    kind = "openai"

    def _llm(self) -> shared_utils.OpenAIChat:
        return shared_utils.OpenAIChat(
            model_env=str(self.params.get("model_env") or "OPENAI_MODEL_VACANCY"),
            temp_env=self.params.get("temp_env") or None,
            default_model=str(self.params.get("default_model") or "gpt-4o-mini-search-preview"),
            timeout_s=_as_timeout(self.params.get("timeout_s")),
        )

    def fetch(self, existing_titles: Sequence[str] = ()) -> dict[str, Any]:
        system, user = build_prompt(
            existing_titles,
            site_url=str(self.params.get("site_url") or DEFAULT_SITE_URL),
            language=str(self.params.get("language") or "Nepali"),
        )
        try:
            reply = self._llm().search(system, user)
        except Exception as e:
            logging_bridge.error({
                "component": "vacancy_watch.openai_search",
                "op": "search",
                "error": repr(e),
            })
            raise CollaboratorFailure(str(e)) from e

        try:
            payload = parse_payload(reply.text)
        except UnparsableResponse as e:
            logging_bridge.error({
                "component": "vacancy_watch.openai_search",
                "op": "parse",
                "error": str(e),
                "preview": (reply.text or "")[:200],
            })
            payload = {"vacancies": [], "summary": NO_INFO_SUMMARY}

        payload["sources"] = list(reply.citations)
        logging_bridge.activity({
            "component": "vacancy_watch.openai_search",
            "op": "fetched",
            "hint_titles": len(existing_titles),
            "raw_vacancies": len(payload.get("vacancies") or []) if isinstance(payload.get("vacancies"), list) else 0,
            "sources": len(reply.citations),
        })
        return payload
