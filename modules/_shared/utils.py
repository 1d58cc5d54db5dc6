# modules/_shared/utils.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

log = logging.getLogger(__name__)


def _get_float_env(name: str | None, default: float | None) -> float | None:
    if not name:
        return default
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        log.warning("Invalid float in %s=%r; using default %s", name, raw, default)
        return default


@dataclass(frozen=True)
class SearchReply:
    """Text answer plus the web pages the model cited ({"title", "uri"} dicts)."""

    text: str
    citations: list[dict[str, str]] = field(default_factory=list)


@dataclass
class OpenAIChat:
    """
    Thin facade over openai.chat.completions with:
      - model loaded from env via `model_env` (falls back to `default_model`)
      - temperature from `temp_env` if set; otherwise not sent at all
        (search-enabled models reject the parameter)
    """

    model_env: str
    temp_env: str | None = None
    default_model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"
    timeout_s: float | None = None

    def _client_and_kwargs(self) -> tuple[Any, dict[str, Any]]:
        from openai import OpenAI  # local import to keep tests light

        api_key = os.getenv(self.api_key_env)
        if not api_key:
            raise RuntimeError(f"{self.api_key_env} not set")
        kwargs: dict[str, Any] = {"model": os.getenv(self.model_env) or self.default_model}
        temp = _get_float_env(self.temp_env, None)
        if temp is not None:
            kwargs["temperature"] = temp
        if self.timeout_s is None:
            return OpenAI(api_key=api_key), kwargs
        # Without it the client default (600 s) applies.
        return OpenAI(api_key=api_key, timeout=self.timeout_s), kwargs

    def search(self, system_msg: str, user_msg: str) -> SearchReply:
        """
        Chat completion with the web search tool enabled; url_citation
        annotations on the reply are returned as citations.
        """
        client, kwargs = self._client_and_kwargs()
        log.debug("OpenAIChat.search(%s)", kwargs)
        resp = client.chat.completions.create(
            messages=[{"role": "system", "content": system_msg}, {"role": "user", "content": user_msg}],
            web_search_options={},
            **kwargs,
        )
        message = resp.choices[0].message
        content = (message.content or "").strip()

        citations: list[dict[str, str]] = []
        for ann in getattr(message, "annotations", None) or []:
            if getattr(ann, "type", None) != "url_citation":
                continue
            cite = getattr(ann, "url_citation", None)
            url = getattr(cite, "url", None)
            if url:
                citations.append({"title": getattr(cite, "title", None) or url, "uri": url})
        log.debug("OpenAIChat.search() received %d chars, %d citations", len(content), len(citations))
        return SearchReply(text=content, citations=citations)
