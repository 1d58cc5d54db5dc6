from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .filters import CATEGORIES, UnknownCategory, canonical_category
from .models import DEFAULT_SITE_URL
from .utils import getenv_str, split_csv, truthy

NOTIFY_MODES = ("none", "log", "email")


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Model
# -----------------------------
@dataclass
class Settings:
    """
    Canonical configuration for a 'vacancy_watch' run.

    Every field can come from kwargs (run()/CLI) or, failing that, the
    environment variable named next to it; kwargs always win.
    """

    # Which collaborator to query (registry kind) and its params
    collaborator: str = "openai"  # VACANCY_COLLABORATOR
    collaborator_params: dict[str, Any] = field(default_factory=dict)

    # OpenAI model/temperature are read from these env var NAMES at call time
    model_env: str = "OPENAI_MODEL_VACANCY"
    temp_env: str | None = None  # e.g. "OPENAI_TEMP_VACANCY"

    site_url: str = DEFAULT_SITE_URL  # VACANCY_SITE_URL
    request_timeout_s: float = 120.0  # VACANCY_REQUEST_TIMEOUT_S

    # Session shape
    pages: int = 1  # initial search + (pages - 1) load-mores
    category: str = "All"

    # Alerts
    notify: str = "log"  # VACANCY_NOTIFY: none | log | email
    email_to: list[str] = field(default_factory=list)  # VACANCY_EMAIL_TO (comma-separated)

    # Forces the zero-network stub collaborator
    skip_network: bool = False

    # ------------- convenience -------------
    def effective_collaborator(self) -> str:
        return "stub" if self.skip_network else self.collaborator

    def collaborator_kwargs(self) -> dict[str, Any]:
        """Params handed to the collaborator constructor."""
        params = dict(self.collaborator_params)
        if self.effective_collaborator() == "openai":
            params.setdefault("model_env", self.model_env)
            params.setdefault("temp_env", self.temp_env)
            params.setdefault("site_url", self.site_url)
            params.setdefault("timeout_s", self.request_timeout_s)
        return params

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """
        Build Settings from kwargs with env fallbacks and validation.

        Expected kwargs (all optional):

            collaborator: str = "openai"            (env VACANCY_COLLABORATOR)
            collaborator_params: dict | JSON str    e.g. {"batches": [...]} for "stub"
            model_env: str = "OPENAI_MODEL_VACANCY"
            temp_env: str | None
            site_url: str                           (env VACANCY_SITE_URL)
            request_timeout_s: float = 120          (env VACANCY_REQUEST_TIMEOUT_S)
            pages: int = 1
            category: str = "All"
            notify: "none" | "log" | "email"        (env VACANCY_NOTIFY)
            email_to: list[str] | "a@x,b@y"         (env VACANCY_EMAIL_TO)
            skip_network: bool = False
        """
        kw = dict(kwargs or {})

        def pick(key: str, env: str | None = None, default: Any = None) -> Any:
            val = kw.get(key)
            if val is None or val == "":
                val = getenv_str(env) if env else None
            return default if val is None or val == "" else val

        params = pick("collaborator_params", default={})
        if isinstance(params, str):
            try:
                params = json.loads(params)
            except json.JSONDecodeError as e:
                raise ConfigError(f"'collaborator_params' is not valid JSON: {e}") from e
        if not isinstance(params, dict):
            raise ConfigError("'collaborator_params' must be an object.")

        try:
            timeout = float(pick("request_timeout_s", "VACANCY_REQUEST_TIMEOUT_S", 120.0))
            pages = int(pick("pages", default=1))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        try:
            category = canonical_category(str(pick("category", default="All")))
        except UnknownCategory as e:
            raise ConfigError(str(e)) from e

        settings = cls(
            collaborator=str(pick("collaborator", "VACANCY_COLLABORATOR", "openai")).strip().lower(),
            collaborator_params=params,
            model_env=str(pick("model_env", default="OPENAI_MODEL_VACANCY")),
            temp_env=pick("temp_env") or None,
            site_url=str(pick("site_url", "VACANCY_SITE_URL", DEFAULT_SITE_URL)).strip(),
            request_timeout_s=timeout,
            pages=pages,
            category=category,
            notify=str(pick("notify", "VACANCY_NOTIFY", "log")).strip().lower(),
            email_to=split_csv(pick("email_to", "VACANCY_EMAIL_TO", [])),
            skip_network=truthy(kw.get("skip_network")),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _validate_settings(s: Settings) -> None:
    from .collaborators import registry

    try:
        registry.get(s.effective_collaborator())
    except KeyError as e:
        raise ConfigError(f"Unknown collaborator {s.collaborator!r}.") from e

    if s.request_timeout_s <= 0:
        raise ConfigError("'request_timeout_s' must be > 0.")
    if s.pages < 1:
        raise ConfigError("'pages' must be >= 1.")
    if s.category not in CATEGORIES:
        raise ConfigError(f"'category' must be one of {', '.join(CATEGORIES)}.")
    if not s.site_url.startswith(("http://", "https://")):
        raise ConfigError("'site_url' must be an http(s) URL.")
    if s.notify not in NOTIFY_MODES:
        raise ConfigError(f"'notify' must be one of {', '.join(NOTIFY_MODES)}.")
    if s.notify == "email" and not s.email_to:
        raise ConfigError("'email_to' is required when notify='email'.")
