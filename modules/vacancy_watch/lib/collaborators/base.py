from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class CollaboratorFailure(Exception):
    """The search service call itself failed (network, auth, service error)."""


class BaseCollaborator(ABC):
    """
    Abstract interface to the external vacancy search service.

    Contract:
      - fetch(existing_titles) returns the RAW envelope:
            {"vacancies": [...], "summary": "...", "sources": [...]}
        Field presence, types, ordering and uniqueness are NOT guaranteed;
        normalization happens downstream in the assembler.
      - existing_titles is a hint only (steer the service away from repeats).
      - Raise CollaboratorFailure on transport/service errors.
      - Do NOT send notifications, print, or mutate global state.
    """

    # Concrete subclasses MUST set this to a stable string, e.g. "openai", "stub"
    kind: str = ""

    def __init__(self, **params: Any) -> None:
        self.params = dict(params)

    @abstractmethod
    def fetch(self, existing_titles: Sequence[str] = ()) -> dict[str, Any]:
        raise NotImplementedError
