from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .base import BaseCollaborator, CollaboratorFailure
from .registry import register


@register
class StubCollaborator(BaseCollaborator):
    """
    A zero-network collaborator used for tests, dry-runs and `skip_network`.

    params:
      - batches: list of raw envelopes, replayed one per fetch() call;
                 once exhausted every call returns an empty envelope
      - fail_with: str  # OPTIONAL, raise CollaboratorFailure(fail_with) instead

    Every call's `existing_titles` is recorded in `self.calls` for assertions.
    """

    kind = "stub"

    def __init__(self, **params: Any) -> None:
        super().__init__(**params)
        batches = self.params.get("batches") or []
        if not isinstance(batches, list):
            batches = [batches]
        self._batches: list[Any] = list(batches)
        self.calls: list[list[str]] = []

    def fetch(self, existing_titles: Sequence[str] = ()) -> dict[str, Any]:
        self.calls.append(list(existing_titles))
        fail_with = self.params.get("fail_with")
        if fail_with is not None:
            raise CollaboratorFailure(str(fail_with))
        if not self._batches:
            return {"vacancies": [], "summary": "", "sources": []}
        batch = self._batches.pop(0)
        return dict(batch) if isinstance(batch, dict) else {"vacancies": batch}
