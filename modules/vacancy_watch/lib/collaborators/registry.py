from __future__ import annotations

from .base import BaseCollaborator

# Global in-process registry: kind -> collaborator class
_REGISTRY: dict[str, type[BaseCollaborator]] = {}


def register(cls: type[BaseCollaborator]) -> type[BaseCollaborator]:
    """
    Class decorator registering a collaborator under its `kind`.
    Re-registering the same class is a no-op; a different class is rejected.
    """
    kind = getattr(cls, "kind", "") or ""
    if not isinstance(kind, str) or not kind.strip():
        raise ValueError(f"Cannot register collaborator {cls!r}: missing/empty 'kind'.")
    key = kind.strip().lower()
    if key in _REGISTRY and _REGISTRY[key] is not cls:
        raise ValueError(f"Collaborator kind {key!r} already registered to {_REGISTRY[key]!r}.")
    _REGISTRY[key] = cls
    return cls


def get(kind: str) -> type[BaseCollaborator]:
    """Case-insensitive lookup; KeyError if unknown."""
    key = (kind or "").strip().lower()
    if key not in _REGISTRY:
        raise KeyError(f"No collaborator registered for kind {kind!r}.")
    return _REGISTRY[key]


def all_kinds() -> dict[str, type[BaseCollaborator]]:
    return dict(_REGISTRY)
