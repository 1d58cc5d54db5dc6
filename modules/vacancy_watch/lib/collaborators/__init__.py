# modules/vacancy_watch/lib/collaborators/__init__.py
from __future__ import annotations

from .base import BaseCollaborator, CollaboratorFailure
from .openai_search import OpenAISearchCollaborator, UnparsableResponse
from .registry import all_kinds, get, register
from .stub import StubCollaborator

__all__ = [
    "BaseCollaborator",
    "CollaboratorFailure",
    "OpenAISearchCollaborator",
    "StubCollaborator",
    "UnparsableResponse",
    "all_kinds",
    "get",
    "register",
]
