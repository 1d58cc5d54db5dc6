from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .models import DEFAULT_SITE_URL, SourceRef


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_source(raw: Any) -> SourceRef | None:
    """
    Accepts {"title", "uri"}, the grounding-chunk shape {"web": {"title", "uri"}},
    or any object exposing those attributes. Returns None unless both are non-empty.
    """
    web = _field(raw, "web")
    node = web if web is not None else raw
    title = _field(node, "title")
    uri = _field(node, "uri")
    if not isinstance(title, str) or not isinstance(uri, str):
        return None
    title, uri = title.strip(), uri.strip()
    if not title or not uri:
        return None
    return SourceRef(title=title, uri=uri)


def collect_sources(raw_sources: Any) -> tuple[SourceRef, ...]:
    """
    Filter raw source records down to usable SourceRefs, deduped by uri
    (first occurrence wins). Anything that is not a list/tuple yields ().
    """
    if not isinstance(raw_sources, (list, tuple)):
        return ()
    return merge_sources((), (s for s in map(_as_source, raw_sources) if s is not None))


def merge_sources(existing: Sequence[SourceRef], incoming: Iterable[SourceRef]) -> tuple[SourceRef, ...]:
    """Append incoming refs whose uri is not yet present; keeps the first-seen title."""
    seen = {s.uri for s in existing}
    out = list(existing)
    for ref in incoming:
        if ref.uri in seen:
            continue
        seen.add(ref.uri)
        out.append(ref)
    return tuple(out)


def resolve_source_url(
    claimed: str | None,
    sources: Sequence[SourceRef],
    default_url: str = DEFAULT_SITE_URL,
) -> str:
    """
    Per-record URLs from the collaborator are unreliable; batch provenance usually isn't.

      claimed matches a source uri -> claimed
      else at least one source      -> first source uri
      else                          -> default_url
    """
    if claimed and any(s.uri == claimed for s in sources):
        return claimed
    if sources:
        return sources[0].uri
    return default_url
