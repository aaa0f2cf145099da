"""
cirrus/interpreter.py
-----------------------------------------------------------------------------
Validate a provider reply and pull out the report and its citations.

Accepted reply shapes
---------------------
Relay shape (what a serverless audit function returns)::

    {"text": "...", "sources": [{"title": "...", "uri": "..."}, ...]}

Native Gemini shape (``generateContent`` response body)::

    {"candidates": [{"content": {"parts": [{"text": "..."}]},
                     "groundingMetadata": {"groundingChunks": [
                         {"web": {"uri": "...", "title": "..."}}, ...]}}]}

A reply may carry both; top-level ``text`` and ``sources`` win when present.
A reply carrying an ``error`` field is a failure payload.

Every optional field is checked for presence and type explicitly.  A
citation is kept only if it carries a web reference (a non-empty ``uri``
string); the title is optional.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from cirrus.errors import BoundaryError, EmptyReportError
from cirrus.schema import AuditResult, GroundingSource

logger = logging.getLogger(__name__)


def _first_candidate(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    candidates = raw.get("candidates")
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], Mapping):
        return candidates[0]
    return None


def _candidate_text(candidate: Mapping[str, Any] | None) -> str | None:
    """Concatenate the text parts of a Gemini candidate."""
    if candidate is None:
        return None
    content = candidate.get("content")
    if not isinstance(content, Mapping):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [
        part["text"]
        for part in parts
        if isinstance(part, Mapping) and isinstance(part.get("text"), str)
    ]
    return "".join(texts) if texts else None


def _as_source(entry: Any) -> GroundingSource | None:
    """Build a source from a citation, or None if it has no web reference."""
    if not isinstance(entry, Mapping):
        return None
    # Grounding chunks nest the reference under "web"; relay sources are flat.
    ref = entry.get("web") if "web" in entry else entry
    if not isinstance(ref, Mapping):
        return None
    uri = ref.get("uri")
    if not isinstance(uri, str) or not uri:
        return None
    title = ref.get("title")
    return GroundingSource(title=title if isinstance(title, str) else None, uri=uri)


def extract_text(raw: Mapping[str, Any]) -> str:
    """
    Return the report text of *raw*.

    Raises ``EmptyReportError`` when the text is missing, not a string, or
    blank.
    """
    text = raw.get("text") if "text" in raw else _candidate_text(_first_candidate(raw))
    if not isinstance(text, str) or not text.strip():
        raise EmptyReportError()
    return text


def extract_sources(raw: Mapping[str, Any]) -> list[GroundingSource]:
    """Return the web citations of *raw* in reply order (possibly empty)."""
    if "sources" in raw and raw["sources"] is not None:
        entries = raw["sources"]
    else:
        entries = None
        candidate = _first_candidate(raw)
        if candidate is not None:
            metadata = candidate.get("groundingMetadata")
            if isinstance(metadata, Mapping):
                entries = metadata.get("groundingChunks")

    if not isinstance(entries, list):
        return []

    sources = [s for s in (_as_source(e) for e in entries) if s is not None]
    dropped = len(entries) - len(sources)
    if dropped:
        logger.debug("Dropped %d citation(s) without a web reference", dropped)
    return sources


def interpret_response(raw: Any) -> AuditResult:
    """
    Validate a provider reply.

    Parameters
    ----------
    raw : The decoded JSON reply.

    Returns
    -------
    AuditResult : Verbatim report text plus the filtered citations.

    Raises
    ------
    BoundaryError    : The reply is not a JSON object, or is an error payload.
    EmptyReportError : The reply has no usable report text.
    """
    if not isinstance(raw, Mapping):
        raise BoundaryError(
            f"Malformed response from analysis provider (expected an object, "
            f"got {type(raw).__name__})."
        )

    if raw.get("error") is not None:
        error = raw["error"]
        if isinstance(error, Mapping):
            error = error.get("message") or error
        raise BoundaryError(str(error))

    return AuditResult(text=extract_text(raw), sources=extract_sources(raw))
