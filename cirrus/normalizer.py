"""
cirrus/normalizer.py
-----------------------------------------------------------------------------
Feed the three ingestion paths into one canonical file collection.

Entry points
------------
ingest_archive(session, archive_bytes)   – zip upload (allowlist-filtered)
ingest_individual_files(session, files)  – selected files (allowlist-filtered)
ingest_pasted_snippet(session, name, content) – manual entry (trusted)
rename_asset(session, index, new_name)
remove_asset(session, index)

Ingestion failures are reported as data: the message goes into the session's
error slot, the failure is logged, and the collection is left exactly as it
was.  Each ingestion entry point returns the assets it added, which is an
empty list on a no-op or a failure.

Rename and remove expect a valid index.  Validating it is the caller's job
(the HTTP layer answers 404); an out-of-range index raises ``IndexError``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cirrus.allowlist import is_allowed
from cirrus.archive_extractor import extract_archive
from cirrus.errors import AuditError, NoSupportedFilesError
from cirrus.schema import CodeAsset
from cirrus.session import AuditSession

logger = logging.getLogger(__name__)


def _decode(content: bytes | str) -> str:
    if isinstance(content, str):
        return content
    return content.decode("utf-8", errors="replace")


async def ingest_archive(session: AuditSession, archive_bytes: bytes) -> list[CodeAsset]:
    """Extract a zip archive and append its source files to the collection."""
    session.clear_error()
    try:
        assets = await extract_archive(archive_bytes)
    except AuditError as exc:
        logger.warning("Archive rejected: %s", exc.message)
        session.record_error(exc.message)
        return []
    session.files.extend(assets)
    return assets


def collect_supported_files(files: Iterable[tuple[str, bytes | str]]) -> list[CodeAsset]:
    """
    Decode the allowlisted members of *files*.

    Raises ``NoSupportedFilesError`` when nothing qualifies.
    """
    assets = [
        CodeAsset(name=name, content=_decode(content))
        for name, content in files
        if name and is_allowed(name)
    ]
    if not assets:
        raise NoSupportedFilesError()
    return assets


def ingest_individual_files(
    session: AuditSession,
    files: Iterable[tuple[str, bytes | str]],
) -> list[CodeAsset]:
    """Append every allowlisted ``(name, content)`` pair to the collection."""
    session.clear_error()
    try:
        assets = collect_supported_files(files)
    except AuditError as exc:
        logger.warning("File selection rejected: %s", exc.message)
        session.record_error(exc.message)
        return []
    session.files.extend(assets)
    logger.info("Added %d selected file(s)", len(assets))
    return assets


def ingest_pasted_snippet(session: AuditSession, name: str, content: str) -> list[CodeAsset]:
    """
    Append a manually entered snippet.

    Whitespace-only content is ignored.  An empty name becomes
    ``Snippet-N`` where N is the collection size after insertion.
    """
    if not content.strip():
        return []
    asset = CodeAsset(name=name or f"Snippet-{len(session.files) + 1}", content=content)
    session.files.append(asset)
    return [asset]


def rename_asset(session: AuditSession, index: int, new_name: str) -> CodeAsset:
    """Give the asset at *index* a new name; its content is unchanged."""
    return session.files.rename(index, new_name)


def remove_asset(session: AuditSession, index: int) -> CodeAsset:
    """Delete the asset at *index*."""
    return session.files.remove(index)
