"""
cirrus/archive_extractor.py
-----------------------------------------------------------------------------
Turn an uploaded zip archive into a list of ``CodeAsset`` objects.

Rules
-----
1. Directory entries are skipped.
2. Only entries whose path matches the source-file allowlist are kept
   (see ``cirrus.allowlist``).  The asset name is the full entry path.
3. Every kept entry is decoded as UTF-8.  Undecodable bytes are replaced
   with U+FFFD so asset content is always text.
4. Entries are read and decoded independently in worker threads and
   gathered as one unit; the result preserves archive order.

Failure is all-or-nothing: a corrupt container, an encrypted entry or an
archive whose source entries expand past ``MAX_EXTRACTED_SIZE`` raises
``ArchiveParseError``, and an archive with no qualifying entries raises
``NoValidAssetsError``.  Nothing is returned in any of these cases, so the
caller's collection stays as it was.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
import zlib

from cirrus import config as settings
from cirrus.allowlist import is_allowed
from cirrus.errors import ArchiveParseError, NoValidAssetsError
from cirrus.schema import CodeAsset

logger = logging.getLogger(__name__)

# General-purpose flag bit 0: the entry is encrypted.
_FLAG_ENCRYPTED = 0x1


def _read_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo) -> CodeAsset:
    """Read one archive member and decode it as text."""
    raw = zf.read(info)
    return CodeAsset(name=info.filename, content=raw.decode("utf-8", errors="replace"))


def select_entries(zf: zipfile.ZipFile) -> list[zipfile.ZipInfo]:
    """Return the archive members that qualify as source files, in order."""
    return [info for info in zf.infolist() if not info.is_dir() and is_allowed(info.filename)]


def check_entries(entries: list[zipfile.ZipInfo], max_size: int) -> None:
    """
    Reject selected entries that cannot be read safely.

    The declared uncompressed sizes are summed before anything is inflated;
    ``zipfile`` never yields more than the declared size for an entry.

    Raises
    ------
    ArchiveParseError : An entry is encrypted, or the entries together
                        expand past *max_size* bytes.
    """
    for info in entries:
        if info.flag_bits & _FLAG_ENCRYPTED:
            raise ArchiveParseError(f"Archive entry is encrypted: {info.filename}")
    total = sum(info.file_size for info in entries)
    if total > max_size:
        raise ArchiveParseError(
            f"Archive expands to {total:,} bytes, over the {max_size:,}-byte limit."
        )


async def extract_archive(archive_bytes: bytes, max_size: int | None = None) -> list[CodeAsset]:
    """
    Decode *archive_bytes* into source assets.

    Parameters
    ----------
    archive_bytes : Raw bytes of the uploaded zip file.
    max_size      : Cap on the summed uncompressed size of the qualifying
                    entries.  Defaults to ``CIRRUS_MAX_EXTRACTED_SIZE``.

    Returns
    -------
    list[CodeAsset] : One asset per qualifying entry, in archive order.
                      Never empty.

    Raises
    ------
    ArchiveParseError  : The bytes are not a zip archive, a member is
                         encrypted or corrupt (bad CRC, unsupported
                         compression), or the entries are too large.
    NoValidAssetsError : No member matched the allowlist.
    """
    limit = settings.MAX_EXTRACTED_SIZE if max_size is None else max_size
    buffer = io.BytesIO(archive_bytes)
    if not zipfile.is_zipfile(buffer):
        raise ArchiveParseError("Uploaded file is not a valid zip archive.")

    try:
        with zipfile.ZipFile(buffer, mode="r") as zf:
            entries = select_entries(zf)
            if not entries:
                raise NoValidAssetsError()
            check_entries(entries, limit)
            assets = await asyncio.gather(
                *(asyncio.to_thread(_read_entry, zf, info) for info in entries)
            )
    except (zipfile.BadZipFile, zlib.error, NotImplementedError, EOFError) as exc:
        raise ArchiveParseError(f"ZIP parsing failed: {exc}") from exc

    logger.info("Extracted %d source file(s) from archive", len(assets))
    return list(assets)
