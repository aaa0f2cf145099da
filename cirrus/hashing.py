"""
cirrus/hashing.py
─────────────────────────────────────────────────────────────────────────────
Hashing utilities for the audit run log.

Hash types
──────────
1. ``compute_contents_hash`` – SHA-256 of the exact request payload.
2. ``compute_report_hash``   – SHA-256 of the whitespace-normalised report.

Both return lowercase 64-character hex digest strings.

Normalisation philosophy
────────────────────────
The request payload is hashed byte-for-byte: it is built deterministically
from the collection, so any difference is a real difference in what the
provider saw.  Report text is normalised first so that two reports that
differ only in stray spacing hash the same:

- **Case is never changed.**
- **Line and sentence order are preserved.**
- **Only noise is removed**: edge whitespace and runs of spaces.
"""

from __future__ import annotations

import hashlib
import re


def _normalise_report(text: str) -> str:
    """
    Normalise report text for hashing.

    1. Strip leading and trailing whitespace.
    2. Collapse runs of two or more ASCII spaces into one.  Newlines and tabs
       are left alone so Markdown structure (tables, code blocks) survives.
    """
    return re.sub(r" {2,}", " ", text.strip())


def compute_contents_hash(contents: str) -> str:
    """SHA-256 hex digest of the request payload, unnormalised."""
    return hashlib.sha256(contents.encode("utf-8")).hexdigest()


def compute_report_hash(report: str) -> str:
    """
    SHA-256 hex digest of a normalised report.

    Parameters
    ──────────
    report : The raw report text returned by the provider.

    Returns
    ───────
    str : 64-character lowercase hex SHA-256 digest.
    """
    return hashlib.sha256(_normalise_report(report).encode("utf-8")).hexdigest()
