"""
cirrus/allowlist.py
-----------------------------------------------------------------------------
Source-file allowlist shared by the archive extractor and the file
normalizer.

Matching is done on the final extension of the full path, case-insensitive.
Manual (pasted) entries bypass the allowlist entirely.
"""

from __future__ import annotations

import re

ALLOWED_EXTENSIONS: tuple[str, ...] = (
    "js",
    "ts",
    "jsx",
    "tsx",
    "json",
    "css",
    "html",
    "md",
    "py",
    "go",
    "rs",
    "c",
    "cpp",
    "cs",
    "java",
    "rb",
    "php",
    "sh",
)

_ALLOWED_RE = re.compile(
    r"\.(" + "|".join(ALLOWED_EXTENSIONS) + r")$",
    re.IGNORECASE,
)


def is_allowed(path: str) -> bool:
    """Return True when *path* ends in one of the allowlisted extensions."""
    return _ALLOWED_RE.search(path) is not None
