"""
cirrus/config.py
-----------------------------------------------------------------------------
Process-wide settings, read once at import time.

A ``.env`` file in the working directory is loaded first (no-op if absent),
so local development needs no exported variables.

Environment variables
---------------------
GOOGLE_AI_API_KEY      – Credential for the Gemini API.  Never logged.
CIRRUS_MODEL           – Model identifier (default: gemini-3-flash-preview).
GEMINI_API_BASE        – Gemini REST base URL.
CIRRUS_RELAY_URL       – If set, jobs go to this relay endpoint instead of
                         calling Gemini directly.
CIRRUS_MAX_UPLOAD_SIZE – Upload cap in bytes per request (default 25 MB).
CIRRUS_MAX_EXTRACTED_SIZE – Cap on the uncompressed size of the source
                         entries in one archive (default 100 MB).
CIRRUS_LOG_DIR         – Directory for audit_log.jsonl (default: ./logs).
CIRRUS_LOG_LEVEL       – Root log level (default: INFO).

Temperature and search grounding are fixed; they are not read from the environment.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_HERE = Path(__file__).parent

GOOGLE_AI_API_KEY: str | None = os.getenv("GOOGLE_AI_API_KEY") or None
MODEL: str = os.getenv("CIRRUS_MODEL", "gemini-3-flash-preview")
GEMINI_API_BASE: str = os.getenv(
    "GEMINI_API_BASE", "https://generativelanguage.googleapis.com"
).rstrip("/")
RELAY_URL: str | None = os.getenv("CIRRUS_RELAY_URL") or None

MAX_UPLOAD_SIZE: int = int(os.getenv("CIRRUS_MAX_UPLOAD_SIZE", str(25 * 1024 * 1024)))
MAX_EXTRACTED_SIZE: int = int(
    os.getenv("CIRRUS_MAX_EXTRACTED_SIZE", str(100 * 1024 * 1024))
)

LOG_DIR: Path = Path(os.getenv("CIRRUS_LOG_DIR", str(_HERE.parent / "logs")))
LOG_LEVEL: str = os.getenv("CIRRUS_LOG_LEVEL", "INFO").upper()

AUDIT_TEMPERATURE: float = 0.1

# Read version from pyproject.toml (single source of truth).  Falls back to
# "0.0.0" when running from an installed wheel without the source tree.
_PYPROJECT = _HERE.parent / "pyproject.toml"
if _PYPROJECT.exists():
    with open(_PYPROJECT, "rb") as _f:
        APP_VERSION: str = tomllib.load(_f)["project"]["version"]
else:
    APP_VERSION = "0.0.0"
