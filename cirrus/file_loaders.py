"""
cirrus/file_loaders.py
-----------------------------------------------------------------------------
Load the fixed system instruction that accompanies every audit job.

The instruction lives in ``cirrus/prompts/audit_system_instruction.txt`` and
is resolved relative to this file, so it loads regardless of the working
directory uvicorn is started from.  It is read once per process.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

_HERE = Path(__file__).parent
PROMPTS_DIR = _HERE / "prompts"
SYSTEM_INSTRUCTION_FILE = "audit_system_instruction.txt"


@lru_cache(maxsize=1)
def load_system_instruction() -> str:
    """
    Read the audit system instruction from disk.

    Returns
    -------
    str : The instruction text, stripped of surrounding whitespace.

    Raises
    ------
    RuntimeError
        If the file is missing (indicates a broken deployment).
    """
    path = PROMPTS_DIR / SYSTEM_INSTRUCTION_FILE
    if not path.exists():
        raise RuntimeError(f"Audit system instruction not found at {path}")
    return path.read_text(encoding="utf-8").strip()
