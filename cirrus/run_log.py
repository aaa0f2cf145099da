"""
cirrus/run_log.py
-----------------------------------------------------------------------------
Append-only JSONL audit trail of resolved jobs.

Each line in ``<log_dir>/audit_log.jsonl`` is one ``AuditLogEntry``
serialised as compact JSON, readable with jq or pandas.  The log is
best-effort: a write failure is logged as a warning and never turns a
finished job into a failed one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from cirrus.hashing import compute_contents_hash, compute_report_hash
from cirrus.schema import AuditConfig, AuditLogEntry, CodeAsset, GroundingSource

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "audit_log.jsonl"


class RunLog:
    """Writes one ``AuditLogEntry`` per resolved job to a JSONL file."""

    def __init__(self, log_dir: Path) -> None:
        self.path = Path(log_dir) / LOG_FILE_NAME

    def build_entry(
        self,
        *,
        provider: str,
        config: AuditConfig,
        assets: tuple[CodeAsset, ...],
        contents: str,
        report: str | None,
        sources: list[GroundingSource],
        error: str | None,
    ) -> AuditLogEntry:
        return AuditLogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            provider=provider,
            model=config.model,
            temperature=config.temperature,
            file_count=len(assets),
            file_names=[a.name for a in assets],
            contents_hash=compute_contents_hash(contents),
            report_hash=compute_report_hash(report) if report is not None else None,
            source_count=len(sources),
            error=error,
        )

    def append(self, entry: AuditLogEntry) -> bool:
        """Append *entry* as one line; return False if the write failed."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(entry.model_dump_json() + "\n")
        except OSError as exc:
            logger.warning("Could not write audit log %s: %s", self.path, exc)
            return False
        return True
