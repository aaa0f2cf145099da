"""Tests for cirrus/run_log.py and cirrus/hashing.py – the JSONL audit trail."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path

from cirrus.hashing import compute_contents_hash, compute_report_hash
from cirrus.run_log import RunLog
from cirrus.schema import AuditConfig, CodeAsset, GroundingSource

# ── hashing ──────────────────────────────────────────────────────────────────


class TestHashing:
    def test_contents_hash_is_exact(self) -> None:
        assert compute_contents_hash("a  b") == hashlib.sha256(b"a  b").hexdigest()
        assert compute_contents_hash("a  b") != compute_contents_hash("a b")

    def test_report_hash_ignores_spacing_noise(self) -> None:
        assert compute_report_hash("  # Title  here \n") == compute_report_hash("# Title here")

    def test_report_hash_keeps_structure(self) -> None:
        assert compute_report_hash("a\nb") != compute_report_hash("a b")
        assert compute_report_hash("Bold") != compute_report_hash("bold")

    def test_hex_format(self) -> None:
        digest = compute_report_hash("x")
        assert len(digest) == 64
        assert all(c in "0123456789abcdef" for c in digest)


# ── RunLog ───────────────────────────────────────────────────────────────────


class TestRunLog:
    def _entry(self, log: RunLog, *, report: str | None, error: str | None):
        return log.build_entry(
            provider="fake",
            config=AuditConfig(model="m", system_instruction="s"),
            assets=(CodeAsset(name="a.py", content="x"), CodeAsset(name="b.py", content="y")),
            contents="FILE [a.py]:\nx\n---",
            report=report,
            sources=[GroundingSource(uri="http://x")] if report else [],
            error=error,
        )

    def test_build_entry_success(self, tmp_path: Path) -> None:
        log = RunLog(tmp_path)
        entry = self._entry(log, report="REPORT", error=None)
        assert entry.file_count == 2
        assert entry.file_names == ["a.py", "b.py"]
        assert entry.report_hash == compute_report_hash("REPORT")
        assert entry.source_count == 1
        assert entry.temperature == 0.1
        assert entry.timestamp.endswith("+00:00")

    def test_build_entry_failure(self, tmp_path: Path) -> None:
        entry = self._entry(RunLog(tmp_path), report=None, error="boom")
        assert entry.report_hash is None
        assert entry.error == "boom"

    def test_append_creates_directory_and_lines(self, tmp_path: Path) -> None:
        log = RunLog(tmp_path / "nested" / "logs")
        assert log.append(self._entry(log, report="R", error=None)) is True
        assert log.append(self._entry(log, report=None, error="E")) is True

        lines = log.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["error"] == "E"

    def test_append_failure_is_reported_not_raised(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way", encoding="utf-8")
        log = RunLog(blocker)
        assert log.append(self._entry(log, report="R", error=None)) is False
