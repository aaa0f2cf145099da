"""Shared fixtures for the Cirrus test suite."""

from __future__ import annotations

import asyncio
import io
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from cirrus.main import create_app
from cirrus.orchestrator import AuditOrchestrator
from cirrus.run_log import RunLog
from cirrus.schema import AuditConfig
from cirrus.session import AuditSession


class FakeProvider:
    """Records every call and answers with a canned reply or exception."""

    name = "fake"

    def __init__(self, reply: Any = None, exc: BaseException | None = None) -> None:
        self.reply = reply if reply is not None else {"text": "REPORT", "sources": []}
        self.exc = exc
        self.calls: list[tuple[str, AuditConfig]] = []

    async def generate(self, contents: str, config: AuditConfig) -> Any:
        self.calls.append((contents, config))
        if self.exc is not None:
            raise self.exc
        return self.reply


class GatedProvider(FakeProvider):
    """Like FakeProvider, but holds every call until ``release`` is set."""

    def __init__(self, reply: Any = None, exc: BaseException | None = None) -> None:
        super().__init__(reply, exc)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, contents: str, config: AuditConfig) -> Any:
        self.calls.append((contents, config))
        self.entered.set()
        await self.release.wait()
        if self.exc is not None:
            raise self.exc
        return self.reply


@pytest.fixture()
def audit_config() -> AuditConfig:
    return AuditConfig(model="test-model", system_instruction="Audit the code.")


@pytest.fixture()
def session() -> AuditSession:
    return AuditSession()


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def run_log(tmp_path: Path) -> RunLog:
    return RunLog(tmp_path / "logs")


@pytest.fixture()
def orchestrator(
    session: AuditSession, provider: FakeProvider, audit_config: AuditConfig, run_log: RunLog
) -> AuditOrchestrator:
    return AuditOrchestrator(session, provider, audit_config, run_log=run_log)


@pytest.fixture()
def client(provider: FakeProvider, run_log: RunLog) -> TestClient:
    """FastAPI test client wired to a fresh session and the fake provider."""
    return TestClient(create_app(provider=provider, run_log=run_log))


@pytest.fixture()
def make_zip() -> Callable[[dict[str, str | bytes | None]], bytes]:
    """
    Build a zip archive in memory.

    Keys are entry paths; a value of ``None`` adds a directory entry, any
    other value is written as the entry body.
    """

    def _make(entries: dict[str, str | bytes | None]) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, body in entries.items():
                if body is None:
                    zf.writestr(zipfile.ZipInfo(name.rstrip("/") + "/"), b"")
                else:
                    zf.writestr(name, body)
        return buf.getvalue()

    return _make


@pytest.fixture()
def patch_zip_headers() -> Callable[..., bytes]:
    """
    Rewrite header fields of every entry in a zip built by ``make_zip``.

    ``flag_bits`` is OR-ed into the general-purpose flags and
    ``compress_type`` replaces the compression method, in both the local
    and the central directory headers.  ``zipfile`` cannot write these
    archives itself.
    """

    def _patch(data: bytes, *, flag_bits: int = 0, compress_type: int | None = None) -> bytes:
        buf = bytearray(data)
        # (signature, flags offset, method offset) for local and central headers
        for sig, flag_off, method_off in ((b"PK\x03\x04", 6, 8), (b"PK\x01\x02", 8, 10)):
            pos = buf.find(sig)
            while pos != -1:
                flags = int.from_bytes(buf[pos + flag_off : pos + flag_off + 2], "little")
                buf[pos + flag_off : pos + flag_off + 2] = (flags | flag_bits).to_bytes(2, "little")
                if compress_type is not None:
                    buf[pos + method_off : pos + method_off + 2] = compress_type.to_bytes(
                        2, "little"
                    )
                pos = buf.find(sig, pos + 4)
        return bytes(buf)

    return _patch


@pytest.fixture()
def gated_provider() -> GatedProvider:
    return GatedProvider()


@pytest.fixture()
def gated_orchestrator(
    session: AuditSession, gated_provider: GatedProvider, audit_config: AuditConfig, run_log: RunLog
) -> AuditOrchestrator:
    return AuditOrchestrator(session, gated_provider, audit_config, run_log=run_log)
