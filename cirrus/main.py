"""
cirrus/main.py
-----------------------------------------------------------------------------
FastAPI application entrypoint for the Cirrus code audit engine.

This module is a **thin routing layer**: each route handler hands the
request to a domain module and returns the session state.  All logic lives
in dedicated modules:

Domain modules
~~~~~~~~~~~~~~
- ``cirrus.schema``            – Pydantic v2 models.
- ``cirrus.archive_extractor`` – zip archive → source assets.
- ``cirrus.normalizer``        – the three ingestion paths, rename, remove.
- ``cirrus.session``           – the explicit session object.
- ``cirrus.orchestrator``      – job lifecycle and payload assembly.
- ``cirrus.interpreter``       – reply validation and citation filtering.
- ``cirrus.providers``         – Gemini / relay HTTP collaborators.
- ``cirrus.run_log``           – JSONL audit trail.

Run with:
    uvicorn cirrus.main:app --reload --host 127.0.0.1 --port 8243

Endpoints
---------
GET    /api/health              → status, version, provider name
GET    /api/session             → current session state
POST   /api/files/archive       → add the source files of a zip upload
POST   /api/files               → add individually uploaded files
POST   /api/files/paste         → add a pasted snippet
PATCH  /api/files/{index}       → rename an asset
DELETE /api/files/{index}       → remove an asset
POST   /api/audit               → run one analysis job, return final state
POST   /api/reset               → clear the session
GET    /api/system-instruction  → the fixed audit directive as plain text

Architecture notes
------------------
- One ``AuditSession`` per application instance: this is a single-user
  workspace, the same model as the browser tab it replaces.
- Every handler is ``async def`` so all session access happens on the event
  loop thread.  The only suspension points are upload reads, archive
  extraction and the provider call.
- Ingestion failures are data: they come back as 200 with ``error`` set.
  Only caller mistakes (bad index, oversized upload, invalid body) are HTTP
  errors.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from starlette.requests import Request

from cirrus import config as settings
from cirrus.normalizer import (
    ingest_archive,
    ingest_individual_files,
    ingest_pasted_snippet,
    remove_asset,
    rename_asset,
)
from cirrus.orchestrator import AuditOrchestrator
from cirrus.providers import AnalysisProvider, build_provider
from cirrus.run_log import RunLog
from cirrus.schema import HealthResponse, PasteRequest, RenameRequest, SessionState
from cirrus.session import AuditSession

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _orchestrator(request: Request) -> AuditOrchestrator:
    return request.app.state.orchestrator


def _session(request: Request) -> AuditSession:
    return request.app.state.orchestrator.session


def _check_upload_size(size: int) -> None:
    if size > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Upload size ({size:,} bytes) exceeds the "
                f"{settings.MAX_UPLOAD_SIZE:,}-byte limit."
            ),
        )


def _check_index(session: AuditSession, index: int) -> None:
    if not 0 <= index < len(session.files):
        raise HTTPException(status_code=404, detail=f"No file at index {index}.")


# -----------------------------------------------------------------------------
# Application factory
# -----------------------------------------------------------------------------


def create_app(
    provider: AnalysisProvider | None = None,
    run_log: RunLog | None = None,
) -> FastAPI:
    """
    Build the application with a fresh session.

    Parameters
    ----------
    provider : Analysis provider to use.  Defaults to the one selected by the
               environment (relay if ``CIRRUS_RELAY_URL`` is set, else Gemini).
    run_log  : Audit trail writer.  Defaults to ``<CIRRUS_LOG_DIR>/audit_log.jsonl``.
    """
    app = FastAPI(
        title="Cirrus Code Audit",
        description=(
            "Collects source files from archives, uploads and pasted snippets, "
            "submits them as one grounded analysis job and returns the report "
            "with its citations."
        ),
        version=settings.APP_VERSION,
    )
    app.state.orchestrator = AuditOrchestrator(
        AuditSession(),
        provider or build_provider(),
        run_log=run_log if run_log is not None else RunLog(settings.LOG_DIR),
    )

    @app.get("/api/health", response_model=HealthResponse, summary="Liveness check")
    async def health(request: Request) -> HealthResponse:
        return HealthResponse(
            version=settings.APP_VERSION,
            provider=_orchestrator(request).provider.name,
        )

    @app.get("/api/session", response_model=SessionState, summary="Current session state")
    async def get_session(request: Request) -> SessionState:
        """Polled by the frontend; ``is_auditing`` drives its progress display."""
        return _session(request).state()

    @app.post(
        "/api/files/archive",
        response_model=SessionState,
        summary="Add the source files contained in a zip archive",
    )
    async def upload_archive(request: Request, file: UploadFile) -> SessionState:
        """
        Extract every allowlisted, non-directory entry of the uploaded zip.

        A corrupt archive or one with no source files leaves the collection
        unchanged and sets ``error`` in the returned state.

        Raises
        ------
        HTTPException(413) : The upload exceeds ``CIRRUS_MAX_UPLOAD_SIZE``.
        """
        archive_bytes = await file.read()
        _check_upload_size(len(archive_bytes))
        session = _session(request)
        await ingest_archive(session, archive_bytes)
        return session.state()

    @app.post(
        "/api/files",
        response_model=SessionState,
        summary="Add individually selected source files",
    )
    async def upload_files(request: Request, files: list[UploadFile]) -> SessionState:
        """
        Add every uploaded file whose name matches the allowlist.

        If none match, the collection is unchanged and ``error`` is set.

        Raises
        ------
        HTTPException(413) : The combined upload exceeds ``CIRRUS_MAX_UPLOAD_SIZE``.
        """
        pairs: list[tuple[str, bytes]] = []
        total = 0
        for upload in files:
            data = await upload.read()
            total += len(data)
            _check_upload_size(total)
            pairs.append((upload.filename or "", data))
        session = _session(request)
        ingest_individual_files(session, pairs)
        return session.state()

    @app.post("/api/files/paste", response_model=SessionState, summary="Add a pasted snippet")
    async def paste_snippet(request: Request, req: PasteRequest) -> SessionState:
        session = _session(request)
        ingest_pasted_snippet(session, req.name, req.content)
        return session.state()

    @app.patch("/api/files/{index}", response_model=SessionState, summary="Rename a file")
    async def rename_file(request: Request, index: int, req: RenameRequest) -> SessionState:
        session = _session(request)
        _check_index(session, index)
        rename_asset(session, index, req.name)
        return session.state()

    @app.delete("/api/files/{index}", response_model=SessionState, summary="Remove a file")
    async def delete_file(request: Request, index: int) -> SessionState:
        session = _session(request)
        _check_index(session, index)
        remove_asset(session, index)
        return session.state()

    @app.post("/api/audit", response_model=SessionState, summary="Run one analysis job")
    async def run_audit(request: Request) -> SessionState:
        """
        Submit the current collection and wait for the job to resolve.

        Returns the state unchanged (no provider call) when the collection is
        empty or a job is already in flight.  Provider failures come back as
        ``error`` in the state, never as an HTTP error.
        """
        return await _orchestrator(request).submit()

    @app.post("/api/reset", response_model=SessionState, summary="Clear the session")
    async def reset(request: Request) -> SessionState:
        return _orchestrator(request).reset()

    @app.get(
        "/api/system-instruction",
        response_class=PlainTextResponse,
        summary="The fixed audit system instruction",
    )
    async def get_system_instruction(request: Request) -> str:
        return _orchestrator(request).config.system_instruction

    return app


app = create_app()
