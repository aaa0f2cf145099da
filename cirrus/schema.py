"""
cirrus/schema.py
-----------------------------------------------------------------------------
Pydantic v2 models for the Cirrus audit engine and its HTTP API.

Design principles
-----------------
• Keep models thin – no business logic here.
• Every field has a docstring-style `description` so FastAPI's auto-generated
  OpenAPI UI is immediately useful.
• Assets are frozen: a rename replaces the asset rather than mutating it, so
  a snapshot handed to an in-flight job can never change underneath it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

# -----------------------------------------------------------------------------
# Ingested assets
# -----------------------------------------------------------------------------


class CodeAsset(BaseModel):
    """
    One ingested unit of source text.

    ``content`` is always decoded text.  ``name`` is a display identifier
    (an archive path, an uploaded filename, or a snippet label); it is never
    empty but is not guaranteed to be unique within a collection.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        description="Display identifier for the asset (e.g. 'src/app.py').",
        examples=["src/app.py", "Snippet-1"],
    )
    content: str = Field(
        ...,
        description="Decoded source text.",
    )


# -----------------------------------------------------------------------------
# Analysis results
# -----------------------------------------------------------------------------


class GroundingSource(BaseModel):
    """
    A single citation returned alongside a report.

    The URI is mandatory; the title is optional and the presentation layer
    supplies its own fallback label when it is missing.
    """

    title: str | None = Field(
        default=None,
        description="Human-readable title of the cited page, if reported.",
    )
    uri: str = Field(
        ...,
        description="Web address of the cited page.",
        examples=["https://docs.python.org/3/library/asyncio.html"],
    )


class AuditResult(BaseModel):
    """Validated output of one successful analysis job."""

    text: str = Field(..., min_length=1, description="The Markdown report, verbatim.")
    sources: list[GroundingSource] = Field(
        default_factory=list,
        description="Web citations that grounded the report, in reply order.",
    )


class AuditConfig(BaseModel):
    """
    Fixed generation settings sent with every job.

    Temperature is kept low so repeated audits of the same collection stay
    close to each other; search grounding is what produces the citations.
    """

    model: str = Field(
        ...,
        description="Provider model identifier.",
        examples=["gemini-3-flash-preview"],
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature.",
    )
    system_instruction: str = Field(
        ...,
        description="System directive given to the analysis model.",
    )
    search_grounding: bool = Field(
        default=True,
        description="Whether the provider should ground the report with web search.",
    )


# -----------------------------------------------------------------------------
# Session view
# -----------------------------------------------------------------------------


class SessionState(BaseModel):
    """
    Serialisable view of an audit session.

    Job outcomes set exactly one of ``report`` and ``error``.  ``is_auditing``
    is true only while a job is in flight; the presentation layer polls it to
    drive its progress display.
    """

    files: list[CodeAsset] = Field(
        default_factory=list,
        description="The ordered file collection.",
    )
    is_auditing: bool = Field(
        default=False,
        description="True while an analysis job is in flight.",
    )
    report: str | None = Field(
        default=None,
        description="The last completed report, if any.",
    )
    sources: list[GroundingSource] = Field(
        default_factory=list,
        description="Citations for the last completed report.",
    )
    error: str | None = Field(
        default=None,
        description="Message describing the last failure, if any.",
    )


# -----------------------------------------------------------------------------
# HTTP request bodies
# -----------------------------------------------------------------------------


class PasteRequest(BaseModel):
    """
    Request body for POST /api/files/paste.

    An empty name is allowed; the server assigns ``Snippet-N``.  Content is
    not validated here because whitespace-only content is a silent no-op
    rather than an error.
    """

    name: str = Field(
        default="",
        description="Optional label for the snippet.",
        examples=["handlers.py", ""],
    )
    content: str = Field(
        ...,
        description="The pasted source text.",
    )


class RenameRequest(BaseModel):
    """Request body for PATCH /api/files/{index}."""

    name: str = Field(
        ...,
        description="New display name for the asset.",
        examples=["api/routes.ts"],
    )

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Ensure the new name is not a blank string."""
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty or whitespace")
        return v


class HealthResponse(BaseModel):
    """Response body for GET /api/health."""

    status: str = Field(default="ok", description="Always 'ok' when the app is serving.")
    version: str = Field(..., description="Application version from pyproject.toml.")
    provider: str = Field(..., description="Name of the configured analysis provider.")


# -----------------------------------------------------------------------------
# Run log
# -----------------------------------------------------------------------------


class AuditLogEntry(BaseModel):
    """
    One line of ``audit_log.jsonl``, written after each resolved job.

    Enough to tell which collection was audited with which settings and what
    came back, without storing the source text itself.
    """

    timestamp: str = Field(..., description="ISO-8601 UTC time the job resolved.")
    provider: str = Field(..., description="Name of the analysis provider used.")
    model: str = Field(..., description="Provider model identifier.")
    temperature: float = Field(..., description="Sampling temperature used.")
    file_count: int = Field(..., ge=0, description="Number of assets in the submitted snapshot.")
    file_names: list[str] = Field(..., description="Asset names in submission order.")
    contents_hash: str = Field(..., description="SHA-256 hex digest of the request payload.")
    report_hash: str | None = Field(
        default=None,
        description="SHA-256 hex digest of the normalised report.  None when the job failed.",
    )
    source_count: int = Field(default=0, ge=0, description="Number of citations kept.")
    error: str | None = Field(default=None, description="Failure message, if the job failed.")
