"""
cirrus/errors.py
-----------------------------------------------------------------------------
Exception taxonomy for the audit engine.

Ingestion errors (archive, file selection) and job errors (boundary call,
reply validation) all derive from ``AuditError`` so callers that turn
failures into session data can catch a single type.  Every error carries a
human-readable message suitable for showing to the user as-is.
"""

from __future__ import annotations


class AuditError(Exception):
    """Base class for every recoverable failure in the engine."""

    default_message = "Analysis failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# -- Ingestion ----------------------------------------------------------------


class ArchiveParseError(AuditError):
    """The uploaded bytes are not a readable zip archive."""

    default_message = "ZIP parsing failed."


class NoValidAssetsError(AuditError):
    """An archive contained no entries matching the source-file allowlist."""

    default_message = "No valid code files detected."


class NoSupportedFilesError(AuditError):
    """None of the individually selected files matched the allowlist."""

    default_message = "No supported files selected."


# -- Job ------------------------------------------------------------------------


class EmptyReportError(AuditError):
    """The provider answered successfully but without usable report text."""

    default_message = "Audit generation failed: the provider returned an empty report."


class BoundaryError(AuditError):
    """
    Transport, authentication, quota or protocol failure reported by the
    analysis provider.  ``status_code`` is set when the failure came from an
    HTTP response.
    """

    default_message = "Analysis provider request failed."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
