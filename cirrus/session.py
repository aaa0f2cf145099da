"""
cirrus/session.py
-----------------------------------------------------------------------------
The explicit, owned audit session.

One ``AuditSession`` holds everything the presentation layer reads: the file
collection, the in-flight flag, the last report and its sources, and a
single error slot.  Nothing here is global; every function that needs the
session receives it as an argument.

Relevance token
---------------
``begin_job()`` bumps a generation counter and hands the new value to the
job.  ``commit_report()`` and ``commit_failure()`` only apply when the
token they carry is still the current generation.  ``reset()`` also bumps
the counter, so a job that resolves after a reset is silently discarded
instead of resurrecting stale state.
"""

from __future__ import annotations

import logging

from cirrus.collection import FileCollection
from cirrus.schema import GroundingSource, SessionState

logger = logging.getLogger(__name__)


class AuditSession:
    """State of one user's audit workspace."""

    def __init__(self) -> None:
        self.files = FileCollection()
        self.is_auditing: bool = False
        self.report: str | None = None
        self.sources: list[GroundingSource] = []
        self.error: str | None = None
        self._generation: int = 0

    # -- Views ------------------------------------------------------------

    def state(self) -> SessionState:
        """Return a serialisable copy of the session."""
        return SessionState(
            files=list(self.files.snapshot()),
            is_auditing=self.is_auditing,
            report=self.report,
            sources=list(self.sources),
            error=self.error,
        )

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, token: int) -> bool:
        """True when *token* belongs to the latest job or reset."""
        return token == self._generation

    # -- Error slot -------------------------------------------------------

    def clear_error(self) -> None:
        self.error = None

    def record_error(self, message: str) -> None:
        """Store *message* in the error slot without touching anything else."""
        self.error = message

    # -- Job lifecycle ----------------------------------------------------

    def begin_job(self) -> int:
        """
        Mark a job as in flight and return its relevance token.

        Clears the previous report, sources and error.  Callers must check
        ``is_auditing`` first; this method does not guard against overlap.
        """
        self._generation += 1
        self.report = None
        self.sources = []
        self.error = None
        self.is_auditing = True
        return self._generation

    def commit_report(self, token: int, report: str, sources: list[GroundingSource]) -> bool:
        """Store a successful result if *token* is still current."""
        if not self.is_current(token):
            logger.info("Discarding report from stale job (token %d)", token)
            return False
        self.report = report
        self.sources = list(sources)
        self.error = None
        self.is_auditing = False
        return True

    def commit_failure(self, token: int, message: str) -> bool:
        """Store a job failure if *token* is still current."""
        if not self.is_current(token):
            logger.info("Discarding failure from stale job (token %d): %s", token, message)
            return False
        self.report = None
        self.sources = []
        self.error = message
        self.is_auditing = False
        return True

    def reset(self) -> None:
        """Return the session to its initial empty state."""
        self._generation += 1
        self.files.clear()
        self.report = None
        self.sources = []
        self.error = None
        self.is_auditing = False
