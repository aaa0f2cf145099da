"""
cirrus/orchestrator.py
-----------------------------------------------------------------------------
Lifecycle of one analysis job.

``AuditOrchestrator.submit()`` is the whole job:

1. Guard: no-op when the collection is empty or a job is already in flight.
2. Take a snapshot of the collection and a relevance token from the session
   (this also clears the previous report, sources and error and raises the
   in-flight flag).  Steps 1 and 2 run without yielding to the event loop,
   so two rapid submissions can never both pass the guard.
3. Build the payload from the snapshot and make exactly one provider call.
4. Validate the reply with ``cirrus.interpreter``.
5. Commit the report or the failure, but only if the token is still current.
   A job that resolves after ``reset()`` (or after a newer job started)
   leaves the session alone.

There is no retry and no timeout imposed here, and ``reset()`` does not
cancel an in-flight job.  Retrying is a fresh user-initiated submission.
If the task itself is cancelled, the job is committed as the failure
"Analysis cancelled." and the cancellation propagates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from cirrus import config as settings
from cirrus.errors import AuditError
from cirrus.file_loaders import load_system_instruction
from cirrus.interpreter import interpret_response
from cirrus.providers import AnalysisProvider
from cirrus.run_log import RunLog
from cirrus.schema import AuditConfig, CodeAsset, GroundingSource, SessionState
from cirrus.session import AuditSession

logger = logging.getLogger(__name__)


def build_audit_contents(assets: Iterable[CodeAsset]) -> str:
    """
    Concatenate assets into the single request payload.

    Each asset becomes ``FILE [<name>]:\\n<content>\\n---``; blocks are joined
    by a blank line, in collection order.
    """
    return "\n\n".join(f"FILE [{a.name}]:\n{a.content}\n---" for a in assets)


def default_audit_config() -> AuditConfig:
    """The fixed low-temperature, search-grounded job configuration."""
    return AuditConfig(
        model=settings.MODEL,
        temperature=settings.AUDIT_TEMPERATURE,
        system_instruction=load_system_instruction(),
        search_grounding=True,
    )


class AuditOrchestrator:
    """Runs analysis jobs for one session against one provider."""

    def __init__(
        self,
        session: AuditSession,
        provider: AnalysisProvider,
        config: AuditConfig | None = None,
        run_log: RunLog | None = None,
    ) -> None:
        self.session = session
        self.provider = provider
        self.config = config or default_audit_config()
        self.run_log = run_log
        self._tasks: set[asyncio.Task] = set()

    def can_submit(self) -> bool:
        return len(self.session.files) > 0 and not self.session.is_auditing

    async def submit(self) -> SessionState:
        """Run one job to completion and return the resulting session state."""
        session = self.session
        if not session.files:
            logger.debug("Submit ignored: collection is empty")
            return session.state()
        if session.is_auditing:
            logger.debug("Submit ignored: a job is already in flight")
            return session.state()

        snapshot = session.files.snapshot()
        token = session.begin_job()
        contents = build_audit_contents(snapshot)
        logger.info(
            "Audit job %d started: %d file(s), %d chars, provider=%s model=%s",
            token,
            len(snapshot),
            len(contents),
            self.provider.name,
            self.config.model,
        )

        report: str | None = None
        sources: list[GroundingSource] = []
        error: str | None = None
        try:
            raw = await self.provider.generate(contents, self.config)
            result = interpret_response(raw)
            report, sources = result.text, result.sources
        except AuditError as exc:
            error = exc.message
        except asyncio.CancelledError:
            # The in-flight flag must not outlive the task.
            if session.commit_failure(token, "Analysis cancelled."):
                logger.warning("Audit job %d cancelled", token)
            raise
        except Exception as exc:
            # Anything else a provider raises is still a failed job, not a
            # crash of the session.
            logger.exception("Unexpected error from analysis provider")
            error = f"Analysis failed: {type(exc).__name__}: {exc}"

        if error is None:
            committed = session.commit_report(token, report, sources)
            if committed:
                logger.info("Audit job %d finished with %d source(s)", token, len(sources))
        else:
            committed = session.commit_failure(token, error)
            if committed:
                logger.warning("Audit job %d failed: %s", token, error)

        if committed and self.run_log is not None:
            await asyncio.to_thread(
                self.run_log.append,
                self.run_log.build_entry(
                    provider=self.provider.name,
                    config=self.config,
                    assets=snapshot,
                    contents=contents,
                    report=report,
                    sources=sources,
                    error=error,
                )
            )
        return session.state()

    def start(self) -> asyncio.Task | None:
        """
        Schedule ``submit()`` on the running loop and return its task.

        Returns None when the submission would be a no-op.  Must be called
        from within a running event loop.
        """
        if not self.can_submit():
            return None
        task = asyncio.get_running_loop().create_task(self.submit())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def reset(self) -> SessionState:
        """Clear the session; any in-flight job's result will be ignored."""
        if self.session.is_auditing:
            logger.info(
                "Reset while job %d in flight; its result will be discarded",
                self.session.generation,
            )
        self.session.reset()
        return self.session.state()
