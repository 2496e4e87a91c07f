"""Phase orchestrator: runs an ordered chain of dependent phases with one retry each."""

import logging
import time

from agents.executor import PhaseExecutor
from config.defaults import DEFAULTS
from config.phases import default_phases
from core.errors import (
    DependencyViolationError,
    FatalPipelineError,
    PipelineCancelled,
    PipelineError,
)
from core.metrics import summarize
from core.state import PhaseResult, PipelineSession, SessionOutcome
from utils.llm import AnthropicCollaborator

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the phases of a session strictly in order: check deps → execute → retry once → record.

    Phase i+1 is never started until the result of phase i is final. Each
    finished artifact is handed to the sink once, when the session ends.
    """

    def __init__(self, executor, sink=None, config=None, on_progress=None, sleep=time.sleep):
        self.executor = executor
        self.sink = sink
        self.config = {**DEFAULTS, **(config or {})}
        self.on_progress = on_progress
        self.sleep = sleep

    def run(self, session: PipelineSession, cancel_event=None) -> SessionOutcome:
        session.start()
        logger.info("Session %s started with %d phase(s)", session.session_id, len(session.phases))

        try:
            for phase in session.phases:
                if cancel_event is not None and cancel_event.is_set():
                    raise PipelineCancelled(
                        f"Session cancelled before phase {phase.index}", phase_name=phase.name,
                    )
                self._check_dependencies(phase, session)
                session.advance_to(phase.index)
                result = self._run_phase(phase, session, cancel_event)
                session.append_result(result)
        except PipelineError as e:
            session.fail(e, summarize(session.results))
            logger.error("Session %s failed: %s", session.session_id, e)
            self._flush(session)
            raise

        session.complete(summarize(session.results))
        self._flush(session)
        logger.info(
            "Session %s completed: %d file(s), %d line(s), %d test(s)",
            session.session_id, session.metrics.files, session.metrics.lines, session.metrics.tests,
        )
        return outcome_for(session)

    def _check_dependencies(self, phase, session):
        completed = session.completed_phase_names()
        missing = [dep for dep in phase.dependencies if dep not in completed]
        if missing:
            raise DependencyViolationError(phase.name, missing)

    def _run_phase(self, phase, session, cancel_event):
        attempts = 1 + max(0, int(self.config["phase_retry_attempts"]))
        error = None

        for attempt in range(attempts):
            if attempt:
                backoff = self.config["retry_backoff_seconds"]
                if backoff:
                    self.sleep(backoff)
                self._notify(phase.name, "retrying", str(error))
            else:
                self._notify(phase.name, "running", phase.description)

            try:
                result = self.executor.execute(
                    phase, session, retry_error=error, cancel_event=cancel_event,
                )
            except PipelineCancelled:
                raise
            except Exception as e:
                error = e
                logger.warning(
                    "Phase %d '%s' attempt %d/%d failed: %s",
                    phase.index, phase.name, attempt + 1, attempts, e,
                )
                continue

            self._notify(phase.name, "completed", f"{len(result.artifacts)} artifact(s)")
            return result

        failed = PhaseResult(phase_name=phase.name, phase_index=phase.index)
        failed.start()
        failed.fail(error)
        session.append_result(failed)
        self._notify(phase.name, "failed", str(error))
        raise FatalPipelineError(phase.name, phase.index, session.results, cause=error)

    def _notify(self, phase_name, status, message=""):
        if self.on_progress is None:
            return
        try:
            self.on_progress(phase_name, status, message)
        except Exception:
            logger.exception("Progress callback failed for phase '%s'", phase_name)

    def _flush(self, session):
        if self.sink is None:
            return
        for path in sorted(session.artifacts):
            self.sink.write(path, session.artifacts[path])


def outcome_for(session, failed_phase=None):
    return SessionOutcome(
        session_id=session.session_id,
        status=session.status,
        results=list(session.results),
        metrics=session.metrics or summarize(session.results),
        error=session.error,
        failed_phase=failed_phase,
        artifacts=dict(session.artifacts),
    )


def run_pipeline(phase_definitions=None, initial_context=None, collaborator=None, sink=None,
                 config=None, on_progress=None, cancel_event=None, executor=None):
    """Build a session and run it. Phase-level failures come back as a failed SessionOutcome."""
    phases = default_phases() if phase_definitions is None else phase_definitions
    session = PipelineSession(phases=phases, context=dict(initial_context or {}))

    if executor is None:
        executor = PhaseExecutor(collaborator or AnthropicCollaborator(), config=config)
    orchestrator = Orchestrator(executor, sink=sink, config=config, on_progress=on_progress)

    try:
        return orchestrator.run(session, cancel_event=cancel_event)
    except FatalPipelineError as e:
        return outcome_for(session, failed_phase=e.phase_index)
    except PipelineError:
        return outcome_for(session, failed_phase=session.current_phase_index or None)
