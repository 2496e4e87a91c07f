"""Pipeline exception hierarchy."""


class PipelineError(Exception):
    """Base for every error raised by the phase pipeline."""

    def __init__(self, message, phase_name=None):
        self.message = message
        self.phase_name = phase_name
        super().__init__(message)


class GenerationFailure(PipelineError):
    """The generation service is unreachable, unauthenticated or returned nothing usable.

    Recovered locally by the executor through the fallback generator.
    """


class CorrectionExhausted(PipelineError):
    """Issues remain after the correction iteration budget ran out. Non-fatal."""

    def __init__(self, remaining_issues, iterations_used, phase_name=None):
        self.remaining_issues = list(remaining_issues)
        self.iterations_used = iterations_used
        super().__init__(
            f"{len(self.remaining_issues)} issue(s) remain after "
            f"{iterations_used} correction iteration(s)",
            phase_name=phase_name,
        )


class PhaseExecutionError(PipelineError):
    """A single phase attempt failed. The orchestrator retries it once."""

    def __init__(self, message, phase_name=None, issues=()):
        self.issues = list(issues)
        super().__init__(message, phase_name=phase_name)


class DependencyViolationError(PipelineError):
    """A phase was reached before one of its dependencies completed."""

    def __init__(self, phase_name, missing):
        self.missing = list(missing)
        super().__init__(
            f"Phase '{phase_name}' depends on incomplete phase(s): {', '.join(self.missing)}",
            phase_name=phase_name,
        )


class FatalPipelineError(PipelineError):
    """A phase failed after its retry. Carries the partial results for diagnostics."""

    def __init__(self, phase_name, phase_index, results, cause=None):
        self.phase_index = phase_index
        self.results = list(results)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"Phase {phase_index} '{phase_name}' failed after retry{detail}",
            phase_name=phase_name,
        )


class PipelineCancelled(PipelineError):
    """The caller cancelled the session between phases."""
