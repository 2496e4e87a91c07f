"""Pipeline state models shared across all stages."""

from __future__ import annotations

import time
import uuid
from dataclasses import FrozenInstanceError, asdict, dataclass, field

PHASE_KINDS = ("generate", "validate")
PHASE_STATUSES = ("pending", "running", "completed", "failed")
SESSION_STATUSES = ("initializing", "running", "completed", "failed")


@dataclass(frozen=True)
class PhaseDefinition:
    name: str
    description: str
    index: int                              # 1-based position in the chain
    dependencies: tuple[str, ...] = ()      # names of earlier phases
    outputs: tuple[str, ...] = ()           # expected artifact paths
    kind: str = "generate"                  # "generate" | "validate"
    purpose: str = "generic"                # fallback template key
    quality_checks: tuple[str, ...] = ()    # keys of QUALITY_CHECKS, validate phases only
    max_tokens: int = 4000
    temperature: float = 0.3


@dataclass(frozen=True)
class GenerationOptions:
    max_tokens: int = 4000
    temperature: float = 0.3
    target_name: str = ""


@dataclass(frozen=True)
class GenerationRequest:
    prompt: str
    options: GenerationOptions = field(default_factory=GenerationOptions)


@dataclass(frozen=True)
class GenerationResponse:
    text: str
    used_fallback: bool = False
    warning: str | None = None


@dataclass(frozen=True)
class CorrectionResult:
    success: bool
    original_issues: tuple[str, ...]
    fixed_issues: tuple[str, ...]
    remaining_issues: tuple[str, ...]
    applied_fixes: tuple[str, ...]
    iterations_used: int
    final_text: str


@dataclass
class PhaseMetrics:
    duration: float = 0.0
    files: int = 0
    lines: int = 0
    tests: int = 0
    files_with_tests: int = 0
    fixes_applied: int = 0


@dataclass
class PhaseResult:
    """Outcome of one phase. Status only moves forward and a final result is frozen."""

    phase_name: str
    phase_index: int
    status: str = "pending"
    started_at: float | None = None
    finished_at: float | None = None
    artifacts: list[str] = field(default_factory=list)
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    metrics: PhaseMetrics = field(default_factory=PhaseMetrics)
    corrections: dict[str, CorrectionResult] = field(default_factory=dict)

    def __setattr__(self, name, value):
        if getattr(self, "_final", False):
            raise FrozenInstanceError(f"PhaseResult for '{self.phase_name}' is {self.status}")
        super().__setattr__(name, value)

    @property
    def is_final(self):
        return self.status in ("completed", "failed")

    def start(self, now=None):
        if self.status != "pending":
            raise ValueError(f"Cannot start phase '{self.phase_name}' from status {self.status}")
        self.started_at = time.time() if now is None else now
        self.status = "running"

    def add_warning(self, message):
        if self.is_final:
            raise FrozenInstanceError(f"PhaseResult for '{self.phase_name}' is {self.status}")
        self.warnings.append(message)

    def complete(self, now=None):
        if self.status != "running":
            raise ValueError(f"Cannot complete phase '{self.phase_name}' from status {self.status}")
        self._finish("completed", now)

    def fail(self, error, now=None):
        if self.is_final:
            raise ValueError(f"Cannot fail phase '{self.phase_name}' from status {self.status}")
        self.error = str(error)
        self._finish("failed", now)

    def _finish(self, status, now):
        self.finished_at = time.time() if now is None else now
        if self.started_at is not None:
            self.metrics.duration = max(0.0, self.finished_at - self.started_at)
        self.status = status
        self.artifacts = tuple(self.artifacts)
        self.warnings = tuple(self.warnings)
        object.__setattr__(self, "_final", True)

    def to_dict(self):
        return {
            "phase_name": self.phase_name,
            "phase_index": self.phase_index,
            "status": self.status,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "artifacts": list(self.artifacts),
            "error": self.error,
            "warnings": list(self.warnings),
            "metrics": asdict(self.metrics),
            "corrections": {
                path: {
                    "success": c.success,
                    "iterations_used": c.iterations_used,
                    "applied_fixes": list(c.applied_fixes),
                    "remaining_issues": list(c.remaining_issues),
                }
                for path, c in self.corrections.items()
            },
        }


@dataclass
class SessionMetrics:
    duration: float = 0.0
    files: int = 0
    lines: int = 0
    tests: int = 0
    files_with_tests: int = 0
    fixes_applied: int = 0
    warnings: int = 0
    completed_phases: int = 0
    failed_phases: int = 0
    coverage: float = 0.0


def validate_phases(phases):
    """Check that phase indices run 1..n in order and names are unique."""
    seen = set()
    for position, phase in enumerate(phases, 1):
        if phase.index != position:
            raise ValueError(
                f"Phase '{phase.name}' has index {phase.index}, expected {position}"
            )
        if phase.name in seen:
            raise ValueError(f"Duplicate phase name: {phase.name}")
        if phase.kind not in PHASE_KINDS:
            raise ValueError(f"Phase '{phase.name}' has unknown kind: {phase.kind}")
        seen.add(phase.name)


@dataclass
class PipelineSession:
    phases: tuple[PhaseDefinition, ...]
    context: dict = field(default_factory=dict)
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    started_at: float = field(default_factory=time.time)
    status: str = "initializing"        # initializing|running|completed|failed
    current_phase_index: int = 0        # 0 until the first phase starts
    results: list[PhaseResult] = field(default_factory=list)
    artifacts: dict[str, str] = field(default_factory=dict)    # path -> final text
    metrics: SessionMetrics | None = None
    error: str | None = None

    def __post_init__(self):
        self.phases = tuple(self.phases)
        validate_phases(self.phases)

    def start(self):
        if self.status != "initializing":
            raise ValueError(f"Session {self.session_id} already {self.status}")
        self.status = "running"

    def advance_to(self, index):
        if index < self.current_phase_index:
            raise ValueError(
                f"Phase index cannot move backwards ({self.current_phase_index} -> {index})"
            )
        self.current_phase_index = index

    def append_result(self, result: PhaseResult):
        if not result.is_final:
            raise ValueError(f"Result for '{result.phase_name}' is still {result.status}")
        if self.results and result.phase_index <= self.results[-1].phase_index:
            raise ValueError(
                f"Result for phase {result.phase_index} is out of order "
                f"(last was {self.results[-1].phase_index})"
            )
        self.results.append(result)

    def completed_phase_names(self):
        return {r.phase_name for r in self.results if r.status == "completed"}

    def complete(self, metrics):
        self.metrics = metrics
        self.status = "completed"

    def fail(self, error, metrics=None):
        self.error = str(error)
        self.metrics = metrics
        self.status = "failed"

    def snapshot(self):
        """Plain-dict view of the session for CLI and HTTP consumers."""
        return {
            "session_id": self.session_id,
            "status": self.status,
            "started_at": self.started_at,
            "current_phase_index": self.current_phase_index,
            "phases": [p.name for p in self.phases],
            "results": [r.to_dict() for r in self.results],
            "artifacts": sorted(self.artifacts),
            "metrics": asdict(self.metrics) if self.metrics else None,
            "error": self.error,
        }


@dataclass
class SessionOutcome:
    session_id: str
    status: str
    results: list[PhaseResult]
    metrics: SessionMetrics
    error: str | None = None
    failed_phase: int | None = None
    artifacts: dict[str, str] = field(default_factory=dict)

    def to_dict(self):
        return {
            "session_id": self.session_id,
            "status": self.status,
            "results": [r.to_dict() for r in self.results],
            "metrics": asdict(self.metrics),
            "error": self.error,
            "failed_phase": self.failed_phase,
            "artifacts": sorted(self.artifacts),
        }
