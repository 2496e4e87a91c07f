"""Tests for agents.executor.PhaseExecutor: collaborator and quality tools are mocked."""

import json
from unittest.mock import MagicMock

import pytest

from agents.executor import PhaseExecutor
from core.errors import GenerationFailure, PhaseExecutionError, PipelineCancelled
from core.quality import QualityFinding, QualityReport
from core.state import GenerationResponse, PhaseDefinition, PhaseResult, PipelineSession


def _phase(index=1, outputs=("lib/a.ts",), **kwargs):
    return PhaseDefinition(
        name=kwargs.pop("name", f"phase-{index}"),
        description="desc",
        index=index,
        outputs=tuple(outputs),
        **kwargs,
    )


def _session(*phases):
    return PipelineSession(phases=phases or (_phase(),), context={"idea": "todo list"})


def _collaborator(text="```ts\nexport const a = 1\n```"):
    collab = MagicMock()
    collab.generate.return_value = GenerationResponse(text=text)
    return collab


def _report(check, passed=True, skipped=False, findings=()):
    return QualityReport(check=check, passed=passed, skipped=skipped, findings=list(findings))


# --- generate phases ---

def test_generate_phase_completes():
    phase = _phase(outputs=("lib/a.ts", "lib/b.ts"))
    session = _session(phase)
    result = PhaseExecutor(_collaborator()).execute(phase, session)
    assert result.status == "completed"
    assert list(result.artifacts) == ["lib/a.ts", "lib/b.ts"]
    assert session.artifacts["lib/a.ts"] == "export const a = 1"
    assert result.metrics.files == 2
    assert result.metrics.lines == 2
    assert result.warnings == ()


def test_generation_options_come_from_phase():
    phase = _phase(max_tokens=1234, temperature=0.7)
    collab = _collaborator()
    PhaseExecutor(collab).execute(phase, _session(phase))
    options = collab.generate.call_args.args[1]
    assert options.max_tokens == 1234
    assert options.temperature == 0.7
    assert options.target_name == "lib/a.ts"


def test_prompt_includes_idea_and_target():
    phase = _phase()
    collab = _collaborator()
    PhaseExecutor(collab).execute(phase, _session(phase))
    prompt = collab.generate.call_args.args[0]
    assert "todo list" in prompt
    assert "lib/a.ts" in prompt


def test_prompt_includes_dependency_artifacts():
    first = _phase(1, outputs=("lib/a.ts",))
    second = _phase(2, outputs=("lib/b.ts",), dependencies=("phase-1",))
    session = _session(first, second)
    collab = _collaborator()
    executor = PhaseExecutor(collab)
    session.append_result(executor.execute(first, session))
    executor.execute(second, session)
    prompt = collab.generate.call_args.args[0]
    assert "--- lib/a.ts ---" in prompt
    assert "export const a = 1" in prompt


def test_failing_collaborator_uses_fallback():
    phase = _phase(outputs=("app/page.tsx",), purpose="ui-component")
    collab = MagicMock()
    collab.generate.side_effect = GenerationFailure("no key")
    session = _session(phase)
    result = PhaseExecutor(collab).execute(phase, session)
    assert result.status == "completed"
    assert "export default function" in session.artifacts["app/page.tsx"]
    assert any("fallback used" in w for w in result.warnings)


def test_unexpected_collaborator_error_uses_fallback():
    phase = _phase()
    collab = MagicMock()
    collab.generate.side_effect = RuntimeError("socket closed")
    session = _session(phase)
    result = PhaseExecutor(collab).execute(phase, session)
    assert session.artifacts["lib/a.ts"].strip()
    assert result.status == "completed"


def test_empty_response_uses_fallback():
    phase = _phase()
    session = _session(phase)
    result = PhaseExecutor(_collaborator(text="```ts\n\n```")).execute(phase, session)
    assert session.artifacts["lib/a.ts"].strip()
    assert any("empty response" in w for w in result.warnings)


def test_empty_fallback_fails_the_attempt():
    phase = _phase()
    collab = MagicMock()
    collab.generate.side_effect = GenerationFailure("down")
    executor = PhaseExecutor(collab, fallback=lambda purpose, target, context: "")
    session = _session(phase)
    with pytest.raises(PhaseExecutionError, match="empty after fallback"):
        executor.execute(phase, session)
    assert session.artifacts == {}


def test_cancellation_is_not_swallowed():
    phase = _phase()
    collab = MagicMock()
    collab.generate.side_effect = PipelineCancelled("stop")
    with pytest.raises(PipelineCancelled):
        PhaseExecutor(collab).execute(phase, _session(phase))


def test_generated_code_is_corrected():
    phase = _phase()
    session = _session(phase)
    collab = _collaborator(text="```js\nvar x = 1; if (x == 1) { console.log(x) }\n```")
    result = PhaseExecutor(collab).execute(phase, session)
    assert session.artifacts["lib/a.ts"] == "let x = 1; if (x === 1) { /* console.log(x) */ }"
    assert result.metrics.fixes_applied == 3
    assert result.corrections["lib/a.ts"].success
    assert any("automatic fix" in w for w in result.warnings)


def test_remaining_issues_become_warnings():
    phase = _phase()
    session = _session(phase)
    collab = _collaborator(text="var x = 1")
    result = PhaseExecutor(collab, config={"max_correction_iterations": 0}).execute(phase, session)
    assert result.status == "completed"
    assert session.artifacts["lib/a.ts"] == "var x = 1"
    assert any("remain after 0 correction iteration" in w for w in result.warnings)


def test_json_artifacts_are_not_corrected():
    phase = _phase(outputs=("package.json",))
    session = _session(phase)
    result = PhaseExecutor(_collaborator(text='{"a": "x == y"}')).execute(phase, session)
    assert session.artifacts["package.json"] == '{"a": "x == y"}'
    assert result.corrections == {}


def test_tests_are_counted():
    phase = _phase(outputs=("tests/a.test.ts",))
    session = _session(phase)
    text = "```ts\nit('a', () => {})\nit('b', () => {})\n```"
    result = PhaseExecutor(_collaborator(text=text)).execute(phase, session)
    assert result.metrics.tests == 2
    assert result.metrics.files_with_tests == 1


def test_retry_error_is_composed_into_prompt():
    phase = _phase()
    collab = _collaborator()
    error = PhaseExecutionError("typecheck failed", issues=["type-checking: Bad type"])
    PhaseExecutor(collab).execute(phase, _session(phase), retry_error=error)
    prompt = collab.generate.call_args.args[0]
    assert "previous attempt" in prompt
    assert "type-checking: Bad type" in prompt


# --- validate phases ---

def _validate_phase():
    return _phase(
        index=1,
        name="validate",
        outputs=("quality-report.json",),
        kind="validate",
        quality_checks=("lint",),
    )


def test_validate_phase_passes_and_writes_report():
    phase = _validate_phase()
    session = _session(phase)
    session.artifacts["lib/a.ts"] = "export const a = 1\n"
    tester = MagicMock()
    tester.run.return_value = [_report("lint")]
    result = PhaseExecutor(_collaborator(), tester=tester).execute(phase, session)
    assert result.status == "completed"
    report = json.loads(session.artifacts["quality-report.json"])
    assert report["lint"]["passed"] is True
    tester.run.assert_called_once()


def test_validate_phase_feeds_findings_to_corrector():
    phase = _validate_phase()
    session = _session(phase)
    session.artifacts["lib/a.ts"] = "export const a = 1\nexport const b = a != 2\n"
    finding = QualityFinding(path="lib/a.ts", issue="style: Expected '!==' and instead saw '!='.")
    tester = MagicMock()
    tester.run.side_effect = [
        [_report("lint", passed=False, findings=[finding])],
        [_report("lint")],
    ]
    result = PhaseExecutor(_collaborator(), tester=tester).execute(phase, session)
    assert "a !== 2" in session.artifacts["lib/a.ts"]
    assert "lib/a.ts" in result.artifacts
    assert tester.run.call_count == 2


def test_validate_phase_fails_when_gates_fail():
    phase = _validate_phase()
    session = _session(phase)
    session.artifacts["lib/a.ts"] = "export const a = 1\n"
    finding = QualityFinding(path=None, issue="test: Test suite failed")
    tester = MagicMock()
    tester.run.return_value = [_report("lint", passed=False, findings=[finding])]
    with pytest.raises(PhaseExecutionError, match="Quality gates failed: lint") as exc:
        PhaseExecutor(_collaborator(), tester=tester).execute(phase, session)
    assert exc.value.issues == ["test: Test suite failed"]
    assert "quality-report.json" not in session.artifacts


def test_validate_phase_gates_not_enforced():
    phase = _validate_phase()
    session = _session(phase)
    tester = MagicMock()
    tester.run.return_value = [_report("lint", passed=False)]
    executor = PhaseExecutor(_collaborator(), tester=tester, config={"enforce_quality_gates": False})
    result = executor.execute(phase, session)
    assert result.status == "completed"
    assert any("Quality gates failed" in w for w in result.warnings)


def test_validate_phase_skipped_tools_pass():
    phase = _validate_phase()
    session = _session(phase)
    tester = MagicMock()
    tester.run.return_value = [_report("lint", skipped=True)]
    result = PhaseExecutor(_collaborator(), tester=tester).execute(phase, session)
    assert result.status == "completed"
    assert any("skipped" in w for w in result.warnings)


def test_executor_returns_final_result():
    phase = _phase()
    result = PhaseExecutor(_collaborator()).execute(phase, _session(phase))
    assert isinstance(result, PhaseResult)
    assert result.is_final
