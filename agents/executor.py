"""Phase executor: generates, corrects and validates the artifacts of one phase."""

import json
import logging

from agents.corrector import ErrorCorrectionEngine
from agents.patch_composer import PatchComposer
from agents.tester import TesterAgent
from config.defaults import DEFAULTS
from core.errors import CorrectionExhausted, PhaseExecutionError, PipelineCancelled
from core.metrics import count_tests
from core.quality import quality_gates_pass
from core.state import GenerationOptions, PhaseResult
from utils.fallback import generate_fallback
from utils.llm import extract_code

logger = logging.getLogger(__name__)

# Dependency artifacts are quoted into the prompt up to this many characters each
_CONTEXT_CHARS = 2000
_UNCORRECTED_EXTENSIONS = (".json", ".md")


def _line_count(text):
    return text.count("\n") + 1 if text else 0


class PhaseExecutor:
    """Runs a single phase attempt against a session.

    Artifacts are staged and only committed to the session once the attempt
    succeeds, so a failed attempt leaves no trace for the retry.
    """

    name = "executor"

    def __init__(self, collaborator, corrector=None, tester=None, patch_composer=None,
                 fallback=generate_fallback, config=None):
        self.collaborator = collaborator
        self.corrector = corrector or ErrorCorrectionEngine()
        self.tester = tester or TesterAgent()
        self.patch_composer = patch_composer or PatchComposer()
        self.fallback = fallback
        self.config = {**DEFAULTS, **(config or {})}

    def execute(self, phase, session, retry_error=None, cancel_event=None) -> PhaseResult:
        result = PhaseResult(phase_name=phase.name, phase_index=phase.index)
        result.start()

        if phase.kind == "validate":
            staged = self._validate(phase, session, result)
        else:
            instructions = self.patch_composer.run(retry_error)
            staged = self._generate(phase, session, result, instructions, cancel_event)

        session.artifacts.update(staged)
        result.complete()
        logger.info(
            "Phase %d '%s' completed: %d file(s), %d fix(es), %d warning(s)",
            phase.index, phase.name, result.metrics.files,
            result.metrics.fixes_applied, len(result.warnings),
        )
        return result

    # --- generate phases ---

    def _generate(self, phase, session, result, instructions, cancel_event):
        staged = {}
        for target in phase.outputs:
            prompt = self._build_prompt(phase, session, target, instructions)
            options = GenerationOptions(
                max_tokens=phase.max_tokens,
                temperature=phase.temperature,
                target_name=target,
            )
            text = self._produce(phase, session, target, prompt, options, result, cancel_event)
            if not text.strip():
                raise PhaseExecutionError(f"Artifact {target} is empty after fallback", phase_name=phase.name)

            text = self._correct(target, text, result)
            staged[target] = text
            result.artifacts.append(target)
            self._count(text, result)
        return staged

    def _produce(self, phase, session, target, prompt, options, result, cancel_event):
        """Ask the collaborator for one artifact, falling back to a template on any failure."""
        try:
            response = self.collaborator.generate(prompt, options, cancel_event=cancel_event)
        except PipelineCancelled:
            raise
        except Exception as e:
            logger.warning("Generation failed for %s, using fallback: %s", target, e)
            result.add_warning(f"{target}: generation failed ({e}), fallback used")
            return self.fallback(phase.purpose, target, session.context)

        if response.warning:
            result.add_warning(f"{target}: {response.warning}")
        text = extract_code(response.text)
        if not text.strip():
            logger.warning("Empty response for %s, using fallback", target)
            result.add_warning(f"{target}: empty response, fallback used")
            return self.fallback(phase.purpose, target, session.context)
        return text

    def _build_prompt(self, phase, session, target, instructions):
        total = len(session.phases)
        lines = [
            f"Application idea: {session.context.get('idea', '')}",
            f"Phase {phase.index}/{total}: {phase.name}. {phase.description}",
            f"Write the file: {target}",
        ]
        features = session.context.get("features")
        if features:
            lines.append("Features: " + ", ".join(str(f) for f in features))

        dependency_paths = [
            path
            for r in session.results
            if r.phase_name in phase.dependencies
            for path in r.artifacts
        ]
        for path in dependency_paths:
            content = session.artifacts.get(path, "")
            lines.append(f"\n--- {path} ---\n{content[:_CONTEXT_CHARS]}")

        if instructions:
            lines.append("\n" + instructions)
        return "\n".join(lines)

    # --- correction and metrics ---

    def _correct(self, path, text, result, external_issues=()):
        if path.endswith(_UNCORRECTED_EXTENSIONS):
            return text

        correction = self.corrector.correct_code(
            text,
            max_iterations=self.config["max_correction_iterations"],
            external_issues=external_issues,
        )
        result.corrections[path] = correction
        result.metrics.fixes_applied += len(correction.applied_fixes)
        if correction.applied_fixes:
            result.add_warning(f"{path}: applied {len(correction.applied_fixes)} automatic fix(es)")
        if correction.remaining_issues:
            exhausted = CorrectionExhausted(
                correction.remaining_issues, correction.iterations_used, phase_name=result.phase_name,
            )
            result.add_warning(f"{path}: {exhausted} ({'; '.join(correction.remaining_issues)})")
        return correction.final_text

    def _count(self, text, result):
        tests = count_tests(text)
        result.metrics.files += 1
        result.metrics.lines += _line_count(text)
        result.metrics.tests += tests
        if tests:
            result.metrics.files_with_tests += 1

    # --- validate phases ---

    def _validate(self, phase, session, result):
        staged = dict(session.artifacts)
        reports = self.tester.run(staged, phase.quality_checks)

        changed = False
        for path in sorted(staged):
            issues = [i for report in reports for i in report.issues_for(path)]
            if not issues:
                continue
            corrected = self._correct(path, staged[path], result, external_issues=issues)
            if corrected != staged[path]:
                staged[path] = corrected
                result.artifacts.append(path)
                changed = True

        if changed:
            reports = self.tester.run(staged, phase.quality_checks)

        for report in reports:
            if report.skipped:
                result.add_warning(f"{report.check}: skipped ({report.output.strip()[:120]})")

        for output in phase.outputs:
            if output.endswith(".json"):
                staged[output] = json.dumps(
                    {r.check: {"passed": r.passed, "skipped": r.skipped,
                               "issues": [f.issue for f in r.findings]} for r in reports},
                    indent=2,
                ) + "\n"
                result.artifacts.append(output)

        if not quality_gates_pass(reports):
            issues = [f.issue for r in reports if not r.passed for f in r.findings]
            failed = ", ".join(r.check for r in reports if not (r.passed or r.skipped))
            if self.config["enforce_quality_gates"]:
                raise PhaseExecutionError(
                    f"Quality gates failed: {failed}", phase_name=phase.name, issues=issues,
                )
            result.add_warning(f"Quality gates failed: {failed}")

        return {path: text for path, text in staged.items() if session.artifacts.get(path) != text}
