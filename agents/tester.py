"""Tester agent: runs typecheck, lint, format and test tools over artifacts. Zero LLM calls."""

import logging
import os
import tempfile

from config.defaults import DEFAULTS, QUALITY_CHECKS
from core.quality import QualityFinding, QualityReport, parse_tool_output, tool_unavailable
from core.sandbox import run_in_sandbox

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")


def write_artifacts(artifacts, work_dir):
    """Materialize path -> text artifacts under work_dir."""
    root = os.path.realpath(work_dir)
    for path, content in artifacts.items():
        fpath = os.path.realpath(os.path.join(root, path.lstrip("/")))
        if not fpath.startswith(root + os.sep):
            raise ValueError(f"Path escapes work directory: {path}")
        os.makedirs(os.path.dirname(fpath), exist_ok=True)
        with open(fpath, "w") as fp:
            fp.write(content)


class TesterAgent:
    """Runs the configured quality collaborators in a sandboxed work dir."""

    name = "tester"

    def __init__(self, checks=None, timeout=None, allowed=None):
        self.checks = QUALITY_CHECKS if checks is None else checks
        self.timeout = timeout or DEFAULTS["sandbox_timeout"]
        self.allowed = allowed

    def run(self, artifacts, check_names, work_dir=None):
        """Return one QualityReport per check name, in the order given."""
        unknown = [name for name in check_names if name not in self.checks]
        if unknown:
            raise ValueError(f"Unknown quality check(s): {', '.join(unknown)}")

        if work_dir is not None:
            write_artifacts(artifacts, work_dir)
            return [self._run_check(name, artifacts, work_dir) for name in check_names]

        with tempfile.TemporaryDirectory(prefix="phasesmith_quality_") as tmp:
            write_artifacts(artifacts, tmp)
            return [self._run_check(name, artifacts, tmp) for name in check_names]

    def _run_check(self, name, artifacts, work_dir):
        config = self.checks[name]
        category = config["category"]
        command = list(config["command"])

        if config.get("append_files"):
            sources = sorted(p.lstrip("/") for p in artifacts if p.endswith(SOURCE_EXTENSIONS))
            if not sources:
                return QualityReport(check=name, passed=True, skipped=True, output="no source files")
            command.extend(sources)

        result = run_in_sandbox(command, cwd=work_dir, timeout=self.timeout, allowed=self.allowed)
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)

        if result.status == "missing":
            logger.info("Skipping %s: %s", name, result.stderr)
            return QualityReport(check=name, passed=True, skipped=True, output=result.stderr)

        if result.status == "timeout":
            return QualityReport(
                check=name,
                passed=False,
                findings=[QualityFinding(path=None, issue=f"{category}: {name} timed out")],
                output=output,
            )

        findings = parse_tool_output(config["parser"], output, category, work_dir)
        if result.returncode != 0 and not findings:
            if tool_unavailable(result.stderr):
                logger.info("Skipping %s: tool unavailable", name)
                return QualityReport(check=name, passed=True, skipped=True, output=output)
            findings = [QualityFinding(
                path=None,
                issue=f"{category}: {name} exited with code {result.returncode}",
            )]

        passed = result.returncode == 0
        logger.info("%s %s with %d finding(s)", name, "passed" if passed else "failed", len(findings))
        return QualityReport(check=name, passed=passed, findings=findings, output=output)
