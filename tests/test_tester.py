"""Tests for agents.tester: subprocess calls are mocked."""

import os
from unittest.mock import patch

import pytest

from agents.tester import TesterAgent, write_artifacts
from core.sandbox import SandboxResult

ARTIFACTS = {
    "lib/a.ts": "var a = 1\n",
    "package.json": "{}\n",
}


def test_write_artifacts(tmp_path):
    write_artifacts(ARTIFACTS, str(tmp_path))
    assert (tmp_path / "lib" / "a.ts").read_text() == "var a = 1\n"
    assert (tmp_path / "package.json").exists()


def test_write_artifacts_rejects_escape(tmp_path):
    with pytest.raises(ValueError, match="escapes"):
        write_artifacts({"../evil.ts": "x"}, str(tmp_path))


def test_unknown_check():
    with pytest.raises(ValueError, match="Unknown quality check"):
        TesterAgent().run(ARTIFACTS, ["deploy"])


@patch("agents.tester.run_in_sandbox")
def test_lint_findings_are_parsed(mock_run, tmp_path):
    work = str(tmp_path)
    mock_run.return_value = SandboxResult(
        f"{os.path.join(work, 'lib/a.ts')}:1:1: Unexpected var, use let or const instead. [Error/no-var]\n",
        "", 1, "ok",
    )
    [report] = TesterAgent().run(ARTIFACTS, ["lint"], work_dir=work)
    assert not report.passed
    assert report.issues_for("lib/a.ts") == ["style: Unexpected var, use let or const instead. [Error/no-var]"]
    command = mock_run.call_args.args[0]
    assert command[-1] == "lib/a.ts"
    assert "package.json" not in command


@patch("agents.tester.run_in_sandbox")
def test_missing_tool_is_skipped(mock_run):
    mock_run.return_value = SandboxResult("", "Command not found: npx", -1, "missing")
    reports = TesterAgent().run(ARTIFACTS, ["typecheck", "test"])
    assert all(r.skipped and r.passed for r in reports)


@patch("agents.tester.run_in_sandbox")
def test_uninstalled_npx_tool_is_skipped(mock_run):
    mock_run.return_value = SandboxResult("", "npm ERR! could not determine executable to run", 1, "ok")
    [report] = TesterAgent().run(ARTIFACTS, ["typecheck"])
    assert report.skipped


@patch("agents.tester.run_in_sandbox")
def test_timeout_fails(mock_run):
    mock_run.return_value = SandboxResult("", "Command timed out after 120s", -1, "timeout")
    [report] = TesterAgent().run(ARTIFACTS, ["test"])
    assert not report.passed
    assert report.findings[0].issue == "test: test timed out"


@patch("agents.tester.run_in_sandbox")
def test_unparsed_failure_gets_generic_finding(mock_run):
    mock_run.return_value = SandboxResult("boom", "", 2, "ok")
    [report] = TesterAgent().run(ARTIFACTS, ["typecheck"])
    assert not report.passed
    assert report.findings[0].issue == "type-checking: typecheck exited with code 2"


@patch("agents.tester.run_in_sandbox")
def test_append_check_without_sources_is_skipped(mock_run):
    [report] = TesterAgent().run({"package.json": "{}"}, ["lint"])
    assert report.skipped
    mock_run.assert_not_called()


@patch("agents.tester.run_in_sandbox")
def test_clean_run_passes(mock_run):
    mock_run.return_value = SandboxResult("", "", 0, "ok")
    reports = TesterAgent().run(ARTIFACTS, ["typecheck", "lint", "format", "test"])
    assert [r.check for r in reports] == ["typecheck", "lint", "format", "test"]
    assert all(r.passed and not r.skipped for r in reports)
