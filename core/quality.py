"""Quality tool output parsing and gate evaluation."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from config.defaults import TSC_IMPORT_CODES

_UNIX_RE = re.compile(r"^(?P<path>[^:\n]+):(?P<line>\d+):(?P<col>\d+):\s*(?P<message>.+)$")
_TSC_RE = re.compile(
    r"^(?P<path>[^(\n]+)\((?P<line>\d+),(?P<col>\d+)\):\s*error\s+(?P<code>TS\d+):\s*(?P<message>.+)$"
)
_PRETTIER_RE = re.compile(r"^\[warn\]\s+(?P<path>\S+\.\w+)\s*$")
_JEST_RE = re.compile(r"^\s*FAIL\s+(?P<path>\S+)")
_UNAVAILABLE_RE = re.compile(
    r"could not determine executable|command not found|not found|npm ERR! code E404", re.IGNORECASE
)


@dataclass
class QualityFinding:
    path: str | None        # artifact path relative to the work dir, if known
    issue: str              # "category: message"
    line: int | None = None


@dataclass
class QualityReport:
    check: str
    passed: bool
    skipped: bool = False
    findings: list[QualityFinding] = field(default_factory=list)
    output: str = ""

    def issues_for(self, path):
        return [f.issue for f in self.findings if f.path == path]


def _relative(path, work_dir):
    path = path.strip()
    if work_dir and os.path.isabs(path):
        path = os.path.relpath(path, work_dir)
    return path.replace(os.sep, "/")


def _parse_unix(output, category, work_dir):
    findings = []
    for line in output.splitlines():
        m = _UNIX_RE.match(line.strip())
        if m:
            findings.append(QualityFinding(
                path=_relative(m.group("path"), work_dir),
                issue=f"{category}: {m.group('message').strip()}",
                line=int(m.group("line")),
            ))
    return findings


def _parse_tsc(output, category, work_dir):
    findings = []
    for line in output.splitlines():
        m = _TSC_RE.match(line.strip())
        if not m:
            continue
        issue_category = "import" if m.group("code") in TSC_IMPORT_CODES else category
        findings.append(QualityFinding(
            path=_relative(m.group("path"), work_dir),
            issue=f"{issue_category}: {m.group('message').strip()}",
            line=int(m.group("line")),
        ))
    return findings


def _parse_prettier(output, category, work_dir):
    findings = []
    for line in output.splitlines():
        m = _PRETTIER_RE.match(line.strip())
        if m:
            findings.append(QualityFinding(
                path=_relative(m.group("path"), work_dir),
                issue=f"{category}: Formatting differs from prettier output",
            ))
    return findings


def _parse_jest(output, category, work_dir):
    findings = []
    for line in output.splitlines():
        m = _JEST_RE.match(line)
        if m:
            findings.append(QualityFinding(
                path=_relative(m.group("path"), work_dir),
                issue=f"{category}: Test suite failed",
            ))
    return findings


PARSERS = {
    "unix": _parse_unix,
    "tsc": _parse_tsc,
    "prettier": _parse_prettier,
    "jest": _parse_jest,
}


def parse_tool_output(parser, output, category, work_dir=""):
    """Turn raw tool output into findings using the named parser."""
    if parser not in PARSERS:
        raise ValueError(f"Unknown quality output parser: {parser}")
    return PARSERS[parser](output, category, work_dir)


def tool_unavailable(stderr):
    return bool(_UNAVAILABLE_RE.search(stderr or ""))


def quality_gates_pass(reports) -> bool:
    """Every check that actually ran must have passed."""
    return all(r.passed or r.skipped for r in reports)
