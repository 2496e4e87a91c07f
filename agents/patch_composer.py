"""Patch composer: turns a failed attempt into correction instructions for the retry. Zero LLM calls."""

from config.rules import ERROR_PATTERNS

_SEVERITY_ORDER = {"error": 0, "warning": 1, "info": 2}


def _severity(issue, severities):
    # Tool findings have no table entry and count as errors
    return severities.get(issue, "error")


class PatchComposer:
    """Formats the captured error of a failed phase attempt into prompt instructions."""

    name = "patch_composer"

    def __init__(self, patterns=None):
        patterns = ERROR_PATTERNS if patterns is None else patterns
        self.severities = {p.issue: p.severity for p in patterns}

    def run(self, error) -> str:
        if error is None:
            return ""

        issues = list(getattr(error, "issues", []) or [])
        actionable = [i for i in issues if _severity(i, self.severities) in ("error", "warning")]
        actionable.sort(key=lambda i: _SEVERITY_ORDER[_severity(i, self.severities)])

        lines = [
            "The previous attempt at this phase failed:",
            f"  {error}",
        ]
        if actionable:
            lines.append("\nFix the following issues in the code:")
            for idx, issue in enumerate(actionable, 1):
                lines.append(f"{idx}. [{_severity(issue, self.severities).upper()}] {issue}")
        return "\n".join(lines)
