"""Session metrics aggregation and test-case counting."""

import re

from core.state import SessionMetrics

_TEST_CASE_RE = re.compile(r"(?:\b(?:it|test)\s*\(|\bdef test_)")


def count_tests(text):
    """Count test cases declared in a source text (``it(``, ``test(``, ``def test_``)."""
    return len(_TEST_CASE_RE.findall(text or ""))


def coverage_percent(files_with_tests, files):
    """Share of files containing at least one test, clamped to [0, 100]."""
    if files <= 0:
        return 0.0
    return max(0.0, min(100.0, 100.0 * files_with_tests / files))


def summarize(results):
    """Fold a list of PhaseResult into SessionMetrics. Pure."""
    metrics = SessionMetrics()
    for result in results:
        m = result.metrics
        metrics.duration += m.duration
        metrics.files += m.files
        metrics.lines += m.lines
        metrics.tests += m.tests
        metrics.files_with_tests += m.files_with_tests
        metrics.fixes_applied += m.fixes_applied
        metrics.warnings += len(result.warnings)
        if result.status == "completed":
            metrics.completed_phases += 1
        elif result.status == "failed":
            metrics.failed_phases += 1
    metrics.coverage = coverage_percent(metrics.files_with_tests, metrics.files)
    return metrics
