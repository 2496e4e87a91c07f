"""Correction engine: detects rule-table issues and iterates deterministic fixes. Zero LLM calls."""

import logging
import re
from collections import Counter

from config.defaults import DEFAULTS
from config.rules import (
    ERROR_PATTERNS,
    EXPLICIT_ANY_RE,
    IMG_WITHOUT_ALT_RE,
    LEADING_COMMA_RE,
    LIST_WITHOUT_KEY_RE,
    LOOSE_EQUALITY_RE,
    NAMED_IMPORT_RE,
    STRUCTURAL_CHECKS,
    VAR_DECLARATION_RE,
    bound_name,
    find_unused_imports,
    import_bindings,
    neutralize_debug_prints,
)
from core.state import CorrectionResult

logger = logging.getLogger(__name__)

_QUOTED_RE = re.compile(r"['\"]([^'\"]+)['\"]")
# tsc TS2305/TS2614 quote the module first, so the member is picked out explicitly
_MISSING_MEMBER_RE = re.compile(r"has no exported member (?:named )?'([\w$]+)'")


def _dedupe(issues):
    seen = set()
    ordered = []
    for issue in issues:
        if issue not in seen:
            seen.add(issue)
            ordered.append(issue)
    return ordered


# --- Generic fixers, used when no table pattern handles an issue ---

def _strip_import(text, issue):
    member = _MISSING_MEMBER_RE.search(issue)
    if member:
        return _drop_binding(text, member.group(1))

    quoted = _QUOTED_RE.search(issue)
    if not quoted:
        return text
    name = quoted.group(1)

    # "Cannot find module './x'" names the import source
    module_re = re.compile(
        r"^[ \t]*import\b[^\n]*['\"]" + re.escape(name) + r"['\"][^\n]*(?:\n|$)",
        re.MULTILINE,
    )
    stripped = module_re.sub("", text, count=1)
    if stripped != text:
        return stripped
    return _drop_binding(text, name)


def _drop_binding(text, name):
    for m in NAMED_IMPORT_RE.finditer(text):
        default, named = import_bindings(m)
        kept = [entry for entry in named if bound_name(entry) != name]
        if default != name and len(kept) == len(named):
            continue
        if default == name:
            default = None
        parts = []
        if default:
            parts.append(default)
        if kept:
            parts.append("{ " + ", ".join(kept) + " }")
        end = m.end()
        if parts:
            replacement = f"{m.group('lead')}import {', '.join(parts)} from {m.group('source')}"
        else:
            replacement = ""
            if text[end:end + 1] == "\n":
                end += 1
        return text[:m.start()] + replacement + text[end:]
    return text


def _neutralize_style(text, issue):
    lowered = issue.lower()
    if "equal" in lowered or "==" in lowered:
        return LOOSE_EQUALITY_RE.sub(lambda m: m.group(1) + "=", text)
    if re.search(r"\bvar\b", lowered):
        return VAR_DECLARATION_RE.sub("let ", text)
    if re.search(r"\b(?:console|debug|print)", lowered):
        return neutralize_debug_prints(text)
    return text


def _placeholder_alt(text, issue):
    return IMG_WITHOUT_ALT_RE.sub('<img alt=""', text)


def _index_key(text, issue):
    def repl(m):
        index = m.group("index") or "index"
        return f".map(({m.group('item')}, {index}) =>{m.group('open')}<{m.group('tag')} key={{{index}}}"
    return LIST_WITHOUT_KEY_RE.sub(repl, text)


def _narrow_types(text, issue):
    return EXPLICIT_ANY_RE.sub(": unknown", text)


def _drop_stray_commas(text, issue):
    return LEADING_COMMA_RE.sub(r"\1", text)


# Keyed by substring of the issue string, tried in order.
GENERIC_FIXERS = [
    ("import", _strip_import),
    ("accessibility", _placeholder_alt),
    ("framework-convention", _index_key),
    ("type-checking", _narrow_types),
    ("syntax", _drop_stray_commas),
    ("style", _neutralize_style),
    ("debug", _neutralize_style),
]


class ErrorCorrectionEngine:
    """Applies the error pattern table to a source text until it is clean or the budget runs out.

    The engine keeps no per-run history; every call returns its own
    CorrectionResult.
    """

    name = "corrector"

    def __init__(self, patterns=None, structural_checks=None, generic_fixers=None):
        self.patterns = list(ERROR_PATTERNS if patterns is None else patterns)
        self.structural_checks = list(STRUCTURAL_CHECKS if structural_checks is None else structural_checks)
        self.generic_fixers = list(GENERIC_FIXERS if generic_fixers is None else generic_fixers)

    def detect_issues(self, text):
        """Return deduplicated "category: description" strings in first-seen order."""
        issues = [p.issue for p in self.patterns if p.match(text)]
        for category, description, check in self.structural_checks:
            if check(text):
                issues.append(f"{category}: {description}")
        for name in find_unused_imports(text):
            issues.append(f"import: Unused import '{name}'")
        return _dedupe(issues)

    def correct_code(self, text, max_iterations=None, external_issues=()):
        """Iterate fixes until no issues remain, a pass changes nothing, or the budget is spent."""
        if max_iterations is None:
            max_iterations = DEFAULTS["max_correction_iterations"]
        max_iterations = max(0, min(int(max_iterations), DEFAULTS["hard_max_correction_iterations"]))

        external = _dedupe(external_issues)
        original = _dedupe(self.detect_issues(text) + external)
        if not original:
            return CorrectionResult(
                success=True,
                original_issues=(),
                fixed_issues=(),
                remaining_issues=(),
                applied_fixes=(),
                iterations_used=0,
                final_text=text,
            )

        current = text
        issues = original
        resolved_external = set()
        applied = []
        iterations = 0

        while issues and iterations < max_iterations:
            iterations += 1
            fixes_this_pass = 0
            for issue in issues:
                fixed, description = self._apply_fix(current, issue)
                if fixed is None:
                    continue
                current = fixed
                applied.append(description)
                fixes_this_pass += 1
                if issue in external:
                    resolved_external.add(issue)
                logger.debug("Pass %d applied %s", iterations, description)

            issues = _dedupe(
                self.detect_issues(current)
                + [i for i in external if i not in resolved_external]
            )
            if fixes_this_pass == 0:
                logger.debug("Pass %d applied no fixes, stopping", iterations)
                break

        remaining = tuple(issues)
        fixed_issues = tuple(i for i in original if i not in remaining)
        if remaining:
            logger.info(
                "Correction left %d issue(s) after %d iteration(s)", len(remaining), iterations,
            )
        return CorrectionResult(
            success=not remaining,
            original_issues=tuple(original),
            fixed_issues=fixed_issues,
            remaining_issues=remaining,
            applied_fixes=tuple(applied),
            iterations_used=iterations,
            final_text=current,
        )

    def _apply_fix(self, text, issue):
        """Apply the first fix that handles the issue and changes the text.

        Returns (new_text, description) or (None, None).
        """
        for pattern in self.patterns:
            if not (issue == pattern.issue or pattern.description in issue):
                continue
            # Re-validate against the current text; an earlier fix may have consumed it.
            match = pattern.match(text)
            if match is None:
                continue
            fixed = pattern.fix(text, match)
            if fixed != text:
                return fixed, f"{pattern.name}: {pattern.description}"

        lowered = issue.lower()
        for key, fixer in self.generic_fixers:
            if key not in lowered:
                continue
            fixed = fixer(text, issue)
            if fixed != text:
                return fixed, f"generic {key} fix: {issue}"
        return None, None

    def statistics(self):
        """Rule counts per category."""
        counts = Counter(p.category for p in self.patterns)
        return {"total": len(self.patterns), "by_category": dict(counts)}
