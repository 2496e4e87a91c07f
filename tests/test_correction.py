"""Tests for agents.corrector.ErrorCorrectionEngine and the rule table."""

import re

import pytest

from agents.corrector import ErrorCorrectionEngine
from config.rules import ERROR_PATTERNS, ErrorPattern, find_unused_imports

SCENARIO = "var x = 1; if (x == 1) { console.log(x) }"
CLEAN = "const x = 1\nexport default x\n"


def _rules(*names):
    return [p for p in ERROR_PATTERNS if p.name in names]


def _pattern(name, description, regex, fixer, category="syntax"):
    return ErrorPattern(
        name=name,
        category=category,
        severity="error",
        description=description,
        pattern=re.compile(regex),
        fixer=fixer,
    )


# --- detection ---

def test_clean_text_has_no_issues():
    engine = ErrorCorrectionEngine()
    assert engine.detect_issues(CLEAN) == []


def test_clean_text_needs_zero_iterations():
    result = ErrorCorrectionEngine().correct_code(CLEAN, max_iterations=3)
    assert result.success
    assert result.iterations_used == 0
    assert result.original_issues == ()
    assert result.final_text == CLEAN


def test_detect_issues_deduplicates_in_order():
    issues = ErrorCorrectionEngine().detect_issues(SCENARIO)
    assert issues == [
        "style: Use let or const instead of var",
        "style: Use strict equality operator",
        "style: Debug print statement in production code",
    ]


def test_detect_unused_import():
    text = "import { useState, useMemo } from 'react'\nexport const f = () => useState(0)\n"
    assert "import: Unused import 'useMemo'" in ErrorCorrectionEngine().detect_issues(text)


def test_find_unused_imports_handles_alias_and_default():
    text = "import React, { a as b, c } from 'x'\nexport const y = b + c\n"
    assert find_unused_imports(text) == ["React"]


def test_structural_checks_without_table():
    engine = ErrorCorrectionEngine(patterns=[])
    issues = engine.detect_issues('<img src="a.png" />')
    assert issues == ["accessibility: Image element missing alt text"]


# --- the correction loop ---

def test_scenario_with_three_rules():
    engine = ErrorCorrectionEngine(
        patterns=_rules("mutable-declaration-keyword", "loose-equality", "debug-print"),
    )
    result = engine.correct_code(SCENARIO, max_iterations=3)
    assert result.success
    assert "let x = 1" in result.final_text
    assert "x === 1" in result.final_text
    assert "/* console.log(x) */" in result.final_text
    assert "var " not in result.final_text
    assert result.remaining_issues == ()
    assert result.iterations_used <= 3
    assert len(result.applied_fixes) == 3


def test_scenario_with_full_table():
    result = ErrorCorrectionEngine().correct_code(SCENARIO, max_iterations=3)
    assert result.final_text == "let x = 1; if (x === 1) { /* console.log(x) */ }"
    assert result.iterations_used == 1


@pytest.mark.parametrize("max_iterations", [0, 1, 2, 3, 5])
def test_iterations_never_exceed_budget(max_iterations):
    result = ErrorCorrectionEngine().correct_code(SCENARIO, max_iterations=max_iterations)
    assert result.iterations_used <= max_iterations


def test_zero_budget_leaves_text_untouched():
    result = ErrorCorrectionEngine().correct_code(SCENARIO, max_iterations=0)
    assert not result.success
    assert result.final_text == SCENARIO
    assert result.remaining_issues == result.original_issues
    assert result.applied_fixes == ()


def test_recorrecting_output_fixes_nothing_new():
    engine = ErrorCorrectionEngine()
    first = engine.correct_code(SCENARIO, max_iterations=3)
    second = engine.correct_code(first.final_text, max_iterations=3)
    assert second.applied_fixes == ()
    assert second.original_issues == ()
    assert second.final_text == first.final_text


def test_overlapping_fix_is_revalidated():
    first = _pattern("foo-to-bar", "Foo should be bar", r"foo", lambda t, m: t.replace("foo", "bar"))
    second = _pattern("foo-to-baz", "Foo should be baz", r"foo", lambda t, m: t.replace("foo", "baz"))
    engine = ErrorCorrectionEngine(patterns=[first, second], structural_checks=[])
    result = engine.correct_code("foo", max_iterations=3)
    assert result.final_text == "bar"
    assert result.applied_fixes == ("foo-to-bar: Foo should be bar",)
    assert result.success


def test_pass_without_fixes_stops_early():
    stuck = _pattern("stuck", "Never fixable", r"x", lambda t, m: t)
    engine = ErrorCorrectionEngine(patterns=[stuck], structural_checks=[])
    result = engine.correct_code("x", max_iterations=5)
    assert result.iterations_used == 1
    assert result.remaining_issues == ("syntax: Never fixable",)
    assert not result.success


def test_default_budget_from_config():
    result = ErrorCorrectionEngine().correct_code(SCENARIO)
    assert result.success


# --- individual rules ---

def test_img_gets_placeholder_alt():
    result = ErrorCorrectionEngine().correct_code('<img src="a.png" />')
    assert result.final_text == '<img alt="" src="a.png" />'


def test_list_gets_index_key():
    text = "items.map(item => <li>{item}</li>)"
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text == "items.map((item, index) => <li key={index}>{item}</li>)"
    assert result.success


def test_list_keeps_existing_index_name():
    text = "items.map((item, i) => <li>{item}</li>)"
    result = ErrorCorrectionEngine().correct_code(text)
    assert "<li key={i}>" in result.final_text


def test_missing_hook_import_is_added():
    text = "export function C() { const [a, setA] = useState(0); return a }"
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text.startswith("import { useState } from 'react'\n")
    assert result.success


def test_explicit_any_is_narrowed():
    result = ErrorCorrectionEngine().correct_code("export function f(x: any) { return x }")
    assert "x: unknown" in result.final_text


def test_strict_inequality():
    result = ErrorCorrectionEngine().correct_code("export const ok = a != b")
    assert result.final_text == "export const ok = a !== b"


def test_unused_import_binding_is_removed():
    text = "import { useState, useMemo } from 'react'\nexport const f = () => useState(0)\n"
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text.startswith("import { useState } from 'react'\n")
    assert result.success


# --- external issues ---

def test_external_issue_resolved_by_generic_fixer():
    text = "import { a } from './a'\nimport { b } from './b'\nexport const c = a + b\n"
    external = ["import: Cannot find module './b' or its corresponding type declarations."]
    result = ErrorCorrectionEngine().correct_code(text, external_issues=external)
    assert "./b" not in result.final_text
    assert "./a" in result.final_text
    assert result.fixed_issues == tuple(external)
    assert result.success


def test_unfixable_external_issue_remains():
    external = ["type-checking: Something odd"]
    result = ErrorCorrectionEngine().correct_code(CLEAN, max_iterations=3, external_issues=external)
    assert result.iterations_used == 1
    assert result.remaining_issues == ("type-checking: Something odd",)
    assert result.final_text == CLEAN


def test_external_style_issue_uses_generic_fixer():
    engine = ErrorCorrectionEngine(patterns=[], structural_checks=[])
    external = ["style: Unexpected var, use let or const instead."]
    result = engine.correct_code("var a = 1\n", external_issues=external)
    assert result.final_text == "let a = 1\n"
    assert result.success


def test_statistics_counts_categories():
    stats = ErrorCorrectionEngine().statistics()
    assert stats["total"] == len(ERROR_PATTERNS)
    assert stats["by_category"]["style"] == 3


# --- fixer edge cases ---

def test_list_key_after_arrow_handler_is_recognized():
    text = "items.map(item => <li onClick={() => pick(item)} key={item.id}>{item.name}</li>)"
    engine = ErrorCorrectionEngine()
    assert not any("key prop" in issue for issue in engine.detect_issues(text))
    result = engine.correct_code(text, max_iterations=3)
    assert result.final_text == text
    assert result.final_text.count("key=") == 1


def test_list_key_added_once_next_to_arrow_handler():
    text = "items.map(item => <li onClick={() => pick(item)}>{item}</li>)"
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text == "items.map((item, index) => <li key={index} onClick={() => pick(item)}>{item}</li>)"
    assert result.success


def test_hook_import_goes_after_use_client_directive():
    text = "'use client'\n\nexport default function Page() { const [n, setN] = useState(0); return n }\n"
    result = ErrorCorrectionEngine().correct_code(text, max_iterations=3)
    assert result.final_text.startswith("'use client'\nimport { useState } from 'react'\n")
    assert result.success


def test_hook_import_goes_after_header_comment_and_directive():
    text = '// Dashboard page\n"use client";\nexport default function Page() { useEffect(() => {}); return null }\n'
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text.startswith(
        '// Dashboard page\n"use client";\nimport { useEffect } from \'react\'\nexport default'
    )


def test_debug_print_with_deeply_nested_arguments():
    text = "export function f(a) { console.log(fmt(a(b))); return a }"
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text == "export function f(a) { /* console.log(fmt(a(b))); */ return a }"
    assert result.success


def test_debug_print_with_paren_in_string():
    text = 'export function f() { console.log(")", g(1)) }'
    result = ErrorCorrectionEngine().correct_code(text)
    assert result.final_text == 'export function f() { /* console.log(")", g(1)) */ }'


def test_unrelated_style_finding_leaves_debug_calls_alone():
    engine = ErrorCorrectionEngine(patterns=[], structural_checks=[])
    external = ["style: Unexpected trailing whitespace. [Error/no-trailing-spaces]"]
    text = "export const f = () => console.log(1)\n"
    result = engine.correct_code(text, external_issues=external)
    assert result.final_text == text
    assert result.remaining_issues == tuple(external)


def test_console_lint_finding_neutralizes_debug_calls():
    engine = ErrorCorrectionEngine(patterns=[], structural_checks=[])
    external = ["style: Unexpected console statement. [Error/no-console]"]
    result = engine.correct_code("export const f = () => console.log(1)\n", external_issues=external)
    assert result.final_text == "export const f = () => /* console.log(1) */\n"
    assert result.success


def test_missing_exported_member_drops_only_that_binding():
    text = "import { a, b } from './a'\nexport const c = a + b\n"
    external = ["import: Module '\"./a\"' has no exported member 'b'."]
    result = ErrorCorrectionEngine().correct_code(text, external_issues=external)
    assert result.final_text == "import { a } from './a'\nexport const c = a + b\n"
    assert result.fixed_issues == tuple(external)
