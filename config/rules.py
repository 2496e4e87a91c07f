"""Error pattern table and structural checks for generated artifacts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

CATEGORIES = (
    "type-checking",
    "style",
    "import",
    "framework-convention",
    "accessibility",
    "syntax",
)

# Issue descriptions shared by table rules and structural checks so the two
# detectors deduplicate to a single issue string.
STRICT_EQUALITY = "Use strict equality operator"
BLOCK_SCOPED_DECLARATION = "Use let or const instead of var"
DEBUG_PRINT = "Debug print statement in production code"
MISSING_LIST_KEY = "Missing key prop in list rendering"
MISSING_IMG_ALT = "Image element missing alt text"


@dataclass(frozen=True)
class ErrorPattern:
    """One correction rule: a tagged match predicate plus a deterministic fixer."""

    name: str           # rule tag, e.g. "loose-equality"
    category: str       # one of CATEGORIES
    severity: str       # "error", "warning", "info"
    description: str
    pattern: re.Pattern
    fixer: Callable[[str, re.Match], str]
    guard: Callable[[str], bool] | None = None   # extra precondition on the whole text

    @property
    def issue(self) -> str:
        return f"{self.category}: {self.description}"

    def match(self, text: str) -> re.Match | None:
        if self.guard is not None and not self.guard(text):
            return None
        return self.pattern.search(text)

    def fix(self, text: str, match: re.Match) -> str:
        return self.fixer(text, match)


# --- Shared regexes (used by rules, structural checks and generic fixers) ---

LOOSE_EQUALITY_RE = re.compile(r"(?<![=!<>])(==|!=)(?!=)")
VAR_DECLARATION_RE = re.compile(r"\bvar\s+(?=[A-Za-z_$])")
# Opening of a debug call; the argument list is found by debug_print_spans()
DEBUG_CALL_RE = re.compile(r"(?<!/\* )\bconsole\.(?:log|debug|info|trace)\(")
# {...} attribute expressions are skipped whole so "=>" inside a handler
# does not end the opening tag early
LIST_WITHOUT_KEY_RE = re.compile(
    r"\.map\(\s*\(?\s*(?P<item>\w+)\s*(?:,\s*(?P<index>\w+)\s*)?\)?\s*=>"
    r"(?P<open>\s*\(?\s*)<(?P<tag>[A-Za-z][\w.]*)(?!(?:[^>{]|\{[^}]*\})*\bkey=)"
)
IMG_WITHOUT_ALT_RE = re.compile(r"<img\b(?![^>]*\balt=)")
EMPTY_ANCHOR_RE = re.compile(r"<a(\s[^>]*)?>\s*</a>")
HOOK_CALL_RE = re.compile(r"\b(use(?:State|Effect|Memo|Callback|Ref|Reducer|Context))\(")
REACT_IMPORT_RE = re.compile(r"^\s*import\s+(?:React\b|\{[^}]*\buse[A-Z])", re.MULTILINE)
EXPLICIT_ANY_RE = re.compile(r":\s*any\b")
TS_IGNORE_RE = re.compile(r"^[ \t]*//\s*@ts-ignore[^\n]*\n?", re.MULTILINE)
LEADING_COMMA_RE = re.compile(r"([{(])\s*,\s*")
NAMED_IMPORT_RE = re.compile(
    r"^(?P<lead>[ \t]*)import\s+(?:type\s+)?(?:(?P<default>[\w$]+)\s*,?\s*)?"
    r"(?:\{(?P<named>[^}]*)\})?\s*from\s+(?P<source>['\"][^'\"]+['\"]);?",
    re.MULTILINE,
)
# Leading comments plus an optional 'use client' or 'use server' directive
PROLOGUE_RE = re.compile(
    r"\A(?:\s*(?://[^\n]*|/\*.*?\*/))*\s*(?:(['\"])use (?:client|server)\1;?[ \t]*(?:\n|\Z))?",
    re.DOTALL,
)


def _call_end(text, pos):
    """Index just past the parenthesis that closes a call whose arguments start at pos."""
    depth = 1
    quote = None
    i = pos
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in "'\"`":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None


def debug_print_spans(text):
    """(start, end) of each complete, not yet commented-out console call, trailing ';' included."""
    spans = []
    for m in DEBUG_CALL_RE.finditer(text):
        if spans and m.start() < spans[-1][1]:
            continue
        end = _call_end(text, m.end())
        if end is None:
            continue
        if text[end:end + 1] == ";":
            end += 1
        spans.append((m.start(), end))
    return spans


def neutralize_debug_prints(text):
    """Wrap every debug call in a block comment."""
    parts = []
    last = 0
    for start, end in debug_print_spans(text):
        parts.append(text[last:start])
        parts.append(f"/* {text[start:end]} */")
        last = end
    parts.append(text[last:])
    return "".join(parts)


def has_debug_print(text):
    return bool(debug_print_spans(text))


def import_bindings(match):
    """Names bound by one NAMED_IMPORT_RE match, as (default, [named entries])."""
    named = []
    if match.group("named"):
        named = [part.strip() for part in match.group("named").split(",") if part.strip()]
    return match.group("default"), named


def bound_name(entry):
    # "Foo as Bar" binds Bar
    return entry.split(" as ")[-1].strip()


# --- Fixers ---

def _strict_equality(text, match):
    return LOOSE_EQUALITY_RE.sub(lambda m: m.group(1) + "=", text)


def _block_scoped(text, match):
    return VAR_DECLARATION_RE.sub("let ", text)


def _neutralize_debug(text, match):
    return neutralize_debug_prints(text)


def _add_list_key(text, match):
    def repl(m):
        index = m.group("index") or "index"
        return f".map(({m.group('item')}, {index}) =>{m.group('open')}<{m.group('tag')} key={{{index}}}"
    return LIST_WITHOUT_KEY_RE.sub(repl, text)


def _add_img_alt(text, match):
    return IMG_WITHOUT_ALT_RE.sub('<img alt=""', text)


def _fill_empty_anchor(text, match):
    return EMPTY_ANCHOR_RE.sub(lambda m: f"<a{m.group(1) or ''}>Link</a>", text)


def _missing_react_import(text):
    return bool(HOOK_CALL_RE.search(text)) and not REACT_IMPORT_RE.search(text)


def _add_react_import(text, match):
    hooks = sorted(set(HOOK_CALL_RE.findall(text)))
    # Directives such as 'use client' must stay the first statement
    split = PROLOGUE_RE.match(text).end()
    head, body = text[:split], text[split:]
    if head and not head.endswith("\n"):
        head += "\n"
    return f"{head}import {{ {', '.join(hooks)} }} from 'react'\n{body}"


def _narrow_any(text, match):
    return EXPLICIT_ANY_RE.sub(": unknown", text)


def _drop_ts_ignore(text, match):
    return TS_IGNORE_RE.sub("", text)


def _drop_leading_comma(text, match):
    return LEADING_COMMA_RE.sub(r"\1", text)


# Ordered rule table. The first rule whose issue matches wins per pass.
ERROR_PATTERNS = [
    # --- Style ---
    ErrorPattern(
        name="mutable-declaration-keyword",
        category="style",
        severity="warning",
        description=BLOCK_SCOPED_DECLARATION,
        pattern=VAR_DECLARATION_RE,
        fixer=_block_scoped,
    ),
    ErrorPattern(
        name="loose-equality",
        category="style",
        severity="warning",
        description=STRICT_EQUALITY,
        pattern=LOOSE_EQUALITY_RE,
        fixer=_strict_equality,
    ),
    ErrorPattern(
        name="debug-print",
        category="style",
        severity="warning",
        description=DEBUG_PRINT,
        pattern=DEBUG_CALL_RE,
        fixer=_neutralize_debug,
        guard=has_debug_print,
    ),

    # --- Framework conventions ---
    ErrorPattern(
        name="missing-list-key",
        category="framework-convention",
        severity="warning",
        description=MISSING_LIST_KEY,
        pattern=LIST_WITHOUT_KEY_RE,
        fixer=_add_list_key,
    ),

    # --- Imports ---
    ErrorPattern(
        name="missing-react-import",
        category="import",
        severity="error",
        description="Missing React import for hooks",
        pattern=HOOK_CALL_RE,
        fixer=_add_react_import,
        guard=_missing_react_import,
    ),

    # --- Accessibility ---
    ErrorPattern(
        name="missing-img-alt",
        category="accessibility",
        severity="error",
        description=MISSING_IMG_ALT,
        pattern=IMG_WITHOUT_ALT_RE,
        fixer=_add_img_alt,
    ),
    ErrorPattern(
        name="empty-anchor",
        category="accessibility",
        severity="error",
        description="Anchor element has no content",
        pattern=EMPTY_ANCHOR_RE,
        fixer=_fill_empty_anchor,
    ),

    # --- Type checking ---
    ErrorPattern(
        name="explicit-any",
        category="type-checking",
        severity="warning",
        description="Excessive use of any type",
        pattern=EXPLICIT_ANY_RE,
        fixer=_narrow_any,
    ),
    ErrorPattern(
        name="ts-ignore",
        category="type-checking",
        severity="warning",
        description="Type-check suppression comment",
        pattern=TS_IGNORE_RE,
        fixer=_drop_ts_ignore,
    ),

    # --- Syntax ---
    ErrorPattern(
        name="leading-comma",
        category="syntax",
        severity="error",
        description="Stray comma after opening bracket",
        pattern=LEADING_COMMA_RE,
        fixer=_drop_leading_comma,
    ),
]


# Structural heuristics run in addition to the table. Each entry:
# (category, description, predicate(text) -> bool)
STRUCTURAL_CHECKS = [
    ("style", STRICT_EQUALITY, lambda text: bool(LOOSE_EQUALITY_RE.search(text))),
    ("style", BLOCK_SCOPED_DECLARATION, lambda text: bool(VAR_DECLARATION_RE.search(text))),
    ("style", DEBUG_PRINT, has_debug_print),
    (
        "framework-convention",
        MISSING_LIST_KEY,
        lambda text: bool(LIST_WITHOUT_KEY_RE.search(text)) and "key=" not in text,
    ),
    ("accessibility", MISSING_IMG_ALT, lambda text: bool(IMG_WITHOUT_ALT_RE.search(text))),
]


def find_unused_imports(text):
    """Return imported binding names that never appear again in the text."""
    unused = []
    for m in NAMED_IMPORT_RE.finditer(text):
        default, named = import_bindings(m)
        names = [default] if default else []
        names.extend(bound_name(entry) for entry in named)
        rest = text[:m.start()] + text[m.end():]
        for name in names:
            if not re.search(r"(?<![\w$])" + re.escape(name) + r"(?![\w$])", rest):
                unused.append(name)
    return unused
