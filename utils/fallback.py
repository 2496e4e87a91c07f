"""Deterministic fallback artifacts, used when the generation service is unavailable."""

import json
import os
import re

from utils.folder_naming import slugify
from utils.template_engine import render_template

PURPOSE_TEMPLATES = {
    "ui-component": "ui_component.tsx.tmpl",
    "state-management": "state_store.ts.tmpl",
    "api-client": "api_client.ts.tmpl",
    "test-suite": "test_suite.ts.tmpl",
    "config": "config.json.tmpl",
    "generic": "generic.ts.tmpl",
}

# Exact file names that override the purpose template
FILE_TEMPLATES = {
    "package.json": "package.json.tmpl",
    "tsconfig.json": "tsconfig.json.tmpl",
}

PURPOSES = tuple(PURPOSE_TEMPLATES)


def _pascal_case(text):
    words = re.findall(r"[A-Za-z0-9]+", text)
    name = "".join(w[:1].upper() + w[1:] for w in words)
    if not name or name[0].isdigit():
        name = "Generated" + name
    return name


def _component_name(target_name):
    """PascalCase name for an artifact; "pattern-a/page.tsx" -> "PatternAPage"."""
    stem = os.path.basename(target_name).split(".")[0]
    parent = os.path.basename(os.path.dirname(target_name))
    if stem in ("page", "index", "route") and parent:
        return _pascal_case(f"{parent} {stem}")
    return _pascal_case(stem or "artifact")


def _safe_text(text):
    # Keep the value usable inside single-quoted source strings and JSX text
    return re.sub(r"['\"\\`<>{}$]", "", text).strip() or "Generated application"


def _template_for(purpose, target_name):
    basename = os.path.basename(target_name)
    if basename in FILE_TEMPLATES:
        return FILE_TEMPLATES[basename]
    if purpose == "state-management":
        if basename.startswith("use"):
            return "hook.ts.tmpl"
        if "type" in basename.lower():
            return "state_types.ts.tmpl"
    return PURPOSE_TEMPLATES.get(purpose, PURPOSE_TEMPLATES["generic"])


def generate_fallback(purpose, target_name, context=None):
    """Render a placeholder artifact for the given purpose. Pure and deterministic."""
    context = context or {}
    idea = _safe_text(str(context.get("idea", "")))
    features = [_safe_text(str(f)) for f in context.get("features", [])] or ["Overview", "Details", "Settings"]
    component_name = _component_name(target_name)
    stem = os.path.basename(target_name).split(".")[0]

    variables = {
        "target_name": target_name,
        "component_name": component_name,
        "hook_name": stem if stem.startswith("use") else "use" + component_name,
        "name_length": len(component_name),
        "title": idea[:60],
        "idea": idea,
        "features_literal": "[" + ", ".join(f"'{f}'" for f in features) + "]",
        "package_name": slugify(idea).replace("_", "-")[:50] or "generated-app",
    }
    text = render_template("fallback", _template_for(purpose, target_name), variables)
    if target_name.endswith(".json"):
        # Config artifacts must parse as JSON
        text = json.dumps(json.loads(text), indent=2) + "\n"
    return text
