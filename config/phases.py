"""Default phase chain for a generated web application."""

from core.state import PhaseDefinition

PHASE_SPECS = [
    {
        "name": "UI Structure Generation",
        "description": "Generate three alternative page layouts",
        "outputs": [
            "app/generated/pattern-a/page.tsx",
            "app/generated/pattern-b/page.tsx",
            "app/generated/pattern-c/page.tsx",
        ],
        "purpose": "ui-component",
        "max_tokens": 4000,
        "temperature": 0.7,
    },
    {
        "name": "State Management Implementation",
        "description": "Implement the application store, state types and feature hooks",
        "outputs": [
            "lib/store/appStore.ts",
            "lib/types/stateTypes.ts",
            "hooks/useFeatures.ts",
        ],
        "purpose": "state-management",
        "max_tokens": 3000,
        "temperature": 0.5,
    },
    {
        "name": "Business Logic & API Layer",
        "description": "Create the API client, validation rules and mock handlers",
        "outputs": [
            "lib/api/client.ts",
            "lib/validation/schemas.ts",
            "lib/mocks/handlers.ts",
        ],
        "purpose": "api-client",
        "max_tokens": 2500,
        "temperature": 0.3,
    },
    {
        "name": "Testing & Quality Assurance",
        "description": "Generate component and integration test suites",
        "outputs": [
            "tests/components/patterns.test.tsx",
            "tests/integration/api.test.ts",
        ],
        "purpose": "test-suite",
        "max_tokens": 3000,
        "temperature": 0.3,
    },
    {
        "name": "Dependency Installation & Setup",
        "description": "Declare packages and build tool configuration",
        "outputs": [
            "package.json",
            "tsconfig.json",
        ],
        "purpose": "config",
        "max_tokens": 1500,
        "temperature": 0.2,
    },
    {
        "name": "Quality Validation & Auto-fixing",
        "description": "Run typecheck, lint, format and tests with auto-correction",
        "outputs": ["quality-report.json"],
        "kind": "validate",
        "quality_checks": ["typecheck", "lint", "format", "test"],
    },
]


def build_phases(specs):
    """Turn a list of phase dicts into an ordered linear chain of PhaseDefinition.

    Each phase depends on the one before it unless the dict names its own
    dependencies.
    """
    phases = []
    previous = None
    for index, spec in enumerate(specs, 1):
        deps = spec.get("dependencies")
        if deps is None:
            deps = [previous] if previous else []
        phases.append(PhaseDefinition(
            name=spec["name"],
            description=spec.get("description", ""),
            index=index,
            dependencies=tuple(deps),
            outputs=tuple(spec.get("outputs", ())),
            kind=spec.get("kind", "generate"),
            purpose=spec.get("purpose", "generic"),
            quality_checks=tuple(spec.get("quality_checks", ())),
            max_tokens=spec.get("max_tokens", 4000),
            temperature=spec.get("temperature", 0.3),
        ))
        previous = spec["name"]
    return tuple(phases)


def default_phases():
    return build_phases(PHASE_SPECS)
