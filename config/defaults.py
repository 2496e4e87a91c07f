"""Default pipeline settings."""

DEFAULTS = {
    "model": "claude-sonnet-4-5-20250929",
    "max_tokens": 8192,
    "temperature": 0.3,
    "max_correction_iterations": 3,
    "hard_max_correction_iterations": 10,   # absolute ceiling, cannot be overridden
    "phase_retry_attempts": 1,
    "retry_backoff_seconds": 0,
    "enforce_quality_gates": True,
    "sandbox_timeout": 120,
    "allowed_commands": ["npx", "node", "npm", "tsc", "eslint", "prettier", "jest"],
    "log_level": "INFO",
}

# Quality collaborators run by validation phases, keyed by check name.
# Commands run from the session work dir; "append_files" adds the artifact paths.
QUALITY_CHECKS = {
    "typecheck": {
        "command": ["npx", "--no-install", "tsc", "--noEmit", "--pretty", "false"],
        "category": "type-checking",
        "parser": "tsc",
        "append_files": False,
    },
    "lint": {
        "command": ["npx", "--no-install", "eslint", "--format", "unix"],
        "category": "style",
        "parser": "unix",
        "append_files": True,
    },
    "format": {
        "command": ["npx", "--no-install", "prettier", "--check"],
        "category": "style",
        "parser": "prettier",
        "append_files": True,
    },
    "test": {
        "command": ["npx", "--no-install", "jest", "--ci", "--passWithNoTests"],
        "category": "test",
        "parser": "jest",
        "append_files": False,
    },
}

# tsc diagnostics that are really import problems
TSC_IMPORT_CODES = {"TS2305", "TS2307", "TS2613", "TS2614", "TS6133", "TS6192"}
