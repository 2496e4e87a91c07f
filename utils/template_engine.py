"""Fallback artifact templates rendered with string.Template."""

import functools
import os
from string import Template

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")


def _resolve(group, template_name):
    path = os.path.realpath(os.path.join(TEMPLATES_DIR, group, template_name))
    if not path.startswith(os.path.realpath(TEMPLATES_DIR) + os.sep):
        raise ValueError(f"Template path escapes templates directory: {group}/{template_name}")
    return path


@functools.lru_cache(maxsize=None)
def load_template(group, template_name):
    """Read and compile a template once per process."""
    with open(_resolve(group, template_name), "r") as f:
        return Template(f.read())


def list_templates(group):
    directory = os.path.join(TEMPLATES_DIR, group)
    return sorted(name for name in os.listdir(directory) if name.endswith(".tmpl"))


def render_template(group, template_name, variables):
    """Render a template. Unknown placeholders are left as-is (safe_substitute)."""
    return load_template(group, template_name).safe_substitute(variables)
