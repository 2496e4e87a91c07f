"""Output directory naming: idea slug plus numeric dedup suffix."""

import os
import re

BASE_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "generated")
MAX_DEDUP = 1000

_FILLER = {
    "build", "me", "a", "an", "the", "create", "make", "generate",
    "write", "for", "to", "with", "using", "that", "and", "app",
    "application", "please", "can", "you", "i", "want", "need",
    "some", "new", "web", "site", "website",
}


def slugify(text):
    """Convert text to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "_", text)
    return text.strip("_")


def project_name(idea):
    """Short name from the first three meaningful words of the idea."""
    words = re.sub(r"[^\w\s]", "", idea.lower()).split()
    meaningful = [w for w in words if w not in _FILLER]
    return slugify("_".join(meaningful[:3])) or "project"


def get_output_dir(idea, base_dir=None):
    """Return an unused directory under base_dir named after the idea (_2, _3, ... on collision)."""
    base_dir = os.path.realpath(base_dir or BASE_DIR)
    candidate = os.path.join(base_dir, project_name(idea))
    if not os.path.realpath(candidate).startswith(base_dir + os.sep):
        raise ValueError(f"Output path escapes base directory: {candidate}")

    if not os.path.exists(candidate):
        return candidate
    for counter in range(2, MAX_DEDUP + 2):
        deduped = f"{candidate}_{counter}"
        if not os.path.exists(deduped):
            return deduped
    raise RuntimeError(f"Too many duplicate projects (>{MAX_DEDUP}) for: {candidate}")
