"""File sinks receiving finished artifacts."""

import logging
import os

logger = logging.getLogger(__name__)


class DirectorySink:
    """Writes artifacts beneath a root directory, refusing paths that escape it."""

    def __init__(self, root):
        self.root = os.path.realpath(root)
        self.written = []

    def resolve(self, path):
        resolved = os.path.realpath(os.path.join(self.root, path.lstrip("/")))
        if not resolved.startswith(self.root + os.sep):
            raise ValueError(f"Path escapes output directory: {path}")
        return resolved

    def write(self, path, content):
        resolved = self.resolve(path)
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
        with open(resolved, "w") as fp:
            fp.write(content)
        self.written.append(path)
        logger.debug("Wrote %s (%d bytes)", resolved, len(content))
        return resolved


class MemorySink:
    """Keeps artifacts in a dict. Used for dry runs and the HTTP server."""

    def __init__(self):
        self.files = {}

    def write(self, path, content):
        self.files[path] = content
        return path
