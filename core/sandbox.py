"""Runs quality tools (tsc, eslint, prettier, jest) as allow-listed subprocesses."""

import logging
import os
import subprocess
from collections import namedtuple

from config.defaults import DEFAULTS

logger = logging.getLogger(__name__)

# status: "ok" (process ran, any return code), "timeout" or "missing"
SandboxResult = namedtuple("SandboxResult", ["stdout", "stderr", "returncode", "status"])

# Plain, non-interactive output for the line parsers in core.quality
_TOOL_ENV = {"CI": "true", "FORCE_COLOR": "0", "NO_COLOR": "1", "NPM_CONFIG_YES": "false"}


def _tool_env():
    env = dict(os.environ)
    env.update(_TOOL_ENV)
    return env


def run_in_sandbox(command, cwd, timeout=None, allowed=None):
    """Run one quality tool inside the scratch project directory.

    A tool that times out or is not installed does not raise; the caller
    decides from ``status`` whether the check failed or was skipped.
    ValueError is raised for an empty command, an executable outside
    ``allowed`` (default: DEFAULTS["allowed_commands"]) or a missing cwd.
    """
    timeout = DEFAULTS["sandbox_timeout"] if timeout is None else timeout
    allowed = DEFAULTS["allowed_commands"] if allowed is None else allowed

    if not command or not isinstance(command, list):
        raise ValueError("Command must be a non-empty list of strings")
    tool = command[0]
    if tool not in allowed:
        raise ValueError(f"Command '{tool}' not in allowlist: {allowed}")

    work_dir = os.path.realpath(cwd)
    if not os.path.isdir(work_dir):
        raise ValueError(f"Working directory does not exist: {work_dir}")

    logger.debug("Running %s in %s", " ".join(command), work_dir)
    try:
        proc = subprocess.run(
            command, cwd=work_dir, env=_tool_env(),
            capture_output=True, text=True, timeout=timeout,
        )
    except FileNotFoundError:
        logger.info("%s is not installed, check skipped", tool)
        return SandboxResult("", f"Command not found: {tool}", -1, "missing")
    except subprocess.TimeoutExpired:
        logger.warning("%s timed out after %ss", tool, timeout)
        return SandboxResult("", f"Command timed out after {timeout}s", -1, "timeout")

    return SandboxResult(proc.stdout, proc.stderr, proc.returncode, "ok")
