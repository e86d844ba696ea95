"""
VCS Detection Module
====================

Detects whether git is installed and provides the get_vcs() factory
that binds a backend to a repository.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from .exceptions import VCSNotFoundError

if TYPE_CHECKING:
    from .protocol import VCSProtocol


# =============================================================================
# Tool Detection Functions
# =============================================================================


@lru_cache(maxsize=1)
def is_git_available() -> bool:
    """
    Check if git is installed and working.

    Returns:
        True if git is installed and responds to --version, False otherwise.
    """
    if shutil.which("git") is None:
        return False
    try:
        result = subprocess.run(
            ["git", "--version"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


@lru_cache(maxsize=1)
def get_git_version() -> str | None:
    """
    Get installed git version, or None if not installed.

    Returns:
        Version string (e.g., "2.43.0") or None if git is not available.
    """
    if not is_git_available():
        return None
    try:
        result = subprocess.run(
            ["git", "--version"],
            capture_output=True,
            timeout=5,
            text=True,
        )
        if result.returncode != 0:
            return None
        # git version format: "git version 2.43.0" or "git version 2.43.0.windows.1"
        output = result.stdout.strip()
        match = re.search(r"git version\s+(\d+\.\d+\.\d+)", output)
        if match:
            return match.group(1)
        if "git version " in output:
            return output.split("git version ")[1].strip()
        return "unknown"
    except (subprocess.TimeoutExpired, OSError):
        return None


# =============================================================================
# Factory Function
# =============================================================================


def get_vcs(
    repo_root: Path,
    timeout: int | None = None,
    echo: bool = True,
) -> "VCSProtocol":
    """
    Return the git backend bound to ``repo_root``.

    Args:
        repo_root: Top-level directory of the work tree.
        timeout: Per-command timeout in seconds (None = backend default).
        echo: Let mutating git commands write to the terminal.

    Raises:
        VCSNotFoundError: git is not installed.
    """
    if not is_git_available():
        raise VCSNotFoundError(
            "git is not available. Install git and make sure it is on PATH.",
            returncode=127,
        )

    # Lazy import to avoid circular imports
    from .git import DEFAULT_TIMEOUT, GitVCS

    return GitVCS(repo_root, timeout=timeout or DEFAULT_TIMEOUT, echo=echo)


def _clear_detection_cache() -> None:
    """
    Clear the detection cache. For testing purposes only.
    """
    is_git_available.cache_clear()
    get_git_version.cache_clear()


__all__ = [
    "is_git_available",
    "get_git_version",
    "get_vcs",
]
