"""Subprocess and repository helpers shared by the git backend and the CLI."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Mapping, Sequence

from git_transfer.cli.helpers import console

logger = logging.getLogger(__name__)

__all__ = [
    "run_command",
    "find_repo_root",
]


def run_command(
    cmd: Sequence[str],
    check_return: bool = True,
    capture: bool = False,
    shell: bool = False,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> tuple[int, str, str]:
    """Run a command and return ``(returncode, stdout, stderr)``.

    When ``capture`` is False the child writes straight to the terminal and
    both output strings are empty. Extra ``env`` entries are layered on top
    of the current environment.
    """
    merged_env = {**os.environ, **env} if env else None
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd or ".")
    try:
        result = subprocess.run(
            list(cmd),
            check=check_return,
            capture_output=capture,
            text=True,
            shell=shell,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        console.print(f"[red]Error running command:[/red] {' '.join(cmd)}")
        console.print(f"[red]Exit code:[/red] {e.returncode}")
        if e.stderr:
            console.print(f"[red]Error output:[/red] {e.stderr}")
        raise

    stdout = (result.stdout or "").strip() if capture else ""
    stderr = (result.stderr or "").strip() if capture else ""
    return result.returncode, stdout, stderr


def find_repo_root(start: Path | None = None) -> Path | None:
    """Return the top-level directory of the work tree containing ``start``."""
    start = start or Path.cwd()
    if not start.is_dir():
        return None
    try:
        code, stdout, _ = run_command(
            ["git", "rev-parse", "--show-toplevel"],
            check_return=False,
            capture=True,
            cwd=start,
        )
    except FileNotFoundError:
        return None
    if code != 0 or not stdout:
        return None
    return Path(stdout)
