"""
Git VCS Implementation
======================

Implements VCSProtocol by shelling out to the ``git`` executable.
Query commands capture their output; commands that change the repository
(checkout, cherry-pick, rebase) write straight to the terminal so git's
own diagnostics reach the user unchanged.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable

from git_transfer.core.git_ops import run_command
from git_transfer.transfer.sequence_editor import DROP_ENV_VAR, editor_command

from .exceptions import (
    VCSCheckoutError,
    VCSError,
    VCSNotFoundError,
    VCSRefError,
)
from .types import CommitRef, RefKind, WorkingContext

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "refs/heads/"
DEFAULT_TIMEOUT = 120


class GitVCS:
    """Git backend bound to a single work tree."""

    def __init__(self, repo_root: Path, timeout: int = DEFAULT_TIMEOUT, echo: bool = True):
        self.repo_root = repo_root
        self.timeout = timeout
        # echo=False keeps git output off stdout (for --json)
        self.echo = echo

    def __repr__(self) -> str:
        return f"GitVCS(repo_root={str(self.repo_root)!r})"

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _git(
        self,
        args: list[str],
        capture: bool = True,
        env: dict[str, str] | None = None,
    ) -> tuple[int, str, str]:
        try:
            return run_command(
                ["git", *args],
                check_return=False,
                capture=capture,
                cwd=self.repo_root,
                env=env,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise VCSNotFoundError("git executable not found on PATH", returncode=127) from exc
        except subprocess.TimeoutExpired:
            logger.error("git %s timed out after %ss", " ".join(args), self.timeout)
            return 124, "", f"git command timed out: git {' '.join(args)}"

    def _mutate(self, args: list[str], env: dict[str, str] | None = None) -> int:
        code, stdout, stderr = self._git(args, capture=not self.echo, env=env)
        if stdout:
            logger.debug("git %s: %s", args[0], stdout)
        if code != 0 and stderr:
            logger.warning("git %s: %s", args[0], stderr)
        return code

    # =========================================================================
    # Branch and context operations
    # =========================================================================

    def resolve_branch(self, name: str) -> str | None:
        if not name or name.startswith("-"):
            return None
        code, stdout, _ = self._git(["rev-parse", "--symbolic-full-name", name])
        if code != 0 or not stdout.startswith(BRANCH_PREFIX):
            logger.debug("%r does not resolve to a local branch (got %r)", name, stdout)
            return None
        return stdout[len(BRANCH_PREFIX):]

    def get_current_context(self) -> WorkingContext:
        code, stdout, _ = self._git(["symbolic-ref", "--quiet", "--short", "HEAD"])
        if code == 0 and stdout:
            return WorkingContext(ref=stdout)

        code, stdout, stderr = self._git(["rev-parse", "--verify", "HEAD"])
        if code != 0:
            raise VCSError("Cannot determine the current checkout", returncode=code, stderr=stderr)
        return WorkingContext(ref=stdout, detached=True)

    def checkout(self, ref: str) -> None:
        logger.info("Checking out %s", ref)
        code = self._mutate(["checkout", ref, "--"])
        if code != 0:
            raise VCSCheckoutError(f"Could not check out {ref}", returncode=code)

    # =========================================================================
    # Commit listing
    # =========================================================================

    def list_commits(self, token: str) -> CommitRef:
        kind = RefKind.from_token(token)
        if kind is RefKind.SINGLE:
            code, stdout, stderr = self._git(
                ["rev-parse", "--verify", "--quiet", f"{token}^{{commit}}"]
            )
            if code != 0 or not stdout:
                raise VCSRefError(f"Unknown commit: {token}", returncode=code or 1, stderr=stderr)
            return CommitRef(token=token, kind=kind, commits=[stdout])

        code, stdout, stderr = self._git(
            ["rev-list", "--reverse", "--left-right", "--boundary", token, "--"]
        )
        if code != 0:
            raise VCSRefError(f"Invalid range: {token}", returncode=code, stderr=stderr)
        return CommitRef(token=token, kind=kind, commits=parse_rev_list(stdout))

    def merge_base(self, a: str, b: str) -> str:
        code, stdout, stderr = self._git(["merge-base", a, b])
        if code != 0 or not stdout:
            raise VCSRefError(
                f"{a} and {b} have no common ancestor", returncode=code or 1, stderr=stderr
            )
        return stdout

    # =========================================================================
    # Replay
    # =========================================================================

    def cherry_pick(self, commit: str) -> int:
        logger.info("Cherry-picking %s", commit)
        code = self._mutate(["cherry-pick", commit])
        if code != 0:
            logger.warning("cherry-pick of %s exited with %s", commit, code)
        return code

    def abort_cherry_pick(self) -> None:
        code, _, stderr = self._git(["cherry-pick", "--abort"])
        if code != 0:
            logger.warning("git cherry-pick --abort failed: %s", stderr)

    # =========================================================================
    # History rewrite
    # =========================================================================

    def drop_commits(self, branch: str, base: str, commits: Iterable[str]) -> int:
        drop = list(commits)
        if not drop:
            return 0

        previous = self.get_current_context()
        env = {
            "GIT_SEQUENCE_EDITOR": editor_command(),
            DROP_ENV_VAR: " ".join(drop),
        }
        logger.info("Rewriting %s..%s without %d commit(s)", base[:12], branch, len(drop))
        code = self._mutate(
            ["rebase", "--interactive", "--no-autosquash", base, branch],
            env=env,
        )
        if code != 0:
            logger.error("History rewrite of %s failed with exit code %s", branch, code)
            return code

        # rebase leaves HEAD on the rewritten branch
        if not previous.is_branch(branch):
            self.checkout(previous.ref)
        return 0


def parse_rev_list(output: str) -> list[str]:
    """Keep right-side commits from ``rev-list --left-right --boundary`` output.

    Lines prefixed ``<`` (left side of a symmetric difference) and ``-``
    (boundary commits) are excluded.
    """
    commits = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith(">"):
            commits.append(line[1:])
        elif line and line[0] not in "<-":
            commits.append(line)
    return commits


__all__ = ["GitVCS", "parse_rev_list", "DEFAULT_TIMEOUT"]
