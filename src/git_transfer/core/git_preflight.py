"""Deterministic git preflight checks run before any commit is moved."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import shlex
import subprocess

__all__ = [
    "GitPreflightIssue",
    "GitPreflightResult",
    "run_git_preflight",
    "build_git_preflight_failure_payload",
]

# Markers git leaves in the git dir while a multi-step operation is paused.
IN_PROGRESS_MARKERS = {
    "rebase-merge": "rebase",
    "rebase-apply": "rebase",
    "CHERRY_PICK_HEAD": "cherry-pick",
    "MERGE_HEAD": "merge",
    "REVERT_HEAD": "revert",
}


@dataclass
class GitPreflightIssue:
    """Single preflight issue with optional remediation command."""

    code: str
    check: str
    message: str
    remediation: str
    command: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {
            "code": self.code,
            "check": self.check,
            "message": self.message,
            "remediation": self.remediation,
        }
        if self.command:
            payload["command"] = self.command
        return payload


@dataclass
class GitPreflightResult:
    """Result envelope for git preflight checks."""

    repo_root: Path
    errors: list[GitPreflightIssue] = field(default_factory=list)
    warnings: list[GitPreflightIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.errors

    @property
    def first_error(self) -> GitPreflightIssue | None:
        return self.errors[0] if self.errors else None

    def remediation_commands(self) -> list[str]:
        return [issue.command for issue in self.errors if issue.command]

    def to_dict(self) -> dict[str, object]:
        return {
            "repo_root": str(self.repo_root),
            "passed": self.passed,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


@dataclass
class _GitCommandResult:
    returncode: int
    stdout: str
    stderr: str


def _run_git(repo_root: Path, args: list[str], timeout: int = 15) -> _GitCommandResult:
    """Run git command and normalize failure shape for deterministic handling."""
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=str(repo_root),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
        )
        return _GitCommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
    except FileNotFoundError:
        return _GitCommandResult(
            returncode=127,
            stdout="",
            stderr="git executable not found on PATH",
        )
    except subprocess.TimeoutExpired:
        return _GitCommandResult(
            returncode=124,
            stdout="",
            stderr=f"git command timed out: git {' '.join(args)}",
        )


def _is_dubious_ownership(stderr: str) -> bool:
    text = stderr.lower()
    return "dubious ownership" in text or "safe.directory" in text


def _safe_directory_command(repo_root: Path) -> str:
    return f"git config --global --add safe.directory {shlex.quote(str(repo_root))}"


def _first_line(text: str) -> str:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped:
            return stripped
    return ""


def _operation_in_progress(root: Path) -> str | None:
    for marker, operation in IN_PROGRESS_MARKERS.items():
        check = _run_git(root, ["rev-parse", "--git-path", marker])
        if check.returncode != 0:
            continue
        marker_path = Path(check.stdout.strip())
        if not marker_path.is_absolute():
            marker_path = root / marker_path
        if marker_path.exists():
            return operation
    return None


def run_git_preflight(
    repo_root: Path,
    *,
    require_clean: bool = True,
) -> GitPreflightResult:
    """Run deterministic git preflight checks with actionable remediation."""
    root = repo_root.resolve()
    result = GitPreflightResult(repo_root=root)

    repo_check = _run_git(root, ["rev-parse", "--is-inside-work-tree"])
    if repo_check.returncode != 0 or repo_check.stdout.strip().lower() != "true":
        if _is_dubious_ownership(repo_check.stderr):
            result.errors.append(
                GitPreflightIssue(
                    code="UNTRUSTED_REPOSITORY",
                    check="repository_trust",
                    message="Git rejected repository ownership trust (safe.directory).",
                    remediation="Mark the repository as trusted for this machine.",
                    command=_safe_directory_command(root),
                )
            )
        else:
            detail = _first_line(repo_check.stderr) or "Repository is not recognized by git."
            result.errors.append(
                GitPreflightIssue(
                    code="NOT_A_GIT_REPOSITORY",
                    check="repository_presence",
                    message=f"Git repository check failed: {detail}",
                    remediation="Run the command inside the repository or pass --repo.",
                    command=f"cd {shlex.quote(str(root))} && git status",
                )
            )
        return result

    operation = _operation_in_progress(root)
    if operation:
        result.errors.append(
            GitPreflightIssue(
                code="OPERATION_IN_PROGRESS",
                check="operation_state",
                message=f"A {operation} is already in progress.",
                remediation=f"Finish or abort the {operation} before transferring commits.",
                command=f"git -C {shlex.quote(str(root))} {operation} --abort",
            )
        )
        return result

    if require_clean:
        status_check = _run_git(root, ["status", "--porcelain", "--untracked-files=no"])
        if status_check.returncode != 0:
            detail = _first_line(status_check.stderr) or "Unable to read working tree status."
            result.errors.append(
                GitPreflightIssue(
                    code="STATUS_FAILED",
                    check="worktree_status",
                    message=f"Git status failed: {detail}",
                    remediation="Check the repository state with git status.",
                    command=f"git -C {shlex.quote(str(root))} status",
                )
            )
        elif status_check.stdout.strip():
            result.errors.append(
                GitPreflightIssue(
                    code="DIRTY_WORKTREE",
                    check="worktree_status",
                    message="Working tree has uncommitted changes to tracked files.",
                    remediation="Commit or stash your changes before transferring commits.",
                    command=f"git -C {shlex.quote(str(root))} stash",
                )
            )

    head_check = _run_git(root, ["symbolic-ref", "--quiet", "HEAD"])
    if head_check.returncode != 0:
        result.warnings.append(
            GitPreflightIssue(
                code="DETACHED_HEAD",
                check="head_state",
                message="HEAD is detached; the same commit will be checked out again afterwards.",
                remediation="Check out a branch first if you want to return to one.",
            )
        )

    return result


def build_git_preflight_failure_payload(
    preflight: GitPreflightResult,
    *,
    command_name: str,
) -> dict[str, object]:
    """Build deterministic JSON payload for preflight failures."""
    primary = preflight.first_error
    message = primary.message if primary else "Git preflight failed."
    return {
        "error_code": "GIT_PREFLIGHT_FAILED",
        "error": message,
        "command": command_name,
        "repo_root": str(preflight.repo_root),
        "preflight": preflight.to_dict(),
        "remediation": preflight.remediation_commands(),
    }
