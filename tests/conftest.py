from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

FIXED_DATE = "2020-01-01 00:00:00 +0000"


class GitRepo:
    """Thin wrapper over a temporary git repository used by the tests."""

    def __init__(self, root: Path):
        self.root = root

    def git(self, *args: str, check: bool = True) -> str:
        completed = subprocess.run(
            ["git", *args],
            cwd=self.root,
            capture_output=True,
            text=True,
            check=check,
        )
        return completed.stdout.strip()

    def commit(self, filename: str, content: str, message: str) -> str:
        (self.root / filename).write_text(content, encoding="utf-8")
        self.git("add", filename)
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")

    def checkout(self, ref: str) -> None:
        self.git("checkout", "-q", ref)

    def current_branch(self) -> str | None:
        name = self.git("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        return name or None

    def head(self, ref: str = "HEAD") -> str:
        return self.git("rev-parse", ref)

    def log(self, ref: str) -> list[str]:
        return self.git("rev-list", ref).splitlines()

    def subjects(self, ref: str) -> list[str]:
        return self.git("log", "--format=%s", ref).splitlines()

    def show(self, ref: str, path: str) -> str | None:
        completed = subprocess.run(
            ["git", "show", f"{ref}:{path}"],
            cwd=self.root,
            capture_output=True,
            text=True,
        )
        return completed.stdout if completed.returncode == 0 else None

    def in_progress(self, marker: str) -> bool:
        return Path(self.root, self.git("rev-parse", "--git-path", marker)).exists()


@pytest.fixture(autouse=True)
def _git_identity(monkeypatch):
    """Give git a fixed identity and clock and ignore the user's global config."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Git Transfer")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "transfer@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Git Transfer")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "transfer@example.com")
    # fixed dates: replaying a commit onto its own parent reproduces its id
    monkeypatch.setenv("GIT_AUTHOR_DATE", FIXED_DATE)
    monkeypatch.setenv("GIT_COMMITTER_DATE", FIXED_DATE)
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GIT_TRANSFER_CONFIG", raising=False)


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    """Create a repository with a single commit on ``main``."""
    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root)
    repo.git("init", "-q", "--initial-branch=main")
    repo.commit("README.md", "# Test Repo\n", "init")
    return repo


@pytest.fixture
def transfer_repo(git_repo: GitRepo) -> GitRepo:
    """``feature`` branches off ``main`` with commits A, B and C, each adding its own file.

    The repository is left on ``main``. Commit ids are available as
    ``repo.shas["A"]`` etc.
    """
    git_repo.git("checkout", "-q", "-b", "feature")
    git_repo.shas = {
        "A": git_repo.commit("a.txt", "a\n", "A"),
        "B": git_repo.commit("b.txt", "b\n", "B"),
        "C": git_repo.commit("c.txt", "c\n", "C"),
    }
    git_repo.checkout("main")
    return git_repo
