"""
VCS Protocol
============

The operations git-transfer needs from a version-control backend. The
executor is written against this protocol so tests can drive it with a
double instead of a real repository.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from .types import CommitRef, WorkingContext


@runtime_checkable
class VCSProtocol(Protocol):
    """Backend contract used by the transfer executor."""

    # Branch and context operations

    def resolve_branch(self, name: str) -> str | None:
        """Return the canonical local branch name for ``name``, or None."""
        ...

    def get_current_context(self) -> WorkingContext:
        """Return the current checkout (branch, or commit when detached)."""
        ...

    def checkout(self, ref: str) -> None:
        """Switch the working context to ``ref``.

        Raises:
            VCSCheckoutError: git refused to switch.
        """
        ...

    # Commit listing

    def list_commits(self, token: str) -> CommitRef:
        """Expand a single reference or range into commit ids, oldest first.

        Raises:
            VCSRefError: the token does not resolve.
        """
        ...

    def merge_base(self, a: str, b: str) -> str:
        """Return the best common ancestor of ``a`` and ``b``."""
        ...

    # Replay

    def cherry_pick(self, commit: str) -> int:
        """Replay ``commit`` onto HEAD. Returns git's exit code."""
        ...

    def abort_cherry_pick(self) -> None:
        """Abandon an in-progress replay."""
        ...

    # History rewrite

    def drop_commits(self, branch: str, base: str, commits: Iterable[str]) -> int:
        """Rewrite ``base..branch`` without ``commits``. Returns git's exit code."""
        ...


__all__ = ["VCSProtocol"]
