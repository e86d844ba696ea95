"""
VCS Abstraction Package
=======================

The backend operations git-transfer relies on: resolving branches,
reading and switching the current checkout, listing commits, replaying
them, and rewriting a branch without selected commits.

Usage:
    from git_transfer.core.vcs import VCSProtocol, get_vcs

    vcs = get_vcs(repo_root)
    branch = vcs.resolve_branch("main")
"""

from __future__ import annotations

# Types
from .types import (
    CommitRef,
    RefKind,
    WorkingContext,
)

# Protocol
from .protocol import VCSProtocol

# Exceptions
from .exceptions import (
    VCSCheckoutError,
    VCSConflictError,
    VCSError,
    VCSNotFoundError,
    VCSRefError,
    VCSRewriteError,
)

# Detection and factory
from .detection import (
    get_git_version,
    get_vcs,
    is_git_available,
)

__all__ = [
    # Types
    "RefKind",
    "CommitRef",
    "WorkingContext",
    # Protocol
    "VCSProtocol",
    # Exceptions
    "VCSError",
    "VCSNotFoundError",
    "VCSRefError",
    "VCSCheckoutError",
    "VCSConflictError",
    "VCSRewriteError",
    # Detection
    "is_git_available",
    "get_git_version",
    "get_vcs",
]
