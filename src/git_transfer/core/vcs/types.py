"""
VCS Types
=========

Enums and dataclasses shared by the backend protocol and its git
implementation. Everything here is transient: it describes refs and
commits owned by the repository, never state owned by git-transfer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# =============================================================================
# Enums
# =============================================================================


class RefKind(str, Enum):
    """How a commit token on the command line should be expanded."""

    SINGLE = "single"
    """One commit reference (sha, tag, branch~2, ...)."""

    RANGE = "range"
    """Exclusive range ``A..B``."""

    SYMMETRIC_RANGE = "symmetric_range"
    """Symmetric difference ``A...B``."""

    @classmethod
    def from_token(cls, token: str) -> "RefKind":
        """Classify a token by its two- or three-dot separator."""
        if "..." in token:
            return cls.SYMMETRIC_RANGE
        if ".." in token:
            return cls.RANGE
        return cls.SINGLE


# =============================================================================
# Dataclasses
# =============================================================================


@dataclass
class WorkingContext:
    """The checkout that was active when a transfer started.

    Attributes:
        ref: Branch name, or the commit id when HEAD is detached.
        detached: True when HEAD did not point at a branch.
    """

    ref: str
    detached: bool = False

    def is_branch(self, name: str) -> bool:
        return not self.detached and self.ref == name


@dataclass
class CommitRef:
    """A token from the command line and the commits it expands to.

    Attributes:
        token: The token exactly as given by the caller.
        kind: Single reference or one of the two range forms.
        commits: Full commit ids, oldest first.
    """

    token: str
    kind: RefKind
    commits: list[str] = field(default_factory=list)

    @property
    def is_range(self) -> bool:
        return self.kind is not RefKind.SINGLE


__all__ = ["RefKind", "WorkingContext", "CommitRef"]
