"""
VCS Exceptions
==============

Exception hierarchy for backend failures. Each exception keeps the git
return code and stderr so the CLI can surface git's own diagnostics and
propagate its exit status.
"""

from __future__ import annotations


class VCSError(Exception):
    """Base exception for all backend errors."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ""):
        self.message = message
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, returncode={self.returncode})"


class VCSNotFoundError(VCSError):
    """Raised when the git executable is not available."""

    pass


class VCSRefError(VCSError):
    """Raised when a commit reference or range cannot be resolved."""

    pass


class VCSCheckoutError(VCSError):
    """Raised when switching the working context fails."""

    pass


class VCSConflictError(VCSError):
    """Raised when a replay stops on a conflict."""

    def __init__(self, message: str, commit: str, returncode: int = 1, stderr: str = ""):
        self.commit = commit
        super().__init__(message, returncode=returncode, stderr=stderr)


class VCSRewriteError(VCSError):
    """Raised when a history rewrite cannot be started or completed."""

    pass


__all__ = [
    "VCSError",
    "VCSNotFoundError",
    "VCSRefError",
    "VCSCheckoutError",
    "VCSConflictError",
    "VCSRewriteError",
]
