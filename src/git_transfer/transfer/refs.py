"""Commit token expansion."""

from __future__ import annotations

import logging

from git_transfer.core.vcs import CommitRef, VCSProtocol

logger = logging.getLogger(__name__)

__all__ = ["expand_token", "short_id"]

SHORT_ID_LENGTH = 7


def short_id(commit: str) -> str:
    return commit[:SHORT_ID_LENGTH]


def expand_token(vcs: VCSProtocol, token: str) -> CommitRef:
    """Expand one token into commit ids, oldest first.

    Raises:
        VCSRefError: the token does not resolve.
    """
    ref = vcs.list_commits(token)
    if ref.is_range and not ref.commits:
        logger.warning("Range %s contains no commits", token)
    else:
        logger.debug("%s -> %s", token, ", ".join(short_id(c) for c in ref.commits))
    return ref
