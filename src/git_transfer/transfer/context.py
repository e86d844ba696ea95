"""Scoped checkout of the destination branch.

``checked_out`` records the caller's checkout, switches to the requested
branch when needed, and switches back on every exit path. A failed
restore is reported; it never hides an exception raised by the body.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from git_transfer.core.vcs import VCSCheckoutError, VCSProtocol, WorkingContext

logger = logging.getLogger(__name__)

__all__ = ["ContextSwitch", "checked_out"]


@dataclass
class ContextSwitch:
    """State of one scoped checkout."""

    original: WorkingContext
    target: str
    switched: bool
    restore: bool = True
    restored: bool = False

    def release(self) -> None:
        """Leave the working context where it is when the scope exits."""
        self.restore = False


@contextmanager
def checked_out(vcs: VCSProtocol, branch: str) -> Iterator[ContextSwitch]:
    """Run the body with ``branch`` checked out.

    Raises:
        VCSCheckoutError: switching to ``branch`` failed (nothing else ran),
            or switching back failed after a successful body.
    """
    original = vcs.get_current_context()
    switch = ContextSwitch(
        original=original,
        target=branch,
        switched=not original.is_branch(branch),
    )

    if switch.switched:
        logger.info("Switching from %s to %s", original.ref, branch)
        vcs.checkout(branch)
    else:
        logger.debug("Already on %s", branch)

    try:
        yield switch
    except BaseException:
        if switch.switched and switch.restore:
            try:
                vcs.checkout(original.ref)
                switch.restored = True
            except VCSCheckoutError as exc:
                logger.error("Could not return to %s: %s", original.ref, exc)
        raise

    if switch.switched and switch.restore:
        vcs.checkout(original.ref)
        switch.restored = True
    elif switch.switched:
        logger.warning("Not returning to %s; the working tree needs attention first", original.ref)
