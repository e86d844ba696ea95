"""Transfer subpackage for git-transfer.

This package moves commits between branches: it replays them onto the
destination branch and rewrites the source branch without them.

Modules:
    refs: Commit token expansion
    context: Scoped checkout that restores the caller's branch
    sequence_editor: Non-interactive rebase todo filter
    executor: Core transfer execution logic
"""

from __future__ import annotations

__all__: list[str] = []
