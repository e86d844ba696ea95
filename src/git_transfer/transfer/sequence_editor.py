"""Non-interactive rebase todo filter.

Git runs ``$GIT_SEQUENCE_EDITOR <todo-file>`` during ``git rebase -i``.
This module is installed as that editor: it reads the commit ids listed
in ``GIT_TRANSFER_DROP`` and deletes the matching ``pick`` lines from the
todo file, leaving every other line untouched.

Usage (as git invokes it)::

    GIT_TRANSFER_DROP="<sha> <sha>" python sequence_editor.py <todo-file>

The file only imports the standard library so git can run it by path
without importing the git_transfer package.
"""

from __future__ import annotations

import os
import shlex
import sys
from pathlib import Path
from typing import Iterable

DROP_ENV_VAR = "GIT_TRANSFER_DROP"
PICK_COMMANDS = frozenset({"pick", "p"})

__all__ = [
    "DROP_ENV_VAR",
    "editor_command",
    "filter_todo",
    "main",
]


def editor_command() -> str:
    """Return the shell command git should run as the sequence editor."""
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(Path(__file__).resolve()))}"


def _matches(abbrev: str, drop: Iterable[str]) -> bool:
    abbrev = abbrev.lower()
    return any(full.startswith(abbrev) or abbrev.startswith(full) for full in drop)


def filter_todo(text: str, drop: Iterable[str]) -> tuple[str, list[str]]:
    """Remove pick lines for ``drop`` from a rebase todo list.

    Args:
        text: Contents of the todo file.
        drop: Commit ids (full or abbreviated) to remove.

    Returns:
        Tuple of (filtered text, ids of the lines that were dropped)
    """
    drop = [d.strip().lower() for d in drop if d.strip()]
    kept: list[str] = []
    dropped: list[str] = []
    has_commands = False
    for line in text.splitlines(keepends=True):
        parts = line.split(maxsplit=2)
        if len(parts) >= 2 and parts[0] in PICK_COMMANDS and _matches(parts[1], drop):
            dropped.append(parts[1])
            continue
        if parts and not parts[0].startswith("#"):
            has_commands = True
        kept.append(line)

    # git aborts the rebase on an empty todo list; noop resets the branch to its base
    if dropped and not has_commands:
        kept.insert(0, "noop\n")
    return "".join(kept), dropped


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("usage: sequence_editor <todo-file>", file=sys.stderr)
        return 1

    todo_path = Path(args[0])
    drop = os.environ.get(DROP_ENV_VAR, "").split()
    try:
        text = todo_path.read_text(encoding="utf-8")
        filtered, _ = filter_todo(text, drop)
        todo_path.write_text(filtered, encoding="utf-8")
    except OSError as exc:
        print(f"git-transfer: cannot rewrite {todo_path}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
