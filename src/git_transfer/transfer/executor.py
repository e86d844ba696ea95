"""Core transfer execution logic.

Provides the main entry point for moving commits between branches:
resolve both branches, check out the destination, replay every commit
and rewrite the source branch without it, then return to the original
checkout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from rich.console import Console

from git_transfer.cli import StepTracker
from git_transfer.cli.helpers import console as default_console
from git_transfer.core.config import ConflictPolicy, RemovalStrategy, TransferConfig
from git_transfer.core.vcs import (
    VCSCheckoutError,
    VCSConflictError,
    VCSProtocol,
    VCSRefError,
    VCSRewriteError,
)
from git_transfer.transfer.context import checked_out
from git_transfer.transfer.refs import expand_token, short_id

logger = logging.getLogger(__name__)

__all__ = [
    "CommitOutcome",
    "TransferResult",
    "TransferUsageError",
    "resolve_branches",
    "execute_transfer",
    "plan_transfer",
]


class TransferUsageError(Exception):
    """A branch argument does not name an existing local branch."""

    def __init__(self, argument: str, value: str):
        self.argument = argument
        self.value = value
        super().__init__(f"{argument} '{value}' is not a branch")


@dataclass
class CommitOutcome:
    """What happened to one commit."""

    commit: str
    token: str
    replayed: bool = False
    removed: bool = False
    skipped_reason: str | None = None
    returncode: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "commit": self.commit,
            "token": self.token,
            "replayed": self.replayed,
            "removed": self.removed,
            "skipped_reason": self.skipped_reason,
            "returncode": self.returncode,
        }


@dataclass
class TransferResult:
    """Result of transfer execution."""

    source: str
    destination: str
    exit_code: int = 0
    outcomes: list[CommitOutcome] = field(default_factory=list)
    error: str | None = None
    context_switched: bool = False
    context_restored: bool = False
    halted: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def replayed(self) -> list[str]:
        return [o.commit for o in self.outcomes if o.replayed]

    @property
    def removed(self) -> list[str]:
        return [o.commit for o in self.outcomes if o.removed]

    def record_failure(self, code: int, message: str) -> None:
        self.exit_code = code or 1
        self.error = message

    def to_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "exit_code": self.exit_code,
            "source": self.source,
            "destination": self.destination,
            "context_switched": self.context_switched,
            "context_restored": self.context_restored,
            "halted": self.halted,
            "error": self.error,
            "commits": [o.to_dict() for o in self.outcomes],
        }


def resolve_branches(vcs: VCSProtocol, source: str, destination: str) -> tuple[str, str]:
    """Resolve both branch arguments to canonical branch names.

    Raises:
        TransferUsageError: either argument is not a local branch.
    """
    resolved_source = vcs.resolve_branch(source)
    if resolved_source is None:
        raise TransferUsageError("from-branch", source)
    resolved_destination = vcs.resolve_branch(destination)
    if resolved_destination is None:
        raise TransferUsageError("to-branch", destination)
    return resolved_source, resolved_destination


def execute_transfer(
    vcs: VCSProtocol,
    source: str,
    destination: str,
    tokens: Sequence[str],
    config: TransferConfig | None = None,
    tracker: StepTracker | None = None,
    console: Console | None = None,
    on_commit: Callable[[CommitOutcome], None] | None = None,
) -> TransferResult:
    """Move the commits named by ``tokens`` from ``source`` to ``destination``.

    This is the main entry point, coordinating:
    1. Checkout of the destination branch (skipped when already there)
    2. Expansion of each token, in order
    3. Replay of every commit with the configured conflict policy
    4. Removal from the source branch, batched or per commit
    5. Return to the original checkout

    Args:
        vcs: Backend bound to the repository
        source: Resolved source branch name
        destination: Resolved destination branch name
        tokens: Commit references or ranges, processed in the order given
        config: Transfer settings (defaults when None)
        tracker: StepTracker for progress display
        console: Rich console for per-commit lines
        on_commit: Callback after each commit has been processed

    Returns:
        TransferResult with the exit code and per-commit outcomes
    """
    config = config or TransferConfig()
    tracker = tracker or StepTracker("Commit Transfer")
    out = console or default_console
    result = TransferResult(source=source, destination=destination)

    tracker.start("checkout")
    entered = False
    try:
        with checked_out(vcs, destination) as switch:
            entered = True
            result.context_switched = switch.switched
            if switch.switched:
                tracker.complete("checkout", f"from {switch.original.ref}")
            else:
                tracker.skip("checkout", f"already on {destination}")

            try:
                _run(vcs, source, destination, tokens, config, tracker, out, result, on_commit)
            except VCSRewriteError as exc:
                result.record_failure(exc.returncode, exc.message)
                result.halted = True
                tracker.error("remove", exc.message)
                switch.release()
                out.print(f"\n[red]Error:[/red] {exc.message}")
                out.print(
                    "Resolve it with [bold]git rebase --continue[/bold] or "
                    f"[bold]git rebase --abort[/bold], then check out {switch.original.ref}."
                )

            if switch.switched and switch.restore:
                tracker.start("restore")

        result.context_restored = switch.restored
        if not switch.switched:
            tracker.skip("restore", f"stayed on {destination}")
        elif switch.restored:
            tracker.complete("restore", f"back on {switch.original.ref}")
        else:
            tracker.skip("restore", "history rewrite needs attention")
    except VCSCheckoutError as exc:
        if not entered:
            tracker.error("checkout", exc.message)
            result.record_failure(exc.returncode, f"Checkout failed: {exc.message}")
        else:
            tracker.error("restore", exc.message)
            result.record_failure(exc.returncode, f"Could not restore checkout: {exc.message}")
    return result


def _run(
    vcs: VCSProtocol,
    source: str,
    destination: str,
    tokens: Sequence[str],
    config: TransferConfig,
    tracker: StepTracker,
    out: Console,
    result: TransferResult,
    on_commit: Callable[[CommitOutcome], None] | None,
) -> None:
    per_commit = config.removal is RemovalStrategy.PER_COMMIT
    pending: list[CommitOutcome] = []
    # taken before any replay: a replayed commit can keep its original id
    base = ""
    if tokens:
        try:
            base = vcs.merge_base(destination, source)
        except VCSRefError as exc:
            result.record_failure(exc.returncode, exc.message)
            tracker.error("replay", exc.message)
            tracker.skip("remove", "nothing removed")
            out.print(f"[red]✗[/red] {exc.message}")
            return
    # ids on the source branch change after every per-commit rewrite
    renamed: dict[str, str] = {}
    failed = 0

    tracker.start("replay")
    try:
        for token in tokens:
            try:
                ref = expand_token(vcs, token)
            except VCSRefError as exc:
                result.record_failure(exc.returncode, exc.message)
                failed += 1
                out.print(f"[red]✗[/red] {token}: {exc.message}")
                continue

            for commit in ref.commits:
                outcome = CommitOutcome(commit=commit, token=token)
                result.outcomes.append(outcome)
                if not _replay(vcs, outcome, config.on_conflict, out, result):
                    failed += 1
                    if on_commit:
                        on_commit(outcome)
                    continue

                if per_commit:
                    if not any(o.removed for o in result.outcomes):
                        tracker.start("remove")
                    _remove(vcs, source, base, [outcome], config, out, renamed)
                else:
                    pending.append(outcome)
                if on_commit:
                    on_commit(outcome)
    except VCSConflictError as exc:
        tracker.error("replay", f"stopped at {short_id(exc.commit)}")
        out.print(f"[red]✗[/red] Stopped at {short_id(exc.commit)}; remaining commits were not processed")
    else:
        replayed = len(result.replayed)
        if failed:
            tracker.error("replay", f"{replayed} replayed, {failed} failed")
        else:
            tracker.complete("replay", f"{replayed} commit(s) replayed")

    if pending:
        tracker.start("remove")
        _remove(vcs, source, base, pending, config, out, renamed)

    removed = len(result.removed)
    if removed:
        tracker.complete("remove", f"{removed} commit(s) removed from {source}")
    else:
        tracker.skip("remove", "nothing removed")


def _replay(
    vcs: VCSProtocol,
    outcome: CommitOutcome,
    policy: ConflictPolicy,
    out: Console,
    result: TransferResult,
) -> bool:
    """Cherry-pick one commit. Returns True when removal should follow.

    Raises:
        VCSConflictError: the replay failed under the abort policy.
    """
    short = short_id(outcome.commit)
    out.print(f"[cyan]Cherry-picking {short} ({outcome.token})...[/cyan]")
    code = vcs.cherry_pick(outcome.commit)
    outcome.returncode = code
    if code == 0:
        outcome.replayed = True
        out.print(f"[green]✓[/green] {short} replayed")
        return True

    result.record_failure(code, f"Cherry-pick of {short} failed")
    if policy is ConflictPolicy.CONTINUE:
        logger.warning("Cherry-pick of %s failed; removing it from the source anyway", short)
        out.print(f"[yellow]Warning:[/yellow] cherry-pick of {short} failed; continuing to removal")
        return True

    vcs.abort_cherry_pick()
    outcome.skipped_reason = "replay failed"
    if policy is ConflictPolicy.ABORT:
        raise VCSConflictError(f"Cherry-pick of {short} failed", commit=outcome.commit, returncode=code)
    out.print(f"[yellow]Skipped[/yellow] {short}: cherry-pick failed, left on source")
    return False


def _remove(
    vcs: VCSProtocol,
    source: str,
    base: str,
    outcomes: list[CommitOutcome],
    config: TransferConfig,
    out: Console,
    renamed: dict[str, str],
) -> None:
    """Rewrite ``source`` without the commits in ``outcomes``.

    ``base`` is the merge base taken before any replay; rewrites keep it
    as an ancestor of ``source``.

    Raises:
        VCSRewriteError: the source branch could not be listed or the rebase failed.
    """
    try:
        before = vcs.list_commits(f"{base}..{source}").commits
    except VCSRefError as exc:
        raise VCSRewriteError(exc.message, returncode=exc.returncode, stderr=exc.stderr) from exc

    members = set(before)
    targets: dict[str, CommitOutcome] = {}
    for outcome in outcomes:
        current = renamed.get(outcome.commit, outcome.commit)
        if config.verify_membership and current not in members:
            outcome.skipped_reason = f"not on {source}"
            logger.warning("%s is not on %s; skipping removal", short_id(outcome.commit), source)
            out.print(
                f"[yellow]Warning:[/yellow] {short_id(outcome.commit)} is not on {source}; not removed"
            )
            continue
        targets[current] = outcome

    if not targets:
        return

    code = vcs.drop_commits(source, base, list(targets))
    if code != 0:
        raise VCSRewriteError(f"History rewrite of {source} failed", returncode=code)

    for outcome in targets.values():
        outcome.removed = True
        out.print(f"[green]✓[/green] Removed {short_id(outcome.commit)} from {source}")

    if config.removal is RemovalStrategy.PER_COMMIT:
        _track_rewrite(vcs, source, base, before, set(targets), renamed)


def _track_rewrite(
    vcs: VCSProtocol,
    source: str,
    base: str,
    before: list[str],
    dropped: set[str],
    renamed: dict[str, str],
) -> None:
    """Map pre-rewrite ids to post-rewrite ids on ``source``."""
    try:
        after = vcs.list_commits(f"{base}..{source}").commits
    except VCSRefError as exc:
        logger.warning("Cannot follow rewritten ids on %s: %s", source, exc.message)
        return

    expected = [c for c in before if c not in dropped]
    if len(expected) != len(after):
        logger.warning(
            "Rewrite of %s changed the commit count unexpectedly (%d -> %d); later removals may be skipped",
            source,
            len(expected),
            len(after),
        )
        return

    mapping = dict(zip(expected, after))
    for original, current in list(renamed.items()):
        renamed[original] = mapping.get(current, current)
    for old, new in mapping.items():
        renamed.setdefault(old, new)


def plan_transfer(
    vcs: VCSProtocol,
    source: str,
    destination: str,
    tokens: Sequence[str],
    config: TransferConfig | None = None,
) -> list[str]:
    """Return the git commands a transfer would run, without running them.

    Tokens are expanded against the current checkout.

    Raises:
        VCSRefError: a token or the merge base does not resolve.
    """
    config = config or TransferConfig()
    original = vcs.get_current_context()
    switched = not original.is_branch(destination)
    base = vcs.merge_base(destination, source)

    steps: list[str] = []
    if switched:
        steps.append(f"git checkout {destination}")

    commits: list[str] = []
    for token in tokens:
        for commit in expand_token(vcs, token).commits:
            commits.append(commit)
            steps.append(f"git cherry-pick {commit}")
            if config.removal is RemovalStrategy.PER_COMMIT:
                steps.append(f"git rebase -i {short_id(base)} {source}  # drop {short_id(commit)}")

    if commits and config.removal is RemovalStrategy.BATCH:
        dropped = ", ".join(short_id(c) for c in commits)
        steps.append(f"git rebase -i {short_id(base)} {source}  # drop {dropped}")

    if switched:
        steps.append(f"git checkout {original.ref}")
    return steps
