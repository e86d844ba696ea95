"""Tests for transfer execution against an in-memory backend."""

from __future__ import annotations

import pytest
from rich.console import Console

from git_transfer.cli import StepTracker
from git_transfer.core.config import ConflictPolicy, RemovalStrategy, TransferConfig
from git_transfer.core.vcs import (
    CommitRef,
    RefKind,
    VCSCheckoutError,
    VCSProtocol,
    VCSRefError,
    WorkingContext,
)
from git_transfer.transfer.executor import (
    TransferUsageError,
    execute_transfer,
    plan_transfer,
    resolve_branches,
)


class FakeVCS:
    """Linear branch histories held in memory.

    Rewritten commits get a ``*`` appended to their id, replayed commits
    a ``'``, so tests can follow them.
    """

    def __init__(self, branches: dict[str, list[str]], current: str, detached: bool = False):
        self.branches = {name: list(history) for name, history in branches.items()}
        self.current = WorkingContext(current, detached=detached)
        self.conflicts: set[str] = set()
        self.failing_checkouts: set[str] = set()
        self.rewrite_code = 0
        # replays keep the original id, as git does onto the same parent and dates
        self.keep_ids = False
        self.merge_base_calls = 0
        self.checkouts: list[str] = []
        self.picks: list[str] = []
        self.drops: list[list[str]] = []
        self.aborts = 0

    def resolve_branch(self, name: str) -> str | None:
        return name if name in self.branches else None

    def get_current_context(self) -> WorkingContext:
        return WorkingContext(self.current.ref, self.current.detached)

    def checkout(self, ref: str) -> None:
        if ref in self.failing_checkouts:
            raise VCSCheckoutError(f"Could not check out {ref}", returncode=1)
        self.checkouts.append(ref)
        self.current = WorkingContext(ref, detached=ref not in self.branches)

    def _history(self, name: str) -> list[str]:
        if name in self.branches:
            return list(self.branches[name])
        for history in self.branches.values():
            if name in history:
                return history[: history.index(name) + 1]
        raise VCSRefError(f"Unknown commit: {name}")

    def list_commits(self, token: str) -> CommitRef:
        kind = RefKind.from_token(token)
        if kind is RefKind.SINGLE:
            self._history(token)
            return CommitRef(token=token, kind=kind, commits=[token])
        lower, upper = token.split("...") if kind is RefKind.SYMMETRIC_RANGE else token.split("..")
        excluded = set(self._history(lower))
        return CommitRef(
            token=token,
            kind=kind,
            commits=[c for c in self._history(upper) if c not in excluded],
        )

    def merge_base(self, a: str, b: str) -> str:
        self.merge_base_calls += 1
        base = None
        for left, right in zip(self._history(a), self._history(b)):
            if left != right:
                break
            base = left
        if base is None:
            raise VCSRefError(f"{a} and {b} have no common ancestor")
        return base

    def cherry_pick(self, commit: str) -> int:
        self.picks.append(commit)
        if commit in self.conflicts:
            return 1
        self.branches[self.current.ref].append(commit if self.keep_ids else commit + "'")
        return 0

    def abort_cherry_pick(self) -> None:
        self.aborts += 1

    def drop_commits(self, branch: str, base: str, commits) -> int:
        drop = list(commits)
        self.drops.append(drop)
        if self.rewrite_code:
            return self.rewrite_code
        history = self.branches[branch]
        cut = history.index(base) + 1
        self.branches[branch] = history[:cut] + [c + "*" for c in history[cut:] if c not in drop]
        return 0


@pytest.fixture
def vcs() -> FakeVCS:
    return FakeVCS(
        {"main": ["root"], "feature": ["root", "a1", "b2", "c3"]},
        current="main",
    )


def _transfer(vcs, tokens, source="feature", destination="main", **config):
    tracker = StepTracker("Commit Transfer")
    for key in ("checkout", "replay", "remove", "restore"):
        tracker.add(key, key)
    result = execute_transfer(
        vcs,
        source,
        destination,
        tokens,
        config=TransferConfig(**config),
        tracker=tracker,
        console=Console(quiet=True),
    )
    return result, tracker


def test_fake_backend_satisfies_protocol(vcs):
    assert isinstance(vcs, VCSProtocol)


# =============================================================================
# Branch resolution
# =============================================================================


def test_resolve_branches(vcs):
    assert resolve_branches(vcs, "feature", "main") == ("feature", "main")


@pytest.mark.parametrize(
    "source, destination, message",
    [
        ("nope", "main", "from-branch 'nope' is not a branch"),
        ("feature", "nope", "to-branch 'nope' is not a branch"),
    ],
)
def test_resolve_branches_rejects_unknown(vcs, source, destination, message):
    with pytest.raises(TransferUsageError, match=message):
        resolve_branches(vcs, source, destination)


# =============================================================================
# Happy paths
# =============================================================================


def test_single_commit_on_destination(vcs):
    result, tracker = _transfer(vcs, ["b2"])

    assert result.success
    assert result.replayed == ["b2"]
    assert result.removed == ["b2"]
    assert vcs.branches["main"] == ["root", "b2'"]
    assert vcs.branches["feature"] == ["root", "a1*", "c3*"]
    assert vcs.checkouts == []
    assert result.context_switched is False
    assert tracker.status("checkout") == "skipped"
    assert tracker.status("replay") == "done"
    assert tracker.status("remove") == "done"


def test_switches_to_destination_and_back(vcs):
    vcs.current = WorkingContext("feature")

    result, tracker = _transfer(vcs, ["b2"])

    assert result.success
    assert vcs.checkouts == ["main", "feature"]
    assert result.context_switched is True
    assert result.context_restored is True
    assert tracker.status("restore") == "done"


def test_detached_head_is_restored(vcs):
    vcs.current = WorkingContext("c3", detached=True)

    result, _ = _transfer(vcs, ["a1"])

    assert result.success
    assert vcs.checkouts == ["main", "c3"]


def test_range_batch_rewrites_source_once(vcs):
    result, _ = _transfer(vcs, ["main..feature"])

    assert result.success
    assert vcs.picks == ["a1", "b2", "c3"]
    assert vcs.drops == [["a1", "b2", "c3"]]
    assert vcs.branches["main"] == ["root", "a1'", "b2'", "c3'"]
    assert vcs.branches["feature"] == ["root"]


def test_range_per_commit_follows_rewritten_ids(vcs):
    result, _ = _transfer(vcs, ["main..feature"], removal=RemovalStrategy.PER_COMMIT)

    assert result.success
    assert vcs.drops == [["a1"], ["b2*"], ["c3**"]]
    assert result.removed == ["a1", "b2", "c3"]
    assert vcs.branches["feature"] == ["root"]


def test_replay_that_keeps_the_original_id_is_still_removed(vcs):
    vcs.keep_ids = True

    result, _ = _transfer(vcs, ["a1"])

    assert vcs.branches["main"] == ["root", "a1"]
    assert vcs.merge_base("main", "feature") == "a1"
    assert result.success
    assert result.removed == ["a1"]
    assert result.outcomes[0].skipped_reason is None
    assert vcs.drops == [["a1"]]
    assert vcs.branches["feature"] == ["root", "b2*", "c3*"]


def test_per_commit_replays_that_keep_ids_are_all_removed(vcs):
    vcs.keep_ids = True

    result, _ = _transfer(vcs, ["main..feature"], removal=RemovalStrategy.PER_COMMIT)

    assert result.success
    assert vcs.drops == [["a1"], ["b2*"], ["c3**"]]
    assert vcs.branches["feature"] == ["root"]


def test_merge_base_is_taken_once_before_replay(vcs):
    _transfer(vcs, ["a1", "b2", "c3"], removal=RemovalStrategy.PER_COMMIT)

    assert vcs.merge_base_calls == 1


def test_unrelated_branches_replay_nothing():
    vcs = FakeVCS({"main": ["m0"], "feature": ["f0", "f1"]}, current="feature")

    result, tracker = _transfer(vcs, ["f1"])

    assert result.exit_code == 1
    assert "no common ancestor" in result.error
    assert vcs.picks == []
    assert vcs.drops == []
    assert result.context_restored is True
    assert tracker.status("replay") == "error"


def test_tokens_are_processed_in_order(vcs):
    result, _ = _transfer(vcs, ["c3", "a1"])

    assert vcs.picks == ["c3", "a1"]
    assert vcs.drops == [["c3", "a1"]]
    assert vcs.branches["main"] == ["root", "c3'", "a1'"]


def test_empty_token_list_still_restores(vcs):
    vcs.current = WorkingContext("feature")

    result, tracker = _transfer(vcs, [])

    assert result.success
    assert vcs.picks == []
    assert vcs.drops == []
    assert vcs.checkouts == ["main", "feature"]
    assert tracker.status("remove") == "skipped"


def test_empty_range_is_not_an_error(vcs):
    result, _ = _transfer(vcs, ["feature..main"])

    assert result.success
    assert result.outcomes == []


def test_on_commit_callback(vcs):
    seen = []

    execute_transfer(vcs, "feature", "main", ["a1", "b2"], on_commit=seen.append, console=Console(quiet=True))

    assert [o.commit for o in seen] == ["a1", "b2"]


# =============================================================================
# Conflict policies
# =============================================================================


def test_conflict_abort_stops_and_removes_what_was_replayed(vcs):
    vcs.conflicts.add("b2")
    vcs.current = WorkingContext("feature")

    result, tracker = _transfer(vcs, ["main..feature"])

    assert not result.success
    assert result.exit_code == 1
    assert vcs.picks == ["a1", "b2"]
    assert vcs.aborts == 1
    assert result.removed == ["a1"]
    assert vcs.branches["feature"] == ["root", "b2*", "c3*"]
    assert [o.commit for o in result.outcomes] == ["a1", "b2"]
    assert result.context_restored is True
    assert tracker.status("replay") == "error"


def test_conflict_skip_keeps_going(vcs):
    vcs.conflicts.add("b2")

    result, tracker = _transfer(vcs, ["main..feature"], on_conflict=ConflictPolicy.SKIP)

    assert result.exit_code == 1
    assert vcs.picks == ["a1", "b2", "c3"]
    assert vcs.aborts == 1
    assert result.removed == ["a1", "c3"]
    skipped = [o for o in result.outcomes if o.commit == "b2"][0]
    assert skipped.skipped_reason == "replay failed"
    assert skipped.returncode == 1
    assert vcs.branches["feature"] == ["root", "b2*"]
    assert tracker.status("replay") == "error"


def test_conflict_continue_still_removes(vcs):
    vcs.conflicts.add("b2")

    result, _ = _transfer(vcs, ["b2"], on_conflict=ConflictPolicy.CONTINUE)

    assert result.exit_code == 1
    assert vcs.aborts == 0
    assert result.replayed == []
    assert result.removed == ["b2"]


# =============================================================================
# Membership and invalid tokens
# =============================================================================


def test_commit_not_on_source_is_not_removed():
    vcs = FakeVCS(
        {"main": ["root"], "feature": ["root", "a1"], "other": ["root", "x9"]},
        current="main",
    )

    result, _ = _transfer(vcs, ["x9"])

    assert result.success
    assert result.replayed == ["x9"]
    assert result.removed == []
    assert result.outcomes[0].skipped_reason == "not on feature"
    assert vcs.drops == []


def test_membership_check_can_be_disabled():
    vcs = FakeVCS(
        {"main": ["root"], "feature": ["root", "a1"], "other": ["root", "x9"]},
        current="main",
    )

    result, _ = _transfer(vcs, ["x9"], verify_membership=False)

    assert vcs.drops == [["x9"]]
    assert result.removed == ["x9"]


def test_invalid_token_is_reported_and_skipped(vcs):
    result, _ = _transfer(vcs, ["nope", "a1"])

    assert result.exit_code == 1
    assert "nope" in result.error
    assert vcs.picks == ["a1"]
    assert result.removed == ["a1"]


# =============================================================================
# Checkout and rewrite failures
# =============================================================================


def test_checkout_failure_runs_nothing(vcs):
    vcs.current = WorkingContext("feature")
    vcs.failing_checkouts.add("main")

    result, tracker = _transfer(vcs, ["a1"])

    assert not result.success
    assert result.error.startswith("Checkout failed")
    assert vcs.picks == []
    assert tracker.status("checkout") == "error"


def test_restore_failure_is_reported(vcs):
    vcs.current = WorkingContext("feature")
    vcs.failing_checkouts.add("feature")

    result, tracker = _transfer(vcs, ["a1"])

    assert not result.success
    assert result.error.startswith("Could not restore checkout")
    assert result.removed == ["a1"]
    assert tracker.status("restore") == "error"


def test_rewrite_failure_halts_without_restoring(vcs):
    vcs.current = WorkingContext("feature")
    vcs.rewrite_code = 128

    result, tracker = _transfer(vcs, ["a1", "b2"])

    assert result.exit_code == 128
    assert result.halted is True
    assert result.context_restored is False
    assert vcs.checkouts == ["main"]
    assert result.replayed == ["a1", "b2"]
    assert result.removed == []
    assert tracker.status("remove") == "error"
    assert tracker.status("restore") == "skipped"


def test_per_commit_rewrite_failure_stops_the_loop(vcs):
    vcs.rewrite_code = 1

    result, _ = _transfer(vcs, ["a1", "b2"], removal=RemovalStrategy.PER_COMMIT)

    assert result.halted is True
    assert vcs.picks == ["a1"]
    assert vcs.drops == [["a1"]]


def test_result_to_dict(vcs):
    result, _ = _transfer(vcs, ["a1"])

    payload = result.to_dict()

    assert payload["success"] is True
    assert payload["source"] == "feature"
    assert payload["destination"] == "main"
    assert payload["commits"] == [
        {
            "commit": "a1",
            "token": "a1",
            "replayed": True,
            "removed": True,
            "skipped_reason": None,
            "returncode": 0,
        }
    ]


# =============================================================================
# Dry run
# =============================================================================


def test_plan_transfer_batch(vcs):
    vcs.current = WorkingContext("feature")

    steps = plan_transfer(vcs, "feature", "main", ["main..feature"])

    assert steps == [
        "git checkout main",
        "git cherry-pick a1",
        "git cherry-pick b2",
        "git cherry-pick c3",
        "git rebase -i root feature  # drop a1, b2, c3",
        "git checkout feature",
    ]
    assert vcs.checkouts == []
    assert vcs.picks == []


def test_plan_transfer_per_commit_on_destination(vcs):
    steps = plan_transfer(
        vcs,
        "feature",
        "main",
        ["a1", "b2"],
        TransferConfig(removal=RemovalStrategy.PER_COMMIT),
    )

    assert steps == [
        "git cherry-pick a1",
        "git rebase -i root feature  # drop a1",
        "git cherry-pick b2",
        "git rebase -i root feature  # drop b2",
    ]


def test_plan_transfer_unknown_token(vcs):
    with pytest.raises(VCSRefError):
        plan_transfer(vcs, "feature", "main", ["nope"])
