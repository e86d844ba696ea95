"""Transfer command implementation.

Moves commits from one branch to another: replays them onto the
destination branch and rewrites the source branch without them.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from git_transfer.cli import StepTracker
from git_transfer.cli.helpers import (
    configure_logging,
    console,
    print_usage,
    version_callback,
)
from git_transfer.core.config import (
    ConfigError,
    ConflictPolicy,
    RemovalStrategy,
    load_transfer_config,
)
from git_transfer.core.git_ops import find_repo_root
from git_transfer.core.git_preflight import (
    build_git_preflight_failure_payload,
    run_git_preflight,
)
from git_transfer.core.vcs import (
    VCSError,
    VCSNotFoundError,
    VCSRefError,
    get_git_version,
    get_vcs,
)
from git_transfer.transfer.executor import (
    TransferUsageError,
    execute_transfer,
    plan_transfer,
    resolve_branches,
)

logger = logging.getLogger(__name__)


def _fail(message: str, code: int = 1, json_output: bool = False) -> typer.Exit:
    if json_output:
        print(json.dumps({"success": False, "error": message}, indent=2))
    else:
        console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(code)


def transfer(
    from_branch: Optional[str] = typer.Argument(None, metavar="FROM_BRANCH", help="Branch the commits are taken from"),
    to_branch: Optional[str] = typer.Argument(None, metavar="TO_BRANCH", help="Branch the commits are replayed onto"),
    refs: Optional[List[str]] = typer.Argument(
        None,
        metavar="COMMIT_OR_RANGE...",
        help="Commits or ranges (A..B, A...B), processed in order",
        show_default=False,
    ),
    on_conflict: Optional[ConflictPolicy] = typer.Option(
        None,
        "--on-conflict",
        case_sensitive=False,
        help="When a cherry-pick fails: abort the run, skip the commit, or continue to removal",
    ),
    removal: Optional[RemovalStrategy] = typer.Option(
        None,
        "--removal",
        case_sensitive=False,
        help="Rewrite the source once for all commits (batch) or once per commit",
    ),
    verify_membership: Optional[bool] = typer.Option(
        None,
        "--verify-membership/--no-verify-membership",
        help="Only remove commits that are on the source branch",
        show_default=False,
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be done without executing"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
    repo: Optional[Path] = typer.Option(
        None,
        "--repo",
        file_okay=False,
        help="Repository to operate on (default: current directory)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every git command to stderr"),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Move commits from FROM_BRANCH to TO_BRANCH.

    Each commit is cherry-picked onto TO_BRANCH and then dropped from
    FROM_BRANCH by rewriting its history. The original checkout is
    restored afterwards.
    """
    configure_logging(verbose)
    if not from_branch or not to_branch:
        print_usage()
        raise typer.Exit(1)
    tokens = list(refs or [])

    repo_root = find_repo_root(repo or Path.cwd())
    if repo_root is None:
        if not json_output:
            console.print(f"[red]Error:[/red] {repo or Path.cwd()} is not inside a git repository")
        print_usage()
        raise typer.Exit(1)

    try:
        config = load_transfer_config(repo_root).with_overrides(
            on_conflict=on_conflict,
            removal=removal,
            verify_membership=verify_membership,
        )
    except ConfigError as exc:
        raise _fail(str(exc), json_output=json_output)

    try:
        vcs = get_vcs(repo_root, timeout=config.git_timeout, echo=not json_output)
        logger.debug("Using git %s in %s", get_git_version(), repo_root)
        source, destination = resolve_branches(vcs, from_branch, to_branch)
    except VCSNotFoundError as exc:
        raise _fail(exc.message, code=exc.returncode, json_output=json_output)
    except TransferUsageError as exc:
        if not json_output:
            console.print(f"[red]Error:[/red] {exc}")
        print_usage()
        raise typer.Exit(1)

    preflight = run_git_preflight(repo_root, require_clean=not dry_run)
    if not preflight.passed:
        if json_output:
            payload = build_git_preflight_failure_payload(preflight, command_name="git-transfer")
            print(json.dumps(payload, indent=2))
        else:
            for issue in preflight.errors:
                console.print(f"[red]Error:[/red] {issue.message}")
                console.print(f"  {issue.remediation}")
                if issue.command:
                    console.print(f"  [dim]{issue.command}[/dim]")
        raise typer.Exit(1)
    if not json_output:
        for issue in preflight.warnings:
            console.print(f"[yellow]Warning:[/yellow] {issue.message}")

    if dry_run:
        try:
            steps = plan_transfer(vcs, source, destination, tokens, config)
        except VCSRefError as exc:
            raise _fail(exc.message, code=exc.returncode, json_output=json_output)
        if json_output:
            print(
                json.dumps(
                    {"success": True, "dry_run": True, "git_version": get_git_version(), "steps": steps},
                    indent=2,
                )
            )
            return
        console.print("\n[cyan]Dry run - would execute:[/cyan]")
        for idx, step in enumerate(steps, start=1):
            console.print(f"  {idx}. {step}", highlight=False)
        return

    tracker = StepTracker("Commit Transfer")
    tracker.add("checkout", f"Switch to {destination}")
    tracker.add("replay", "Cherry-pick commits")
    tracker.add("remove", f"Remove commits from {source}")
    tracker.add("restore", "Restore original checkout")

    out = Console(quiet=True) if json_output else console
    logger.debug("Transferring %s from %s to %s with %s", tokens, source, destination, config)
    try:
        result = execute_transfer(
            vcs,
            source,
            destination,
            tokens,
            config=config,
            tracker=tracker,
            console=out,
        )
    except VCSError as exc:
        raise _fail(exc.message, code=exc.returncode, json_output=json_output)

    if json_output:
        print(json.dumps({**result.to_dict(), "git_version": get_git_version()}, indent=2))
    else:
        console.print()
        console.print(tracker.render())
        if result.success:
            moved = len(result.removed)
            console.print(
                f"\n[green]✓[/green] Transferred {len(result.replayed)} commit(s) to {destination}"
                f", removed {moved} from {source}"
            )
        elif result.error:
            console.print(f"\n[red]Error:[/red] {result.error}")

    if not result.success:
        raise typer.Exit(result.exit_code)
