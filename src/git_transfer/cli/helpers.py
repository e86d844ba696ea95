"""Shared console, usage text, logging setup and version flag for the CLI."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version as package_version

import typer
from rich.console import Console

console = Console()

USAGE = "Usage: git-transfer <from-branch> <to-branch> <commit-or-range> [...]"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def print_usage() -> None:
    """Print the one-line usage message to standard output."""
    console.print(USAGE, highlight=False, markup=False)


def get_version() -> str:
    try:
        return package_version("git-transfer")
    except PackageNotFoundError:
        return "unknown"


def version_callback(value: bool) -> None:
    if value:
        console.print(f"git-transfer {get_version()}", highlight=False)
        raise typer.Exit()


def configure_logging(verbose: bool = False) -> None:
    """Send diagnostics to stderr: warnings by default, everything with --verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


__all__ = [
    "console",
    "USAGE",
    "print_usage",
    "get_version",
    "version_callback",
    "configure_logging",
]
