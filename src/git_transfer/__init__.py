"""
git-transfer - move commits from one branch to another.

Usage:
    git-transfer <from-branch> <to-branch> <commit-or-range> [...]
    git transfer feature main abc1234
    git transfer feature main main..feature --removal per-commit
"""

import typer

from git_transfer.cli.commands import transfer

app = typer.Typer(
    name="git-transfer",
    help="Move commits from one branch to another",
    add_completion=False,
)
app.command(
    context_settings={"help_option_names": ["-h", "--help"]},
)(transfer)


def main():
    app()


if __name__ == "__main__":
    main()
