"""CLI command modules for git-transfer."""

from .transfer import transfer

__all__ = ["transfer"]
