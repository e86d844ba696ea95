"""Core utilities: git helpers, preflight checks, configuration and the VCS backend."""

from .config import (
    ConfigError,
    ConflictPolicy,
    RemovalStrategy,
    TransferConfig,
    load_transfer_config,
)
from .git_ops import find_repo_root, run_command

__all__ = [
    "ConfigError",
    "ConflictPolicy",
    "RemovalStrategy",
    "TransferConfig",
    "load_transfer_config",
    "find_repo_root",
    "run_command",
]
