"""Shared constants for git-transfer."""

from __future__ import annotations

CONFIG_FILENAME = ".git-transfer.yaml"
CONFIG_ENV_VAR = "GIT_TRANSFER_CONFIG"

__all__ = ["CONFIG_FILENAME", "CONFIG_ENV_VAR"]
