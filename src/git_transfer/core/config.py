"""Per-repository configuration for git-transfer.

The configuration is stored in ``.git-transfer.yaml`` at the repository
root under the ``transfer`` key. ``GIT_TRANSFER_CONFIG`` points at an
alternative file. Command-line flags override anything loaded here.

Example::

    transfer:
      on_conflict: abort      # abort | skip | continue
      removal: batch          # batch | per-commit
      verify_membership: true
      git_timeout: 120
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from git_transfer.core.constants import CONFIG_ENV_VAR, CONFIG_FILENAME

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed or validated."""


class ConflictPolicy(str, Enum):
    """What to do when replaying a commit fails."""

    ABORT = "abort"
    SKIP = "skip"
    CONTINUE = "continue"


class RemovalStrategy(str, Enum):
    """How transferred commits are removed from the source branch."""

    BATCH = "batch"
    PER_COMMIT = "per-commit"


@dataclass(frozen=True)
class TransferConfig:
    """Transfer settings.

    Attributes:
        on_conflict: Policy applied when a cherry-pick fails.
        removal: One rewrite for all commits, or one rewrite per commit.
        verify_membership: Skip removal of commits that are not on the source branch.
        git_timeout: Seconds before a single git command is abandoned.
    """

    on_conflict: ConflictPolicy = ConflictPolicy.ABORT
    removal: RemovalStrategy = RemovalStrategy.BATCH
    verify_membership: bool = True
    git_timeout: int = 120

    def with_overrides(self, **overrides: Any) -> "TransferConfig":
        """Return a copy with every non-None override applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values) if values else self


def config_path(repo_root: Path) -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return repo_root / CONFIG_FILENAME


def _parse_enum(enum_cls: type[Enum], value: Any, key: str) -> Any:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"Invalid transfer.{key}: {value!r}. Expected one of: {choices}") from None


def load_transfer_config(repo_root: Path) -> TransferConfig:
    """Load transfer configuration.

    Args:
        repo_root: Repository root directory

    Returns:
        TransferConfig instance (defaults if not configured)
    """
    config_file = config_path(repo_root)

    if not config_file.exists():
        logger.debug("No config file at %s, using defaults", config_file)
        return TransferConfig()

    yaml = YAML(typ="safe")
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.load(f) or {}
    except YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {config_file}")

    section = data.get("transfer") or {}
    if not isinstance(section, dict):
        raise ConfigError("Invalid transfer section in config: expected a mapping")

    config = TransferConfig()
    if "on_conflict" in section:
        config = replace(config, on_conflict=_parse_enum(ConflictPolicy, section["on_conflict"], "on_conflict"))
    if "removal" in section:
        config = replace(config, removal=_parse_enum(RemovalStrategy, section["removal"], "removal"))
    if "verify_membership" in section:
        value = section["verify_membership"]
        if not isinstance(value, bool):
            raise ConfigError(f"Invalid transfer.verify_membership: {value!r}. Expected true or false")
        config = replace(config, verify_membership=value)
    if "git_timeout" in section:
        value = section["git_timeout"]
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"Invalid transfer.git_timeout: {value!r}. Expected a positive integer")
        config = replace(config, git_timeout=value)

    unknown = sorted(set(section) - {"on_conflict", "removal", "verify_membership", "git_timeout"})
    if unknown:
        logger.warning("Ignoring unknown transfer settings in %s: %s", config_file, ", ".join(unknown))

    logger.debug("Loaded %s from %s", config, config_file)
    return config


__all__ = [
    "ConfigError",
    "ConflictPolicy",
    "RemovalStrategy",
    "TransferConfig",
    "config_path",
    "load_transfer_config",
]
