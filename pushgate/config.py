"""Configuration loading for the push gate."""

import logging
import os
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from .errors import ConfigError

if TYPE_CHECKING:
    from .git import Repository

logger = logging.getLogger(__name__)


PROTECTED_BRANCH = os.environ.get("PUSHGATE_PROTECTED_BRANCH", "master")
COLLABORATORS_FILE = os.environ.get("PUSHGATE_COLLABORATORS", "")
GIT_TIMEOUT = int(os.environ.get("PUSHGATE_GIT_TIMEOUT", "60"))
LOG_LEVEL = os.environ.get("PUSHGATE_LOG_LEVEL", "WARNING")

# Server-side options live under this git config section
CONFIG_SECTION = "hooks"


@dataclass(frozen=True)
class PolicyConfig:
    """Site policy switches. All default to False.

    Attributes:
        allow_unsigned_commits: Skip signature checks on commits and merges
        allow_unsigned_tags: Skip signature checks on annotated tags
        allow_commits_on_master: Permit non-merge updates to the protected branch
        allow_hotfix_on_master: Reserved, not enforced
        allow_unannotated: Permit lightweight tags (with allow_unsigned_tags)
        allow_delete_tag: Permit tag deletion
        allow_modify_tag: Permit re-pointing an existing tag
        allow_delete_branch: Permit branch and tracking ref deletion
        deny_create_branch: Forbid creating new branches
    """

    allow_unsigned_commits: bool = False
    allow_unsigned_tags: bool = False
    allow_commits_on_master: bool = False
    allow_hotfix_on_master: bool = False
    allow_unannotated: bool = False
    allow_delete_tag: bool = False
    allow_modify_tag: bool = False
    allow_delete_branch: bool = False
    deny_create_branch: bool = False

    @staticmethod
    def option_name(field_name: str) -> str:
        """Map a field name to its git config option (allow_delete_tag -> allowdeletetag)."""
        return field_name.replace("_", "")

    @classmethod
    def load(cls, repo: "Repository") -> "PolicyConfig":
        """Read every option from git config.

        Raises:
            ConfigError: If an option is set to something git cannot read as a boolean
        """
        values = {}
        for field in fields(cls):
            key = f"{CONFIG_SECTION}.{cls.option_name(field.name)}"
            values[field.name] = repo.config_bool(key)

        config = cls(**values)
        if config.allow_hotfix_on_master:
            logger.info("hooks.allowhotfixonmaster is set but not enforced")
        return config

    @classmethod
    def from_mapping(cls, options: dict[str, bool]) -> "PolicyConfig":
        """Build from git-style option names, e.g. {"allowdeletetag": True}."""
        by_option = {cls.option_name(f.name): f.name for f in fields(cls)}
        values = {}
        for option, value in options.items():
            name = by_option.get(option.lower())
            if name is None:
                raise ConfigError(f"Unknown policy option: {option}")
            values[name] = bool(value)
        return cls(**values)
