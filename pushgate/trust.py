"""Trusted collaborators, keyed by full key fingerprint.

A key id is only a suffix of a fingerprint and can collide (or be forged
on a keyserver), so trust is granted only when the presented key id AND
the fingerprint fetched for it both match the stored collaborator.
"""

import logging
import re
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

KEY_ID_LENGTH = 16

_FINGERPRINT = re.compile(r"^[0-9A-F]{40}$")
_KEY_ID = re.compile(r"^[0-9A-F]{16}$")


def normalize_hex(value: str) -> str:
    """Drop whitespace and uppercase: "abcd 1234" -> "ABCD1234"."""
    return "".join(value.split()).upper()


class Collaborator(BaseModel):
    """A signer identity and the fingerprint of their key."""
    model_config = ConfigDict(frozen=True)

    name: str
    fingerprint: str

    @field_validator("fingerprint", mode="before")
    @classmethod
    def _normalize_fingerprint(cls, value: str) -> str:
        if not isinstance(value, str):
            raise ValueError("fingerprint must be a string")
        value = normalize_hex(value)
        if not _FINGERPRINT.match(value):
            raise ValueError("fingerprint must be 40 hex digits")
        return value

    @property
    def key_id(self) -> str:
        """Long key id, always derived from the fingerprint."""
        return self.fingerprint[-KEY_ID_LENGTH:]


class TrustStore:
    """Immutable set of collaborators."""

    def __init__(self, collaborators: tuple[Collaborator, ...] = ()):
        seen: dict[str, str] = {}
        for collaborator in collaborators:
            if collaborator.fingerprint in seen:
                raise ConfigError(
                    f"collaborators {seen[collaborator.fingerprint]!r} and "
                    f"{collaborator.name!r} share fingerprint {collaborator.fingerprint}"
                )
            seen[collaborator.fingerprint] = collaborator.name
        self._collaborators = tuple(collaborators)

    @classmethod
    def from_mapping(cls, table: dict) -> "TrustStore":
        """Build from {name: fingerprint}."""
        try:
            collaborators = tuple(
                Collaborator(name=str(name), fingerprint=fingerprint)
                for name, fingerprint in table.items()
            )
        except ValidationError as e:
            raise ConfigError(f"invalid collaborator entry: {e}") from e
        return cls(collaborators)

    @classmethod
    def load(cls, path: Path) -> "TrustStore":
        """
        Load a YAML mapping of collaborator name to fingerprint.

        Raises ConfigError if the file is unreadable or malformed.
        """
        try:
            data = yaml.safe_load(path.read_text())
        except OSError as e:
            raise ConfigError(f"cannot read collaborators file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must map collaborator names to fingerprints")

        store = cls.from_mapping(data)
        logger.info(f"Loaded {len(store)} collaborators from {path}")
        return store

    def __len__(self) -> int:
        return len(self._collaborators)

    def __iter__(self):
        return iter(self._collaborators)

    def lookup(self, key_id: str, fingerprint: Optional[str]) -> Optional[Collaborator]:
        """
        Find the collaborator owning (key_id, fingerprint).

        Returns None unless key_id is a well-formed long key id matching a
        stored collaborator AND fingerprint equals that collaborator's
        fingerprint. Short key ids are never accepted.
        """
        if not key_id or not fingerprint:
            return None

        key_id = normalize_hex(key_id)
        if not _KEY_ID.match(key_id):
            logger.warning(f"Refusing ambiguous key id {key_id!r}")
            return None

        fingerprint = normalize_hex(fingerprint)
        for collaborator in self._collaborators:
            if collaborator.key_id != key_id:
                continue
            if collaborator.fingerprint == fingerprint:
                return collaborator
            logger.warning(
                f"Key id {key_id} matches {collaborator.name} but fingerprint "
                f"{fingerprint} does not"
            )
        return None
