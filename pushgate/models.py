"""Value models shared across the gate."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict

from .refs import RefNamespace, classify_ref, is_zero, require_object_id, short_name


class GitResult(BaseModel):
    """Result of a git (or gpg) invocation."""
    exit_code: int
    stdout: str
    stderr: str


class Classification(Enum):
    """What a newly introduced object is, as far as policy is concerned."""
    COMMIT = "commit"
    MERGE = "merge"
    DELETION = "delete"


class SignatureStatus(Enum):
    """Cryptographic validity only; trust is decided elsewhere."""
    GOOD = "good"
    BAD = "bad"
    ABSENT = "absent"


class RefUpdate(BaseModel):
    """A single proposed ref update (ref, old revision, new revision)."""
    model_config = ConfigDict(frozen=True)

    ref: str
    old: str
    new: str
    namespace: RefNamespace
    name: str

    @classmethod
    def parse(cls, ref: str, old: str, new: str, protected_branch: str) -> "RefUpdate":
        """
        Build an update from the hook arguments.

        Raises MalformedRevision if either revision is not a 40-hex object id.
        """
        return cls(
            ref=ref,
            old=require_object_id(old),
            new=require_object_id(new),
            namespace=classify_ref(ref, protected_branch),
            name=short_name(ref),
        )

    @property
    def is_creation(self) -> bool:
        return is_zero(self.old)

    @property
    def is_deletion(self) -> bool:
        return is_zero(self.new)


class CommitRecord(BaseModel):
    """A newly reachable object and how it was classified."""
    model_config = ConfigDict(frozen=True)

    rev: str
    object_type: str
    parents: tuple[str, ...] = ()
    classification: Classification
    from_develop: bool = False
    from_release: bool = False

    @property
    def abbrev(self) -> str:
        return self.rev[:10]


class SignatureResult(BaseModel):
    """Outcome of verifying one commit or tag object.

    key_id is whatever the verification tool reported; fingerprint is looked
    up separately from the local keyring and is None when that lookup is
    missing or ambiguous.
    """
    model_config = ConfigDict(frozen=True)

    status: SignatureStatus
    key_id: str = ""
    fingerprint: Optional[str] = None

    @property
    def is_good(self) -> bool:
        return self.status is SignatureStatus.GOOD


class Verdict(BaseModel):
    """Accept or reject, with the reason and the offending revision."""
    model_config = ConfigDict(frozen=True)

    accepted: bool
    ref: str
    reason: str
    revision: Optional[str] = None

    @classmethod
    def accept(cls, ref: str, reason: str, revision: Optional[str] = None) -> "Verdict":
        return cls(accepted=True, ref=ref, reason=reason, revision=revision)

    @classmethod
    def reject(cls, ref: str, reason: str, revision: Optional[str] = None) -> "Verdict":
        return cls(accepted=False, ref=ref, reason=reason, revision=revision)

    def describe(self) -> str:
        """One-line diagnostic: ref, abbreviated revision, reason."""
        where = f"{self.ref} {self.revision[:10]}" if self.revision else self.ref
        return f"{where}: {self.reason}"
