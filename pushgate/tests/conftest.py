"""Shared test fixtures."""

import hashlib

import pytest

from pushgate.config import PolicyConfig
from pushgate.errors import GitError
from pushgate.gate import RefUpdateGate
from pushgate.models import SignatureResult, SignatureStatus
from pushgate.trust import TrustStore

ALICE_FPR = "0123 4567 89AB CDEF 0123  4567 89AB CDEF 1111 2222"
BOB_FPR = "FEDC BA98 7654 3210 FEDC  BA98 7654 3210 3333 4444"
# Same long key id as alice, different key
MALLORY_FPR = "DEAD BEEF DEAD BEEF DEAD  BEEF 89AB CDEF 1111 2222"

ALICE_KEY = "89ABCDEF11112222"
BOB_KEY = "7654321033334444"


def fingerprint(spaced: str) -> str:
    return "".join(spaced.split())


class FakeRepository:
    """In-memory commit graph implementing the Repository query interface."""

    def __init__(self):
        self.cwd = None
        self.branches: dict[str, str] = {}
        self.config: dict[str, str] = {}
        self.failing = False
        self._parents: dict[str, tuple[str, ...]] = {}
        self._tags: dict[str, str] = {}
        self._order: list[str] = []

    def _new_id(self) -> str:
        return hashlib.sha1(f"object-{len(self._order)}".encode()).hexdigest()

    def commit(self, *parents: str, branch: str = None) -> str:
        rev = self._new_id()
        self._parents[rev] = tuple(parents)
        self._order.append(rev)
        if branch:
            self.branches[branch] = rev
        return rev

    def tag(self, target: str) -> str:
        rev = self._new_id()
        self._tags[rev] = target
        self._order.append(rev)
        return rev

    def _check(self):
        if self.failing:
            raise GitError("git rev-list failed: fatal: simulated failure")

    def _deref(self, rev: str) -> str:
        while rev in self._tags:
            rev = self._tags[rev]
        if rev not in self._parents:
            raise GitError(f"git rev-list failed: bad object {rev}")
        return rev

    def _ancestors(self, rev: str, first_parent: bool = False) -> set[str]:
        seen = set()
        stack = [self._deref(rev)]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            parents = self._parents[current]
            stack.extend(parents[:1] if first_parent else parents)
        return seen

    def rev_list(self, tip, exclude=(), exclude_branches=False,
                 first_parent=False, merges_only=False):
        self._check()
        reachable = self._ancestors(tip, first_parent)
        hidden = set()
        for rev in exclude:
            hidden |= self._ancestors(rev)
        if exclude_branches:
            for branch_tip in self.branches.values():
                hidden |= self._ancestors(branch_tip)
        revs = [r for r in self._order if r in reachable and r not in hidden]
        if merges_only:
            revs = [r for r in revs if len(self._parents[r]) > 1]
        return revs

    def object_type(self, rev):
        self._check()
        if rev in self._tags:
            return "tag"
        if rev in self._parents:
            return "commit"
        raise GitError(f"git cat-file failed: bad object {rev}")

    def parents(self, rev):
        self._check()
        return self._parents[self._deref(rev)]

    def branches_containing(self, rev):
        self._check()
        return sorted(
            name for name, tip in self.branches.items()
            if rev in self._ancestors(tip)
        )

    def config_value(self, key):
        return self.config.get(key)

    def config_bool(self, key):
        return self.config.get(key) == "true"


class FakeVerifier:
    """Signature results by revision; unknown revisions are unsigned."""

    def __init__(self):
        self.results: dict[str, SignatureResult] = {}
        self.calls: list[tuple[str, str]] = []

    def sign(self, rev: str, key_id: str, fpr: str) -> None:
        self.results[rev] = SignatureResult(
            status=SignatureStatus.GOOD,
            key_id=key_id,
            fingerprint=fingerprint(fpr),
        )

    def verify(self, rev, object_type="commit"):
        self.calls.append((rev, object_type))
        return self.results.get(rev, SignatureResult(status=SignatureStatus.ABSENT))


@pytest.fixture
def repo():
    """Repository with a single root commit on master."""
    fake = FakeRepository()
    fake.commit(branch="master")
    return fake


@pytest.fixture
def trust():
    return TrustStore.from_mapping({"alice": ALICE_FPR, "bob": BOB_FPR})


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def make_gate(repo, trust, verifier):
    """Build a gate over the fake repository with the given policy options."""
    def _make(**options):
        config = PolicyConfig.from_mapping(options)
        return RefUpdateGate(repo, config, trust, verifier, protected_branch="master")
    return _make
