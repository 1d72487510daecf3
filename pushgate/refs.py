"""Ref namespace classification and object id validation."""

import re
from enum import Enum

from .errors import MalformedRevision


ZERO_REV = "0" * 40

_OBJECT_ID = re.compile(r"^[0-9a-f]{40}$")


class RefNamespace(Enum):
    """Namespaces of refs with different policy handling."""
    BRANCH = "branch"         # refs/heads/*
    PROTECTED = "protected"   # refs/heads/<protected branch>
    TAG = "tag"               # refs/tags/*
    TRACKING = "tracking"     # refs/remotes/*
    UNKNOWN = "unknown"       # Anything else (notes, stash, ...)


NAMESPACE_PREFIXES = {
    "refs/heads/": RefNamespace.BRANCH,
    "refs/tags/": RefNamespace.TAG,
    "refs/remotes/": RefNamespace.TRACKING,
}


def is_zero(rev: str) -> bool:
    """True for the sentinel meaning "ref did not exist" or "ref is being deleted"."""
    return rev == ZERO_REV


def require_object_id(rev: str) -> str:
    """
    Validate a full 40-hex object id.

    Returns the id unchanged. Raises MalformedRevision otherwise.
    """
    if not isinstance(rev, str) or not _OBJECT_ID.match(rev):
        raise MalformedRevision(f"not a well-formed object id: {rev!r}")
    return rev


def short_name(ref: str) -> str:
    """Strip the namespace prefix: refs/tags/v1.0 -> v1.0."""
    for prefix in NAMESPACE_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def classify_ref(ref: str, protected_branch: str) -> RefNamespace:
    """Classify a full ref name."""
    for prefix, namespace in NAMESPACE_PREFIXES.items():
        if not ref.startswith(prefix) or len(ref) == len(prefix):
            continue
        if namespace is RefNamespace.BRANCH and ref[len(prefix):] == protected_branch:
            return RefNamespace.PROTECTED
        return namespace
    return RefNamespace.UNKNOWN
