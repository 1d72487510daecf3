"""Signature verification adapter.

All parsing of git and gpg output happens here; the rest of the gate only
sees SignatureResult values.
"""

import logging
from typing import Optional

from .git import execute, run
from .models import SignatureResult, SignatureStatus
from .trust import normalize_hex

logger = logging.getLogger(__name__)

# git's %G? letters
GOOD_COMMIT_STATUSES = frozenset({"G", "U"})
ABSENT_COMMIT_STATUSES = frozenset({"N", "E"})

GNUPG_PREFIX = "[GNUPG:] "


def parse_commit_status(output: str) -> SignatureResult:
    """
    Parse `git show -s --format=%G?%n%GK` output.

    First line is the status letter, second the signing key id.
    """
    lines = output.splitlines()
    letter = lines[0].strip() if lines else ""
    key_id = lines[1].strip() if len(lines) > 1 else ""

    if letter in GOOD_COMMIT_STATUSES:
        return SignatureResult(status=SignatureStatus.GOOD, key_id=key_id)
    if letter in ABSENT_COMMIT_STATUSES or not letter:
        return SignatureResult(status=SignatureStatus.ABSENT, key_id=key_id)
    return SignatureResult(status=SignatureStatus.BAD, key_id=key_id)


def parse_gnupg_status(output: str) -> SignatureResult:
    """
    Parse gpg machine-readable status lines (as from `git verify-tag --raw`).

    GOODSIG counts only when no BADSIG or ERRSIG accompanies it. Without
    GOODSIG or BADSIG (missing key, no signature) the result is ABSENT.
    """
    good_key = None
    keywords = set()

    for line in output.splitlines():
        if not line.startswith(GNUPG_PREFIX):
            continue
        keyword, _, rest = line[len(GNUPG_PREFIX):].partition(" ")
        keywords.add(keyword)
        if keyword == "GOODSIG":
            good_key = rest.split(" ", 1)[0]

    if "BADSIG" in keywords:
        return SignatureResult(status=SignatureStatus.BAD)
    if good_key and "ERRSIG" not in keywords:
        return SignatureResult(status=SignatureStatus.GOOD, key_id=good_key)
    return SignatureResult(status=SignatureStatus.ABSENT)


def parse_fingerprints(output: str, key_id: str) -> Optional[str]:
    """
    Pick the fingerprint ending in key_id from `gpg --with-colons` output.

    Returns None unless exactly one distinct fingerprint matches.
    """
    key_id = normalize_hex(key_id)
    matches = set()
    for line in output.splitlines():
        fields = line.split(":")
        if fields[0] != "fpr" or len(fields) < 10:
            continue
        fingerprint = normalize_hex(fields[9])
        if key_id and fingerprint.endswith(key_id):
            matches.add(fingerprint)

    if len(matches) != 1:
        if matches:
            logger.warning(f"Key id {key_id} matches {len(matches)} keys in the keyring")
        return None
    return matches.pop()


class SignatureVerifier:
    """Checks cryptographic validity of commit and tag signatures."""

    def __init__(self, cwd: Optional[str] = None, gpg: str = "gpg"):
        self.cwd = cwd
        self.gpg = gpg

    def verify(self, rev: str, object_type: str = "commit") -> SignatureResult:
        """Verify a commit or tag object and attach the signer's fingerprint."""
        if object_type == "tag":
            result = self._verify_tag(rev)
        else:
            result = self._verify_commit(rev)

        if not result.is_good or not result.key_id:
            return result

        return result.model_copy(update={"fingerprint": self.fingerprint(result.key_id)})

    def _verify_commit(self, rev: str) -> SignatureResult:
        result = execute(["show", "-s", "--format=%G?%n%GK", rev], self.cwd)
        if result.exit_code != 0:
            logger.warning(f"Cannot check signature of {rev}: {result.stderr.strip()}")
            return SignatureResult(status=SignatureStatus.ABSENT)
        return parse_commit_status(result.stdout)

    def _verify_tag(self, rev: str) -> SignatureResult:
        result = execute(["verify-tag", "--raw", rev], self.cwd)
        parsed = parse_gnupg_status(result.stderr)
        if result.exit_code != 0 and parsed.is_good:
            return SignatureResult(status=SignatureStatus.BAD)
        return parsed

    def fingerprint(self, key_id: str) -> Optional[str]:
        """Look the key id up in the local keyring."""
        result = run(
            [self.gpg, "--batch", "--with-colons", "--fingerprint", key_id],
            self.cwd,
        )
        if result.exit_code != 0:
            logger.warning(f"gpg lookup of {key_id} failed: {result.stderr.strip()}")
            return None
        return parse_fingerprints(result.stdout, key_id)
