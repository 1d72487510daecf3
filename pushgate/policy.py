"""Push acceptance policy.

Per-object rules are looked up in TRANSITIONS by (ref namespace,
classification). A pair missing from the table is rejected as an
unhandled update, never accepted.
"""

import logging
from typing import Callable, Iterable, Iterator, Optional

from .config import PolicyConfig
from .models import Classification, CommitRecord, RefUpdate, Verdict
from .refs import RefNamespace
from .signatures import SignatureVerifier
from .trust import TrustStore

logger = logging.getLogger(__name__)


class PolicyEngine:
    """Decides accept/reject for a ref update and each object it introduces."""

    def __init__(self, config: PolicyConfig, trust: TrustStore, verifier: SignatureVerifier):
        self.config = config
        self.trust = trust
        self.verifier = verifier

    # Ref-level checks

    def check_branch_creation(self, update: RefUpdate) -> Optional[Verdict]:
        """
        Creating a branch is refused outright under denycreatebranch,
        whatever the new history looks like.

        Returns a rejection, or None if the update may proceed.
        """
        if update.namespace not in (RefNamespace.BRANCH, RefNamespace.PROTECTED):
            return None
        if update.is_creation and self.config.deny_create_branch:
            return Verdict.reject(update.ref, "creating branches is not allowed", update.new)
        return None

    def check_protected_tip(self, update: RefUpdate, new_parents: tuple[str, ...]) -> Optional[Verdict]:
        """
        The protected branch only moves by merging onto its old tip.

        Returns a rejection, or None if the update may proceed.
        """
        if self.config.allow_commits_on_master:
            return None
        if update.is_creation or update.is_deletion:
            return None
        if len(new_parents) > 1 and update.old in new_parents:
            return None
        return Verdict.reject(
            update.ref, f"{update.name} only accepts merges", update.new,
        )

    def check_existing_target(self, update: RefUpdate, object_type: str) -> Verdict:
        """Decide an update that introduces no new history."""
        if update.namespace is RefNamespace.TAG:
            if object_type == "commit":
                return self._lightweight_tag(update)
            if object_type == "tag":
                return self._annotated_tag(update)
            return Verdict.reject(
                update.ref, f"unrecognized update to a {object_type} object", update.new,
            )

        if update.namespace in (RefNamespace.BRANCH, RefNamespace.PROTECTED):
            verdict = self.check_branch_creation(update)
            if verdict is not None:
                return verdict
            # Pointing a new protected branch at published history would skip
            # both the merge-only and the devel*/release* rules
            if (update.namespace is RefNamespace.PROTECTED and update.is_creation
                    and not self.config.allow_commits_on_master):
                return Verdict.reject(
                    update.ref, f"{update.name} only accepts merges", update.new,
                )
            return Verdict.accept(update.ref, "no new commits", update.new)

        if update.namespace is RefNamespace.TRACKING:
            return Verdict.accept(update.ref, "no new commits", update.new)

        return Verdict.reject(
            update.ref, f"unhandled update of {update.namespace.value} ref", update.new,
        )

    def _lightweight_tag(self, update: RefUpdate) -> Verdict:
        if not (self.config.allow_unsigned_tags and self.config.allow_unannotated):
            return Verdict.reject(
                update.ref, "unannotated tags are not allowed", update.new,
            )
        if not update.is_creation and not self.config.allow_modify_tag:
            return Verdict.reject(update.ref, f"tag {update.name} already exists", update.new)
        return Verdict.accept(update.ref, "unannotated tag", update.new)

    def _annotated_tag(self, update: RefUpdate) -> Verdict:
        if not update.is_creation and not self.config.allow_modify_tag:
            return Verdict.reject(update.ref, f"tag {update.name} already exists", update.new)
        if self.config.allow_unsigned_tags:
            return Verdict.accept(update.ref, "annotated tag", update.new)
        return self.require_trusted_signature(update, update.new, "tag")

    # Per-object checks

    def verdicts(self, update: RefUpdate, span: Iterable[CommitRecord]) -> Iterator[Verdict]:
        """Lazily yield one verdict per record; stop consuming to short-circuit."""
        for record in span:
            yield self.check(update, record)

    def check(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        """Apply the rule for (namespace, classification) to one record."""
        rule = TRANSITIONS.get((update.namespace, record.classification))
        if rule is None:
            logger.error(
                f"Unhandled update: {update.namespace.value}/{record.classification.value} "
                f"on {update.ref}"
            )
            return Verdict.reject(
                update.ref,
                f"unknown type of update ({update.namespace.value}, "
                f"{record.classification.value}); unhandled case",
                record.rev,
            )
        return rule(self, update, record)

    def require_trusted_signature(
        self,
        update: RefUpdate,
        rev: str,
        object_type: str = "commit",
        require_key_id: bool = False,
    ) -> Verdict:
        """Accept only a good signature by a trusted collaborator."""
        signature = self.verifier.verify(rev, object_type)
        if not signature.is_good:
            return Verdict.reject(
                update.ref, f"bad signature ({signature.status.value})", rev,
            )
        if require_key_id and not signature.key_id:
            return Verdict.reject(update.ref, "signature has no signer key id", rev)

        collaborator = self.trust.lookup(signature.key_id, signature.fingerprint)
        if collaborator is None:
            return Verdict.reject(
                update.ref, f"untrusted signer {signature.key_id or 'unknown'}", rev,
            )
        return Verdict.accept(update.ref, f"signed by {collaborator.name}", rev)

    def _branch_commit(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        if update.is_creation and self.config.deny_create_branch:
            return Verdict.reject(update.ref, "creating branches is not allowed", record.rev)
        if self.config.allow_unsigned_commits:
            return Verdict.accept(update.ref, "unsigned commits allowed", record.rev)
        return self.require_trusted_signature(update, record.rev)

    def _branch_merge(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        if self.config.allow_unsigned_commits:
            return Verdict.accept(update.ref, "unsigned merges allowed", record.rev)
        return self.require_trusted_signature(update, record.rev)

    def _protected_merge(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        if not (record.from_develop or record.from_release):
            return Verdict.reject(
                update.ref,
                f"{update.name} only accepts merges from devel* or release* branches",
                record.rev,
            )
        if self.config.allow_unsigned_commits:
            return Verdict.accept(update.ref, "unsigned merges allowed", record.rev)
        return self.require_trusted_signature(update, record.rev, require_key_id=True)

    def _protected_commit(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        if not self.config.allow_commits_on_master:
            return Verdict.reject(
                update.ref, f"{update.name} only accepts merges", record.rev,
            )
        return self._branch_commit(update, record)

    def _delete_branch(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        if not self.config.allow_delete_branch:
            return Verdict.reject(update.ref, "deleting branches is not allowed")
        return Verdict.accept(update.ref, "branch deleted")

    def _delete_tag(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        if not self.config.allow_delete_tag:
            return Verdict.reject(update.ref, "deleting tags is not allowed")
        return Verdict.accept(update.ref, "tag deleted")

    def _accept(self, update: RefUpdate, record: CommitRecord) -> Verdict:
        return Verdict.accept(update.ref, "tracking ref update", record.rev)


Rule = Callable[[PolicyEngine, RefUpdate, CommitRecord], Verdict]

TRANSITIONS: dict[tuple[RefNamespace, Classification], Rule] = {
    (RefNamespace.BRANCH, Classification.COMMIT): PolicyEngine._branch_commit,
    (RefNamespace.BRANCH, Classification.MERGE): PolicyEngine._branch_merge,
    (RefNamespace.BRANCH, Classification.DELETION): PolicyEngine._delete_branch,
    (RefNamespace.PROTECTED, Classification.MERGE): PolicyEngine._protected_merge,
    (RefNamespace.PROTECTED, Classification.COMMIT): PolicyEngine._protected_commit,
    (RefNamespace.PROTECTED, Classification.DELETION): PolicyEngine._delete_branch,
    (RefNamespace.TAG, Classification.DELETION): PolicyEngine._delete_tag,
    (RefNamespace.TRACKING, Classification.COMMIT): PolicyEngine._accept,
    (RefNamespace.TRACKING, Classification.DELETION): PolicyEngine._delete_branch,
}
