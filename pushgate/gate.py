"""Top-level evaluation of a single ref update."""

import logging
from pathlib import Path
from typing import Optional

from .classifier import CommitClassifier
from .config import COLLABORATORS_FILE, CONFIG_SECTION, PROTECTED_BRANCH, PolicyConfig
from .errors import GitError
from .git import Repository
from .models import RefUpdate, Verdict
from .output import report
from .policy import PolicyEngine
from .refs import RefNamespace
from .signatures import SignatureVerifier
from .trust import TrustStore

logger = logging.getLogger(__name__)


def load_trust_store(repo: Repository) -> TrustStore:
    """
    Load collaborators from PUSHGATE_COLLABORATORS or hooks.collaboratorsfile.

    With neither set the store is empty and every signature check fails.
    """
    path = COLLABORATORS_FILE or repo.config_value(f"{CONFIG_SECTION}.collaboratorsfile")
    if not path:
        logger.warning("No collaborators file configured; no signer is trusted")
        return TrustStore()
    return TrustStore.load(Path(path))


class RefUpdateGate:
    """Runs the classifier and policy engine over one ref update.

    The first rejection ends the evaluation; there is no partial acceptance.
    """

    def __init__(
        self,
        repo: Repository,
        config: PolicyConfig,
        trust: TrustStore,
        verifier: Optional[SignatureVerifier] = None,
        protected_branch: str = PROTECTED_BRANCH,
    ):
        self.repo = repo
        self.protected_branch = protected_branch
        self.classifier = CommitClassifier(repo)
        self.engine = PolicyEngine(config, trust, verifier or SignatureVerifier(repo.cwd))

    @classmethod
    def load(cls, repo: Optional[Repository] = None) -> "RefUpdateGate":
        """Read policy and collaborators fresh from the repository configuration."""
        repo = repo or Repository()
        return cls(repo, PolicyConfig.load(repo), load_trust_store(repo))

    def evaluate(self, ref: str, old: str, new: str) -> Verdict:
        """
        Decide a ref update.

        Raises MalformedRevision for ids that are not 40 hex digits. Failed
        repository queries turn into a rejection.
        """
        update = RefUpdate.parse(ref, old, new, self.protected_branch)
        logger.info(f"Evaluating {update.ref} {update.old[:10]}..{update.new[:10]}")
        try:
            return self._evaluate(update)
        except GitError as e:
            verdict = Verdict.reject(update.ref, f"repository query failed: {e}")
            report(verdict)
            return verdict

    def _evaluate(self, update: RefUpdate) -> Verdict:
        verdict = self.engine.check_branch_creation(update)
        if verdict is not None:
            report(verdict)
            return verdict

        if update.namespace is RefNamespace.PROTECTED and not update.is_deletion:
            verdict = self.engine.check_protected_tip(update, self.repo.parents(update.new))
            if verdict is not None:
                report(verdict)
                return verdict

        span = self.classifier.span(update)
        if not span:
            verdict = self.engine.check_existing_target(
                update, self.repo.object_type(update.new),
            )
            report(verdict)
            return verdict

        for verdict in self.engine.verdicts(update, span):
            report(verdict)
            if not verdict.accepted:
                return verdict

        return Verdict.accept(update.ref, f"{len(span)} new objects accepted", update.new)
