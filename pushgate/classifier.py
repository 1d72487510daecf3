"""Computing and classifying the objects a ref update introduces."""

import logging

from .git import Repository
from .models import Classification, CommitRecord, RefUpdate
from .refs import ZERO_REV, RefNamespace, is_zero, require_object_id

logger = logging.getLogger(__name__)

DEVELOP_PREFIX = "devel"
RELEASE_PREFIX = "release"


class CommitClassifier:
    """Walks the span of a ref update and classifies each object."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def span(self, update: RefUpdate) -> list[CommitRecord]:
        """
        Ordered (oldest first) records for everything the update introduces.

        A deletion yields a single DELETION record for the zero sentinel.
        """
        if update.is_deletion:
            return [CommitRecord(
                rev=ZERO_REV,
                object_type="delete",
                classification=Classification.DELETION,
            )]

        revs = self.repo.rev_list(
            update.new,
            exclude=self._known_history(update),
            exclude_branches=self._excludes_branches(update),
            first_parent=update.namespace is RefNamespace.PROTECTED,
        )
        logger.info(f"{update.ref}: {len(revs)} new objects")

        records = []
        cursor = update.old
        for rev in revs:
            records.append(self.classify(rev, cursor, update))
            cursor = rev
        return records

    def classify(self, rev: str, cursor: str, update: RefUpdate) -> CommitRecord:
        """
        Classify rev relative to the previous position of the walk.

        rev is a MERGE if any merge commit lies in (cursor, rev], ignoring
        history the ref already had. Otherwise it keeps its intrinsic type.
        """
        require_object_id(rev)
        object_type = self.repo.object_type(rev)
        parents = self.repo.parents(rev) if object_type == "commit" else ()

        exclude = self._known_history(update)
        if not is_zero(cursor) and cursor not in exclude:
            exclude.append(cursor)
        merges = self.repo.rev_list(
            rev,
            exclude=exclude,
            exclude_branches=self._excludes_branches(update),
            merges_only=True,
        )

        # rev-list only yields commits; tag objects are judged by the
        # ref-level checks when the span is empty
        if merges:
            classification = Classification.MERGE
        else:
            classification = Classification.COMMIT

        from_develop = from_release = False
        if classification is Classification.MERGE:
            from_develop, from_release = self.origin(rev, parents)

        return CommitRecord(
            rev=rev,
            object_type=object_type,
            parents=parents,
            classification=classification,
            from_develop=from_develop,
            from_release=from_release,
        )

    def origin(self, rev: str, parents: tuple[str, ...]) -> tuple[bool, bool]:
        """
        Whether a branch named devel* / release* contains what is being merged.

        This checks branch containment of the merged-in parents (or of rev
        itself when it has a single parent), not first-parent ancestry, so a
        commit that sits on several branches counts for all of them.
        """
        candidates = parents[1:] if len(parents) > 1 else (rev,)
        branches = set()
        for candidate in candidates:
            branches.update(self.repo.branches_containing(candidate))

        from_develop = any(b.startswith(DEVELOP_PREFIX) for b in branches)
        from_release = any(b.startswith(RELEASE_PREFIX) for b in branches)
        return from_develop, from_release

    @staticmethod
    def _known_history(update: RefUpdate) -> list[str]:
        return [] if update.is_creation else [update.old]

    @staticmethod
    def _excludes_branches(update: RefUpdate) -> bool:
        # New refs and tags only count history no branch has yet
        return update.is_creation or update.namespace is RefNamespace.TAG
