"""
Version tagging for gitix.

After every landed mutation the new commit gets a lightweight tag named
after the next semantic version. Allocation is read-max, bump, create:
two concurrent writers can compute the same name and only one create
wins. The loser re-reads and tries again while attempts remain, then
reports AlreadyExists. Tagging never raises; its outcome is reported
next to the mutation.
"""

import logging
from typing import List, Optional, Union

from ..domain.operation import TagOutcome, TagStatus
from ..domain.version import BumpClass, SemanticVersion, latest_version, next_version
from ..exit_codes import CommandError, Conflict

logger = logging.getLogger(__name__)


class VersionTagger:
    """
    Computes and creates version tags.

    Example:
        tagger = VersionTagger(client)
        tagger.allocate_next("minor")          # "1.4.0" given tags 1.2.3, 1.3.0, 0.9.9
        outcome = tagger.tag_commit(commit_sha, "patch")
        if not outcome.success:
            print(outcome.error)
    """

    def __init__(self, client, max_attempts: int = 1, enabled: bool = True):
        self.client = client
        self.max_attempts = max(1, max_attempts)
        self.enabled = enabled

    def tag_names(self) -> List[str]:
        return [ref.name for ref in self.client.list_tags()]

    def latest_version(self) -> Optional[SemanticVersion]:
        """Highest semantic-version tag, ignoring non-conforming names."""
        return latest_version(self.tag_names())

    def allocate_next(self, bump: Union[str, BumpClass]) -> str:
        """Name of the tag that follows the current maximum for `bump`."""
        base = self.latest_version()
        version = next_version(base, bump)
        logger.debug(f"Next {BumpClass.parse(bump).value} version after {base or 'none'}: {version}")
        return str(version)

    def create(self, tag: str, commit_sha: str) -> TagOutcome:
        """Create tag ref `tag` at `commit_sha`. First writer wins."""
        try:
            self.client.create_ref(f"tags/{tag}", commit_sha)
        except Conflict:
            return TagOutcome(TagStatus.ALREADY_EXISTS, tag, f"Tag '{tag}' already exists.", 1)
        except CommandError as e:
            return TagOutcome(TagStatus.FAILED, tag, e.message, 1)
        logger.info(f"Tagged {commit_sha[:7]} as {tag}")
        return TagOutcome(TagStatus.CREATED, tag, None, 1)

    def tag_commit(self, commit_sha: str, bump: Union[str, BumpClass] = BumpClass.PATCH) -> TagOutcome:
        """
        Allocate and create the next tag for `commit_sha`.

        An already-existing tag is retried with a fresh allocation up to
        `max_attempts` times; any other failure stops immediately.
        """
        if not self.enabled:
            return TagOutcome.skipped("Tagging disabled.")

        outcome = TagOutcome(TagStatus.FAILED, None, "No tagging attempt was made.", 0)
        for attempt in range(1, self.max_attempts + 1):
            try:
                tag = self.allocate_next(bump)
            except CommandError as e:
                logger.warning(f"Could not read existing tags: {e.message}")
                return TagOutcome(TagStatus.FAILED, None, f"Error processing existing tags: {e.message}", attempt)

            outcome = self.create(tag, commit_sha)
            outcome.attempts = attempt
            if outcome.status != TagStatus.ALREADY_EXISTS:
                break
            logger.info(f"Tag {tag} taken by a concurrent writer (attempt {attempt}/{self.max_attempts})")

        if not outcome.success:
            logger.warning(f"Tagging {commit_sha[:7]} failed: {outcome.error}")
        return outcome
