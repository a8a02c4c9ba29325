"""
Read-only queries for gitix: directory listings, file contents, branches
and commit history.

Nothing here needs credentials or creates objects; every failure is
raised as a CommandError subclass for the caller to report.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..domain.objects import BlobRef, CommitRef, RefRef, TreeEntry
from ..domain.paths import join_path
from ..domain.version import SemanticVersion
from ..exit_codes import ValidationError
from .path_resolver import PathResolver

logger = logging.getLogger(__name__)

AUTHOR_PATTERN = re.compile(r'\[author:\s*([^\]]+)\]')


def commit_author(commit: CommitRef) -> str:
    """The acting user recorded in the message, else the store's author."""
    match = AUTHOR_PATTERN.search(commit.message or '')
    if match:
        return match.group(1).strip()
    return commit.author.get('login') or commit.author.get('name') or 'N/A'


def tags_by_commit(tags: List[RefRef]) -> Dict[str, str]:
    """
    Map commit sha -> the tag to show for it.

    The highest semantic version wins; a non-version tag is only used
    when the commit has nothing better.
    """
    best: Dict[str, str] = {}
    for tag in tags:
        current = best.get(tag.sha)
        if current is None:
            best[tag.sha] = tag.name
            continue
        new_version = SemanticVersion.parse(tag.name)
        if new_version is None:
            continue
        current_version = SemanticVersion.parse(current)
        if current_version is None or new_version > current_version:
            best[tag.sha] = tag.name
    return best


@dataclass
class HistoryEntry:
    """One commit of a branch's history with its version tag."""
    sha: str
    message: str
    author: str
    date: Optional[str] = None
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sha': self.sha,
            'version': self.version or 'N/A',
            'date': self.date,
            'author': self.author,
            'message': self.message,
        }


class BrowseService:
    """
    Read-only access to a repository's branches and content.

    Example:
        browse = BrowseService(client)
        for entry in browse.list_directory("main", "docs"):
            print(entry.name, entry.kind.value)
        text = browse.read_file("main", "docs/intro.md").content.decode()
    """

    def __init__(self, client, resolver: Optional[PathResolver] = None):
        self.client = client
        self.resolver = resolver or PathResolver(client)

    def list_directory(self, branch: str, path: str = '', recursive: bool = False) -> List[TreeEntry]:
        """
        Entries of directory `path` ('' for the root), named by full path.

        Raises:
            NotFound: branch or directory missing
        """
        directory = join_path(path or '')
        resolved = self.resolver.resolve_directory(branch, directory)
        if recursive:
            entries = self.client.get_tree(resolved.parent.sha, recursive=True).entries
        else:
            entries = resolved.parent.entries
        return [entry.renamed(join_path(directory, entry.name)) for entry in entries]

    def read_file(self, branch: str, path: str) -> BlobRef:
        """
        Fetch one file's content.

        Raises:
            NotFound: branch, directory or file missing
            ValidationError: `path` is a folder
        """
        path = join_path(path or '')
        if not path:
            raise ValidationError("File path is required.")
        entry = self.resolver.resolve(branch, path).require_leaf()
        if entry.is_tree:
            raise ValidationError(f"'{path}' is a folder, not a file.")
        return self.client.get_blob(entry.sha)

    def list_branches(self) -> List[RefRef]:
        return sorted(self.client.list_branches(), key=lambda ref: ref.name)

    def history(self, branch: str, limit: int = 10) -> List[HistoryEntry]:
        """Most recent commits of `branch`, newest first, with their tags."""
        if limit < 1:
            raise ValidationError("History limit must be at least 1.")
        commits = self.client.list_commits(branch, limit)
        versions = tags_by_commit(self.client.list_tags())
        logger.debug(f"History of {branch}: {len(commits)} commit(s), {len(versions)} tagged")
        return [
            HistoryEntry(
                sha=commit.sha,
                message=commit.message,
                author=commit_author(commit),
                date=commit.date,
                version=versions.get(commit.sha),
            )
            for commit in commits
        ]
