"""
Path resolution over the remote tree graph.

Walks a branch's tree one non-recursive listing per directory segment,
recording every directory visited. The recorded levels are exactly what
the mutation engine needs to rebuild the ancestors of a changed entry,
and nothing more is fetched.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..domain.objects import TreeEntry
from ..domain.paths import join_path, split_parent, split_path
from ..exit_codes import Conflict, NotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeLevel:
    """
    One directory on the way down.

    `name` is the segment under which the parent holds this directory
    ('' for the root).
    """
    name: str
    sha: str
    entries: Tuple[TreeEntry, ...]

    def find(self, name: str) -> Optional[TreeEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


@dataclass(frozen=True)
class ResolvedPath:
    """
    The chain of directories from the root down to a target's parent.

    Attributes:
        branch: Branch the walk started from
        head_sha: Branch head commit captured at the start of the operation
        root_sha: Root tree of that commit
        levels: Root first, deepest last
        leaf_name: Name of the target inside the deepest level
            (None when a directory itself was resolved)
        missing: Directories between the deepest level and the target
            that do not exist yet (only when resolved for creation)
    """
    branch: str
    head_sha: str
    root_sha: str
    levels: Tuple[TreeLevel, ...]
    leaf_name: Optional[str] = None
    missing: Tuple[str, ...] = ()

    @property
    def parent(self) -> TreeLevel:
        return self.levels[-1]

    @property
    def depth(self) -> int:
        """Number of directories below the root in the chain."""
        return len(self.levels) - 1

    @property
    def directory_path(self) -> str:
        return join_path(*(level.name for level in self.levels))

    @property
    def path(self) -> str:
        return join_path(self.directory_path, *self.missing, self.leaf_name or '')

    @property
    def leaf(self) -> Optional[TreeEntry]:
        """The target entry, if it exists in the parent."""
        if self.leaf_name is None or self.missing:
            return None
        return self.parent.find(self.leaf_name)

    def require_leaf(self) -> TreeEntry:
        entry = self.leaf
        if entry is None:
            raise NotFound(f"Item '{self.path}' not found on branch '{self.branch}'.")
        return entry


class PathResolver:
    """
    Locates paths on a branch.

    Example:
        resolver = PathResolver(client)
        resolved = resolver.resolve("main", "docs/readme.md")
        resolved.parent.entries   # listing of docs/
        resolved.require_leaf()   # the readme entry
    """

    def __init__(self, client):
        self.client = client

    def head(self, branch: str) -> Tuple[str, str]:
        """Return (head commit sha, root tree sha) for a branch."""
        head_sha = self.client.get_branch_head(branch)
        commit = self.client.get_commit(head_sha)
        return head_sha, commit.tree

    def resolve(
        self,
        branch: str,
        path: str,
        head_sha: Optional[str] = None,
        create_missing: bool = False,
    ) -> ResolvedPath:
        """
        Resolve the parent directory chain of `path`.

        The leaf itself need not exist; callers decide whether absence is
        an error (delete) or a precondition (add). With `create_missing`
        absent parent directories are recorded in `missing` instead of
        failing the walk.

        Raises:
            NotFound: branch missing, or an intermediate segment is absent
                or not a directory (without `create_missing`)
            Conflict: a file sits where a directory has to be created
        """
        parents, leaf = split_parent(path)
        head_sha, root_sha = self._start(branch, head_sha)
        levels, missing = self._walk(root_sha, parents, branch, create_missing)
        logger.debug(f"Resolved {path} on {branch}: {len(levels)} level(s), {len(missing)} missing")
        return ResolvedPath(branch, head_sha, root_sha, tuple(levels), leaf, tuple(missing))

    def resolve_directory(
        self,
        branch: str,
        path: str,
        head_sha: Optional[str] = None,
        create_missing: bool = False,
    ) -> ResolvedPath:
        """Resolve the chain down to and including directory `path` ('' for the root)."""
        head_sha, root_sha = self._start(branch, head_sha)
        levels, missing = self._walk(root_sha, split_path(path or ''), branch, create_missing)
        return ResolvedPath(branch, head_sha, root_sha, tuple(levels), None, tuple(missing))

    def _start(self, branch: str, head_sha: Optional[str]) -> Tuple[str, str]:
        if head_sha is None:
            return self.head(branch)
        return head_sha, self.client.get_commit(head_sha).tree

    def _walk(
        self,
        root_sha: str,
        segments: List[str],
        branch: str,
        create_missing: bool = False,
    ) -> Tuple[List[TreeLevel], List[str]]:
        listing = self.client.get_tree(root_sha)
        levels = [TreeLevel('', root_sha, listing.entries)]
        walked: List[str] = []
        for i, segment in enumerate(segments):
            walked.append(segment)
            entry = listing.find(segment)
            if entry is not None and entry.is_tree:
                listing = self.client.get_tree(entry.sha)
                levels.append(TreeLevel(segment, entry.sha, listing.entries))
                continue
            if not create_missing:
                raise NotFound(f"Directory '{'/'.join(walked)}' not found on branch '{branch}'.")
            if entry is not None:
                raise Conflict(f"'{'/'.join(walked)}' is a file, not a folder.", Conflict.EXISTS)
            return levels, list(segments[i:])
        return levels, []
