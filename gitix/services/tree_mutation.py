"""
Tree mutation engine for gitix.

Turns a leaf-level edit on a resolved path into new immutable objects:

1. apply the edit to the deepest directory's entries and create a tree
2. walk the recorded levels upward, re-pointing each parent's entry for
   the directory below at the tree just created
3. commit the new root tree on top of the head captured at resolve time

Only the ancestor chain is rewritten; siblings keep their shas. For a
chain of d directories below the root exactly d+1 trees are created.

The ref advance is a separate step (`advance_branch`) and is compare-and-
swap: a branch that moved since it was resolved raises Conflict instead
of silently dropping the other writer's commit.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..domain.edit import InsertEntry, TreeEdit
from ..domain.objects import (
    MODE_FILE,
    MODE_TREE,
    CommitRef,
    EntryKind,
    RefRef,
    TreeEntry,
    blob_sha,
)
from ..exit_codes import Conflict, InvariantViolation, StoreError
from .path_resolver import ResolvedPath, TreeLevel

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_NAME = ".gitkeep"
DEFAULT_PLACEHOLDER_TEXT = "# Empty directory placeholder"


def _same_entries(a: Sequence[TreeEntry], b: Sequence[TreeEntry]) -> bool:
    return sorted(a, key=lambda e: e.name) == sorted(b, key=lambda e: e.name)


@dataclass
class RebuildStats:
    """What one rebuild created. Kept for logging and tests."""
    trees_created: int = 0
    old_root: Optional[str] = None
    new_root: Optional[str] = None


class TreeMutationEngine:
    """
    Rebuilds trees bottom-up and advances branches.

    Example:
        engine = TreeMutationEngine(client)
        resolved = resolver.resolve("main", "docs/readme.md")
        commit = engine.apply(resolved, RemoveEntry("readme.md"), "Delete item: docs/readme.md")
        engine.advance_branch("main", resolved.head_sha, commit.sha)
    """

    def __init__(
        self,
        client,
        placeholder_name: str = DEFAULT_PLACEHOLDER_NAME,
        placeholder_text: str = DEFAULT_PLACEHOLDER_TEXT,
    ):
        self.client = client
        self.placeholder_name = placeholder_name
        self.placeholder_text = placeholder_text
        self.last_stats: Optional[RebuildStats] = None

    # =========================================================================
    # REBUILD
    # =========================================================================

    def rebuild(self, resolved: ResolvedPath, edit: TreeEdit) -> str:
        """
        Apply `edit` to the deepest level and rebuild up to the root.

        Raises:
            InvariantViolation: the edit leaves the directory unchanged
                (checked before any object is created), or the new root
                equals the old one
            NotFound / Conflict: from the edit itself
        """
        parent = resolved.parent
        new_entries = edit.apply(parent.entries)
        if _same_entries(new_entries, parent.entries):
            raise InvariantViolation(f"Edit '{edit}' does not change '{resolved.directory_path or '/'}'.")
        return self.rebuild_levels(resolved.levels, new_entries)

    def rebuild_levels(self, levels: Sequence[TreeLevel], new_entries: Iterable[TreeEntry]) -> str:
        """
        Create the deepest level from `new_entries`, then every ancestor.

        Levels are replayed in reverse; each ancestor gets a copy of its
        original listing with one entry re-pointed.
        """
        stats = RebuildStats(old_root=levels[0].sha)
        new_sha = self.client.create_tree(list(new_entries)).sha
        stats.trees_created += 1

        for depth in range(len(levels) - 2, -1, -1):
            level = levels[depth]
            child_name = levels[depth + 1].name
            updated = [
                entry.pointing_to(new_sha) if entry.name == child_name and entry.is_tree else entry
                for entry in level.entries
            ]
            new_sha = self.client.create_tree(updated).sha
            stats.trees_created += 1

        stats.new_root = new_sha
        self.last_stats = stats
        if new_sha == stats.old_root:
            raise InvariantViolation("New root tree equals the original root tree; nothing changed.")
        logger.debug(f"Rebuilt {stats.trees_created} tree(s): root {stats.old_root[:7]} -> {new_sha[:7]}")
        return new_sha

    # =========================================================================
    # COMMIT / ADVANCE
    # =========================================================================

    def commit(self, resolved: ResolvedPath, root_sha: str, message: str) -> CommitRef:
        """Commit `root_sha` with the head captured at resolve time as parent."""
        return self.client.create_commit(message, root_sha, [resolved.head_sha])

    def apply(self, resolved: ResolvedPath, edit: TreeEdit, message: str) -> CommitRef:
        """Rebuild for `edit` and commit the result. The branch is not moved."""
        root_sha = self.rebuild(resolved, edit)
        return self.commit(resolved, root_sha, message)

    def advance_branch(self, branch: str, expected_sha: str, new_sha: str) -> RefRef:
        """
        Move `branch` from `expected_sha` to `new_sha`.

        Raises:
            Conflict: (stale_ref) the branch no longer points at `expected_sha`
        """
        current = self.client.get_branch_head(branch)
        if current != expected_sha:
            raise Conflict(
                f"Branch '{branch}' moved from {expected_sha[:7]} to {current[:7]}; "
                f"resolve again and retry.",
                Conflict.STALE_REF,
            )
        ref = self.client.update_ref(f"heads/{branch}", new_sha, force=False)
        logger.info(f"Advanced {branch}: {expected_sha[:7]} -> {new_sha[:7]}")
        return ref

    # =========================================================================
    # CONTENT
    # =========================================================================

    def write_blob(self, content: bytes) -> str:
        """Upload content and return its sha."""
        blob = self.client.create_blob(content)
        expected = blob_sha(bytes(content))
        if blob.sha != expected:
            logger.warning(f"Store returned blob {blob.sha[:7]}, expected {expected[:7]}")
        return blob.sha

    def placeholder_tree(self) -> str:
        """Create a tree holding only the placeholder file."""
        sha = self.write_blob(self.placeholder_text.encode('utf-8'))
        entry = TreeEntry(self.placeholder_name, MODE_FILE, EntryKind.BLOB, sha)
        return self.client.create_tree([entry]).sha

    def nest(self, names: Sequence[str], entries: List[TreeEntry]) -> TreeEntry:
        """
        Wrap `entries` in new directories, innermost last in `names`.

        One tree per name is created, deepest first. Returns the entry
        for the outermost directory.
        """
        for name in reversed(names):
            sha = self.client.create_tree(entries).sha
            entries = [TreeEntry(name, MODE_TREE, EntryKind.TREE, sha)]
        return entries[0]

    def insertion(self, resolved: ResolvedPath, entry: TreeEntry, overwrite: bool = False) -> InsertEntry:
        """
        The edit that places `entry` at `resolved`'s target.

        Directories recorded as missing are created around it first, so
        the edit lands in the deepest directory that already exists.
        """
        if resolved.missing:
            return InsertEntry.of(self.nest(resolved.missing, [entry]))
        return InsertEntry.of(entry, overwrite=overwrite)

    def copy_directory(self, source_tree_sha: str, destination: ResolvedPath) -> str:
        """
        Copy a directory to `destination.leaf_name` inside `destination.parent`.

        The source subtree is listed recursively and every blob is
        re-attached under the destination with its original sha; nothing
        is re-uploaded. An existing destination is replaced. An empty
        source becomes a directory holding only the placeholder file.

        Returns:
            The new root tree sha
        """
        listing = self.client.get_tree(source_tree_sha, recursive=True)
        if listing.truncated:
            raise StoreError(f"Recursive listing of {source_tree_sha[:7]} is truncated; cannot copy safely.")

        files: List[TreeEntry] = [entry for entry in listing.entries if not entry.is_tree]
        if files:
            subtree_sha = self.client.create_tree(files).sha
        else:
            logger.info("Source directory is empty, adding placeholder")
            subtree_sha = self.placeholder_tree()

        insert = InsertEntry(destination.leaf_name, MODE_TREE, EntryKind.TREE, subtree_sha, overwrite=True)
        return self.rebuild(destination, insert)

    def overlay(self, base_root_sha: str, entries: Sequence[TreeEntry]) -> str:
        """
        Lay `entries` (slash-separated paths) over a root tree.

        One create call with the base tree, instead of a chain rebuild
        per path.

        Raises:
            InvariantViolation: the overlay changes nothing
        """
        new_sha = self.client.create_tree(list(entries), base_tree=base_root_sha).sha
        if new_sha == base_root_sha:
            raise InvariantViolation("Copied files are identical to the target; nothing changed.")
        return new_sha
