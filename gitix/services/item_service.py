"""
Item coordinators: delete, rename and copy within one branch.

Each resolves the target's parent chain at the branch head, applies one
leaf edit, lands the commit with a compare-and-swap advance and tags it.
"""

import logging

from ..domain.edit import InsertEntry, RemoveEntry, RenameEntry
from ..domain.operation import OperationResult
from ..domain.paths import join_path
from ..domain.requests import CopyItemRequest, DeleteItemRequest, RenameItemRequest
from ..exit_codes import Conflict
from .coordinator import Coordinator

logger = logging.getLogger(__name__)


class DeleteItemCoordinator(Coordinator):
    """Delete a file or folder (with everything below it)."""

    operation = "delete-item"

    def execute(self, request: DeleteItemRequest, auth) -> OperationResult:
        path = join_path(request.path)
        resolved = self.resolver.resolve(request.branch, path)
        entry = resolved.require_leaf()

        message = self.commit_message(request.message or f"Delete item: {path}", request.actor.username)
        commit = self.land(resolved, RemoveEntry(entry.name), message)
        tag = self.tag(commit.sha)

        kind = "Folder" if entry.is_tree else "File"
        return OperationResult.completed(
            self.operation,
            f"{kind} '{path}' deleted successfully.",
            commit=commit,
            tag_outcome=tag,
            branch=request.branch,
            path=path,
        )


class RenameItemCoordinator(Coordinator):
    """Rename a file or folder inside its directory. No content is re-uploaded."""

    operation = "rename-item"

    def execute(self, request: RenameItemRequest, auth) -> OperationResult:
        path = join_path(request.path)
        new_path = request.new_path
        resolved = self.resolver.resolve(request.branch, path)
        resolved.require_leaf()

        message = self.commit_message(f"Rename {path} to {new_path}", request.actor.username)
        commit = self.land(resolved, RenameEntry(resolved.leaf_name, request.new_name), message)
        tag = self.tag(commit.sha)

        return OperationResult.completed(
            self.operation,
            f"Item renamed from '{path}' to '{new_path}'.",
            commit=commit,
            tag_outcome=tag,
            branch=request.branch,
            path=path,
            newPath=new_path,
        )


class CopyItemCoordinator(Coordinator):
    """
    Copy a file or folder to another place on the same branch.

    File copies insert the source entry's sha at the destination; folder
    copies re-attach every blob of the source subtree. An existing
    destination of the same kind is replaced; one of the other kind is a
    Conflict.
    """

    operation = "copy-item"

    def execute(self, request: CopyItemRequest, auth) -> OperationResult:
        source_path = join_path(request.source_path)
        destination_path = request.destination_path

        source = self.resolver.resolve(request.branch, source_path)
        entry = source.require_leaf()
        # Same head for both walks so source and destination agree
        destination = self.resolver.resolve(request.branch, destination_path, head_sha=source.head_sha)
        existing = destination.leaf
        replaced = existing is not None
        if replaced and existing.kind != entry.kind:
            kind = "folder" if existing.is_tree else "file"
            raise Conflict(f"A {kind} named '{destination_path}' already exists.", Conflict.EXISTS)

        message = self.commit_message(f"Copy {source_path} to {destination_path}", request.actor.username)
        if entry.is_tree:
            logger.debug(f"Copying directory {source_path} ({entry.sha[:7]})")
            root_sha = self.engine.copy_directory(entry.sha, destination)
            commit = self.land_tree(destination, root_sha, message)
        else:
            commit = self.land(destination, InsertEntry.of(entry, request.new_name, overwrite=True), message)
        tag = self.tag(commit.sha)

        return OperationResult.completed(
            self.operation,
            f"Item '{source_path}' copied to '{destination_path}'.",
            commit=commit,
            tag_outcome=tag,
            created=not replaced,
            branch=request.branch,
            sourcePath=source_path,
            destinationPath=destination_path,
        )
