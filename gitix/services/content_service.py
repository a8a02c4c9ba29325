"""
Content coordinators: add-file, add-folder, commit-file and upload-files.

These are the operations that upload new blobs. Anything that can be
decided without the store (name clashes, unchanged content) is decided
before the first blob is created. Parent directories that do not exist
yet are created along with the new content.
"""

import logging

from ..domain.edit import EditBatch, InsertEntry
from ..domain.objects import MODE_FILE, MODE_TREE, EntryKind, TreeEntry, blob_sha
from ..domain.operation import FileResult, OperationResult
from ..domain.paths import join_path
from ..domain.requests import (
    AddFileRequest,
    AddFolderRequest,
    CommitFileRequest,
    UploadFilesRequest,
)
from ..domain.version import BumpClass
from ..exit_codes import Conflict, InvariantViolation, ValidationError
from .coordinator import Coordinator

logger = logging.getLogger(__name__)


class AddFileCoordinator(Coordinator):
    """Create a new file, along with any missing parent directories."""

    operation = "add-file"

    def execute(self, request: AddFileRequest, auth) -> OperationResult:
        path = request.full_path
        resolved = self.resolver.resolve(request.branch, path, create_missing=True)
        if resolved.leaf is not None:
            raise Conflict(f"File or folder '{path}' already exists.", Conflict.EXISTS)

        sha = self.engine.write_blob(bytes(request.content or b""))
        message = self.commit_message(f"Add new file: {path}", request.actor.username)
        entry = TreeEntry(request.filename, MODE_FILE, EntryKind.BLOB, sha)
        commit = self.land(resolved, self.engine.insertion(resolved, entry), message)
        tag = self.tag(commit.sha)

        return OperationResult.completed(
            self.operation,
            f"File '{path}' created successfully.",
            commit=commit,
            tag_outcome=tag,
            created=True,
            branch=request.branch,
            path=path,
        )


class AddFolderCoordinator(Coordinator):
    """Create a folder holding only the placeholder file."""

    operation = "add-folder"

    def execute(self, request: AddFolderRequest, auth) -> OperationResult:
        path = request.full_path
        resolved = self.resolver.resolve(request.branch, path, create_missing=True)
        if resolved.leaf is not None:
            raise Conflict(f"File or folder '{path}' already exists.", Conflict.EXISTS)

        tree_sha = self.engine.placeholder_tree()
        message = self.commit_message(
            f"Create folder: {request.directory or ''}/{request.folder_name}", request.actor.username
        )
        entry = TreeEntry(request.folder_name, MODE_TREE, EntryKind.TREE, tree_sha)
        commit = self.land(resolved, self.engine.insertion(resolved, entry), message)
        tag = self.tag(commit.sha)

        return OperationResult.completed(
            self.operation,
            f"Folder '{request.folder_name}' created successfully in '{request.directory or '/'}'.",
            commit=commit,
            tag_outcome=tag,
            created=True,
            branch=request.branch,
            path=path,
        )


class CommitFileCoordinator(Coordinator):
    """Create or update one file's content with a caller-chosen bump class."""

    operation = "commit-file"

    def execute(self, request: CommitFileRequest, auth) -> OperationResult:
        path = join_path(request.path)
        content = bytes(request.content)
        resolved = self.resolver.resolve(request.branch, path, create_missing=True)

        existing = resolved.leaf
        if existing is not None:
            if existing.is_tree:
                raise ValidationError(f"'{path}' is a folder, not a file.")
            if existing.sha == blob_sha(content):
                raise InvariantViolation(f"Content of '{path}' is unchanged; nothing to commit.")
        mode = existing.mode if existing is not None else MODE_FILE

        sha = self.engine.write_blob(content)
        message = self.commit_message(request.message, request.actor.username)
        entry = TreeEntry(resolved.leaf_name, mode, EntryKind.BLOB, sha)
        commit = self.land(resolved, self.engine.insertion(resolved, entry, overwrite=True), message)
        tag = self.tag(commit.sha, BumpClass.parse(request.bump))

        return OperationResult.completed(
            self.operation,
            "File committed successfully.",
            commit=commit,
            tag_outcome=tag,
            created=existing is None,
            branch=request.branch,
            path=path,
        )


class UploadFilesCoordinator(Coordinator):
    """
    Upload several files into one directory as a single commit.

    Existing files are overwritten; identical files and names taken by
    folders are skipped and reported per file. A missing target directory
    is created.
    """

    operation = "upload-files"

    def execute(self, request: UploadFilesRequest, auth) -> OperationResult:
        directory = join_path(request.directory or '')
        resolved = self.resolver.resolve_directory(request.branch, directory, create_missing=True)
        target = resolved.parent if not resolved.missing else None

        results = []
        uploaded = []
        for upload in request.files:
            path = join_path(directory, upload.name)
            content = bytes(upload.content)
            existing = target.find(upload.name) if target is not None else None
            if existing is not None and existing.is_tree:
                results.append(FileResult(path, "skipped", "A folder with this name exists."))
                continue
            if existing is not None and existing.sha == blob_sha(content):
                results.append(FileResult(path, "skipped", "Content unchanged."))
                continue
            sha = self.engine.write_blob(content)
            mode = existing.mode if existing is not None else MODE_FILE
            uploaded.append(TreeEntry(upload.name, mode, EntryKind.BLOB, sha))
            results.append(FileResult(path, "updated" if existing is not None else "created", sha=sha))

        if not uploaded:
            result = OperationResult.completed(
                self.operation, "No files needed uploading.", branch=request.branch, path=directory
            )
            result.results = results
            return result

        message = self.commit_message(
            f"Upload {len(uploaded)} file(s) to {directory or '/'}", request.actor.username
        )
        if resolved.missing:
            edit = InsertEntry.of(self.engine.nest(resolved.missing, uploaded))
        else:
            edit = EditBatch(tuple(InsertEntry.of(entry, overwrite=True) for entry in uploaded))
        commit = self.land(resolved, edit, message)
        tag = self.tag(commit.sha)

        result = OperationResult.completed(
            self.operation,
            f"Uploaded {len(uploaded)} file(s) to '{directory or '/'}'.",
            commit=commit,
            tag_outcome=tag,
            created=True,
            branch=request.branch,
            path=directory,
        )
        result.results = results
        return result
