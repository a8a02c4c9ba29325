"""
Request shapes for gitix operations.

One dataclass per coordinator. `validate()` checks the request shape
and raises ValidationError before anything talks to the store; it
returns nothing and never mutates the request.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..exit_codes import ValidationError
from .paths import (
    is_same_or_descendant,
    join_path,
    split_parent,
    validate_directory_path,
    validate_item_path,
    validate_name,
)
from .version import BumpClass


@dataclass(frozen=True)
class Credentials:
    """Who is asking. The secret is never logged or serialized."""
    username: str
    secret: str = field(repr=False)

    def validate(self) -> None:
        if not self.username or not self.secret:
            raise ValidationError("Missing required fields: username, password.")


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if value in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}.")


def _validate_bump(bump) -> None:
    try:
        BumpClass.parse(bump)
    except ValueError as e:
        raise ValidationError(str(e))


@dataclass(frozen=True)
class DeleteItemRequest:
    actor: Credentials
    branch: str
    path: str
    message: Optional[str] = None

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, path=self.path)
        validate_item_path(self.path, "path for deletion")


@dataclass(frozen=True)
class RenameItemRequest:
    actor: Credentials
    branch: str
    path: str
    new_name: str

    @property
    def new_path(self) -> str:
        parent, _ = split_parent(self.path)
        return join_path(*parent, self.new_name)

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, path=self.path, new_name=self.new_name)
        validate_name(self.new_name, "new name")
        validate_item_path(self.path, "original path")
        if join_path(self.path) == self.new_path:
            raise ValidationError("New name cannot be the same as the original name.")


@dataclass(frozen=True)
class CopyItemRequest:
    actor: Credentials
    branch: str
    source_path: str
    destination_dir: str
    new_name: str

    @property
    def destination_path(self) -> str:
        return join_path(self.destination_dir, self.new_name)

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, source_path=self.source_path, new_name=self.new_name)
        validate_name(self.new_name, "new name")
        validate_item_path(self.source_path, "source path")
        validate_directory_path(self.destination_dir, "destination path")
        if is_same_or_descendant(self.destination_path, self.source_path):
            raise ValidationError("Cannot copy an item into itself.")


@dataclass(frozen=True)
class CopyFilesRequest:
    actor: Credentials
    source_branch: str
    target_branch: str
    paths: List[str] = field(default_factory=list)

    def validate(self) -> None:
        self.actor.validate()
        _require(source_branch=self.source_branch, target_branch=self.target_branch)
        if not isinstance(self.paths, (list, tuple)) or not self.paths:
            raise ValidationError("paths must be a non-empty array.")
        if self.source_branch == self.target_branch:
            raise ValidationError("Source and target branch must differ.")
        for path in self.paths:
            validate_item_path(path, "path")


@dataclass(frozen=True)
class AddFileRequest:
    actor: Credentials
    branch: str
    directory: str
    filename: str
    content: bytes = b""

    @property
    def full_path(self) -> str:
        return join_path(self.directory or '', self.filename)

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, filename=self.filename)
        validate_name(self.filename, "filename")
        validate_directory_path(self.directory)


@dataclass(frozen=True)
class AddFolderRequest:
    actor: Credentials
    branch: str
    directory: str
    folder_name: str

    @property
    def full_path(self) -> str:
        return join_path(self.directory or '', self.folder_name)

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, folder_name=self.folder_name)
        validate_name(self.folder_name, "folder name")
        validate_directory_path(self.directory)


@dataclass(frozen=True)
class CommitFileRequest:
    actor: Credentials
    branch: str
    path: str
    content: bytes
    message: str
    bump: str = "patch"

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, path=self.path, message=self.message)
        if not isinstance(self.content, (bytes, bytearray)):
            raise ValidationError("content must be bytes.")
        validate_item_path(self.path)
        _validate_bump(self.bump)


@dataclass(frozen=True)
class UploadFile:
    name: str
    content: bytes


@dataclass(frozen=True)
class UploadFilesRequest:
    actor: Credentials
    branch: str
    directory: str
    files: List[UploadFile] = field(default_factory=list)

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch)
        validate_directory_path(self.directory)
        if not self.files:
            raise ValidationError("A non-empty files array is required.")
        names = set()
        for upload in self.files:
            validate_name(upload.name, "file name")
            if not isinstance(upload.content, (bytes, bytearray)):
                raise ValidationError(f"Invalid content for '{upload.name}'.")
            if upload.name in names:
                raise ValidationError(f"Duplicate file name '{upload.name}'.")
            names.add(upload.name)


@dataclass(frozen=True)
class CreateBranchRequest:
    actor: Credentials
    new_branch: str
    source_branch: str

    def validate(self) -> None:
        self.actor.validate()
        _require(new_branch=self.new_branch, source_branch=self.source_branch)
        if ' ' in self.new_branch or '..' in self.new_branch or self.new_branch.startswith('/'):
            raise ValidationError(f"Invalid branch name '{self.new_branch}'.")


@dataclass(frozen=True)
class RevertBranchRequest:
    actor: Credentials
    branch: str
    commit_sha: str
    message: Optional[str] = None

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch, commit_sha=self.commit_sha)


@dataclass(frozen=True)
class RetireBranchRequest:
    actor: Credentials
    branch: str

    def validate(self) -> None:
        self.actor.validate()
        _require(branch=self.branch)
