"""
Domain layer for gitix.

Contains pure domain objects with no I/O or side effects:
- TreeEntry, TreeListing, BlobRef, TreeRef, CommitRef, RefRef: the object graph
- SemanticVersion, BumpClass: version arithmetic over tag names
- TreeEdit and friends: leaf-level directory edits
- OperationResult: what a coordinator reports

These objects are immutable where possible and provide
serialization methods for JSON output.
"""

from .objects import (
    BlobRef,
    CommitRef,
    EntryKind,
    RefRef,
    TreeEntry,
    TreeListing,
    TreeRef,
    blob_sha,
)
from .version import BumpClass, SemanticVersion, latest_version, next_version
from .edit import EditBatch, InsertEntry, RemoveEntry, RenameEntry, TreeEdit
from .operation import FileResult, OperationResult, StatusClass, TagOutcome, TagStatus
from .requests import Credentials

__all__ = [
    'BlobRef',
    'CommitRef',
    'EntryKind',
    'RefRef',
    'TreeEntry',
    'TreeListing',
    'TreeRef',
    'blob_sha',
    'BumpClass',
    'SemanticVersion',
    'latest_version',
    'next_version',
    'EditBatch',
    'InsertEntry',
    'RemoveEntry',
    'RenameEntry',
    'TreeEdit',
    'FileResult',
    'OperationResult',
    'StatusClass',
    'TagOutcome',
    'TagStatus',
    'Credentials',
]
