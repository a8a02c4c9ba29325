"""
Service layer for gitix.

Contains the logic that orchestrates domain objects and the object store:
- PathResolver: walks a branch to a path's parent directory
- TreeMutationEngine: bottom-up tree rebuild, commit and CAS branch advance
- VersionTagger: next semantic version and tag creation
- Coordinators: one end-to-end flow per user-facing operation
- BrowseService: read-only listings, file contents and history

Coordinators are the primary API for commands to use.
"""

from .path_resolver import PathResolver, ResolvedPath, TreeLevel
from .tree_mutation import TreeMutationEngine
from .version_tagger import VersionTagger
from .coordinator import Coordinator
from .item_service import CopyItemCoordinator, DeleteItemCoordinator, RenameItemCoordinator
from .content_service import (
    AddFileCoordinator,
    AddFolderCoordinator,
    CommitFileCoordinator,
    UploadFilesCoordinator,
)
from .branch_service import (
    CopyFilesCoordinator,
    CreateBranchCoordinator,
    RetireBranchCoordinator,
    RevertBranchCoordinator,
)
from .browse_service import BrowseService, HistoryEntry

__all__ = [
    'PathResolver',
    'ResolvedPath',
    'TreeLevel',
    'TreeMutationEngine',
    'VersionTagger',
    'Coordinator',
    'CopyItemCoordinator',
    'DeleteItemCoordinator',
    'RenameItemCoordinator',
    'AddFileCoordinator',
    'AddFolderCoordinator',
    'CommitFileCoordinator',
    'UploadFilesCoordinator',
    'CopyFilesCoordinator',
    'CreateBranchCoordinator',
    'RetireBranchCoordinator',
    'RevertBranchCoordinator',
    'BrowseService',
    'HistoryEntry',
]
