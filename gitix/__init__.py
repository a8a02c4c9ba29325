"""
gitix - path-based edits on a hosted Git repository, every one versioned.

gitix rewrites the remote tree directly through the object store API:
each rename, delete, copy or upload becomes new trees, one commit and a
compare-and-swap branch advance, and the new commit is tagged with the
next semantic version.

Quick Start:
    import gitix

    gx = gitix.Gitix(owner="octo", repo="notes")
    me = gitix.Credentials("alice", "s3cret")

    result = gx.rename_item(me, "drafts", "docs/a.md", "b.md")
    if result.success:
        print(result.commit.sha, result.tag)

Domain Objects:
    TreeEntry, CommitRef, RefRef - the remote object graph
    SemanticVersion, BumpClass - version arithmetic over tags
    OperationResult - what every operation reports

Services:
    PathResolver, TreeMutationEngine, VersionTagger - the core
    *Coordinator - one end-to-end flow per operation
"""

__version__ = "0.1.0"

# High-level API
from .api import Gitix, create

# Domain objects
from .domain import (
    BumpClass,
    CommitRef,
    Credentials,
    OperationResult,
    RefRef,
    SemanticVersion,
    StatusClass,
    TagOutcome,
    TreeEntry,
)

# Services (for advanced use)
from .services import (
    PathResolver,
    TreeMutationEngine,
    VersionTagger,
)

# Configuration
from .config import load_config, save_config

__all__ = [
    # Version
    "__version__",
    # High-level API
    "Gitix",
    "create",
    # Domain objects
    "BumpClass",
    "CommitRef",
    "Credentials",
    "OperationResult",
    "RefRef",
    "SemanticVersion",
    "StatusClass",
    "TagOutcome",
    "TreeEntry",
    # Services
    "PathResolver",
    "TreeMutationEngine",
    "VersionTagger",
    # Configuration
    "load_config",
    "save_config",
]
