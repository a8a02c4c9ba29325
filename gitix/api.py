"""
High-level Python API for gitix.

Provides one method per operation on top of the coordinators.

Example:
    import gitix
    from gitix import Credentials

    gx = gitix.Gitix(owner="octo", repo="notes", token="ghp_...")
    me = Credentials("alice", "s3cret")

    result = gx.delete_item(me, "drafts", "docs/old.md")
    print(result.message)          # "File 'docs/old.md' deleted successfully. New state tagged as 0.0.4."
    print(result.status_class)     # StatusClass.OK

    result = gx.copy_files(me, "drafts", "main", ["docs/intro.md"])
    result.details.get("pullRequestUrl")

    # Read-only helpers
    gx.next_tag("minor")           # {'current': '0.0.4', 'next': '0.1.0', 'bump': 'minor'}
    gx.compare("main", "drafts")
    gx.list_directory("drafts", "docs")
    gx.read_file("drafts", "docs/intro.md").content
    [h.version for h in gx.history("drafts")]
"""

from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from .config import load_config
from .domain.objects import BlobRef, RefRef, TreeEntry
from .domain.operation import OperationResult
from .domain.requests import (
    AddFileRequest,
    AddFolderRequest,
    CommitFileRequest,
    CopyFilesRequest,
    CopyItemRequest,
    CreateBranchRequest,
    Credentials,
    DeleteItemRequest,
    RenameItemRequest,
    RetireBranchRequest,
    RevertBranchRequest,
    UploadFile,
    UploadFilesRequest,
)
from .domain.version import BumpClass, next_version
from .exit_codes import ConfigError, ValidationError
from .infra import ActorStore, ObjectStoreClient
from .services import (
    AddFileCoordinator,
    AddFolderCoordinator,
    BrowseService,
    CommitFileCoordinator,
    CopyFilesCoordinator,
    CopyItemCoordinator,
    CreateBranchCoordinator,
    DeleteItemCoordinator,
    HistoryEntry,
    RenameItemCoordinator,
    RetireBranchCoordinator,
    RevertBranchCoordinator,
    UploadFilesCoordinator,
    VersionTagger,
)

logger = logging.getLogger(__name__)


class Gitix:
    """
    High-level API for gitix.

    Every mutating method returns an OperationResult and never raises for
    operation failures; read-only helpers raise CommandError subclasses.
    """

    def __init__(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        token: Optional[str] = None,
        config_path: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        client=None,
        auth=None,
    ):
        """
        Initialize Gitix.

        Args:
            owner: Repository owner (overrides config)
            repo: Repository name (overrides config)
            token: Store API token (overrides config/env)
            config_path: Path to config file (default: ~/.gitix/config.json)
            config: Full config dict (overrides file if provided)
            client: Object store client to use instead of building one
            auth: Permission collaborator to use instead of the actor store
        """
        self._config = config if config is not None else load_config(config_path)

        store = self._config.setdefault('store', {})
        if owner:
            store['owner'] = owner
        if repo:
            store['repo'] = repo
        if token:
            store['token'] = token

        if client is None:
            if not store.get('owner') or not store.get('repo'):
                raise ConfigError("store.owner and store.repo must be configured")
            client = ObjectStoreClient.from_config(self._config)
        self._client = client
        self._auth = auth if auth is not None else ActorStore.from_config(self._config)
        self._browse = BrowseService(self._client)

    @property
    def config(self) -> Dict[str, Any]:
        """Access the configuration."""
        return self._config

    @property
    def client(self):
        """Access the underlying object store client."""
        return self._client

    @property
    def auth(self):
        """Access the permission collaborator."""
        return self._auth

    def _run(self, coordinator_class, request) -> OperationResult:
        return coordinator_class(self._client, self._auth, config=self._config).run(request)

    # =========================================================================
    # ITEMS
    # =========================================================================

    def delete_item(self, actor: Credentials, branch: str, path: str,
                    message: Optional[str] = None) -> OperationResult:
        return self._run(DeleteItemCoordinator, DeleteItemRequest(actor, branch, path, message))

    def rename_item(self, actor: Credentials, branch: str, path: str, new_name: str) -> OperationResult:
        return self._run(RenameItemCoordinator, RenameItemRequest(actor, branch, path, new_name))

    def copy_item(self, actor: Credentials, branch: str, source_path: str,
                  destination_dir: str, new_name: str) -> OperationResult:
        return self._run(
            CopyItemCoordinator,
            CopyItemRequest(actor, branch, source_path, destination_dir, new_name),
        )

    # =========================================================================
    # CONTENT
    # =========================================================================

    def add_file(self, actor: Credentials, branch: str, directory: str, filename: str,
                 content: bytes = b"") -> OperationResult:
        return self._run(AddFileCoordinator, AddFileRequest(actor, branch, directory, filename, content))

    def add_folder(self, actor: Credentials, branch: str, directory: str, folder_name: str) -> OperationResult:
        return self._run(AddFolderCoordinator, AddFolderRequest(actor, branch, directory, folder_name))

    def commit_file(self, actor: Credentials, branch: str, path: str, content: bytes, message: str,
                    bump: Union[str, BumpClass] = "patch") -> OperationResult:
        bump_value = bump.value if isinstance(bump, BumpClass) else bump
        return self._run(
            CommitFileCoordinator,
            CommitFileRequest(actor, branch, path, content, message, bump_value),
        )

    def upload_files(self, actor: Credentials, branch: str, directory: str,
                     files: List[Tuple[str, bytes]]) -> OperationResult:
        uploads = [UploadFile(name, content) for name, content in files]
        return self._run(UploadFilesCoordinator, UploadFilesRequest(actor, branch, directory, uploads))

    # =========================================================================
    # BRANCHES
    # =========================================================================

    def create_branch(self, actor: Credentials, new_branch: str, source_branch: str) -> OperationResult:
        return self._run(CreateBranchCoordinator, CreateBranchRequest(actor, new_branch, source_branch))

    def revert_branch(self, actor: Credentials, branch: str, commit_sha: str,
                      message: Optional[str] = None) -> OperationResult:
        return self._run(RevertBranchCoordinator, RevertBranchRequest(actor, branch, commit_sha, message))

    def retire_branch(self, actor: Credentials, branch: str) -> OperationResult:
        return self._run(RetireBranchCoordinator, RetireBranchRequest(actor, branch))

    def copy_files(self, actor: Credentials, source_branch: str, target_branch: str,
                   paths: List[str]) -> OperationResult:
        return self._run(CopyFilesCoordinator, CopyFilesRequest(actor, source_branch, target_branch, list(paths)))

    # =========================================================================
    # READ-ONLY
    # =========================================================================

    def compare(self, base: str, head: str) -> Dict[str, Any]:
        """The store's comparison of two branches or commits."""
        if not base or not head:
            raise ValidationError("Both base and head are required.")
        return self._client.compare(base, head)

    def list_directory(self, branch: str, path: str = '', recursive: bool = False) -> List[TreeEntry]:
        """Entries of a directory on a branch, named by full path."""
        return self._browse.list_directory(branch, path, recursive)

    def read_file(self, branch: str, path: str) -> BlobRef:
        """A file's blob with its content."""
        return self._browse.read_file(branch, path)

    def list_branches(self) -> List[RefRef]:
        return self._browse.list_branches()

    def history(self, branch: str, limit: int = 10) -> List[HistoryEntry]:
        """Recent commits of a branch, newest first, with their version tags."""
        return self._browse.history(branch, limit)

    def next_tag(self, bump: Union[str, BumpClass] = "patch") -> Dict[str, Optional[str]]:
        """Preview the tag the next mutation would get for `bump`."""
        try:
            bump = BumpClass.parse(bump)
        except ValueError as e:
            raise ValidationError(str(e))
        current = VersionTagger(self._client).latest_version()
        return {
            'current': str(current) if current else None,
            'next': str(next_version(current, bump)),
            'bump': bump.value,
        }


def create(owner: Optional[str] = None, repo: Optional[str] = None, **kwargs) -> Gitix:
    """
    Create a Gitix instance.

    Convenience function for:
        gx = gitix.create("octo", "notes")
    """
    return Gitix(owner=owner, repo=repo, **kwargs)
