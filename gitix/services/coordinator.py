"""
Operation coordinator base for gitix.

Every user-facing mutation runs the same sequence:

    validate -> precheck -> authorize -> resolve -> mutate -> advance -> tag -> report

Steps before the branch advance are all-or-nothing: any error there
leaves the branch untouched (objects already created are unreferenced
and harmless). Tagging happens after the advance and can only downgrade
the result to partial success. Subclasses implement `execute`.
"""

import logging
from typing import Any, Dict, List, Optional

from ..config import load_config
from ..domain.edit import TreeEdit
from ..domain.objects import CommitRef
from ..domain.operation import OperationResult, StatusClass, TagOutcome
from ..domain.requests import Credentials
from ..domain.version import BumpClass
from ..exit_codes import CommandError, Unauthorized
from .path_resolver import PathResolver, ResolvedPath
from .tree_mutation import TreeMutationEngine
from .version_tagger import VersionTagger

logger = logging.getLogger(__name__)


class Coordinator:
    """
    Base class for operation coordinators.

    Args:
        client: ObjectStoreClient (or anything with the same methods)
        auth: Permission collaborator exposing `validate_actor(username, secret, branch)`
        config: Configuration dict (loads default if None)
    """

    operation = "operation"

    def __init__(
        self,
        client,
        auth,
        config: Optional[Dict[str, Any]] = None,
        resolver: Optional[PathResolver] = None,
        engine: Optional[TreeMutationEngine] = None,
        tagger: Optional[VersionTagger] = None,
    ):
        self.config = config or load_config()
        self.client = client
        self.auth = auth

        content = self.config.get('content', {})
        tagging = self.config.get('tagging', {})
        self.resolver = resolver or PathResolver(client)
        self.engine = engine or TreeMutationEngine(
            client,
            placeholder_name=content.get('placeholder_name', '.gitkeep'),
            placeholder_text=content.get('placeholder_text', '# Empty directory placeholder'),
        )
        self.tagger = tagger or VersionTagger(
            client,
            max_attempts=tagging.get('max_attempts', 1),
            enabled=tagging.get('enabled', True),
        )

    # =========================================================================
    # CONFIG SHORTCUTS
    # =========================================================================

    @property
    def protected_branches(self) -> List[str]:
        return list(self.config.get('branches', {}).get('protected', ['main']))

    @property
    def default_bump(self) -> BumpClass:
        return BumpClass.parse(self.config.get('tagging', {}).get('bump', 'patch'))

    def is_protected(self, branch: str) -> bool:
        return branch in self.protected_branches

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def run(self, request) -> OperationResult:
        """Run the operation and report its outcome. Never raises."""
        logger.info(f"{self.operation}: started by {getattr(request.actor, 'username', '?')}")
        try:
            request.validate()
            self.precheck(request)
            auth = self.authorize(request)
            result = self.execute(request, auth)
        except CommandError as e:
            log = logger.warning if e.status_class != StatusClass.SERVER_ERROR.value else logger.error
            log(f"{self.operation} failed: {e.message}")
            return OperationResult.from_error(self.operation, e)
        except Exception as e:
            logger.exception(f"{self.operation} failed unexpectedly: {e}")
            return OperationResult.from_error(self.operation, e)

        logger.info(f"{self.operation}: {result.status_class.value} - {result.message}")
        return result

    def precheck(self, request) -> None:
        """Request rules that need configuration, checked before authorizing."""

    def authorization_branch(self, request) -> Optional[str]:
        return getattr(request, 'branch', None)

    def check(self, credentials: Credentials, branch: Optional[str]):
        return self.auth.validate_actor(credentials.username, credentials.secret, branch)

    def authorize(self, request):
        """
        Ask the permission collaborator about the request's actor.

        Raises:
            Unauthorized: with the collaborator's reason and code
        """
        result = self.check(request.actor, self.authorization_branch(request))
        if not result.authorized:
            raise Unauthorized(result.reason or "Not authorized", getattr(result, 'code', None))
        return result

    def execute(self, request, auth) -> OperationResult:
        raise NotImplementedError

    # =========================================================================
    # HELPERS
    # =========================================================================

    def commit_message(self, text: str, username: str) -> str:
        if self.config.get('content', {}).get('author_suffix', True):
            return f"{text} [author: {username}]"
        return text

    def land(self, resolved: ResolvedPath, edit: TreeEdit, message: str) -> CommitRef:
        """Apply an edit, commit it and advance the branch it was resolved on."""
        commit = self.engine.apply(resolved, edit, message)
        self.engine.advance_branch(resolved.branch, resolved.head_sha, commit.sha)
        return commit

    def land_tree(self, resolved: ResolvedPath, root_sha: str, message: str) -> CommitRef:
        """Commit an already-built root tree and advance the branch."""
        commit = self.engine.commit(resolved, root_sha, message)
        self.engine.advance_branch(resolved.branch, resolved.head_sha, commit.sha)
        return commit

    def tag(self, commit_sha: str, bump: Optional[BumpClass] = None) -> TagOutcome:
        return self.tagger.tag_commit(commit_sha, bump or self.default_bump)
