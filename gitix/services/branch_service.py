"""
Branch coordinators: create, revert, retire and cross-branch copy.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..domain.objects import TreeEntry
from ..domain.operation import FileResult, OperationResult, StatusClass
from ..domain.paths import join_path
from ..domain.requests import (
    CopyFilesRequest,
    CreateBranchRequest,
    RetireBranchRequest,
    RevertBranchRequest,
)
from ..exit_codes import CommandError, InvariantViolation, StoreError, Unauthorized, ValidationError
from .coordinator import Coordinator
from .path_resolver import ResolvedPath, TreeLevel

logger = logging.getLogger(__name__)

SKIP_NOT_A_FILE = "File not found or is not a blob in source branch"


class CreateBranchCoordinator(Coordinator):
    """Create a branch at another branch's head and tag that commit."""

    operation = "create-branch"

    def authorization_branch(self, request: CreateBranchRequest) -> Optional[str]:
        return request.source_branch

    def execute(self, request: CreateBranchRequest, auth) -> OperationResult:
        source_sha = self.client.get_branch_head(request.source_branch)
        self.client.create_ref(f"heads/{request.new_branch}", source_sha)
        logger.info(f"Created branch {request.new_branch} at {source_sha[:7]}")
        tag = self.tag(source_sha)

        return OperationResult.completed(
            self.operation,
            f"Branch '{request.new_branch}' created from '{request.source_branch}'.",
            tag_outcome=tag,
            created=True,
            branch=request.new_branch,
            sourceBranch=request.source_branch,
            sha=source_sha,
        )


class RevertBranchCoordinator(Coordinator):
    """
    Move a branch back to an earlier state with a new commit.

    History is kept: the new commit has the current head as parent and
    the target commit's tree as content.
    """

    operation = "revert-branch"

    def precheck(self, request: RevertBranchRequest) -> None:
        if self.is_protected(request.branch):
            raise ValidationError(f"Cannot revert the {request.branch} branch via this method.")

    def execute(self, request: RevertBranchRequest, auth) -> OperationResult:
        target = self.client.get_commit(request.commit_sha)
        head_sha, root_sha = self.resolver.head(request.branch)
        if target.tree == root_sha:
            raise InvariantViolation(
                f"Branch '{request.branch}' already has the content of commit {request.commit_sha[:7]}."
            )

        text = request.message or (
            f"Revert branch '{request.branch}' to state of commit {request.commit_sha[:7]}"
        )
        message = self.commit_message(text, request.actor.username)
        commit = self.client.create_commit(message, target.tree, [head_sha])
        self.engine.advance_branch(request.branch, head_sha, commit.sha)
        tag = self.tag(commit.sha)

        return OperationResult.completed(
            self.operation,
            f"Branch '{request.branch}' reverted to commit {request.commit_sha[:7]}.",
            commit=commit,
            tag_outcome=tag,
            branch=request.branch,
        )


class RetireBranchCoordinator(Coordinator):
    """Rename a branch to `<branch><retired_suffix>`. Super-user only, never tagged."""

    operation = "retire-branch"

    @property
    def retired_suffix(self) -> str:
        return self.config.get('branches', {}).get('retired_suffix', '-retired')

    def precheck(self, request: RetireBranchRequest) -> None:
        if self.is_protected(request.branch):
            raise ValidationError(f"Cannot retire the {request.branch} branch.")
        if request.branch.endswith(self.retired_suffix):
            raise ValidationError(f"Branch '{request.branch}' is already retired.")

    def authorization_branch(self, request) -> Optional[str]:
        return None

    def authorize(self, request):
        superuser = self.config.get('auth', {}).get('superuser', 'admin')
        if request.actor.username != superuser:
            raise Unauthorized(f"Only {superuser} can retire branches.", "not_superuser")
        return super().authorize(request)

    def execute(self, request: RetireBranchRequest, auth) -> OperationResult:
        retired = f"{request.branch}{self.retired_suffix}"
        head_sha = self.client.get_branch_head(request.branch)
        self.client.create_ref(f"heads/{retired}", head_sha)
        self.client.delete_ref(f"heads/{request.branch}")
        logger.info(f"Retired branch {request.branch} as {retired}")

        return OperationResult.completed(
            self.operation,
            f"Branch '{request.branch}' retired successfully as '{retired}'.",
            branch=request.branch,
            retiredBranch=retired,
            sha=head_sha,
        )


class CopyFilesCoordinator(Coordinator):
    """
    Copy files from one branch onto another.

    The selected blobs are overlaid on the target's root tree in a single
    create call. When the target is protected and the actor may not write
    it, the copy lands on a scratch branch and a pull request is opened
    instead, subject to `branches.proposal_policy`.
    """

    operation = "copy-files"

    def authorization_branch(self, request: CopyFilesRequest) -> Optional[str]:
        return request.target_branch

    def authorize(self, request: CopyFilesRequest):
        result = self.check(request.actor, request.target_branch)
        if result.authorized:
            return result
        if self._may_propose(request, result):
            logger.info(f"{request.actor.username} may not write {request.target_branch}; proposing instead")
            return result
        raise Unauthorized(result.reason or "Not authorized", getattr(result, 'code', None))

    def _may_propose(self, request: CopyFilesRequest, result) -> bool:
        # Only valid credentials that merely lack the branch qualify
        if getattr(result, 'code', None) != "branch_not_permitted":
            return False
        if not self.is_protected(request.target_branch):
            return False
        policy = self.config.get('branches', {}).get('proposal_policy', 'always')
        if policy == 'always':
            return True
        if policy == 'branch-create':
            actor = getattr(result, 'actor', None)
            return bool(actor is not None and actor.can_create_branches)
        return False

    def select(self, request: CopyFilesRequest):
        """Pick the requested blobs out of the source branch's recursive listing."""
        _, source_root = self.resolver.head(request.source_branch)
        listing = self.client.get_tree(source_root, recursive=True)
        if listing.truncated:
            raise StoreError(f"Recursive listing of '{request.source_branch}' is truncated; cannot copy safely.")
        by_path = {entry.name: entry for entry in listing.entries}

        entries: List[TreeEntry] = []
        results: List[FileResult] = []
        for raw_path in request.paths:
            path = join_path(raw_path)
            entry = by_path.get(path)
            if entry is None or not entry.is_blob:
                results.append(FileResult(path, "skipped", SKIP_NOT_A_FILE))
                continue
            entries.append(entry)
            results.append(FileResult(path, "copied", sha=entry.sha))
        return entries, results

    def execute(self, request: CopyFilesRequest, auth) -> OperationResult:
        entries, results = self.select(request)
        if not entries:
            result = OperationResult.completed(
                self.operation,
                "No files were eligible for copying (all skipped or source files missing).",
                sourceBranch=request.source_branch,
                targetBranch=request.target_branch,
            )
            result.results = results
            return result

        if auth.authorized:
            result = self._copy_direct(request, entries)
        else:
            result = self._copy_via_proposal(request, entries, results)
        result.results = results
        return result

    def _overlay_commit(self, branch: str, entries: List[TreeEntry], message: str):
        head_sha, root_sha = self.resolver.head(branch)
        new_root = self.engine.overlay(root_sha, entries)
        resolved = ResolvedPath(branch, head_sha, root_sha, (TreeLevel('', root_sha, ()),))
        return self.land_tree(resolved, new_root, message)

    def _copy_direct(self, request: CopyFilesRequest, entries: List[TreeEntry]) -> OperationResult:
        message = self.commit_message(
            f"Copy {len(entries)} file(s) from {request.source_branch} to {request.target_branch}",
            request.actor.username,
        )
        commit = self._overlay_commit(request.target_branch, entries, message)
        tag = self.tag(commit.sha)
        return OperationResult.completed(
            self.operation,
            f"Copied {len(entries)} file(s) from '{request.source_branch}' to '{request.target_branch}'.",
            commit=commit,
            tag_outcome=tag,
            sourceBranch=request.source_branch,
            targetBranch=request.target_branch,
        )

    def scratch_branch_name(self, target: str, username: str) -> str:
        prefix = self.config.get('branches', {}).get('scratch_prefix', 'copy-to-')
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%dT%H-%M-%S-%f')[:-3] + 'Z'
        return f"{prefix}{target}-{username}-{timestamp}"

    def _copy_via_proposal(
        self,
        request: CopyFilesRequest,
        entries: List[TreeEntry],
        results: List[FileResult],
    ) -> OperationResult:
        username = request.actor.username
        target = request.target_branch
        scratch = self.scratch_branch_name(target, username)

        # The scratch branch is born at the finished commit; nothing is
        # left behind if the overlay or the commit fails
        target_head, target_root = self.resolver.head(target)
        new_root = self.engine.overlay(target_root, entries)
        message = self.commit_message(
            f"Copy {len(entries)} file(s) from {request.source_branch} to {target}", username
        )
        commit = self.client.create_commit(message, new_root, [target_head])
        self.client.create_ref(f"heads/{scratch}", commit.sha)
        logger.info(f"Created scratch branch {scratch} at {commit.sha[:7]}")

        copied = "\n".join(f"- {r.path}" for r in results if r.status == "copied")
        skipped = "\n".join(f"- {r.path} ({r.reason or 'unknown'})" for r in results if r.status == "skipped")
        body = (
            f"Automated PR to copy {len(entries)} file(s) from branch '{request.source_branch}' "
            f"to '{target}'. Initiated by {username}.\n\n"
            f"Copied files:\n{copied}\n\nSkipped files:\n{skipped}"
        )
        details = dict(sourceBranch=request.source_branch, targetBranch=target, scratchBranch=scratch)
        try:
            pull = self.client.create_pull_request(
                f"Copy files from {request.source_branch} to {target} by {username}", body, scratch, target
            )
        except CommandError as e:
            logger.warning(f"Pull request for {scratch} failed: {e.message}")
            result = OperationResult.completed(
                self.operation,
                f"Files copied to temporary branch '{scratch}', but failed to create Pull Request. "
                f"Please create it manually or retry. Reason: {e.message}",
                commit=commit,
                created=True,
                pullRequestError=e.message,
                **details,
            )
            result.status_class = StatusClass.PARTIAL
            return result

        return OperationResult.completed(
            self.operation,
            f"User lacks permission for direct push to {target}. Files copied to temporary "
            f"branch '{scratch}' and Pull Request created.",
            commit=commit,
            created=True,
            pullRequestUrl=pull.get('html_url'),
            pullRequestNumber=pull.get('number'),
            **details,
        )
