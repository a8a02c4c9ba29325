"""
Operation result domain objects for gitix.

Every coordinator reports one OperationResult: whether the mutation
happened, the commit it produced, and, separately, whether the version
tag for it could be recorded. The UI maps `status_class` to feedback so
users can tell "nothing happened" apart from "your edit is safe but
versioning failed".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exit_codes import (
    CommandError,
    PARTIAL_SUCCESS,
    STATUS_CLIENT_ERROR,
    STATUS_OK,
    STATUS_PARTIAL,
    STATUS_SERVER_ERROR,
    SUCCESS,
    GENERAL_ERROR,
)
from .objects import CommitRef


class StatusClass(Enum):
    """HTTP-style outcome class of an operation."""
    OK = STATUS_OK
    PARTIAL = STATUS_PARTIAL
    CLIENT_ERROR = STATUS_CLIENT_ERROR
    SERVER_ERROR = STATUS_SERVER_ERROR


class TagStatus(Enum):
    """What happened when recording the version tag."""
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TagOutcome:
    """
    Result of tagging one commit.

    `tag` is the name that was (or would have been) created; `error`
    explains a non-created outcome.
    """
    status: TagStatus
    tag: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def success(self) -> bool:
        return self.status == TagStatus.CREATED

    @classmethod
    def skipped(cls, reason: str) -> 'TagOutcome':
        return cls(status=TagStatus.SKIPPED, error=reason)

    def to_dict(self) -> Dict[str, Any]:
        result = {'status': self.status.value}
        if self.tag:
            result['tag'] = self.tag
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class FileResult:
    """Per-path outcome for multi-file operations (upload, cross-branch copy)."""
    path: str
    status: str  # "copied", "created", "updated", "skipped"
    reason: Optional[str] = None
    sha: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'path': self.path, 'status': self.status}
        if self.reason:
            result['reason'] = self.reason
        if self.sha:
            result['sha'] = self.sha
        return result


@dataclass
class OperationResult:
    """
    Structured response for one coordinator run.

    Attributes:
        operation: Coordinator name (e.g. "delete-item")
        success: True when the primary mutation happened (or needed nothing)
        message: Human-readable summary
        status_class: ok / partial / client-error / server-error
        commit: Commit produced by the mutation, if any
        tag_outcome: What happened when tagging
        created: True when the mutation created something new (HTTP 201)
        results: Per-path outcomes for multi-file operations
        details: Extra fields (branch names, pull request URL, ...)
    """
    operation: str
    success: bool
    message: str
    status_class: StatusClass = StatusClass.OK
    commit: Optional[CommitRef] = None
    tag_outcome: Optional[TagOutcome] = None
    created: bool = False
    results: List[FileResult] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[CommandError] = None

    @property
    def tag(self) -> Optional[str]:
        if self.tag_outcome and self.tag_outcome.success:
            return self.tag_outcome.tag
        return None

    @property
    def tag_error(self) -> Optional[str]:
        if self.tag_outcome and not self.tag_outcome.success and self.tag_outcome.status != TagStatus.SKIPPED:
            return self.tag_outcome.error
        return None

    @property
    def http_status(self) -> int:
        if self.error is not None:
            return self.error.http_status
        if self.status_class == StatusClass.PARTIAL:
            return 207
        if self.status_class == StatusClass.SERVER_ERROR:
            return 500
        if self.status_class == StatusClass.CLIENT_ERROR:
            return 400
        return 201 if self.created else 200

    @property
    def exit_code(self) -> int:
        if self.error is not None:
            return self.error.exit_code
        if self.status_class == StatusClass.PARTIAL:
            return PARTIAL_SUCCESS
        if self.status_class == StatusClass.OK:
            return SUCCESS
        return GENERAL_ERROR

    @classmethod
    def completed(
        cls,
        operation: str,
        message: str,
        commit: Optional[CommitRef] = None,
        tag_outcome: Optional[TagOutcome] = None,
        created: bool = False,
        **details: Any
    ) -> 'OperationResult':
        """
        Build the result of a mutation that landed.

        The status is downgraded to partial when a tag was attempted but
        not created; the mutation itself is never rolled back for that.
        """
        status = StatusClass.OK
        if tag_outcome is not None:
            if tag_outcome.success:
                message += f" New state tagged as {tag_outcome.tag}."
            elif tag_outcome.status != TagStatus.SKIPPED:
                status = StatusClass.PARTIAL
                message += f" Failed to apply tag {tag_outcome.tag or ''}. Reason: {tag_outcome.error}"
        return cls(
            operation=operation,
            success=True,
            message=message,
            status_class=status,
            commit=commit,
            tag_outcome=tag_outcome,
            created=created,
            details=details,
        )

    @classmethod
    def from_error(cls, operation: str, error: Exception) -> 'OperationResult':
        """Build the failure result for an error that stopped the operation."""
        if isinstance(error, CommandError):
            status = StatusClass(error.status_class) if error.status_class in (
                STATUS_CLIENT_ERROR, STATUS_SERVER_ERROR) else StatusClass.SERVER_ERROR
            return cls(operation=operation, success=False, message=error.message,
                       status_class=status, error=error)
        return cls(
            operation=operation,
            success=False,
            message=str(error) or error.__class__.__name__,
            status_class=StatusClass.SERVER_ERROR,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            'operation': self.operation,
            'success': self.success,
            'message': self.message,
            'status': self.status_class.value,
        }
        if self.commit is not None:
            result['commit'] = self.commit.to_dict()
        if self.tag:
            result['tag'] = self.tag
        if self.tag_error:
            result['tagError'] = self.tag_error
        if self.error is not None:
            result['error'] = self.error.message
            reason = getattr(self.error, 'reason', None)
            if reason:
                result['reason'] = reason
        if self.results:
            result['results'] = [r.to_dict() for r in self.results]
        if self.details:
            result.update(self.details)
        return result
