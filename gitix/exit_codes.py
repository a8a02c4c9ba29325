"""
Standard exit codes and error taxonomy for gitix.

Following Unix/POSIX conventions for command-line tools. Every error a
mutation can end in is a CommandError subclass, so the CLI can exit with
the right code and the UI boundary can map it to a status class.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_FOUND = 64           # Path segment, branch or commit absent in the store
API_ERROR = 65           # Object store call failed
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
NETWORK_ERROR = 68       # Network connection failed
AUTH_ERROR = 69          # Authentication/authorization failed
DATA_ERROR = 70          # Data format or validation error
PARTIAL_SUCCESS = 71     # Mutation committed, tagging failed
CONFLICT = 72            # Destination/tag exists or branch moved underneath us
INVARIANT_ERROR = 73     # Tree rebuild produced an unchanged root
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Status classes reported to the UI collaborator
STATUS_OK = "ok"
STATUS_PARTIAL = "partial"
STATUS_CLIENT_ERROR = "client-error"
STATUS_SERVER_ERROR = "server-error"

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ConnectionError': NETWORK_ERROR,
    'TimeoutError': NETWORK_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


def exit_with_code(code: int, message: Optional[str] = None):
    """
    Exit with a specific code and optional message.

    Args:
        code: Exit code
        message: Optional message to print to stderr
    """
    import sys
    if message:
        print(message, file=sys.stderr)
    sys.exit(code)


class CommandError(Exception):
    """
    Base for every error a gitix operation can raise.

    Carries the CLI exit code plus the HTTP-style status the UI maps
    to user feedback.
    """
    status_class = STATUS_SERVER_ERROR
    http_status = 500

    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ValidationError(CommandError):
    """Malformed or missing input. Never reaches the store."""
    status_class = STATUS_CLIENT_ERROR
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message, USAGE_ERROR)


class Unauthorized(CommandError):
    """The permission check failed."""
    status_class = STATUS_CLIENT_ERROR
    http_status = 403

    def __init__(self, message: str = "Not authorized", code: Optional[str] = None):
        super().__init__(message, AUTH_ERROR)
        self.code = code


class NotFound(CommandError):
    """A path segment, branch, ref or commit is absent in the store."""
    status_class = STATUS_CLIENT_ERROR
    http_status = 404

    def __init__(self, message: str):
        super().__init__(message, NOT_FOUND)


class Conflict(CommandError):
    """
    Destination (file, folder, branch or tag) already exists, or the
    branch ref moved since it was read.

    Attributes:
        reason: "exists" or "stale_ref"
    """
    status_class = STATUS_CLIENT_ERROR
    http_status = 409

    EXISTS = "exists"
    STALE_REF = "stale_ref"

    def __init__(self, message: str, reason: str = EXISTS):
        super().__init__(message, CONFLICT)
        self.reason = reason


class StoreError(CommandError):
    """Transport or remote failure talking to the object store."""
    status_class = STATUS_SERVER_ERROR
    http_status = 502

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, API_ERROR)
        self.status_code = status_code


class InvariantViolation(CommandError):
    """The rebuilt root tree equals the original one."""
    status_class = STATUS_SERVER_ERROR
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message, INVARIANT_ERROR)


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)
