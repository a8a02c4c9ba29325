"""
Actor (user) store for gitix.

The permission collaborator the coordinators authorize against. Actors
live in a small SQLite database; secrets are stored as bcrypt hashes and
branch permissions as a JSON array. Uses WAL mode like the rest of the
tooling so the CLI and a long-running service can share the file.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import bcrypt

from ..exit_codes import ConfigError, NotFound, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_SUPERUSER = "admin"
DEFAULT_BCRYPT_ROUNDS = 12

SCHEMA = """
CREATE TABLE IF NOT EXISTS actors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    email TEXT,
    secret_hash TEXT NOT NULL,
    branch_permissions TEXT NOT NULL DEFAULT '[]',
    can_create_branches INTEGER NOT NULL DEFAULT 0,
    active INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    last_activity TEXT
);
CREATE INDEX IF NOT EXISTS idx_actors_username ON actors(username);
"""

# AuthResult codes
AUTH_OK = "ok"
AUTH_MISSING_CREDENTIALS = "missing_credentials"
AUTH_NOT_FOUND = "not_found"
AUTH_INACTIVE = "inactive"
AUTH_BAD_SECRET = "bad_secret"
AUTH_BRANCH_NOT_PERMITTED = "branch_not_permitted"
AUTH_ERROR = "error"


def get_actor_db_path(config: Optional[dict] = None) -> Path:
    """
    Get the actor database path.

    Checks in order:
    1. GITIX_ACTOR_DB environment variable
    2. config['auth']['database'] if provided
    3. Default: ~/.gitix/actors.db
    """
    if 'GITIX_ACTOR_DB' in os.environ:
        return Path(os.environ['GITIX_ACTOR_DB'])
    if config and config.get('auth', {}).get('database'):
        return Path(config['auth']['database']).expanduser()
    return Path.home() / '.gitix' / 'actors.db'


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Open the actor database, creating it and its schema if needed."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.executescript(SCHEMA)
    return conn


@dataclass
class Actor:
    """An actor record without its secret hash."""
    id: int
    username: str
    email: Optional[str] = None
    branch_permissions: List[str] = field(default_factory=list)
    can_create_branches: bool = False
    active: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_activity: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Actor':
        try:
            permissions = json.loads(row['branch_permissions'] or '[]')
        except json.JSONDecodeError:
            logger.warning(f"Corrupt branch permissions for actor {row['username']}")
            permissions = []
        return cls(
            id=row['id'],
            username=row['username'],
            email=row['email'],
            branch_permissions=list(permissions),
            can_create_branches=bool(row['can_create_branches']),
            active=bool(row['active']),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
            last_activity=row['last_activity'],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'branch_permissions': self.branch_permissions,
            'can_create_branches': self.can_create_branches,
            'active': self.active,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'last_activity': self.last_activity,
        }


@dataclass
class AuthResult:
    """Outcome of a permission check."""
    authorized: bool
    reason: Optional[str] = None
    code: str = AUTH_OK
    actor: Optional[Actor] = None


class ActorStore:
    """
    SQLite-backed actor registry and permission check.

    Usage:
        store = ActorStore(Path("actors.db"))
        store.add_actor("alice", "s3cret", branch_permissions=["drafts"], active=True)
        result = store.validate_actor("alice", "s3cret", branch="drafts")
        if result.authorized:
            ...
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        superuser: str = DEFAULT_SUPERUSER,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        self.db_path = Path(db_path) if db_path else get_actor_db_path()
        self.superuser = superuser
        self.bcrypt_rounds = bcrypt_rounds

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ActorStore':
        auth = config.get('auth', {})
        return cls(
            db_path=get_actor_db_path(config),
            superuser=auth.get('superuser', DEFAULT_SUPERUSER),
            bcrypt_rounds=auth.get('bcrypt_rounds', DEFAULT_BCRYPT_ROUNDS),
        )

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = get_connection(self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise ConfigError(f"Cannot open actor database {self.db_path}: {e}")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def is_superuser(self, username: str) -> bool:
        return username == self.superuser

    # =========================================================================
    # PERMISSION CHECK
    # =========================================================================

    def validate_actor(self, username: str, secret: str, branch: Optional[str] = None) -> AuthResult:
        """
        Check that an actor may mutate `branch`.

        Verifies existence, active status and the secret; unless the
        actor is the super-user, also that `branch` (when given) is in the
        actor's permitted set. On success the actor's last activity is
        updated without affecting the result.
        """
        if not username or not secret:
            return AuthResult(False, "Username and password are required.", AUTH_MISSING_CREDENTIALS)

        logger.debug(f"Validating actor {username}" + (f" for branch {branch}" if branch else ""))
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM actors WHERE username = ?", (username,)).fetchone()
        except (sqlite3.Error, ConfigError) as e:
            logger.error(f"Error validating actor {username}: {e}")
            return AuthResult(False, "Error during validation process", AUTH_ERROR)

        if row is None:
            logger.info(f"Actor not found: {username}")
            return AuthResult(False, "User not found", AUTH_NOT_FOUND)

        actor = Actor.from_row(row)
        if not actor.active:
            logger.info(f"Actor inactive: {username}")
            return AuthResult(False, "Account is inactive", AUTH_INACTIVE, actor)

        if not bcrypt.checkpw(secret.encode('utf-8'), row['secret_hash'].encode('utf-8')):
            logger.info(f"Invalid secret for actor: {username}")
            return AuthResult(False, "Invalid password", AUTH_BAD_SECRET, actor)

        if branch and not self.is_superuser(username) and branch not in actor.branch_permissions:
            logger.info(f"Branch not permitted ({branch}) for actor: {username}")
            return AuthResult(False, "Branch not permitted", AUTH_BRANCH_NOT_PERMITTED, actor)

        self.touch_activity(actor.id)
        return AuthResult(True, None, AUTH_OK, actor)

    def touch_activity(self, actor_id: int) -> None:
        """Record activity for an actor. Failures are logged, never raised."""
        try:
            with self._connect() as conn:
                conn.execute(
                    "UPDATE actors SET last_activity = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (datetime.now().isoformat(), actor_id),
                )
        except (sqlite3.Error, ConfigError) as e:
            logger.warning(f"Failed to update last activity for actor {actor_id}: {e}")

    # =========================================================================
    # MANAGEMENT
    # =========================================================================

    def hash_secret(self, secret: str) -> str:
        return bcrypt.hashpw(secret.encode('utf-8'), bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode('utf-8')

    def add_actor(
        self,
        username: str,
        secret: str,
        email: Optional[str] = None,
        branch_permissions: Optional[List[str]] = None,
        can_create_branches: bool = False,
        active: bool = False,
    ) -> Actor:
        """
        Register a new actor. New actors are inactive unless `active` is set.

        Raises:
            ValidationError: missing fields or username already taken
        """
        if not username or not secret:
            raise ValidationError("Username and password are required.")
        secret_hash = self.hash_secret(secret)
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """INSERT INTO actors
                       (username, email, secret_hash, branch_permissions, can_create_branches, active)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (username, email, secret_hash, json.dumps(branch_permissions or []),
                     int(can_create_branches), int(active)),
                )
            except sqlite3.IntegrityError:
                raise ValidationError(f"User '{username}' already exists.")
            row = conn.execute("SELECT * FROM actors WHERE id = ?", (cursor.lastrowid,)).fetchone()
        logger.info(f"Added actor {username}")
        return Actor.from_row(row)

    def get_actor(self, username: str) -> Optional[Actor]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM actors WHERE username = ?", (username,)).fetchone()
        return Actor.from_row(row) if row else None

    def list_actors(self) -> List[Actor]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM actors ORDER BY username").fetchall()
        return [Actor.from_row(row) for row in rows]

    def _update(self, username: str, assignments: str, params: tuple) -> Actor:
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE actors SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE username = ?",
                params + (username,),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"User '{username}' not found.")
            row = conn.execute("SELECT * FROM actors WHERE username = ?", (username,)).fetchone()
        return Actor.from_row(row)

    def set_active(self, username: str, active: bool) -> Actor:
        logger.info(f"Setting actor {username} active={active}")
        return self._update(username, "active = ?", (int(active),))

    def set_branch_permissions(
        self,
        username: str,
        branches: List[str],
        can_create_branches: Optional[bool] = None,
    ) -> Actor:
        """Replace the permitted branch set (and optionally the branch-create flag)."""
        if can_create_branches is None:
            return self._update(username, "branch_permissions = ?", (json.dumps(list(branches)),))
        return self._update(
            username,
            "branch_permissions = ?, can_create_branches = ?",
            (json.dumps(list(branches)), int(can_create_branches)),
        )
