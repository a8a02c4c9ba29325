"""
Tests for the SQLite actor store.

Uses a temporary database and a low bcrypt cost so hashing stays fast.
"""

import os
import sqlite3
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from gitix.exit_codes import ConfigError, NotFound, ValidationError
from gitix.infra.actor_store import (
    AUTH_BAD_SECRET,
    AUTH_BRANCH_NOT_PERMITTED,
    AUTH_ERROR,
    AUTH_INACTIVE,
    AUTH_MISSING_CREDENTIALS,
    AUTH_NOT_FOUND,
    AUTH_OK,
    ActorStore,
    get_actor_db_path,
)


class TestActorStore(unittest.TestCase):
    """Tests for registration and management."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.db_path = Path(self.temp_dir.name) / 'actors.db'
        self.store = ActorStore(self.db_path, bcrypt_rounds=4)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_add_actor_defaults_inactive(self):
        """New actors start inactive with their permissions and email stored"""
        actor = self.store.add_actor('alice', 's3cret', email='alice@example.com', branch_permissions=['drafts'])
        self.assertFalse(actor.active)
        self.assertEqual(actor.branch_permissions, ['drafts'])
        self.assertEqual(actor.email, 'alice@example.com')
        self.assertTrue(self.db_path.exists())

    def test_secret_is_hashed(self):
        """Only the bcrypt hash of the secret reaches the database"""
        self.store.add_actor('alice', 's3cret')
        conn = sqlite3.connect(str(self.db_path))
        stored = conn.execute("SELECT secret_hash FROM actors").fetchone()[0]
        conn.close()
        self.assertNotIn('s3cret', stored)
        self.assertTrue(stored.startswith('$2'))

    def test_duplicate_username(self):
        """Adding an existing username is rejected"""
        self.store.add_actor('alice', 's3cret')
        with self.assertRaises(ValidationError):
            self.store.add_actor('alice', 'other')

    def test_missing_fields(self):
        """Username and secret are required"""
        with self.assertRaises(ValidationError):
            self.store.add_actor('', 's3cret')

    def test_list_actors_sorted(self):
        """Actors are listed by username"""
        self.store.add_actor('zoe', 'x')
        self.store.add_actor('alice', 'x')
        self.assertEqual([a.username for a in self.store.list_actors()], ['alice', 'zoe'])

    def test_set_active(self):
        """Test enabling and disabling an actor"""
        self.store.add_actor('alice', 'x')
        self.assertTrue(self.store.set_active('alice', True).active)
        self.assertFalse(self.store.set_active('alice', False).active)

    def test_set_active_unknown(self):
        """Toggling an unknown actor raises NotFound"""
        with self.assertRaises(NotFound):
            self.store.set_active('ghost', True)

    def test_set_branch_permissions(self):
        """Permissions and the branch-creation flag can be replaced"""
        self.store.add_actor('alice', 'x', branch_permissions=['drafts'])
        actor = self.store.set_branch_permissions('alice', ['drafts', 'notes'])
        self.assertEqual(actor.branch_permissions, ['drafts', 'notes'])
        self.assertFalse(actor.can_create_branches)

        actor = self.store.set_branch_permissions('alice', [], can_create_branches=True)
        self.assertEqual(actor.branch_permissions, [])
        self.assertTrue(actor.can_create_branches)

    def test_get_actor_missing(self):
        """Test lookup of an unknown username"""
        self.assertIsNone(self.store.get_actor('ghost'))

    def test_unopenable_database(self):
        """A database path that cannot be opened is a ConfigError"""
        store = ActorStore(Path(self.temp_dir.name) / 'actors.db' / 'nested.db', bcrypt_rounds=4)
        self.store.add_actor('alice', 'x')
        with self.assertRaises(ConfigError):
            store.list_actors()


class TestValidateActor(unittest.TestCase):
    """Tests for the permission check."""

    def setUp(self):
        self.temp_dir = TemporaryDirectory()
        self.store = ActorStore(Path(self.temp_dir.name) / 'actors.db', bcrypt_rounds=4)
        self.store.add_actor('alice', 's3cret', branch_permissions=['drafts'], active=True)
        self.store.add_actor('admin', 'root', active=True)
        self.store.add_actor('sleepy', 'zzz', branch_permissions=['drafts'])

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_ok(self):
        """Valid credentials on a permitted branch authorize"""
        result = self.store.validate_actor('alice', 's3cret', 'drafts')
        self.assertTrue(result.authorized)
        self.assertEqual(result.code, AUTH_OK)
        self.assertEqual(result.actor.username, 'alice')

    def test_records_activity(self):
        """A successful check stamps last_activity"""
        self.assertIsNone(self.store.get_actor('alice').last_activity)
        self.store.validate_actor('alice', 's3cret', 'drafts')
        self.assertIsNotNone(self.store.get_actor('alice').last_activity)

    def test_no_branch_checks_credentials_only(self):
        """Without a branch only the credentials are checked"""
        self.assertTrue(self.store.validate_actor('alice', 's3cret').authorized)

    def test_missing_credentials(self):
        """An empty secret is reported as missing credentials"""
        self.assertEqual(self.store.validate_actor('alice', '').code, AUTH_MISSING_CREDENTIALS)

    def test_unknown_user(self):
        """Test an unknown username"""
        self.assertEqual(self.store.validate_actor('ghost', 'x').code, AUTH_NOT_FOUND)

    def test_inactive(self):
        """Inactive actors are refused"""
        self.assertEqual(self.store.validate_actor('sleepy', 'zzz', 'drafts').code, AUTH_INACTIVE)

    def test_bad_secret(self):
        """Test a wrong secret"""
        result = self.store.validate_actor('alice', 'wrong', 'drafts')
        self.assertFalse(result.authorized)
        self.assertEqual(result.code, AUTH_BAD_SECRET)

    def test_branch_not_permitted_keeps_actor(self):
        """A refused branch still reports which actor asked"""
        result = self.store.validate_actor('alice', 's3cret', 'main')
        self.assertEqual(result.code, AUTH_BRANCH_NOT_PERMITTED)
        self.assertEqual(result.actor.username, 'alice')

    def test_superuser_any_branch(self):
        """The super-user may write any branch"""
        self.assertTrue(self.store.validate_actor('admin', 'root', 'main').authorized)

    def test_database_error_is_a_result(self):
        """Database failures come back as an unauthorized result"""
        with patch('gitix.infra.actor_store.get_connection', side_effect=sqlite3.OperationalError("locked")):
            result = self.store.validate_actor('alice', 's3cret', 'drafts')
        self.assertFalse(result.authorized)
        self.assertEqual(result.code, AUTH_ERROR)


class TestActorDbPath(unittest.TestCase):
    """Tests for get_actor_db_path()."""

    def test_env_wins(self):
        """GITIX_ACTOR_DB overrides the configured path"""
        with patch.dict(os.environ, {'GITIX_ACTOR_DB': '/tmp/elsewhere.db'}):
            self.assertEqual(get_actor_db_path({'auth': {'database': '/x.db'}}), Path('/tmp/elsewhere.db'))

    def test_config(self):
        """Test the path from auth.database"""
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(get_actor_db_path({'auth': {'database': '/srv/actors.db'}}), Path('/srv/actors.db'))

    def test_default(self):
        """Test the default path under the home directory"""
        with patch.dict(os.environ, {'HOME': '/home/test'}, clear=True):
            self.assertEqual(get_actor_db_path(), Path('/home/test/.gitix/actors.db'))
