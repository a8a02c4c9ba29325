"""
Tests for the gitix command line.

Commands run through click's CliRunner with a Gitix facade wired to the
in-memory object store, injected through the context object. Covers:
- JSON and rich output of operation results
- exit codes for success, partial success and each error class
- credential handling (environment and prompt)
- actor and config management commands
"""

import json

import pytest
import yaml
from click.testing import CliRunner

from gitix import __version__
from gitix.api import Gitix
from gitix.cli import cli
from gitix.exit_codes import StoreError

ENV = {'GITIX_USER': 'alice', 'GITIX_SECRET': 'pw'}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def quiet_config(config):
    config['logging']['level'] = 'ERROR'
    return config


@pytest.fixture
def invoke(runner, quiet_config, store, auth):
    gx = Gitix(config=quiet_config, client=store, auth=auth)

    def _invoke(args, env=ENV, **kwargs):
        return runner.invoke(cli, args, obj={'config': quiet_config, 'gitix': gx}, env=env, **kwargs)

    return _invoke


class TestItemCommands:
    """Tests for the item command group."""

    def test_rm_json(self, invoke, store):
        """Test the JSON result of a delete"""
        result = invoke(['item', 'rm', 'drafts', 'project/docs/readme.md', '--json'])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data['success'] is True
        assert data['status'] == 'ok'
        assert data['tag'] == '0.0.1'
        assert data['commit']['sha'] == store.head('drafts')

    def test_rm_text(self, invoke, store):
        """The text result names the commit"""
        result = invoke(['item', 'rm', 'drafts', 'README.md'])
        assert result.exit_code == 0
        assert '✓' in result.output
        assert store.head('drafts')[:7] in result.output

    def test_mv_conflict(self, invoke):
        """A conflict exits 72 with its reason"""
        result = invoke(['item', 'mv', 'drafts', 'src/a.tcl', 'b.tcl', '--json'])
        assert result.exit_code == 72
        data = json.loads(result.stdout)
        assert data['success'] is False
        assert data['reason'] == 'exists'

    def test_unauthorized(self, invoke):
        """An actor without permission exits 69"""
        result = invoke(['item', 'rm', 'drafts', 'README.md'], env={'GITIX_USER': 'mallory', 'GITIX_SECRET': 'pw'})
        assert result.exit_code == 69

    def test_partial_success(self, invoke, store):
        """A failed tag exits 71 with the tag error"""
        store.fail('create_ref', StoreError("Service unavailable", 503))
        result = invoke(['item', 'rm', 'drafts', 'README.md', '--json'])
        assert result.exit_code == 71
        assert json.loads(result.stdout)['tagError'] == "Service unavailable"

    def test_secret_prompt(self, invoke):
        """The secret is prompted for when not in the environment"""
        result = invoke(['item', 'rm', 'drafts', 'README.md', '--user', 'alice'], env={}, input='pw\n')
        assert result.exit_code == 0, result.output

    def test_user_required(self, invoke):
        """Test running without a user"""
        result = invoke(['item', 'rm', 'drafts', 'README.md'], env={})
        assert result.exit_code == 2

    def test_cp_to_root(self, invoke, store):
        """'.' copies to the root directory"""
        result = invoke(['item', 'cp', 'drafts', 'exp1', '.', 'exp2', '--json'])
        assert result.exit_code == 0, result.output
        assert 'exp2/sub/c.txt' in store.files_at('drafts')

    def test_add_file_from_local_file(self, invoke, runner, store):
        """Test reading new file content from a local file"""
        with runner.isolated_filesystem():
            with open('notes.md', 'wb') as f:
                f.write(b"hello\n")
            result = invoke(['item', 'add-file', 'drafts', 'project/docs', 'notes.md', '--from', 'notes.md'])
        assert result.exit_code == 0, result.output
        assert store.files_at('drafts')['project/docs/notes.md'] == "ce013625030ba8dba906f756967f9e9ca394464a"

    def test_mkdir(self, invoke, store):
        """Test creating a folder with its placeholder"""
        result = invoke(['item', 'mkdir', 'drafts', '', 'assets'])
        assert result.exit_code == 0, result.output
        assert 'assets/.gitkeep' in store.files_at('drafts')

    def test_commit_with_bump(self, invoke, runner):
        """Test a commit with a minor bump"""
        with runner.isolated_filesystem():
            with open('a.tcl', 'wb') as f:
                f.write(b"set a 2\n")
            result = invoke(['item', 'commit', 'drafts', 'src/a.tcl', 'a.tcl', '-m', 'Bump a', '--bump', 'minor', '--json'])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)['tag'] == '0.1.0'

    def test_upload(self, invoke, runner):
        """Test uploading local files in one commit"""
        with runner.isolated_filesystem():
            for name, content in (('one.txt', b"1"), ('b.txt', b"beta\n")):
                with open(name, 'wb') as f:
                    f.write(content)
            result = invoke(['item', 'upload', 'drafts', 'exp1', 'one.txt', 'b.txt', '--json'])
        assert result.exit_code == 0, result.output
        statuses = {r['path']: r['status'] for r in json.loads(result.stdout)['results']}
        assert statuses == {'exp1/one.txt': 'created', 'exp1/b.txt': 'skipped'}


class TestBranchCommands:
    """Tests for the branch and tag command groups."""

    def test_create(self, invoke, store):
        """Test creating a branch from another"""
        result = invoke(['branch', 'create', 'feature', '--from', 'main', '--json'])
        assert result.exit_code == 0, result.output
        assert store.head('feature') == store.head('main')

    def test_revert_protected(self, invoke, store):
        """Reverting a protected branch exits 2"""
        result = invoke(['branch', 'revert', 'main', store.head('main')])
        assert result.exit_code == 2

    def test_retire(self, invoke, store):
        """The super-user can retire a branch"""
        result = invoke(['branch', 'retire', 'drafts', '--json'], env={'GITIX_USER': 'admin', 'GITIX_SECRET': 'pw'})
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)['retiredBranch'] == 'drafts-retired'

    def test_copy_files(self, invoke, store):
        """Nothing to copy exits 73"""
        result = invoke(['branch', 'copy-files', 'drafts', 'main', 'src/a.tcl', 'ghost.md', '--json'])
        # src/a.tcl is identical on both branches and ghost.md is missing
        assert result.exit_code == 73

    def test_compare(self, invoke):
        """Test comparing two branches"""
        result = invoke(['branch', 'compare', 'main', 'drafts', '--json'])
        assert result.exit_code == 0
        assert json.loads(result.stdout)['ahead_by'] == 1

    def test_compare_missing_branch(self, invoke):
        """Comparing with an absent branch exits 64"""
        result = invoke(['branch', 'compare', 'main', 'ghost'])
        assert result.exit_code == 64

    def test_tag_next(self, invoke, store):
        """Test previewing the next version"""
        store.refs['tags/1.2.3'] = store.head('main')
        result = invoke(['tag', 'next', '--bump', 'major', '--json'])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {'current': '1.2.3', 'next': '2.0.0', 'bump': 'major'}


class TestBrowseCommands:
    """Tests for item ls/cat and branch list/log."""

    def test_ls_json(self, invoke):
        """JSON listing prints one entry per line"""
        result = invoke(['item', 'ls', 'main', 'exp1', '--json'], env={})
        assert result.exit_code == 0, result.output
        paths = {json.loads(line)['path'] for line in result.stdout.splitlines() if line.strip()}
        assert paths == {'exp1/a.txt', 'exp1/b.txt', 'exp1/sub'}

    def test_ls_table(self, invoke):
        """Test the listing table"""
        result = invoke(['item', 'ls', 'main'], env={})
        assert result.exit_code == 0
        assert 'README.md' in result.output
        assert 'exp1/' in result.output

    def test_ls_missing_directory(self, invoke):
        """Listing an absent directory exits 64"""
        result = invoke(['item', 'ls', 'main', 'nowhere'], env={})
        assert result.exit_code == 64

    def test_cat(self, invoke):
        """Test printing a file's raw content"""
        result = invoke(['item', 'cat', 'main', 'src/a.tcl'], env={})
        assert result.exit_code == 0
        assert result.stdout == "set a 1\n"

    def test_cat_folder(self, invoke):
        """Reading a folder exits 2"""
        result = invoke(['item', 'cat', 'main', 'exp1', '--json'], env={})
        assert result.exit_code == 2
        assert json.loads(result.stdout)['success'] is False

    def test_branch_list(self, invoke):
        """Test listing branches as JSON"""
        result = invoke(['branch', 'list', '--json'], env={})
        names = [json.loads(line)['name'] for line in result.stdout.splitlines() if line.strip()]
        assert names == ['drafts', 'main']

    def test_branch_log(self, invoke):
        """The log shows each commit's version and author"""
        invoke(['item', 'rm', 'drafts', 'README.md'])
        result = invoke(['branch', 'log', 'drafts', '--json'], env={})
        assert result.exit_code == 0, result.output
        rows = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
        assert [row['version'] for row in rows] == ['0.0.1', 'N/A']
        assert rows[0]['author'] == 'alice'

    def test_branch_log_table(self, invoke):
        """Test the history table"""
        result = invoke(['branch', 'log', 'main'], env={})
        assert result.exit_code == 0
        assert 'Initial commit' in result.output


class TestActorCommands:
    """Tests for the actor command group."""

    @pytest.fixture
    def actor_invoke(self, runner, quiet_config, tmp_path, monkeypatch):
        monkeypatch.delenv('GITIX_ACTOR_DB', raising=False)
        quiet_config['auth']['database'] = str(tmp_path / 'actors.db')
        quiet_config['auth']['bcrypt_rounds'] = 4

        def _invoke(args, **kwargs):
            return runner.invoke(cli, args, obj={'config': quiet_config}, **kwargs)

        _invoke.db_path = tmp_path / 'actors.db'
        return _invoke

    def test_add_and_list(self, actor_invoke):
        """Test adding an actor and listing it"""
        result = actor_invoke(['actor', 'add', 'alice', '--secret', 's3', '-b', 'drafts', '--active', '--json'])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)['branch_permissions'] == ['drafts']

        result = actor_invoke(['actor', 'list', '--json'])
        rows = [json.loads(line) for line in result.stdout.splitlines() if line.strip()]
        assert [r['username'] for r in rows] == ['alice']

    def test_add_prompts_for_secret(self, actor_invoke):
        """The secret is prompted for when not given"""
        result = actor_invoke(['actor', 'add', 'bob'], input='s3\ns3\n')
        assert result.exit_code == 0, result.output

    def test_add_duplicate(self, actor_invoke):
        """Adding an existing actor exits 2"""
        actor_invoke(['actor', 'add', 'alice', '--secret', 's3'])
        result = actor_invoke(['actor', 'add', 'alice', '--secret', 's3'])
        assert result.exit_code == 2

    def test_grant_and_revoke(self, actor_invoke):
        """Test granting and revoking branch permissions"""
        from gitix.infra.actor_store import ActorStore

        actor_invoke(['actor', 'add', 'alice', '--secret', 's3', '-b', 'drafts'])
        result = actor_invoke(['actor', 'grant', 'alice', 'main', '--can-create-branches'])
        assert result.exit_code == 0, result.output
        result = actor_invoke(['actor', 'grant', 'alice', 'drafts', '--revoke'])
        assert result.exit_code == 0, result.output

        actor = ActorStore(actor_invoke.db_path).get_actor('alice')
        assert actor.branch_permissions == ['main']
        assert actor.can_create_branches

    def test_grant_unknown(self, actor_invoke):
        """Granting to an unknown actor exits 64"""
        result = actor_invoke(['actor', 'grant', 'ghost', 'main'])
        assert result.exit_code == 64

    def test_disable(self, actor_invoke):
        """Test disabling an actor"""
        actor_invoke(['actor', 'add', 'alice', '--secret', 's3', '--active'])
        result = actor_invoke(['actor', 'disable', 'alice'])
        assert result.exit_code == 0
        assert 'inactive' in result.output


class TestMisc:
    """Tests for --version and the config group."""

    def test_version(self, runner):
        """Test --version"""
        result = runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_show_redacts_token(self, runner, quiet_config):
        """The store token is never printed"""
        quiet_config['store']['token'] = 'ghp_secret'
        result = runner.invoke(cli, ['config', 'show'], obj={'config': quiet_config})
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data['store']['token'] == '***'
        assert 'ghp_secret' not in result.output
        assert quiet_config['store']['token'] == 'ghp_secret'

    def test_config_init(self, runner, tmp_path, monkeypatch):
        """init writes GITIX_CONFIG's file and refuses to overwrite it"""
        path = tmp_path / 'config.json'
        monkeypatch.setenv('GITIX_CONFIG', str(path))
        result = runner.invoke(cli, ['config', 'init', '--owner', 'acme', '--repo', 'site'], obj={})
        assert result.exit_code == 0, result.output
        assert json.loads(path.read_text())['store']['repo'] == 'site'

        result = runner.invoke(cli, ['config', 'init', '--owner', 'acme', '--repo', 'site'], obj={})
        assert result.exit_code == 1
        assert 'already exists' in result.output

    def test_config_show_path_follows_option(self, runner, tmp_path, monkeypatch):
        """--config wins over GITIX_CONFIG and the default location"""
        monkeypatch.setenv('GITIX_CONFIG', str(tmp_path / 'from-env.json'))
        path = tmp_path / 'chosen.toml'
        result = runner.invoke(cli, ['--config', str(path), 'config', 'show', '--path'], obj={})
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)['config_path'] == str(path)

    def test_config_init_writes_option_path(self, runner, tmp_path, monkeypatch):
        """init writes the file named by --config, in its format"""
        monkeypatch.setenv('HOME', str(tmp_path))
        monkeypatch.delenv('GITIX_CONFIG', raising=False)
        path = tmp_path / 'site' / 'gitix.yaml'
        result = runner.invoke(cli, ['--config', str(path), 'config', 'init', '--owner', 'acme', '--repo', 'site'], obj={})
        assert result.exit_code == 0, result.output
        assert yaml.safe_load(path.read_text())['store']['owner'] == 'acme'
        assert not (tmp_path / '.gitix').exists()
