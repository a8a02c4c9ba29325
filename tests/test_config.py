"""
Unit tests for gitix.config module
"""
import json
import logging
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import yaml

from gitix.config import (
    apply_env_overrides,
    configure_logging,
    get_config_path,
    get_default_config,
    load_config,
    merge_configs,
    save_config,
)


class TestConfigManagement(unittest.TestCase):
    """Test configuration management functionality"""

    def setUp(self):
        """Point HOME at a temp dir and drop any GITIX_* variables"""
        self.temp_dir = tempfile.mkdtemp()
        env = {k: v for k, v in os.environ.items() if not k.startswith('GITIX_')}
        env['HOME'] = self.temp_dir
        self.env_patch = patch.dict(os.environ, env, clear=True)
        self.env_patch.start()
        self.gitix_dir = Path(self.temp_dir) / '.gitix'

    def tearDown(self):
        self.env_patch.stop()
        shutil.rmtree(self.temp_dir)

    def test_get_default_config(self):
        """Test default configuration structure"""
        config = get_default_config()

        for section in ('store', 'branches', 'tagging', 'auth', 'content', 'logging'):
            self.assertIn(section, config)
        self.assertEqual(config['branches']['protected'], ['main'])
        self.assertEqual(config['branches']['proposal_policy'], 'always')
        self.assertEqual(config['tagging']['max_attempts'], 1)
        self.assertEqual(config['content']['placeholder_name'], '.gitkeep')

    def test_load_config_no_file(self):
        """Test loading config when no file exists"""
        self.assertEqual(load_config(), get_default_config())

    def test_load_config_json_file(self):
        """Test loading a JSON config merged over the defaults"""
        self.gitix_dir.mkdir()
        with open(self.gitix_dir / 'config.json', 'w') as f:
            json.dump({'store': {'owner': 'acme'}, 'logging': {'level': 'DEBUG'}}, f)

        config = load_config()

        self.assertEqual(config['store']['owner'], 'acme')
        self.assertEqual(config['store']['api_base'], 'https://api.github.com')
        self.assertEqual(config['logging']['level'], 'DEBUG')

    def test_load_config_toml_file(self):
        """Test loading a TOML config"""
        self.gitix_dir.mkdir()
        (self.gitix_dir / 'config.toml').write_text(
            '[branches]\nprotected = ["main", "release"]\n\n[tagging]\nmax_attempts = 3\n'
        )
        config = load_config()
        self.assertEqual(config['branches']['protected'], ['main', 'release'])
        self.assertEqual(config['tagging']['max_attempts'], 3)

    def test_load_config_yaml_file(self):
        """Test loading a YAML config"""
        self.gitix_dir.mkdir()
        (self.gitix_dir / 'config.yaml').write_text(yaml.safe_dump({'tagging': {'bump': 'minor'}}))
        self.assertEqual(load_config()['tagging']['bump'], 'minor')

    def test_explicit_path(self):
        """An explicit path is read instead of the default"""
        path = Path(self.temp_dir) / 'elsewhere.json'
        path.write_text(json.dumps({'store': {'repo': 'notes'}}))
        self.assertEqual(load_config(path)['store']['repo'], 'notes')

    def test_config_path_from_env(self):
        """GITIX_CONFIG names the config file"""
        with patch.dict(os.environ, {'GITIX_CONFIG': '/etc/gitix.toml'}):
            self.assertEqual(get_config_path(), Path('/etc/gitix.toml'))

    def test_broken_file_falls_back_to_defaults(self):
        """An unreadable file is logged and the defaults are used"""
        self.gitix_dir.mkdir()
        (self.gitix_dir / 'config.json').write_text('{"store": {"owner": ')
        with self.assertLogs('gitix', level='ERROR'):
            config = load_config()
        self.assertEqual(config['store']['owner'], '')

    def test_unknown_proposal_policy(self):
        """An unknown proposal policy falls back to 'always'"""
        self.gitix_dir.mkdir()
        (self.gitix_dir / 'config.json').write_text(json.dumps({'branches': {'proposal_policy': 'sometimes'}}))
        with self.assertLogs('gitix', level='WARNING'):
            config = load_config()
        self.assertEqual(config['branches']['proposal_policy'], 'always')

    @patch.dict(os.environ, {'GITIX_TAGGING_MAX_ATTEMPTS': '1'})
    def test_environment_override_integer(self):
        """"1" stays a number, not True"""
        value = load_config()['tagging']['max_attempts']
        self.assertEqual(value, 1)
        self.assertIsNot(value, True)

    @patch.dict(os.environ, {'GITIX_STORE_BASE_DELAY': '2.5'})
    def test_environment_override_float(self):
        """Plain decimals become floats"""
        self.assertEqual(load_config()['store']['base_delay'], 2.5)

    @patch.dict(os.environ, {'GITIX_STORE_REPO': 'infinity', 'GITIX_STORE_OWNER': 'nan',
                             'GITIX_BRANCHES_RETIRED_SUFFIX': '1e3'})
    def test_environment_float_lookalikes_stay_strings(self):
        """Names float() would accept are kept as text"""
        config = apply_env_overrides(get_default_config())
        self.assertEqual(config['store']['repo'], 'infinity')
        self.assertEqual(config['store']['owner'], 'nan')
        self.assertEqual(config['branches']['retired_suffix'], '1e3')

    @patch.dict(os.environ, {'GITIX_TAGGING_ENABLED': 'false'})
    def test_environment_override_bool(self):
        """Test a boolean override from the environment"""
        self.assertFalse(load_config()['tagging']['enabled'])

    @patch.dict(os.environ, {'GITIX_BRANCHES_PROTECTED': 'main, release'})
    def test_environment_override_list(self):
        """Comma-separated overrides become lists"""
        self.assertEqual(load_config()['branches']['protected'], ['main', 'release'])

    @patch.dict(os.environ, {'GITIX_BRANCHES_PROPOSAL_POLICY': 'never'})
    def test_environment_override_underscored_key(self):
        """Keys containing underscores are matched whole"""
        self.assertEqual(load_config()['branches']['proposal_policy'], 'never')

    @patch.dict(os.environ, {'GITIX_USER': 'alice', 'GITIX_STORE_TOKEN': 'abc'})
    def test_unrelated_variables_ignored(self):
        """Variables that match no key are skipped"""
        config = apply_env_overrides(get_default_config())
        self.assertNotIn('user', config)
        self.assertEqual(config['store']['token'], 'abc')

    def test_save_config_json(self):
        """Test saving to the default location"""
        save_config({'store': {'owner': 'acme'}})
        with open(self.gitix_dir / 'config.json') as f:
            self.assertEqual(json.load(f)['store']['owner'], 'acme')

    def test_save_config_toml_round_trip(self):
        """A saved TOML file loads back unchanged"""
        path = Path(self.temp_dir) / 'gitix.toml'
        save_config(get_default_config(), path)
        self.assertEqual(load_config(path), get_default_config())


class TestConfigHelpers(unittest.TestCase):
    """Test merging and logging setup"""

    def test_merge_configs(self):
        """Test merging nested sections without touching the base"""
        base_config = {'store': {'owner': '', 'timeout_seconds': 30}, 'logging': {'level': 'INFO'}}
        override_config = {'store': {'owner': 'acme'}, 'new_section': {'key': 'value'}}

        merged = merge_configs(base_config, override_config)

        self.assertEqual(merged['store']['timeout_seconds'], 30)
        self.assertEqual(merged['store']['owner'], 'acme')
        self.assertEqual(merged['logging']['level'], 'INFO')
        self.assertEqual(merged['new_section']['key'], 'value')
        self.assertEqual(base_config['store']['owner'], '')

    def test_configure_logging_level(self):
        """Test the root level from config and --debug"""
        configure_logging({'logging': {'level': 'warning'}})
        self.assertEqual(logging.getLogger().level, logging.WARNING)
        configure_logging({'logging': {'level': 'warning'}}, debug=True)
        self.assertEqual(logging.getLogger().level, logging.DEBUG)


if __name__ == '__main__':
    unittest.main()
