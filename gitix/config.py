#!/usr/bin/env python3

import os
import json
import re
import tomllib
from pathlib import Path

import logging
import sys

import toml
import yaml

logger = logging.getLogger("gitix")

DEFAULT_LOG_FORMAT = "%(levelname)s: %(message)s"
PROPOSAL_POLICIES = ('always', 'branch-create', 'never')
FLOAT_PATTERN = re.compile(r"\d+\.\d+")


def configure_logging(config=None, debug=False):
    """
    Configure root logging to stderr from the `logging` config section.

    Args:
        config: Configuration dict (defaults used when None)
        debug: Force DEBUG level
    """
    section = (config or {}).get('logging', {})
    level_name = 'DEBUG' if debug else str(section.get('level', 'INFO')).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format=section.get('format', DEFAULT_LOG_FORMAT),
        handlers=[
            logging.StreamHandler(sys.stderr)
        ],
        force=True,
    )


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. GITIX_CONFIG environment variable
    2. ~/.gitix/config.{json,toml,yaml,yml}
    """
    if 'GITIX_CONFIG' in os.environ:
        return Path(os.environ['GITIX_CONFIG']).expanduser()

    gitix_dir = Path.home() / '.gitix'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = gitix_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return gitix_dir / 'config.json'


def _read_config_file(config_path):
    suffix = config_path.suffix.lower()
    if suffix == '.toml':
        with open(config_path, 'rb') as f:
            return tomllib.load(f)
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}
    with open(config_path, 'r') as f:
        return json.load(f)


def load_config(config_path=None):
    """Load configuration: defaults, then the config file, then GITIX_* env vars."""
    config_path = Path(config_path) if config_path else get_config_path()

    config = get_default_config()

    if config_path.exists():
        try:
            file_config = _read_config_file(config_path)
            if not isinstance(file_config, dict):
                raise ValueError("top-level value is not a mapping")
            config = merge_configs(config, file_config)
        except (OSError, ValueError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    config = apply_env_overrides(config)

    policy = config['branches'].get('proposal_policy')
    if policy not in PROPOSAL_POLICIES:
        logger.warning(f"Unknown branches.proposal_policy {policy!r}, using 'always'")
        config['branches']['proposal_policy'] = 'always'

    return config


def save_config(config, config_path=None):
    """Save configuration to file, in the format its suffix names."""
    config_path = Path(config_path) if config_path else get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() == '.toml':
            # tomllib is read-only
            with open(config_path, 'w') as f:
                toml.dump(config, f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.info(f"Configuration saved to {config_path}")
    except OSError as e:
        logger.error(f"Error saving config to {config_path}: {e}")
        raise


def get_default_config():
    """Get default configuration."""
    return {
        "store": {
            "api_base": "https://api.github.com",
            "owner": "",
            "repo": "",
            "token": "",  # Falls back to GITIX_TOKEN / GITHUB_TOKEN
            "timeout_seconds": 30,
            "max_retries": 3,
            "base_delay": 1.0,
            "max_delay": 60.0,
        },
        "branches": {
            "protected": ["main"],
            "retired_suffix": "-retired",
            "scratch_prefix": "copy-to-",
            # When a cross-branch copy targets a protected branch the actor
            # cannot write: always | branch-create | never open a proposal
            "proposal_policy": "always",
        },
        "tagging": {
            "enabled": True,
            "bump": "patch",
            "max_attempts": 1,
        },
        "auth": {
            "database": "~/.gitix/actors.db",
            "superuser": "admin",
            "bcrypt_rounds": 12,
        },
        "content": {
            "placeholder_name": ".gitkeep",
            "placeholder_text": "# Empty directory placeholder",
            "author_suffix": True,
        },
        "logging": {
            "level": "INFO",
            "format": DEFAULT_LOG_FORMAT,
        },
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged


def _coerce(value):
    lowered = value.lower()
    if value.isdecimal():
        return int(value)
    if lowered in ('true', 'yes', 'on'):
        return True
    if lowered in ('false', 'no', 'off'):
        return False
    if FLOAT_PATTERN.fullmatch(value):
        return float(value)
    return value


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: GITIX_SECTION_KEY
    For example: GITIX_TAGGING_MAX_ATTEMPTS=3
    """
    env_prefix = "GITIX_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')
        typed_value = _coerce(value)

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts = config_key.split('_')
                if key_parts[i : i + len(config_key_parts)] == config_key_parts:
                    if len(config_key_parts) > best_match_len:
                        best_match_len = len(config_key_parts)
                        matched_key = config_key

            if matched_key is None:
                break

            if i + best_match_len == len(key_parts):
                if isinstance(current_level[matched_key], list) and isinstance(typed_value, str):
                    typed_value = [item.strip() for item in typed_value.split(',') if item.strip()]
                current_level[matched_key] = typed_value
                break

            if not isinstance(current_level[matched_key], dict):
                break
            current_level = current_level[matched_key]
            i += best_match_len

    return config
