import copy
import json

import click

from gitix.config import get_config_path, load_config, save_config


def _config_path(ctx):
    """The file named by --config or GITIX_CONFIG, else the default location."""
    return ctx.ensure_object(dict).get('config_path') or get_config_path()


def _redacted(config):
    shown = copy.deepcopy(config)
    if shown.get('store', {}).get('token'):
        shown['store']['token'] = '***'
    return shown


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSON")
@click.option("--path", is_flag=True, help="Show the config file path being used")
@click.pass_context
def show_config(ctx, pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON. Use --pretty for human-readable
    formatted output, --path to see which config file is being used.
    The store token is never printed.
    """
    if path:
        print(json.dumps({"config_path": str(_config_path(ctx))}))
        return

    config = ctx.ensure_object(dict).get('config') or load_config()
    if pretty:
        print(json.dumps(_redacted(config), indent=2, ensure_ascii=False))
    else:
        print(json.dumps(_redacted(config), ensure_ascii=False))


@config_cmd.command("init")
@click.option("--owner", required=True, help="Repository owner")
@click.option("--repo", required=True, help="Repository name")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init_config(ctx, owner, repo, force):
    """Write a config file for a repository with all defaults filled in."""
    config_path = _config_path(ctx)
    if config_path.exists() and not force:
        raise click.ClickException(f"{config_path} already exists (use --force to overwrite)")
    config = load_config(config_path)
    config['store']['owner'] = owner
    config['store']['repo'] = repo
    save_config(config, config_path)
    click.echo(f"Configuration written to {config_path}")
