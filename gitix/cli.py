#!/usr/bin/env python3

from pathlib import Path

import click

from gitix import __version__
from gitix.config import configure_logging, load_config
from gitix.commands.item import item_cmd
from gitix.commands.branch import branch_cmd
from gitix.commands.tag import tag_cmd
from gitix.commands.actor import actor_cmd
from gitix.commands.config import config_cmd


@click.group()
@click.version_option(__version__, prog_name='gitix')
@click.option('--debug', is_flag=True, help='Verbose logging to stderr')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), envvar='GITIX_CONFIG',
              help='Config file (default: ~/.gitix/config.json)')
@click.pass_context
def cli(ctx, debug, config_path):
    """gitix - Versioned path-based edits on a hosted Git repository.

    Every edit becomes one commit on the branch and is tagged with the
    next semantic version.

    \b
    Exit codes:
        0   success
        71  edit landed but tagging failed
        2/64/69/72  invalid input / not found / not authorized / conflict
    """
    obj = ctx.ensure_object(dict)
    if config_path:
        obj.setdefault('config_path', Path(config_path).expanduser())
    if 'config' not in obj:
        obj['config'] = load_config(config_path)
    configure_logging(obj['config'], debug=debug)


cli.add_command(item_cmd)
cli.add_command(branch_cmd)
cli.add_command(tag_cmd)
cli.add_command(actor_cmd)
cli.add_command(config_cmd)


def main():
    cli()


if __name__ == "__main__":
    main()
