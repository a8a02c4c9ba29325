"""
Tag command group for gitix.
"""

import json

import click

from ..exit_codes import CommandError
from .common import console, fail, get_gitix, json_option


@click.group('tag')
def tag_cmd():
    """Inspect version tags."""
    pass


@tag_cmd.command('next')
@click.option('--bump', type=click.Choice(['major', 'minor', 'patch']), default='patch',
              show_default=True, help='Version component to bump')
@json_option
@click.pass_context
def next_cmd(ctx, bump, as_json):
    """Preview the tag the next edit would get."""
    try:
        preview = get_gitix(ctx).next_tag(bump)
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        print(json.dumps(preview, ensure_ascii=False))
        return
    console.print(f"{preview['current'] or '(none)'} -> [bold green]{preview['next']}[/bold green] ({bump})")
