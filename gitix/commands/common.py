"""
Shared CLI plumbing: credential options, facade construction and result output.
"""

import json
import sys

import click
from rich.console import Console

from ..api import Gitix
from ..domain.operation import OperationResult, StatusClass
from ..domain.requests import Credentials
from ..exit_codes import CommandError

console = Console()
err_console = Console(stderr=True)


def actor_options(f):
    """Decorator adding --user and --secret (env or hidden prompt)."""
    f = click.option('--secret', envvar='GITIX_SECRET', prompt=True, hide_input=True,
                     help='Secret for --user (or GITIX_SECRET)')(f)
    f = click.option('--user', '-u', envvar='GITIX_USER', required=True,
                     help='Acting user (or GITIX_USER)')(f)
    return f


def json_option(f):
    return click.option('--json', 'as_json', is_flag=True, help='Output the result as JSON')(f)


def credentials(user: str, secret: str) -> Credentials:
    return Credentials(user, secret)


def get_gitix(ctx: click.Context) -> Gitix:
    """The facade for this invocation, built from config on first use."""
    obj = ctx.ensure_object(dict)
    if obj.get('gitix') is None:
        try:
            obj['gitix'] = Gitix(config=obj.get('config'))
        except CommandError as e:
            fail(e)
    return obj['gitix']


def fail(error: CommandError, as_json: bool = False):
    """Report a CommandError and exit with its code."""
    if as_json:
        print(json.dumps({'success': False, 'error': error.message}, ensure_ascii=False))
    else:
        err_console.print(f"[red]✗[/red] {error.message}")
    sys.exit(error.exit_code)


def emit(result: OperationResult, as_json: bool = False):
    """Print an operation result and exit with its exit code."""
    if as_json:
        print(json.dumps(result.to_dict(), ensure_ascii=False))
    else:
        if result.status_class == StatusClass.OK:
            console.print(f"[green]✓[/green] {result.message}")
        elif result.status_class == StatusClass.PARTIAL:
            console.print(f"[yellow]⚠[/yellow] {result.message}")
        else:
            err_console.print(f"[red]✗[/red] {result.message}")

        if result.commit is not None:
            console.print(f"  commit [bold]{result.commit.sha[:7]}[/bold]")
        for file_result in result.results:
            line = f"  {file_result.status:8} {file_result.path}"
            if file_result.reason:
                line += f" [dim]({file_result.reason})[/dim]"
            console.print(line)
        url = result.details.get('pullRequestUrl')
        if url:
            console.print(f"  pull request: {url}")

    sys.exit(result.exit_code)
