"""
Branch command group for gitix.
"""

import json

import click
from rich.table import Table

from ..exit_codes import CommandError
from .common import actor_options, console, credentials, emit, fail, get_gitix, json_option


@click.group('branch')
def branch_cmd():
    """Create, revert, retire and compare branches.

    \b
    Examples:
        gitix branch create drafts --from main
        gitix branch revert drafts 1a2b3c4
        gitix branch retire old-experiment
        gitix branch copy-files drafts main docs/intro.md docs/setup.md
        gitix branch compare main drafts
        gitix branch list
        gitix branch log drafts -n 20
    """
    pass


@branch_cmd.command('create')
@click.argument('new_branch')
@click.option('--from', 'source_branch', required=True, help='Branch to start from')
@actor_options
@json_option
@click.pass_context
def create_cmd(ctx, new_branch, source_branch, user, secret, as_json):
    """Create NEW_BRANCH at the head of another branch."""
    result = get_gitix(ctx).create_branch(credentials(user, secret), new_branch, source_branch)
    emit(result, as_json)


@branch_cmd.command('revert')
@click.argument('branch')
@click.argument('commit_sha')
@click.option('--message', '-m', help='Commit message')
@actor_options
@json_option
@click.pass_context
def revert_cmd(ctx, branch, commit_sha, message, user, secret, as_json):
    """Restore BRANCH to the content of COMMIT_SHA with a new commit."""
    result = get_gitix(ctx).revert_branch(credentials(user, secret), branch, commit_sha, message)
    emit(result, as_json)


@branch_cmd.command('retire')
@click.argument('branch')
@actor_options
@json_option
@click.pass_context
def retire_cmd(ctx, branch, user, secret, as_json):
    """Rename BRANCH with the retired suffix (super-user only)."""
    result = get_gitix(ctx).retire_branch(credentials(user, secret), branch)
    emit(result, as_json)


@branch_cmd.command('copy-files')
@click.argument('source_branch')
@click.argument('target_branch')
@click.argument('paths', nargs=-1, required=True)
@actor_options
@json_option
@click.pass_context
def copy_files_cmd(ctx, source_branch, target_branch, paths, user, secret, as_json):
    """Copy files from SOURCE_BRANCH onto TARGET_BRANCH.

    A protected target you cannot write gets a pull request instead.
    """
    result = get_gitix(ctx).copy_files(credentials(user, secret), source_branch, target_branch, list(paths))
    emit(result, as_json)


@branch_cmd.command('compare')
@click.argument('base')
@click.argument('head')
@json_option
@click.pass_context
def compare_cmd(ctx, base, head, as_json):
    """Show how HEAD differs from BASE."""
    try:
        comparison = get_gitix(ctx).compare(base, head)
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        print(json.dumps(comparison, ensure_ascii=False))
        return

    console.print(
        f"[bold]{head}[/bold] is {comparison.get('ahead_by', 0)} ahead, "
        f"{comparison.get('behind_by', 0)} behind [bold]{base}[/bold] "
        f"({comparison.get('status', 'unknown')})"
    )
    for changed in comparison.get('files', []):
        console.print(f"  {changed.get('status', '?'):9} {changed.get('filename', '')}")


@branch_cmd.command('list')
@json_option
@click.pass_context
def list_cmd(ctx, as_json):
    """List the repository's branches."""
    try:
        branches = get_gitix(ctx).list_branches()
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        for ref in branches:
            print(json.dumps({'name': ref.name, 'sha': ref.sha}, ensure_ascii=False))
        return

    for ref in branches:
        console.print(f"  [bold]{ref.name}[/bold] [dim]{ref.sha[:7]}[/dim]")


@branch_cmd.command('log')
@click.argument('branch')
@click.option('--limit', '-n', default=10, show_default=True, help='Number of commits to show')
@json_option
@click.pass_context
def log_cmd(ctx, branch, limit, as_json):
    """Show BRANCH's recent commits with their version tags."""
    try:
        entries = get_gitix(ctx).history(branch, limit)
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        for entry in entries:
            print(json.dumps(entry.to_dict(), ensure_ascii=False))
        return

    table = Table(title=f"History of {branch}")
    table.add_column("Version", style="cyan")
    table.add_column("Commit", style="dim")
    table.add_column("Date")
    table.add_column("Author", style="bold")
    table.add_column("Message")
    for entry in entries:
        table.add_row(
            entry.version or "-",
            entry.sha[:7],
            entry.date or "-",
            entry.author,
            entry.message.splitlines()[0] if entry.message else "",
        )
    console.print(table)
