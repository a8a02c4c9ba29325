"""
Item command group for gitix.

Path-based edits on one branch: delete, rename, copy, create and upload.
Every successful edit is one commit, tagged with the next version. `ls`
and `cat` only read and need no credentials.
"""

import json

import click
from rich.table import Table

from ..exit_codes import CommandError
from .common import actor_options, console, credentials, emit, fail, get_gitix, json_option


@click.group('item')
def item_cmd():
    """Edit files and folders on a branch.

    \b
    Examples:
        gitix item rm drafts docs/old.md
        gitix item mv drafts src/a.tcl b.tcl
        gitix item cp drafts exp1 . exp2
        gitix item add-file drafts docs notes.md --from ./notes.md
        gitix item mkdir drafts docs images
        gitix item commit drafts docs/notes.md ./notes.md -m "Update notes" --bump minor
        gitix item upload drafts assets ./a.png ./b.png
        gitix item ls drafts docs
        gitix item cat drafts docs/notes.md
    """
    pass


@item_cmd.command('rm')
@click.argument('branch')
@click.argument('path')
@click.option('--message', '-m', help='Commit message (default: "Delete item: PATH")')
@actor_options
@json_option
@click.pass_context
def rm_cmd(ctx, branch, path, message, user, secret, as_json):
    """Delete a file or folder."""
    result = get_gitix(ctx).delete_item(credentials(user, secret), branch, path, message)
    emit(result, as_json)


@item_cmd.command('mv')
@click.argument('branch')
@click.argument('path')
@click.argument('new_name')
@actor_options
@json_option
@click.pass_context
def mv_cmd(ctx, branch, path, new_name, user, secret, as_json):
    """Rename a file or folder within its directory."""
    result = get_gitix(ctx).rename_item(credentials(user, secret), branch, path, new_name)
    emit(result, as_json)


@item_cmd.command('cp')
@click.argument('branch')
@click.argument('source')
@click.argument('destination_dir')
@click.argument('new_name')
@actor_options
@json_option
@click.pass_context
def cp_cmd(ctx, branch, source, destination_dir, new_name, user, secret, as_json):
    """Copy a file or folder to DESTINATION_DIR/NEW_NAME ("." or "/" for the root)."""
    if destination_dir == '.':
        destination_dir = ''
    result = get_gitix(ctx).copy_item(credentials(user, secret), branch, source, destination_dir, new_name)
    emit(result, as_json)


@item_cmd.command('add-file')
@click.argument('branch')
@click.argument('directory')
@click.argument('filename')
@click.option('--from', 'source', type=click.File('rb'), help='Initial content (default: empty)')
@actor_options
@json_option
@click.pass_context
def add_file_cmd(ctx, branch, directory, filename, source, user, secret, as_json):
    """Create a new file in an existing directory."""
    content = source.read() if source else b""
    result = get_gitix(ctx).add_file(credentials(user, secret), branch, directory, filename, content)
    emit(result, as_json)


@item_cmd.command('mkdir')
@click.argument('branch')
@click.argument('directory')
@click.argument('name')
@actor_options
@json_option
@click.pass_context
def mkdir_cmd(ctx, branch, directory, name, user, secret, as_json):
    """Create a folder (holding a placeholder file) in DIRECTORY."""
    result = get_gitix(ctx).add_folder(credentials(user, secret), branch, directory, name)
    emit(result, as_json)


@item_cmd.command('commit')
@click.argument('branch')
@click.argument('path')
@click.argument('source', type=click.File('rb'))
@click.option('--message', '-m', required=True, help='Commit message')
@click.option('--bump', type=click.Choice(['major', 'minor', 'patch']), default='patch',
              show_default=True, help='Version component to bump')
@actor_options
@json_option
@click.pass_context
def commit_cmd(ctx, branch, path, source, message, bump, user, secret, as_json):
    """Write SOURCE's content to PATH (creating or updating it)."""
    result = get_gitix(ctx).commit_file(
        credentials(user, secret), branch, path, source.read(), message, bump
    )
    emit(result, as_json)


@item_cmd.command('upload')
@click.argument('branch')
@click.argument('directory')
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@actor_options
@json_option
@click.pass_context
def upload_cmd(ctx, branch, directory, files, user, secret, as_json):
    """Upload local FILES into DIRECTORY as one commit."""
    from pathlib import Path

    uploads = [(Path(f).name, Path(f).read_bytes()) for f in files]
    result = get_gitix(ctx).upload_files(credentials(user, secret), branch, directory, uploads)
    emit(result, as_json)


@item_cmd.command('ls')
@click.argument('branch')
@click.argument('path', default='')
@click.option('--recursive', '-r', is_flag=True, help='Include everything below PATH')
@json_option
@click.pass_context
def ls_cmd(ctx, branch, path, recursive, as_json):
    """List the files and folders in PATH (default: the root)."""
    try:
        entries = get_gitix(ctx).list_directory(branch, path, recursive)
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        for entry in entries:
            print(json.dumps(entry.to_api(), ensure_ascii=False))
        return

    table = Table(title=f"{branch}:/{path}")
    table.add_column("Type")
    table.add_column("Path", style="bold")
    table.add_column("SHA", style="dim")
    for entry in entries:
        table.add_row(entry.kind.value, entry.name + ('/' if entry.is_tree else ''), entry.sha[:7])
    console.print(table)


@item_cmd.command('cat')
@click.argument('branch')
@click.argument('path')
@json_option
@click.pass_context
def cat_cmd(ctx, branch, path, as_json):
    """Print the content of the file at PATH."""
    try:
        blob = get_gitix(ctx).read_file(branch, path)
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        print(json.dumps({
            'path': path,
            'sha': blob.sha,
            'size': blob.size,
            'content': (blob.content or b"").decode('utf-8', errors='replace'),
        }, ensure_ascii=False))
        return
    click.echo(blob.content or b"", nl=False)
