"""
Actor command group for gitix.

Manages the local actor registry that edits are authorized against.
"""

import json

import click
from rich.table import Table

from ..exit_codes import CommandError, NotFound
from ..infra.actor_store import ActorStore
from .common import console, fail, json_option


def _store(ctx) -> ActorStore:
    return ActorStore.from_config(ctx.ensure_object(dict).get('config') or {})


@click.group('actor')
def actor_cmd():
    """Manage actors and their branch permissions.

    \b
    Examples:
        gitix actor add alice --branch drafts --active
        gitix actor grant alice notes --can-create-branches
        gitix actor disable alice
        gitix actor list
    """
    pass


@actor_cmd.command('add')
@click.argument('username')
@click.option('--secret', prompt=True, hide_input=True, confirmation_prompt=True, help='Secret for the new actor')
@click.option('--email', help='Contact email')
@click.option('--branch', '-b', 'branches', multiple=True, help='Permitted branch (repeatable)')
@click.option('--can-create-branches', is_flag=True, help='Allow proposing merges via scratch branches')
@click.option('--active', is_flag=True, help='Activate immediately')
@json_option
@click.pass_context
def add_cmd(ctx, username, secret, email, branches, can_create_branches, active, as_json):
    """Register a new actor (inactive unless --active)."""
    try:
        actor = _store(ctx).add_actor(
            username, secret, email=email, branch_permissions=list(branches),
            can_create_branches=can_create_branches, active=active,
        )
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        print(json.dumps(actor.to_dict(), ensure_ascii=False))
    else:
        console.print(f"[green]✓[/green] Added {actor.username} ({'active' if actor.active else 'inactive'})")


@actor_cmd.command('list')
@json_option
@click.pass_context
def list_cmd(ctx, as_json):
    """List registered actors."""
    try:
        actors = _store(ctx).list_actors()
    except CommandError as e:
        fail(e, as_json)

    if as_json:
        for actor in actors:
            print(json.dumps(actor.to_dict(), ensure_ascii=False))
        return

    table = Table(title="Actors")
    table.add_column("User", style="bold")
    table.add_column("Active")
    table.add_column("Branches")
    table.add_column("Create branches")
    table.add_column("Last activity", style="dim")
    for actor in actors:
        table.add_row(
            actor.username,
            "yes" if actor.active else "no",
            ", ".join(actor.branch_permissions) or "-",
            "yes" if actor.can_create_branches else "no",
            actor.last_activity or "-",
        )
    console.print(table)


@actor_cmd.command('disable')
@click.argument('username')
@click.option('--enable', is_flag=True, help='Re-activate instead')
@click.pass_context
def disable_cmd(ctx, username, enable):
    """Deactivate an actor (or re-activate with --enable)."""
    try:
        actor = _store(ctx).set_active(username, enable)
    except CommandError as e:
        fail(e)
    console.print(f"[green]✓[/green] {actor.username} is now {'active' if actor.active else 'inactive'}")


@actor_cmd.command('grant')
@click.argument('username')
@click.argument('branches', nargs=-1)
@click.option('--revoke', is_flag=True, help='Remove the branches instead of adding them')
@click.option('--can-create-branches/--no-can-create-branches', default=None,
              help='Set the branch-create permission')
@click.pass_context
def grant_cmd(ctx, username, branches, revoke, can_create_branches):
    """Add (or with --revoke remove) permitted branches."""
    store = _store(ctx)
    try:
        actor = store.get_actor(username)
        if actor is None:
            raise NotFound(f"User '{username}' not found.")
        if revoke:
            permitted = [b for b in actor.branch_permissions if b not in branches]
        else:
            permitted = actor.branch_permissions + [b for b in branches if b not in actor.branch_permissions]
        actor = store.set_branch_permissions(username, permitted, can_create_branches)
    except CommandError as e:
        fail(e)
    console.print(f"[green]✓[/green] {actor.username}: {', '.join(actor.branch_permissions) or '(no branches)'}")
