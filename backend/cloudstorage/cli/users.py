"""Flask CLI commands for account administration."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from cloudstorage.core.container import get_services
from cloudstorage.services._shared.errors import NotFoundError

LOGGER = logging.getLogger(__name__)


@click.group("users")
def users_cli() -> None:
    """Manage user accounts."""


@users_cli.command("create-admin")
@click.argument("email")
@click.option("--name", default="Administrator", show_default=True, help="Display name.")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Password for a newly created account.",
)
@with_appcontext
def create_admin_command(email: str, name: str, password: str) -> None:
    """Create an admin account, or promote the existing account for EMAIL."""
    user = get_services().credentials.create_admin(email=email, name=name, password=password)
    click.echo(f"Admin ready: {user.email} (id={user.id})")


@users_cli.command("deactivate")
@click.argument("email")
@with_appcontext
def deactivate_command(email: str) -> None:
    """Deactivate EMAIL and end its refresh session."""
    try:
        user = get_services().credentials.set_active(email, active=False)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Deactivated {user.email}")


@users_cli.command("activate")
@click.argument("email")
@with_appcontext
def activate_command(email: str) -> None:
    """Re-activate EMAIL."""
    try:
        user = get_services().credentials.set_active(email, active=True)
    except NotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Activated {user.email}")
