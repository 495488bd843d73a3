# cli.py
"""Operator commands, run with ``flask --app run <command>``."""
import click
from flask.cli import with_appcontext

from .auth.accounts import create_account, find_user_by_email, revoke_tokens, set_role
from .models.models import ROLES
from .services.notifications import notify_overdue
from .services.profiles import is_admin_claims
from .utils.utils import get_db


def _user_or_fail(db, email):
    user = find_user_by_email(db, email)
    if user is None:
        raise click.ClickException(f"The specified user was not found: {email}")
    return user


@click.command("create-admin")
@with_appcontext
@click.option("--email", required=True)
@click.option("--name", required=True)
@click.option("--password", prompt=True, hide_input=True)
def create_admin_command(email, name, password):
    """Create (or promote) an admin account and its profile."""
    db = get_db()
    user = find_user_by_email(db, email)
    if user is None:
        click.echo(f"Creating new user for email: {email}...")
        user = create_account(db, email, password, name, "admin")
        click.echo(f"Successfully created new user: {user['_id']}")
    else:
        click.echo(f"User {email} already exists with id: {user['_id']}")
    claims = set_role(db, user, "admin", name=name)
    click.echo(f"Custom claims: {claims}")
    click.echo("Admin setup completed successfully!")


@click.command("set-role")
@with_appcontext
@click.argument("email")
@click.argument("role", type=click.Choice(ROLES))
def set_role_command(email, role):
    """Set the role claim and profile role of a user."""
    db = get_db()
    user = _user_or_fail(db, email)
    claims = set_role(db, user, role)
    click.echo(f"Role for {email} updated, claims: {claims}")


@click.command("verify-admin")
@with_appcontext
@click.argument("email")
@click.option("--fix", is_flag=True, help="Grant admin claims and profile role when missing.")
def verify_admin_command(email, fix):
    """Check that a user's claims and profile both say admin."""
    db = get_db()
    user = _user_or_fail(db, email)
    profile = db.profiles.find_one({"_id": str(user["_id"])}) or {}
    claims = user.get("custom_claims") or {}
    click.echo(f"User found: {user['_id']}")
    click.echo(f"Custom claims: {claims}")
    click.echo(f"Profile role: {profile.get('role')}")

    if is_admin_claims(claims) and profile.get("role") == "admin":
        click.echo("Admin verified.")
        return
    if not fix:
        raise click.ClickException(f"{email} is not fully set up as admin (use --fix)")
    set_role(db, user, "admin")
    click.echo("Admin claims and profile updated.")


@click.command("revoke-tokens")
@with_appcontext
@click.argument("email")
def revoke_tokens_command(email):
    """Force a user to sign in again."""
    db = get_db()
    user = _user_or_fail(db, email)
    revoke_tokens(db, user["_id"])
    click.echo(f"Revoked tokens for {email}")


@click.command("notify-overdue")
@with_appcontext
def notify_overdue_command():
    """Notify assignees about unfinished tasks past their due date."""
    count = notify_overdue(get_db())
    click.echo(f"Created {count} overdue notifications")


def register_commands(app):
    for command in (
        create_admin_command,
        set_role_command,
        verify_admin_command,
        revoke_tokens_command,
        notify_overdue_command,
    ):
        app.cli.add_command(command)
