# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/globos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create all tables (idempotent). Use Flask-Migrate (flask db ...) for schema changes.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--all]
#   List staff accounts (--all includes storefront customers).
# - python -m flask users create-owner --nombre "Dueña" --email owner@globos.local --password "secreto1"
#   Create an owner account (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance purge-expired
#   Delete expired/revoked sessions and expired verification codes.

import click
from flask.cli import with_appcontext

from .errors import ApiError
from .extensions import db
from .services import auth_service, session_service, verification_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create every table that does not exist yet."""
    click.echo("START Initializing database...")
    db.create_all()
    click.echo("PASS Tables ready")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-owner')
@click.option('--nombre', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_owner_cli(nombre, email, password):
    """Create a propietario account (password: at least 6 characters)."""
    try:
        user = auth_service.create_owner(nombre=nombre, email=email, password=password)
        click.echo(f"PASS Created owner: {user.nombre} ({user.email}) ID {user.id}")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except ApiError as e:
        click.echo(f"FAIL {e.label}: {e.message}")


@users_group.command('list')
@click.option('--all', 'include_customers', is_flag=True, help='Include customer accounts')
@with_appcontext
def list_users(include_customers):
    """List accounts with their role and active status."""
    users = auth_service.list_users(include_customers=include_customers)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Nombre':<20} {'Email':<30} {'Rol':<12} {'Activo':<8}")
    click.echo("="*90)

    for user in users:
        active_str = "Si" if user.activo else "No"
        click.echo(f"{user.id:<5} {user.nombre:<20} {user.email:<30} {user.rol:<12} {active_str:<8}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('purge-expired')
@with_appcontext
def purge_expired_cli():
    """Delete expired or revoked sessions and expired verification codes."""
    sessions = session_service.purge_expired_sessions()
    codes = verification_service.purge_expired_codes()
    db.session.commit()
    click.echo(f"Deleted {sessions} sessions and {codes} verification codes.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
