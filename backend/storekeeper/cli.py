# Overview: Flask CLI command groups for bootstrap, inspection, and numbering previews.

# backend/storekeeper/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrated databases).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Store owners (tenants):
# - python -m flask owners create --name "Acme" --email owner@acme.local --password "Password123!"
# - python -m flask owners list
#
# Document numbers:
# - python -m flask numbers next --owner-id 1 --kind order
#   Allocate and print the next number (consumes it).
# - python -m flask numbers preview --kind order --previous PONO202401-0009
#   Print what would follow a given number today (no database access).

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import StoreOwner
from .services.auth_service import create_owner
from .services.concurrency import run_in_transaction
from .services.document_service import DOCUMENT_PREFIXES, generate_number, next_document_number


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Tables created")


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


@click.group('owners')
def owners_group():
    """Store owner (tenant) commands."""


@owners_group.command('create')
@click.option('--name', prompt=True, help='Store owner name')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_owner_cli(name, email, password):
    """
    Create a store owner.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        owner = create_owner(name=name, email=email, password=password)
    except ServiceError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created store owner {owner.email} (ID: {owner.id})")


@owners_group.command('list')
@with_appcontext
def list_owners():
    owners = db.session.query(StoreOwner).order_by(StoreOwner.id.asc()).all()

    if not owners:
        click.echo("No store owners found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Email':<35} {'Active'}")
    for owner in owners:
        click.echo(f"{owner.id:<5} {owner.name:<30} {owner.email:<35} {owner.is_active}")


@click.group('numbers')
def numbers_group():
    """Document numbering commands."""


@numbers_group.command('next')
@click.option('--owner-id', type=int, required=True)
@click.option('--kind', type=click.Choice(sorted(DOCUMENT_PREFIXES)), required=True)
@with_appcontext
def next_number(owner_id, kind):
    """Allocate the next number for an owner."""
    if not db.session.get(StoreOwner, owner_id):
        raise click.ClickException(f"Store owner {owner_id} not found")

    number = run_in_transaction(lambda: next_document_number(owner_id, kind))
    click.echo(number)


@numbers_group.command('preview')
@click.option('--kind', type=click.Choice(sorted(DOCUMENT_PREFIXES)), required=True)
@click.option('--previous', default=None, help='Previous number; omit to preview the first one')
def preview_number(kind, previous):
    """Show the number that would follow --previous today."""
    try:
        click.echo(generate_number(kind, previous))
    except ServiceError as e:
        raise click.ClickException(e.message)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(owners_group)
    app.cli.add_command(numbers_group)
