# Overview: Flask CLI command groups for bootstrap and store approval.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py and SESSION_SECRET to a long random string.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
#
# Admin bootstrap:
# - python -m flask admin create --email admin@example.com --password "Secret123"
#   Create an admin, or reset the password of an existing one.
#
# Store approval queue:
# - python -m flask stores list [--status pending]
#   List store accounts.
# - python -m flask stores approve shop01 --by admin@example.com
# - python -m flask stores deny shop01 --by admin@example.com
#   Approve, deny, or revoke a store.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models.accounts import STORE_STATUSES
from .services import account_service
from .validation import StorefrontError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database tables created")


@click.group('admin')
def admin_group():
    """Administrator account commands."""


@admin_group.command('create')
@click.option('--email', prompt=True, help='Admin email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
@with_appcontext
def create_admin(email, password):
    """Create an admin, or reset an existing admin's password."""
    try:
        admin, created = account_service.upsert_admin(email, password)
    except StorefrontError as e:
        raise click.ClickException(e.message)

    verb = "Created" if created else "Updated password for"
    click.echo(f"PASS {verb} admin {admin.email}")


@click.group('stores')
def stores_group():
    """Store account inspection and approval."""


@stores_group.command('list')
@click.option('--status', type=click.Choice(STORE_STATUSES), help='Filter by status')
@with_appcontext
def list_stores(status):
    """List store accounts, newest first."""
    stores = account_service.list_stores(status)

    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Store ID':<20} {'Email':<35} {'Status':<10} {'Approved By'}")
    click.echo("="*90)
    for store in stores:
        click.echo(f"{store.store_id:<20} {store.email:<35} {store.status:<10} {store.approved_by or '-'}")
    click.echo("")


def _set_status(store_id, action, admin_email):
    try:
        store = account_service.set_store_status(store_id, action, admin_email)
    except StorefrontError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Store {store.store_id} is now {store.status}")


@stores_group.command('approve')
@click.argument('store_id')
@click.option('--by', 'admin_email', default='cli', show_default=True, help='Recorded as approved_by')
@with_appcontext
def approve_store(store_id, admin_email):
    """Approve a pending or denied store."""
    _set_status(store_id, "approve", admin_email)


@stores_group.command('deny')
@click.argument('store_id')
@click.option('--by', 'admin_email', default='cli', show_default=True, help='Admin performing the action')
@with_appcontext
def deny_store(store_id, admin_email):
    """Deny a pending store, or revoke an approved one."""
    _set_status(store_id, "deny", admin_email)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(admin_group)
    app.cli.add_command(stores_group)
