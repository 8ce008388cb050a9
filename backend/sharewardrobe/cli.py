# Overview: Flask CLI command groups for bootstrap, configuration and maintenance.

# backend/sharewardrobe/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create tables if missing and seed the default business configuration.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business configuration:
# - python -m flask config list
# - python -m flask config set delivery_charge_per_order 120 --description "Flat delivery charge"
#
# Users:
# - python -m flask users create-admin --phone +8801700000000 --password "Password123"
#
# Orders:
# - python -m flask orders expire-unpaid
#   Cancel online orders whose payment window has closed and restore stock.
# - python -m flask maintenance cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ShareWardrobeError
from .services import auth_service, config_service, order_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Idempotent bootstrap: schema plus default AdminConfig rows."""
    click.echo("START Initializing ShareWardrobe...")
    db.create_all()
    added = config_service.seed_defaults()
    click.echo(f"PASS Seeded {added} config defaults")
    click.echo("DONE Run 'python -m flask users create-admin' to add an administrator.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('config')
def config_group():
    """Business configuration (AdminConfig)."""


@config_group.command('list')
@with_appcontext
def list_configs():
    rows = config_service.list_configs()
    if not rows:
        click.echo("No config rows; built-in defaults apply.")
        return
    for row in rows:
        click.echo(f"{row.key:<30} {row.value:<12} {row.description or ''}")


@config_group.command('set')
@click.argument('key')
@click.argument('value')
@click.option('--description', default=None, help='Human readable description')
@with_appcontext
def set_config_cli(key, value, description):
    try:
        row, created = config_service.set_config(key, value, description)
    except ShareWardrobeError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {'Created' if created else 'Updated'} {row.key} = {row.value}")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create-admin')
@click.option('--phone', prompt=True, help='Login phone number')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default='Administrator', help='Display name')
@with_appcontext
def create_admin_cli(phone, password, name):
    try:
        user, created = auth_service.ensure_admin(phone, password, name)
    except ShareWardrobeError as e:
        raise click.ClickException(e.message)
    if created:
        click.echo(f"PASS Created admin {user.phone} (ID: {user.id})")
    else:
        click.echo(f"WARN User {user.phone} already exists; role set to admin")


@click.group('orders')
def orders_group():
    """Order maintenance."""


@orders_group.command('expire-unpaid')
@with_appcontext
def expire_unpaid_cli():
    expired = order_service.expire_unpaid_orders()
    click.echo(f"Cancelled {len(expired)} unpaid orders.")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(config_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(maintenance_group)
