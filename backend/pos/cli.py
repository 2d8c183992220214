# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username caja1 --full-name "Caja 1" --password "secreto123" --role cashier
#   Create a user (prompts if options are omitted).
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   List active products at or below their reorder threshold, plus out-of-stock ones.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import User


DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the POS database: tables and default admin user.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing POS system...")

    db.create_all()
    click.echo("PASS Tables ready")

    services = current_app.extensions["pos"]
    existing = db.session.query(User).filter_by(username=DEFAULT_ADMIN_USERNAME).first()
    if existing:
        click.echo(f"WARN  User '{DEFAULT_ADMIN_USERNAME}' already exists, skipping...")
    else:
        services.auth.create_user(
            username=DEFAULT_ADMIN_USERNAME,
            password=DEFAULT_ADMIN_PASSWORD,
            full_name="Administrador",
            role="admin",
        )
        click.echo(f"PASS Created user: {DEFAULT_ADMIN_USERNAME} with role 'admin'")
        click.echo(f"\nDefault Credentials (CHANGE IN PRODUCTION!): admin / {DEFAULT_ADMIN_PASSWORD}")

    click.echo("DONE POS system initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = current_app.extensions["pos"].auth.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'Username':<20} {'Full name':<30} {'Role':<10} {'Active'}")
    click.echo("="*72)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.username:<20} {user.full_name:<30} {user.role:<10} {active_str}")
    click.echo("="*72 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--full-name', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(['admin', 'cashier']), default='cashier', show_default=True)
@with_appcontext
def create_user_cli(username, full_name, password, role):
    """Create a user."""
    try:
        user = current_app.extensions["pos"].auth.create_user(
            username=username,
            password=password,
            full_name=full_name,
            role=role,
        )
    except PosError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created user: {user.username} with role '{user.role}'")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List products that need restocking."""
    reports = current_app.extensions["pos"].reports
    low = reports.low_stock_products()
    out = reports.out_of_stock_products()

    if not low and not out:
        click.echo("PASS No products below their reorder threshold.")
        return

    for product in out:
        click.echo(f"OUT   {product.name:<40} stock=0 min={product.min_stock}")
    for product in low:
        click.echo(f"LOW   {product.name:<40} stock={product.stock} min={product.min_stock}")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)
