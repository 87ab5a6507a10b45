# Overview: Flask CLI command groups for bootstrap, staff accounts and stock corrections.

# backend/trendora/cli.py
# Usage, from backend/ with the virtualenv active and FLASK_APP=wsgi.py:
#   python -m flask <group> <command> [options]
#
# system:
# - python -m flask system init
#   Idempotent: creates missing tables and the default store settings row.
# - python -m flask system reset-db --yes
#   Development only: empty schema, all rows lost.
#
# users:
# - python -m flask users create --username admin --email admin@trendora.local --password "secret1" --role admin
#   Create a verified, active staff account (prompts if options are omitted).
# - python -m flask users list
#   List staff accounts with role and status.
#
# catalog:
# - python -m flask catalog adjust-stock SKU-123 25
#   Add (or with a negative delta remove) stock for a product.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product, User
from .models.accounts import STAFF_ROLES
from .services import auth_service, order_service, settings_service
from .services.stock_ledger_service import StockLedgerError
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables and the default settings row."""
    click.echo("START Initializing Trendora...")
    db.create_all()
    click.echo("PASS Tables ready")

    settings, created = settings_service.ensure_default_settings()
    if created:
        click.echo(f"PASS Created default settings for store: {settings.store_name}")
    else:
        click.echo(f"PASS Using existing settings for store: {settings.store_name}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table. Development databases only."""
    if not yes:
        click.confirm("WARN Every product, order and account will be deleted. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Schema recreated (empty). Run 'python -m flask system init' next.")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(STAFF_ROLES)), prompt=True, help='Role')
@click.option('--fullname', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, email, password, role, fullname):
    """
    Create a staff account that can log in immediately (verified, active).

    Password must be at least 6 characters.
    """
    try:
        user = auth_service.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            status="active",
            fullname=fullname,
            email_verified=True,
        )
        db.session.commit()
    except (ValidationError, ConflictError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created {user.role} '{user.username}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all staff accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Status':<10} {'Verified'}")
    click.echo("="*90)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} "
            f"{user.status:<10} {'yes' if user.email_verified else 'no'}"
        )
    click.echo("="*90 + "\n")


@click.group('catalog')
def catalog_group():
    """Catalog maintenance commands."""


@catalog_group.command('adjust-stock')
@click.argument('sku')
@click.argument('delta', type=int)
@with_appcontext
def adjust_stock(sku, delta):
    """Apply a signed stock DELTA to the product with SKU."""
    product = db.session.query(Product).filter_by(sku=sku).first()
    if not product:
        click.echo(f"FAIL Product with SKU {sku} not found")
        raise SystemExit(1)

    try:
        product = order_service.manage_stock(product.id, delta)
    except (StockLedgerError, ValidationError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS {product.sku} stock is now {product.stock}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
