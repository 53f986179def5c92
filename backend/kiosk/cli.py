# Overview: Flask CLI command groups for bootstrap, inspection, and seeding.

# backend/kiosk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables (idempotent). Use `flask db upgrade` for migrated deployments.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired or revoked sessions created more than 30 days ago.
#
# User inspection/bootstrap:
# - python -m flask users create-admin --name "Admin User" --phone 1234567890 --country Iraq
#   Create an administrator (prompts for the password). The only way to create the first admin.
# - python -m flask users list [--role ADMIN]
#   List accounts with balance and outstanding debt.
#
# Demo data:
# - python -m flask seed demo
#   Add a few products per country if the catalog is empty.

import click
from flask.cli import with_appcontext

from .errors import KioskError
from .extensions import db
from .models import Product, User
from .models.users import ROLE_ADMIN, VALID_COUNTRIES, VALID_ROLES
from .services.auth_service import create_user
from .services.catalog_service import create_product
from .services.session_service import cleanup_expired_sessions


DEMO_PRODUCTS = (
    {"name": "Dates (1kg)", "description": "Medjool dates", "price_cents": 450, "quantity": 40, "country": "Iraq"},
    {"name": "Black Tea", "description": "Loose leaf, 500g", "price_cents": 325, "quantity": 25, "country": "Iraq"},
    {"name": "Cardamom Coffee", "description": "Ground, 250g", "price_cents": 575, "quantity": 8, "country": "Iraq"},
    {"name": "Aleppo Soap", "description": "Laurel oil soap bar", "price_cents": 299, "quantity": 30, "country": "Syria"},
    {"name": "Za'atar", "description": "Herb blend, 200g", "price_cents": 250, "quantity": 50, "country": "Syria"},
    {"name": "Pistachios", "description": "Roasted, 300g", "price_cents": 899, "quantity": 6, "country": "Syria"},
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create any missing tables. Safe to run repeatedly."""
    click.echo("START Initializing kiosk database...")
    db.create_all()
    user_count = db.session.query(User).count()
    admin_count = db.session.query(User).filter_by(role=ROLE_ADMIN).count()
    click.echo(f"PASS Schema ready ({user_count} users, {admin_count} administrators)")
    if admin_count == 0:
        click.echo("WARN No administrator yet. Run 'python -m flask users create-admin'.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create-admin' to add an administrator.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Purge stale session tokens."""
    deleted = cleanup_expired_sessions()
    click.echo(f"PASS Removed {deleted} stale sessions")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--phone', prompt=True, help='Phone number (10-15 digits)')
@click.option('--country', type=click.Choice(VALID_COUNTRIES), prompt=True, help='Country')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, phone, country, password):
    """
    Create an administrator account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit
    """
    try:
        user = create_user(name=name, phone=phone, password=password, country=country, role=ROLE_ADMIN)
    except KioskError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created administrator {user.name} (ID: {user.id}, phone: {user.phone})")


@users_group.command('list')
@click.option('--role', type=click.Choice(VALID_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with balance and outstanding debt."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<24} {'Phone':<17} {'Country':<8} {'Role':<6} {'Balance':>12} {'Debt':>12}")
    click.echo("="*90)

    for user in users:
        click.echo(
            f"{user.id:<5} {user.name[:24]:<24} {user.phone:<17} {user.country:<8} {user.role:<6} "
            f"{user.balance_cents / 100:>12.2f} {user.outstanding_debt_cents / 100:>12.2f}"
        )

    click.echo("="*90 + "\n")


@click.group('seed')
def seed_group():
    """Demo data commands."""


@seed_group.command('demo')
@with_appcontext
def seed_demo():
    """Add demo products for every country. Skipped when products already exist."""
    if db.session.query(Product).count() > 0:
        click.echo("SKIP Catalog already has products")
        return

    for payload in DEMO_PRODUCTS:
        product = create_product(dict(payload))
        click.echo(f"PASS Created {product.country} product: {product.name} (ID: {product.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(seed_group)
