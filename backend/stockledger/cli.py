# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask accounts list
#   List accounts with active status.
# - python -m flask accounts create --name "Shop"
#   Create an account, seed default locations, print its API token once.
# - python -m flask accounts rotate-token --account-id 1
#   Issue a new API token; the old one stops working.
# - python -m flask accounts ensure-defaults --account-id 1
#   Create any missing default locations (idempotent).
#
# Pricing:
# - python -m flask pricing reprice --account-id 1 --variant-id 5 --price 1990 --effective-at 2026-03-01T00:00:00Z
#   Apply an effective-dated price and recalculate snapshots (use --model-id for a whole model).
#
# Inventory:
# - python -m flask inventory on-hand --account-id 1 [--location-id 2] [--as-of 2026-03-01T00:00:00Z]
#   Print quantity on hand per variant and location.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Account
from .services import account_service, directory_service, inventory_service, pricing_service
from .validation import coerce_datetime


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables from model metadata."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate every table."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('accounts')
def accounts_group():
    """Account management commands."""


@accounts_group.command('list')
@with_appcontext
def list_accounts():
    """List all accounts."""
    accounts = db.session.query(Account).order_by(Account.id.asc()).all()

    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'ID':<5} {'Name':<40} {'Active'}")
    click.echo("="*60)
    for account in accounts:
        active_str = "Yes" if account.is_active else "No"
        click.echo(f"{account.id:<5} {account.name:<40} {active_str}")
    click.echo("="*60 + "\n")


@accounts_group.command('create')
@click.option('--name', required=True, help='Account name')
@with_appcontext
def create_account_cli(name):
    """Create an account with its default locations."""
    account, token = account_service.create_account(name)
    created = directory_service.ensure_default_locations(account.id)
    db.session.commit()

    click.echo(f"PASS Created account: {account.name} (ID: {account.id})")
    click.echo(f"PASS Seeded {len(created)} default locations")
    click.echo(f"\nAPI token (shown once): {token}\n")


@accounts_group.command('rotate-token')
@click.option('--account-id', type=int, required=True, help='Account ID')
@with_appcontext
def rotate_token_cli(account_id):
    """Issue a new API token for an account."""
    try:
        token = account_service.rotate_token(account_id)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS New API token for account {account_id}: {token}")


@accounts_group.command('ensure-defaults')
@click.option('--account-id', type=int, required=True, help='Account ID')
@with_appcontext
def ensure_defaults_cli(account_id):
    """Create any missing default locations for an account."""
    try:
        account_service.require_account(account_id)
        created = directory_service.ensure_default_locations(account_id)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return

    if not created:
        click.echo("PASS All default locations already exist")
        return
    for location in created:
        click.echo(f"PASS Created location: {location.name} ({location.type}, ID: {location.id})")


@click.group('pricing')
def pricing_group():
    """Effective-dated pricing commands."""


@pricing_group.command('reprice')
@click.option('--account-id', type=int, required=True, help='Account ID')
@click.option('--variant-id', type=int, help='Variant to reprice')
@click.option('--model-id', type=int, help='Product model to reprice (all variants)')
@click.option('--price', type=int, required=True, help='New unit price (minor units)')
@click.option('--effective-at', required=True, help='ISO-8601 timestamp the price applies from')
@with_appcontext
def reprice_cli(account_id, variant_id, model_id, price, effective_at):
    """Apply a price from a point in time and recalculate recorded snapshots."""
    if (variant_id is None) == (model_id is None):
        click.echo("FAIL Pass exactly one of --variant-id or --model-id")
        return

    try:
        if variant_id is not None:
            result = pricing_service.reprice_variant(account_id, variant_id, price, effective_at)
        else:
            result = pricing_service.reprice_model(account_id, model_id, price, effective_at)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(
        f"PASS Price {result['unit_price']} effective {result['effective_at']}: "
        f"{result['lines_recalculated']} lines, {result['postings_recalculated']} postings recalculated"
    )


@click.group('inventory')
def inventory_group():
    """Stock inspection commands."""


@inventory_group.command('on-hand')
@click.option('--account-id', type=int, required=True, help='Account ID')
@click.option('--variant-id', type=int, help='Filter by variant')
@click.option('--location-id', type=int, help='Filter by location')
@click.option('--as-of', help='ISO-8601 timestamp (inclusive)')
@with_appcontext
def on_hand_cli(account_id, variant_id, location_id, as_of):
    """Print quantity on hand per (variant, location)."""
    try:
        as_of_dt = coerce_datetime(as_of, "as_of", default_now=False) if as_of else None
        rows = inventory_service.get_stock_on_hand(
            account_id,
            variant_id=variant_id,
            location_id=location_id,
            as_of=as_of_dt,
        )
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    if not rows:
        click.echo("No stock on hand.")
        return

    click.echo(f"{'Variant':<10} {'Location':<10} {'Qty'}")
    for row in rows:
        click.echo(f"{row['variant_id']:<10} {row['location_id']:<10} {row['qty']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(accounts_group)
    app.cli.add_command(pricing_group)
    app.cli.add_command(inventory_group)
