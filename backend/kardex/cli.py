# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/kardex/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default units of measure and locations.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory maintenance:
# - python -m flask inventory rebuild-cache
#   Recompute every product's cached stock from the kardex.
# - python -m flask inventory locations
#   List locations (the first 'store' is the default selling location).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Location
from .services import inventory_service
from .services.reference_data_service import seed_reference_data


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the kardex database.

    Creates:
    - All tables (no-op for existing ones)
    - Units of measure: pz, kg, lt, cja, paq, key
    - Locations: warehouse, store, display, waste, digital vault
    """
    click.echo("START Initializing kardex...")

    db.create_all()
    click.echo("PASS Schema ready")

    created = seed_reference_data()
    click.echo(f"PASS Units of measure created: {created['uoms']}")
    click.echo(f"PASS Locations created: {created['locations']}")

    if inventory_service.get_default_selling_location() is None:
        click.echo("WARN  No 'store' location exists; checkout will fail until one is created")

    click.echo("DONE Kardex initialized")


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


@click.group('inventory')
def inventory_group():
    """Inventory inspection and maintenance commands."""


@inventory_group.command('rebuild-cache')
@with_appcontext
def rebuild_cache():
    """Recompute ProductPrice.stock_quantity for every product from the ledger."""
    changed = inventory_service.rebuild_stock_cache()
    click.echo(f"PASS Stock cache rebuilt ({changed} product(s) corrected)")


@inventory_group.command('locations')
@with_appcontext
def list_locations():
    """List all locations."""
    locations = db.session.query(Location).order_by(Location.id).all()
    if not locations:
        click.echo("No locations found. Run 'python -m flask system init'.")
        return

    default = inventory_service.get_default_selling_location()
    click.echo(f"\n{'ID':<5} {'Name':<25} {'Type':<12} {'Virtual':<8}")
    click.echo("-" * 52)
    for loc in locations:
        marker = " *" if default is not None and loc.id == default.id else ""
        click.echo(f"{loc.id:<5} {loc.name:<25} {loc.type:<12} {str(loc.is_virtual):<8}{marker}")
    click.echo("\n* default selling location")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
