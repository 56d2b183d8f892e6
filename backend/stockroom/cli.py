# Overview: Flask CLI command groups for bootstrap, development tokens and ledger checks.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Authentication:
# - python -m flask auth issue-token user-123
#   Print a bearer token for an external user id.
#
# Stock ledger:
# - python -m flask stock check [--company-id 1]
#   Replay movement logs and report stock levels that disagree with them.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import auth_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables from the model metadata."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('auth')
def auth_group():
    """Development authentication helpers."""


@auth_group.command('issue-token')
@click.argument('user_id')
@with_appcontext
def issue_token(user_id):
    """Print a signed bearer token for USER_ID."""
    click.echo(auth_service.issue_token(user_id))


@click.group('stock')
def stock_group():
    """Stock ledger inspection."""


@stock_group.command('check')
@click.option('--company-id', type=int, default=None, help='Limit the check to one company')
@with_appcontext
def check_ledger(company_id):
    """
    Compare stock levels with a replay of their movement logs.

    Exits with status 1 when any pair has drifted.
    """
    drift = stock_service.find_ledger_drift(company_id)
    if not drift:
        click.echo("PASS Stock levels match their movement logs.")
        return

    for entry in drift:
        click.echo(
            f"FAIL product={entry['productId']} warehouse={entry['warehouseId']} "
            f"level={entry['actual']} replay={entry['expected']}"
        )
    raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(auth_group)
    app.cli.add_command(stock_group)
