# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask db upgrade
#   Apply migrations (creates the schema on a fresh database).
# - python -m flask system init [--tax-rate 5]
#   Idempotent: seeds invoiceSequence=0 and taxRate if missing.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Settings:
# - python -m flask settings show
# - python -m flask settings set-tax-rate 5
#
# Ledger inspection/repair:
# - python -m flask ledger verify
#   List products whose current_stock differs from SUM(stock_transactions.qty).
# - python -m flask ledger adjust --product-id 1 --delta -2 --note "damaged"
#   Book a manual stock adjustment.
#
# Reports:
# - python -m flask reports summary [--start 2025-01-01] [--end 2025-01-31]
# - python -m flask reports low-stock [--limit 20]
# - python -m flask reports sweep-cache
#   Remove expired report cache entries.

import json

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .services import inventory_service, reporting_service, settings_service
from .time_utils import parse_iso_datetime, parse_range_end


def _fail(exc: LedgerError):
    raise click.ClickException(f"{exc.kind}: {exc} {json.dumps(exc.details, default=str)}")


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--tax-rate', default=None, help='Tax percentage to seed (defaults to DEFAULT_TAX_RATE)')
@with_appcontext
def init_system(tax_rate):
    """
    Seed the settings the ledger depends on.

    Existing values are left untouched; the invoice counter is never reset.
    """
    click.echo("START Initializing settings...")
    try:
        created = settings_service.ensure_default_settings(tax_rate=tax_rate)
    except LedgerError as exc:
        _fail(exc)

    if created:
        click.echo(f"PASS Created settings: {', '.join(created)}")
    else:
        click.echo("PASS Settings already initialized")


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

    settings_service.ensure_default_settings()
    reporting_service.invalidate_reports()
    click.echo("PASS Database reset complete")


@click.group('settings')
def settings_group():
    """Tax rate and invoice counter."""


@settings_group.command('show')
@with_appcontext
def show_settings():
    click.echo(f"taxRate:         {settings_service.get_tax_rate()}")
    click.echo(f"invoiceSequence: {settings_service.get_invoice_sequence()}")


@settings_group.command('set-tax-rate')
@click.argument('rate')
@with_appcontext
def set_tax_rate(rate):
    try:
        parsed = settings_service.set_tax_rate(rate)
    except LedgerError as exc:
        _fail(exc)
    click.echo(f"PASS taxRate = {parsed}")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection and repair."""


@ledger_group.command('verify')
@with_appcontext
def verify_ledger():
    """Exit non-zero if any product's stock disagrees with its journal."""
    discrepancies = inventory_service.find_ledger_discrepancies()
    if not discrepancies:
        click.echo("PASS current_stock matches the stock journal for every product")
        return

    for row in discrepancies:
        click.echo(
            f"FAIL product {row['product_id']} ({row['sku']}): "
            f"current_stock={row['current_stock']} ledger={row['ledger_balance']}"
        )
    raise click.exceptions.Exit(1)


@ledger_group.command('adjust')
@click.option('--product-id', type=int, required=True)
@click.option('--delta', type=int, required=True, help='Signed quantity change')
@click.option('--note', default=None)
@click.option('--actor-id', type=int, default=None)
@with_appcontext
def adjust(product_id, delta, note, actor_id):
    try:
        tx = inventory_service.adjust_stock(
            product_id=product_id, qty_delta=delta, note=note, actor_id=actor_id
        )
    except LedgerError as exc:
        _fail(exc)
    click.echo(f"PASS Adjustment {tx.id}: product {product_id} {delta:+d}")


@click.group('reports')
def reports_group():
    """Aggregate reports and cache maintenance."""


@reports_group.command('summary')
@click.option('--start', default=None, help='ISO-8601 date or datetime')
@click.option('--end', default=None, help='ISO-8601 date or datetime (a plain date covers the whole day)')
@with_appcontext
def summary(start, end):
    try:
        report = reporting_service.summary(parse_iso_datetime(start), parse_range_end(end))
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    click.echo(json.dumps(report, indent=2))


@reports_group.command('low-stock')
@click.option('--limit', type=int, default=20)
@with_appcontext
def low_stock(limit):
    try:
        report = reporting_service.low_stock(limit)
    except LedgerError as exc:
        _fail(exc)
    click.echo(json.dumps(report, indent=2))


@reports_group.command('sweep-cache')
@with_appcontext
def sweep_cache():
    removed = reporting_service.get_report_cache().cleanup()
    click.echo(f"PASS Removed {removed} expired report cache entries")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(reports_group)
