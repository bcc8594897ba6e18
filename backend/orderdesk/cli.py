# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/orderdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (development; use `flask db upgrade` for managed schemas).
# - python -m flask system seed-demo
#   Owner, sales rep, lorry driver, one customer, two products with several batches.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username rep1 --full-name "Rep One" --password "Password123!" --role sales_rep
#   Create a user (prompts if options are omitted).
#
# Batch inspection:
# - python -m flask batches list --product-id 1
#   Allocatable batches of a product in FEFO order.

import click
from datetime import date, timedelta
from flask.cli import with_appcontext

from .extensions import db
from .models import Customer, Product, ProductBatch, User
from .models.auth import ROLE_LORRY_DRIVER, ROLE_OWNER, ROLE_SALES_REP, USER_ROLES
from .services.auth_service import create_user, PasswordValidationError
from .services.batch_service import list_product_batches

DEMO_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed demo data for manual testing (idempotent).

    Creates:
    - Users: owner, rep, driver (password "Password123!")
    - One customer
    - Two products; the first with three batches of different expiry,
      the second with one dated and one undated batch
    """
    click.echo("START Seeding demo data...")

    users = {}
    for username, full_name, role in (
        ("owner", "Demo Owner", ROLE_OWNER),
        ("rep", "Demo Sales Rep", ROLE_SALES_REP),
        ("driver", "Demo Lorry Driver", ROLE_LORRY_DRIVER),
    ):
        user = db.session.query(User).filter_by(username=username).first()
        if not user:
            user = create_user(username, full_name, DEMO_PASSWORD, role)
            click.echo(f"PASS Created user {username} ({role})")
        users[username] = user

    if not db.session.query(Customer).first():
        db.session.add(Customer(
            name="Corner Shop",
            contact_person="A. Perera",
            phone="0771234567",
            city="Colombo",
            registered_by_user_id=users["rep"].id,
        ))
        db.session.commit()
        click.echo("PASS Created customer Corner Shop")

    if not db.session.query(Product).first():
        today = date.today()
        soap = Product(name="Soap 100g", category="Household", unit_price_cents=10000)
        rice = Product(name="Rice 5kg", category="Grocery", unit_price_cents=150000)
        db.session.add_all([soap, rice])
        db.session.flush()

        batches = [
            (soap, "SOAP-A", today + timedelta(days=30), 5),
            (soap, "SOAP-B", today + timedelta(days=90), 3),
            (soap, "SOAP-C", today + timedelta(days=180), 20),
            (rice, "RICE-A", today + timedelta(days=365), 10),
            (rice, "RICE-X", None, 10),
        ]
        for product, number, expiry, qty in batches:
            db.session.add(ProductBatch(
                product_id=product.id,
                batch_number=number,
                expiry_date=expiry,
                received_date=today,
                selling_price_cents=product.unit_price_cents,
                initial_quantity=qty,
                current_quantity=qty,
            ))
        db.session.commit()
        click.echo(f"PASS Created 2 products with {len(batches)} batches")

    click.echo("DONE Demo data ready")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Full name':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.full_name:<30} {active_str:<8} {user.role}")

    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(USER_ROLES)), prompt=True, help='Role')
@click.option('--area', default=None, help='Sales area')
@with_appcontext
def create_user_cli(username, full_name, password, role, area):
    """
    Create a new user.

    Password must be at least 8 characters.
    """
    try:
        user = create_user(username, full_name, password, role, area=area)
        click.echo(f"PASS Created user {user.username} (ID: {user.id}, role: {user.role})")
    except PasswordValidationError as e:
        click.echo(f"FAIL {e}")
    except ValueError as e:
        click.echo(f"FAIL {e}")


@click.group('batches')
def batches_group():
    """Batch inspection commands."""


@batches_group.command('list')
@click.option('--product-id', type=int, required=True, help='Product ID')
@with_appcontext
def list_batches(product_id):
    """List a product's allocatable batches in FEFO order."""
    batches = list_product_batches(product_id)

    if not batches:
        click.echo("No batches with stock.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<6} {'Batch':<20} {'Expiry':<12} {'Qty':<8} {'Price'}")
    click.echo("="*70)

    for batch in batches:
        expiry = batch.expiry_date.isoformat() if batch.expiry_date else "-"
        click.echo(
            f"{batch.id:<6} {batch.batch_number:<20} {expiry:<12} "
            f"{batch.current_quantity:<8} {batch.selling_price_cents / 100:.2f}"
        )

    click.echo("="*70 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(batches_group)
