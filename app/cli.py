import os
import click
from decimal import Decimal

from flask.cli import with_appcontext
from flask_migrate import upgrade as alembic_upgrade

from models import db
from models.product import Product
from app.services.orders import list_unreconciled_orders

DEMO_CATALOG = [
    # name, category, unit, price, original_price, rating
    ("Organic Bananas", "fruits", "per bunch", "2.49", "2.99", 4.7),
    ("Honeycrisp Apples", "fruits", "per lb", "3.99", None, 4.8),
    ("Baby Spinach", "vegetables", "5 oz", "3.49", None, 4.5),
    ("Vine Tomatoes", "vegetables", "per lb", "2.99", "3.49", 4.4),
    ("Whole Milk", "dairy", "1 gallon", "4.29", None, 4.6),
    ("Free-Range Eggs", "dairy", "1 dozen", "5.49", "6.29", 4.9),
    ("Sourdough Loaf", "bakery", "each", "6.00", None, 4.8),
    ("Atlantic Salmon Fillet", "meat-seafood", "per lb", "12.99", "14.99", 4.6),
    ("Sparkling Water", "beverages", "12 pack", "5.99", None, 4.3),
]


def _assert_safe_for_upgrade():
    # Prevent accidental prod upgrades unless explicitly allowed
    app_env = (os.getenv("APP_ENV") or "").lower()
    if app_env == "production":
        if (os.getenv("ALLOW_DB_MIGRATIONS") or "").lower() not in ("1", "true", "yes"):
            raise click.ClickException("Refusing to run DB migration in production without ALLOW_DB_MIGRATIONS=true")


@click.command("db-upgrade-safe")
@with_appcontext
def db_upgrade_safe():
    """Apply migrations to the configured database."""
    _assert_safe_for_upgrade()
    alembic_upgrade()
    click.echo("Database upgraded.")


@click.command("seed-catalog")
@click.option("--replace", is_flag=True, help="Delete existing products first")
@with_appcontext
def seed_catalog(replace):
    """Load a small demo grocery catalog."""
    db.create_all()
    if replace:
        Product.query.delete()
    created = 0
    for name, category, unit, price, original, rating in DEMO_CATALOG:
        if Product.query.filter_by(name=name).first():
            continue
        db.session.add(Product(
            name=name,
            category=category,
            unit=unit,
            price=Decimal(price),
            original_price=Decimal(original) if original else None,
            rating=rating,
            in_stock=True,
        ))
        created += 1
    db.session.commit()
    click.echo(f"Seeded {created} products.")


@click.command("list-unreconciled-orders")
@with_appcontext
def list_unreconciled():
    """Orders persisted without their line items."""
    orders = list_unreconciled_orders()
    if not orders:
        click.echo("No orders need reconciliation.")
        return
    for order in orders:
        click.echo(f"{order.id}\t{order.user_id}\t{order.total}\t{order.created_at}\t{order.reconciliation_note or ''}")


def register_cli(app):
    app.cli.add_command(db_upgrade_safe)
    app.cli.add_command(seed_catalog)
    app.cli.add_command(list_unreconciled)
