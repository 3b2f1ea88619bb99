# Overview: Flask CLI command groups for bootstrap, demo data and inspection.

# backend/kasir/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--username superadmin] [--password admin]
#   Create tables (if missing) and the first super admin. Idempotent.
# - python -m flask system seed-demo
#   Two demo vendors with categories, products, customers, promos and users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Vendor management (MULTI-TENANT):
# - python -m flask vendors list
# - python -m flask vendors create --name "Kopi Senja" --owner "Budi"
#
# Users:
# - python -m flask users list [--vendor-id 1]
# - python -m flask users create --username kasir1 --name "Kasir" --role cashier --vendor-id 1

from datetime import date

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Vendor
from .models.auth import ROLE_CASHIER, ROLE_SUPER_ADMIN, ROLE_VENDOR_ADMIN, ROLES
from .services import catalog_service, customer_service, promotion_service, user_service, vendor_service
from .services.tenant_service import ActorContext
from .validation import ConflictError, ValidationError

# CLI commands act as the system itself
SYSTEM_ACTOR = ActorContext(user_id=None, role=ROLE_SUPER_ADMIN, username="cli")

DEMO_PASSWORD = "123"

DEMO_VENDORS = [
    {
        "vendor": {
            "name": "Kopi Senja Utama",
            "address": "Jl. Sudirman No. 10, Jakarta",
            "phone": "08123456789",
            "owner_name": "Bapak Budi",
            "subscription_start": date(2023, 1, 1),
            "subscription_end": date(date.today().year + 1, 1, 1),
            "commission_rate_bps": 500,
            "logo_url": "https://cdn-icons-png.flaticon.com/512/2935/2935413.png",
        },
        "categories": ["Kopi", "Non-Kopi", "Cemilan"],
        "products": [
            {"name": "Kopi Susu Gula Aren", "category": "Kopi", "price": 28000, "stock": 50, "color": "bg-amber-100",
             "description": "Espresso house blend dipadukan dengan susu segar dan gula aren asli yang legit."},
            {"name": "Americano Dingin", "category": "Kopi", "price": 22000, "stock": 80, "color": "bg-stone-200",
             "description": "Espresso double shot dengan air mineral dingin dan es batu kristal."},
            {"name": "Matcha Latte Premium", "category": "Non-Kopi", "price": 32000, "stock": 30, "color": "bg-green-100",
             "description": "Bubuk matcha premium Jepang diaduk sempurna dengan susu steam yang creamy."},
        ],
        "customers": [
            {"name": "Budi Santoso", "phone": "081234567890", "email": "budi@example.com",
             "notes": "Suka kopi tidak terlalu manis"},
        ],
        "promotions": [
            {"code": "HEMAT10", "name": "Diskon 10%", "promo_type": "PERCENTAGE", "value": 10, "min_spend": 50000},
        ],
        "users": [
            {"username": "owner1", "name": "Owner Kopi", "role": ROLE_VENDOR_ADMIN},
            {"username": "kasir1", "name": "Kasir Kopi", "role": ROLE_CASHIER},
        ],
    },
    {
        "vendor": {
            "name": "Burger Blenger Cabang 2",
            "address": "Jl. Kemang Raya No. 55, Jakarta",
            "phone": "08198765432",
            "owner_name": "Ibu Susi",
            "subscription_start": date(2023, 6, 15),
            "subscription_end": None,  # set to today + 5 days when seeding
            "commission_rate_bps": 800,
            "logo_url": "https://cdn-icons-png.flaticon.com/512/3075/3075977.png",
        },
        "categories": ["Makanan Berat", "Cemilan", "Minuman"],
        "products": [
            {"name": "Cheeseburger Deluxe", "category": "Makanan Berat", "price": 45000, "stock": 20,
             "color": "bg-yellow-100", "description": "Daging sapi australia dengan keju cheddar leleh."},
            {"name": "Kentang Goreng BBQ", "category": "Cemilan", "price": 25000, "stock": 50,
             "color": "bg-orange-50", "description": "Kentang goreng renyah dengan bumbu BBQ spesial."},
            {"name": "Lemon Tea Jumbo", "category": "Minuman", "price": 15000, "stock": 100,
             "color": "bg-blue-100", "description": "Teh lemon segar ukuran jumbo."},
        ],
        "customers": [
            {"name": "Siti Aminah", "phone": "089876543210", "email": "siti@example.com",
             "notes": "Member VIP Burger"},
        ],
        "promotions": [
            {"code": "BURGER5RB", "name": "Potongan 5 Ribu", "promo_type": "FIXED", "value": 5000, "min_spend": 30000},
        ],
        "users": [
            {"username": "owner2", "name": "Owner Burger", "role": ROLE_VENDOR_ADMIN},
        ],
    },
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--username', default='superadmin', help='Super admin username')
@click.option('--name', default='System Owner', help='Super admin display name')
@click.option('--password', default='admin', help='Super admin password')
@with_appcontext
def init_system(username, name, password):
    """
    Create missing tables and the first super admin.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Kasir...")
    db.create_all()

    existing = db.session.query(User).filter_by(role=ROLE_SUPER_ADMIN).first()
    if existing:
        click.echo(f"PASS Super admin already exists: {existing.username}")
        return

    user = user_service.create_user(
        SYSTEM_ACTOR, {"username": username, "name": name, "password": password, "role": ROLE_SUPER_ADMIN}
    )
    click.echo(f"PASS Created super admin: {user.username} (ID: {user.id})")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Load the two demo vendors. Vendors that already exist by name are skipped."""
    db.create_all()

    for spec in DEMO_VENDORS:
        vendor_data = dict(spec["vendor"])
        if db.session.query(Vendor).filter_by(name=vendor_data["name"]).first():
            click.echo(f"SKIP Vendor exists: {vendor_data['name']}")
            continue
        if vendor_data["subscription_end"] is None:
            vendor_data["subscription_end"] = date.fromordinal(date.today().toordinal() + 5)

        vendor = vendor_service.create_vendor(SYSTEM_ACTOR, vendor_data)
        actor = SYSTEM_ACTOR.entering(vendor.id)

        for category in spec["categories"]:
            catalog_service.add_category(actor, category)
        for default in vendor_service.DEFAULT_VENDOR_CATEGORIES:
            if default not in spec["categories"]:
                catalog_service.remove_category(actor, default)

        for product in spec["products"]:
            catalog_service.create_product(actor, dict(product))
        for customer in spec["customers"]:
            customer_service.create_customer(actor, dict(customer))
        for promo in spec["promotions"]:
            promotion_service.create_promotion(actor, dict(promo))
        for user in spec["users"]:
            user_service.create_user(actor, {**user, "password": DEMO_PASSWORD, "vendor_id": vendor.id})

        click.echo(f"PASS Seeded vendor {vendor.name} (ID: {vendor.id})")

    click.echo(f"DONE Demo users share the password '{DEMO_PASSWORD}'")


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


@click.group('vendors')
def vendors_group():
    """Vendor (tenant) management commands."""


@vendors_group.command('list')
@with_appcontext
def list_vendors_cli():
    """List all vendors with subscription state and revenue."""
    vendors = vendor_service.list_vendors(SYSTEM_ACTOR)
    if not vendors:
        click.echo("No vendors found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<30} {'Status':<10} {'Subscription':<14} {'Revenue':>14}")
    click.echo("=" * 90)
    for v in vendors:
        click.echo(
            f"{v['id']:<5} {v['name'][:30]:<30} {v['status']:<10} {v['subscription_status']:<14} {v['total_revenue']:>14}"
        )
    click.echo("=" * 90 + "\n")


@vendors_group.command('create')
@click.option('--name', required=True, help='Vendor name')
@click.option('--owner', 'owner_name', help='Owner name')
@click.option('--phone', help='Phone number')
@click.option('--address', help='Address')
@with_appcontext
def create_vendor_cli(name, owner_name, phone, address):
    """Create a vendor with the default category list."""
    vendor = vendor_service.create_vendor(
        SYSTEM_ACTOR, {"name": name, "owner_name": owner_name, "phone": phone, "address": address}
    )
    click.echo(f"PASS Created vendor: {vendor.name} (ID: {vendor.id})")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--vendor-id', type=int, help='Vendor ID (required for vendor_admin and cashier)')
@with_appcontext
def create_user_cli(username, name, password, role, vendor_id):
    """Create a user."""
    try:
        user = user_service.create_user(
            SYSTEM_ACTOR,
            {"username": username, "name": name, "password": password, "role": role, "vendor_id": vendor_id},
        )
    except (ValidationError, ConflictError, LookupError) as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, role: {user.role}, vendor: {user.vendor_id})")


@users_group.command('list')
@click.option('--vendor-id', type=int, help='Filter by vendor ID')
@with_appcontext
def list_users_cli(vendor_id):
    """List all users with their roles."""
    actor = SYSTEM_ACTOR.entering(vendor_id) if vendor_id else SYSTEM_ACTOR
    users = user_service.list_users(actor)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Vendor':<8} {'Username':<20} {'Role':<14} {'Active':<8} {'Name'}")
    click.echo("=" * 80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        vendor_str = str(user.vendor_id) if user.vendor_id else "-"
        click.echo(f"{user.id:<5} {vendor_str:<8} {user.username:<20} {user.role:<14} {active_str:<8} {user.name}")
    click.echo("=" * 80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(vendors_group)
    app.cli.add_command(users_group)
