# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/lotpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--branch "Main Branch"] [--admin admin]
#   Idempotent bootstrap: default roles and grants, a branch, a Super Admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users and tokens:
# - python -m flask users list
# - python -m flask users create --username cashier1 --role Cashier --branch-id 1
# - python -m flask users issue-token cashier1
#   Prints a bearer token once; only its hash is stored.
#
# Permissions:
# - python -m flask perms list [--role Cashier] [--category SALES]
# - python -m flask perms grant Cashier sale_cancel
# - python -m flask perms revoke Cashier sale_cancel
#
# Ledger maintenance:
# - python -m flask ledger repair [--party-type customer] [--party-id 7]
#   Rebuild running balances and cached party balances from the entries.
#
# Inventory:
# - python -m flask batches receive --product-id 3 --branch-id 1 --quantity 25 [--identifier LOT-7]
# - python -m flask batches list --product-id 3 [--branch-id 1]

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import DomainError
from .models import Branch, Role, User
from .permissions import (
    PermissionCategory,
    SUPER_ADMIN_ROLE,
    get_all_permission_codes,
    get_permission_definition,
    get_permissions_by_category,
)
from .services import batch_ledger, ledger_service, permission_service, session_service
from .services.permission_service import RoleConfigError
from lotpos.time_utils import parse_iso_datetime, to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--branch', 'branch_name', default='Main Branch', help='Default branch name')
@click.option('--branch-code', default='MAIN', help='Default branch code')
@click.option('--admin', 'admin_username', default='admin', help='Super Admin username')
@with_appcontext
def init_system(branch_name, branch_code, admin_username):
    """
    Initialize the system: roles, default branch and a Super Admin user.

    Safe to re-run; existing rows are kept.
    """
    click.echo("START Initializing system...")

    roles_created, grants_created = permission_service.ensure_default_roles()
    click.echo(f"PASS Roles: {roles_created} created, {grants_created} permission grants added")

    branch = db.session.query(Branch).first()
    if not branch:
        branch = Branch(name=branch_name, code=branch_code, is_active=True)
        db.session.add(branch)
        db.session.commit()
        click.echo(f"PASS Created default branch: {branch.name} (ID: {branch.id})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    admin = db.session.query(User).filter_by(username=admin_username).first()
    if admin:
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
    else:
        role = db.session.query(Role).filter_by(name=SUPER_ADMIN_ROLE).first()
        admin = User(username=admin_username, full_name="Administrator", branch_id=branch.id, role_id=role.id)
        db.session.add(admin)
        db.session.commit()
        click.echo(f"PASS Created user: {admin_username} with role '{SUPER_ADMIN_ROLE}'")

    click.echo("\nDONE System initialized. Issue a token with:")
    click.echo(f"   python -m flask users issue-token {admin_username}")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--full-name', default=None, help='Display name')
@click.option('--role', 'role_name', prompt=True, help='Role name (e.g. Cashier)')
@click.option('--branch-id', type=int, default=None, help='Assigned branch (omit for head office)')
@with_appcontext
def create_user_cli(username, full_name, role_name, branch_id):
    """Create an operator account."""
    if db.session.query(User).filter_by(username=username).first():
        click.echo(f"FAIL User '{username}' already exists")
        return

    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        click.echo(f"FAIL Role '{role_name}' not found. Run 'python -m flask system init' first.")
        return

    if branch_id is not None and not db.session.get(Branch, branch_id):
        click.echo(f"FAIL Branch ID {branch_id} not found")
        return

    user = User(username=username, full_name=full_name, role_id=role.id, branch_id=branch_id)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {username} (ID: {user.id}) with role '{role.name}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles and branches."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Branch':<8} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        branch_str = str(user.branch_id) if user.branch_id is not None else "-"
        role_str = user.role.name if user.role else "none"
        click.echo(f"{user.id:<5} {user.username:<20} {branch_str:<8} {active_str:<8} {role_str}")

    click.echo("="*80 + "\n")


@users_group.command('issue-token')
@click.argument('username')
@with_appcontext
def issue_token_cli(username):
    """Issue a bearer token for a user. The token is shown once."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    try:
        session, token = session_service.issue_token(user.id)
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(f"PASS Token for '{username}' (expires {to_utc_z(session.expires_at)}):")
    click.echo(token)


@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@click.option('--category', type=click.Choice([
    PermissionCategory.SALES, PermissionCategory.PRODUCTION, PermissionCategory.ACCOUNTING, PermissionCategory.SYSTEM,
]), help='Filter by category')
@with_appcontext
def list_permissions_cli(role, category):
    """List all permissions, optionally filtered by role or category."""
    if role:
        role_obj = db.session.query(Role).filter_by(name=role).first()
        if not role_obj:
            click.echo(f"FAIL Role '{role}' not found")
            return
        codes = role_obj.permission_codes()
        click.echo(f"\nPermissions for role '{role}' ({len(codes)}):")
    elif category:
        codes = [perm[0].value for perm in get_permissions_by_category(category)]
    else:
        codes = get_all_permission_codes()

    for code in codes:
        definition = get_permission_definition(code)
        name = definition["name"] if definition else "(unknown)"
        click.echo(f"  {code:<28} {name}")


@perms_group.command('grant')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def grant_permission_cli(role_name, permission_code):
    """Grant a permission to a role."""
    try:
        if permission_service.grant_permission(role_name, permission_code):
            click.echo(f"PASS Granted '{permission_code}' to role '{role_name}'")
        else:
            click.echo(f"WARN  Role '{role_name}' already has '{permission_code}'")
    except RoleConfigError as e:
        click.echo(f"FAIL Error: {str(e)}")


@perms_group.command('revoke')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def revoke_permission_cli(role_name, permission_code):
    """Revoke a permission from a role."""
    try:
        if permission_service.revoke_permission(role_name, permission_code):
            click.echo(f"PASS Revoked '{permission_code}' from role '{role_name}'")
        else:
            click.echo(f"WARN  Permission '{permission_code}' was not granted to '{role_name}'")
    except RoleConfigError as e:
        click.echo(f"FAIL Error: {str(e)}")


@click.group('ledger')
def ledger_group():
    """Customer/supplier ledger maintenance."""


@ledger_group.command('repair')
@click.option('--party-type', type=click.Choice(sorted(ledger_service.PARTY_MODELS)), default=None,
              help='Limit to one party type')
@click.option('--party-id', type=int, default=None, help='Limit to one party (requires --party-type)')
@with_appcontext
def repair_ledger_cli(party_type, party_id):
    """Recompute running balances and cached balances from ledger entries."""
    if party_id is not None and party_type is None:
        click.echo("FAIL --party-id requires --party-type")
        return

    party_types = [party_type] if party_type else sorted(ledger_service.PARTY_MODELS)
    repaired = 0
    for ptype in party_types:
        ids = [party_id] if party_id is not None else ledger_service.party_ids(ptype)
        for pid in ids:
            try:
                balance = ledger_service.recalculate_balance(ptype, pid)
            except DomainError as e:
                click.echo(f"FAIL {ptype} {pid}: {e.message}")
                continue
            repaired += 1
            click.echo(f"PASS {ptype} {pid}: balance {balance}")

    click.echo(f"DONE Recalculated {repaired} ledger(s)")


@click.group('batches')
def batches_group():
    """Inventory batch (stock lot) commands."""


@batches_group.command('receive')
@click.option('--product-id', type=int, required=True, help='Stocked product ID')
@click.option('--branch-id', type=int, required=True, help='Receiving branch ID')
@click.option('--quantity', required=True, help='Quantity received (up to 3 decimals)')
@click.option('--identifier', default=None, help='Supplier lot / batch identifier')
@click.option('--unit-cost', default=None, help='Cost per unit')
@click.option('--received-at', default=None, help='ISO-8601 receipt time (FIFO key); defaults to now')
@with_appcontext
def receive_batch_cli(product_id, branch_id, quantity, identifier, unit_cost, received_at):
    """Record a new in-stock batch."""
    try:
        created_at = parse_iso_datetime(received_at)
    except ValueError:
        click.echo("FAIL --received-at must be an ISO-8601 datetime")
        return

    try:
        batch = batch_ledger.receive_batch(
            product_id=product_id,
            branch_id=branch_id,
            quantity_received=quantity,
            batch_identifier=identifier,
            unit_cost=unit_cost,
            created_at=created_at,
        )
    except (DomainError, ValueError) as e:
        click.echo(f"FAIL {getattr(e, 'message', str(e))}")
        return

    click.echo(f"PASS Received batch {batch.id}: {batch.initial_quantity} of product {product_id} at branch {branch_id}")


@batches_group.command('list')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--branch-id', type=int, default=None, help='Limit to one branch')
@click.option('--all', 'include_depleted', is_flag=True, help='Include depleted batches')
@with_appcontext
def list_batches_cli(product_id, branch_id, include_depleted):
    """List batches in FIFO order."""
    batches = batch_ledger.list_batches(product_id, branch_id, include_depleted=include_depleted)
    if not batches:
        click.echo("No batches found.")
        return

    click.echo(f"{'ID':<6} {'Branch':<8} {'Identifier':<16} {'Remaining':>12} {'Initial':>12}  {'Status':<10} {'Received'}")
    for b in batches:
        click.echo(
            f"{b.id:<6} {b.branch_id:<8} {(b.batch_identifier or '-'):<16} "
            f"{str(b.remaining_quantity):>12} {str(b.initial_quantity):>12}  {b.status:<10} {to_utc_z(b.created_at)}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(batches_group)
