# Overview: CLI command groups for serving, schema bootstrap, seeding and maintenance.

# backend/pos/cli.py
# Commands Legend:
# Standalone (console script installed with the package):
# - pos api [--host 0.0.0.0]
#   Run the development server on $PORT (default 8080).
# - pos migrate
#   Create all tables (idempotent). Use `flask db ...` for Alembic revisions.
# - pos seed
#   Insert the default payment methods and a demo owner (idempotent).
# - pos resetdb --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Through Flask (FLASK_APP=wsgi.py, run from the backend directory):
# - python -m flask system migrate | seed | reset-db --yes
# - python -m flask system reload-policy
#   Re-read the policy file here and tell every instance to reload over redis.

import click
from flask import current_app
from flask.cli import FlaskGroup, with_appcontext

from .errors import PosError
from .extensions import db
from .models import PaymentMethod, User, UserPayment, WriteContext
from .models.auth import ROLE_OWNER
from .services.auth_service import hash_password
from .services.policy_service import get_enforcer, publish_reload, redis_client_from_config

DEFAULT_PAYMENT_METHODS = (
    {"issuer": "default", "name": "Cash", "type": "cash", "payment_method": "cash", "payment_channel": "manual"},
    {"issuer": "iPaymu", "name": "Bank Transfer", "type": "bank_transfer", "payment_method": "va", "payment_channel": "mandiri"},
    {"issuer": "TSM", "name": "Credit Card", "type": "credit_card", "payment_method": "edc", "payment_channel": "linkpayment"},
    {"issuer": "iPaymu", "name": "QRIS", "type": "qris", "payment_method": "qris", "payment_channel": "qris"},
)

DEMO_OWNER = {
    "name": "Demo Owner",
    "email": "owner@pos.local",
    "password": "Password123!",
}


@click.group('system')
def system_group():
    """Schema, seed and maintenance commands."""


@system_group.command('migrate')
@with_appcontext
def migrate_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Schema is up to date.")


def seed_payment_methods(ctx: WriteContext) -> list[PaymentMethod]:
    methods = []
    for method_def in DEFAULT_PAYMENT_METHODS:
        method = db.session.query(PaymentMethod).filter_by(name=method_def["name"]).first()
        if method is None:
            method = ctx.add(PaymentMethod(is_active=True, **method_def))
            click.echo(f"PASS Seeded payment method: {method_def['name']}")
        else:
            click.echo(f"SKIP Payment method {method_def['name']} already exists")
        methods.append(method)
    db.session.flush()
    return methods


def seed_demo_owner(ctx: WriteContext, cash: PaymentMethod) -> User:
    owner = db.session.query(User).filter_by(email=DEMO_OWNER["email"]).first()
    if owner is not None:
        click.echo(f"SKIP Demo owner {owner.email} already exists")
        return owner

    owner = ctx.add(User(
        name=DEMO_OWNER["name"],
        email=DEMO_OWNER["email"],
        password_hash=hash_password(DEMO_OWNER["password"]),
        role=ROLE_OWNER,
        is_active=True,
    ))
    db.session.flush()
    ctx.add(UserPayment(owner_id=owner.id, payment_method_id=cash.id, is_active=True))
    click.echo(f"PASS Seeded demo owner: {owner.email} / {DEMO_OWNER['password']}")
    return owner


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Seed the default payment methods and a demo owner.

    Safe to run repeatedly; existing rows are left alone.
    SECURITY: Change the demo owner's password outside development!
    """
    ctx = WriteContext.system()
    try:
        methods = seed_payment_methods(ctx)
        cash = next(m for m in methods if m.is_cash)
        seed_demo_owner(ctx, cash)
        db.session.commit()
    except PosError as exc:
        db.session.rollback()
        raise click.ClickException(exc.message)
    click.echo("PASS Seeding complete.")


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

    click.echo("PASS Database reset complete. Run 'pos seed' to add default data.")


@system_group.command('reload-policy')
@with_appcontext
def reload_policy():
    """Reload the policy file locally and broadcast a reload to other instances."""
    count = get_enforcer().reload()
    receivers = publish_reload(
        redis_client_from_config(current_app.config),
        current_app.config["POLICY_CHANNEL"],
    )
    click.echo(f"PASS Loaded {count} rules; notified {receivers} subscriber(s).")


@click.command('api')
@click.option('--host', default='0.0.0.0', help='Interface to bind')
@with_appcontext
def run_api(host):
    """Run the HTTP API on the configured PORT."""
    app = current_app._get_current_object()
    app.run(host=host, port=app.config["PORT"])


def _create_app():
    from . import create_app
    return create_app()


main = FlaskGroup(
    name='pos',
    help='POS backend management.',
    create_app=_create_app,
    add_default_commands=False,
)
main.add_command(run_api, 'api')
main.add_command(migrate_db, 'migrate')
main.add_command(seed, 'seed')
main.add_command(reset_db, 'resetdb')


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
