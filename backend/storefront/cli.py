# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (prefer `flask db upgrade` outside dev).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog:
# - python -m flask catalog seed
#   Idempotently create the default categories and demo products.
#
# Users:
# - python -m flask users create --name "Ada" --email ada@example.com --password "Password123!"
#   Create a customer account (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.auth_service import create_user
from .services.seed_service import seed_catalog
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
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

    click.echo("PASS Database reset complete. Run 'python -m flask catalog seed' for demo data.")


@click.group('catalog')
def catalog_group():
    """Catalog data commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog_command():
    """Create default categories and demo products (safe to re-run)."""
    created = seed_catalog()
    click.echo(
        f"PASS Seeded {created['categories']} categories and {created['products']} products."
    )


@click.group('users')
def users_group():
    """Customer account commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_command(name, email, password):
    """Create a customer account."""
    try:
        user = create_user(name=name, email=email, password=password)
    except ValidationError as e:
        messages = "; ".join(err["message"] for err in e.errors) or str(e)
        raise click.ClickException(messages)
    except ConflictError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(users_group)
