"""Flask CLI commands for seeding development accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import SQLAlchemyError

from staffauth.core.container import get_container
from staffauth.models.user import User, UserRole
from staffauth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SeedAccount:
    employee_id: str
    password: str
    first_name: str
    last_name: str
    email: str
    phone_number: str
    role: UserRole


DEFAULT_ACCOUNTS: tuple[SeedAccount, ...] = (
    SeedAccount(
        employee_id="ADM001",
        password="Admin@123",
        first_name="System",
        last_name="Administrator",
        email="admin@example.com",
        phone_number="+1234567890",
        role=UserRole.ADMIN,
    ),
    SeedAccount(
        employee_id="USR001",
        password="User@123",
        first_name="Regular",
        last_name="User",
        email="user@example.com",
        phone_number="+1234567891",
        role=UserRole.USER,
    ),
)


def _ensure_non_production() -> None:
    """Abort when running against a production configuration."""
    if str(current_app.config.get("APP_ENV", "production")).lower() == "production":
        raise click.UsageError(
            "The 'flask seed' commands are restricted to non-production environments."
        )


def seed_accounts(accounts: tuple[SeedAccount, ...] = DEFAULT_ACCOUNTS) -> dict[str, int]:
    """
    Create missing accounts; existing employee ids are left untouched.

    :returns: ``{"created": n, "existing": m}``.
    """
    hasher = get_container().hasher
    summary = {"created": 0, "existing": 0}
    with SQLAlchemyUnitOfWork() as uow:
        for account in accounts:
            if uow.users.find_by_employee_id(account.employee_id) is not None:
                LOGGER.debug("seed.exists employee_id=%s", account.employee_id)
                summary["existing"] += 1
                continue
            uow.users.add(
                User(
                    first_name=account.first_name,
                    last_name=account.last_name,
                    email=account.email,
                    employee_id=account.employee_id,
                    phone_number=account.phone_number,
                    password_hash=hasher.hash(account.password),
                    role=account.role,
                    is_active=True,
                    refresh_tokens=[],
                )
            )
            LOGGER.info("seed.created employee_id=%s", account.employee_id)
            summary["created"] += 1
    return summary


@click.group("seed")
@click.option("--verbose", is_flag=True, help="Enable verbose logging for seeding.")
def seed_cli(verbose: bool) -> None:
    """Collection of database seeding commands."""
    LOGGER.setLevel(logging.DEBUG if verbose else logging.INFO)


@seed_cli.command("users")
@with_appcontext
def users_command() -> None:
    """Create the default ADMIN and USER accounts if they are missing."""
    _ensure_non_production()
    try:
        summary = seed_accounts()
    except SQLAlchemyError as exc:
        raise click.ClickException(f"Seeding failed: {exc}") from exc
    click.echo("Seed summary:")
    click.echo(f"  users  created={summary['created']:>2}  existing={summary['existing']:>2}")
    for account in DEFAULT_ACCOUNTS:
        click.echo(f"  {account.role.value:<5}  {account.employee_id} / {account.password}")
