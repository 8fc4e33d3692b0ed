"""Flask CLI commands seeding accounts for local token-flow testing."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import select

from tokenlife.core.extensions import db
from tokenlife.models.user import User, UserStatus
from tokenlife.seeds import seed_data
from tokenlife.services._shared.errors import ServiceError
from tokenlife.services.tokens.engine import get_token_engine

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger(seed_data.__name__).setLevel(level)
    LOGGER.setLevel(level)


def _echo_summary(summary: dict[str, dict[str, int]]) -> None:
    """Print one line per seeded table with created/existing counters."""
    click.echo("Seed summary:")
    if not summary:
        click.echo("  (no changes)")
        return
    width = max(len(name) for name in summary)
    for table, counters in sorted(summary.items()):
        created = counters.get("created", 0)
        existing = counters.get("existing", 0)
        click.echo(f"  {table.ljust(width)}  created={created:>2}  existing={existing:>2}")


def _issue_demo_sessions() -> None:
    """Issue one refresh session per active seeded account and print the pairs.

    Only meant for local development: the raw credentials go to stdout.
    """
    emails = [fixture["email"] for fixture in seed_data.USER_FIXTURES]
    users = db.session.scalars(
        select(User).where(User.email.in_(emails), User.status == UserStatus.ACTIVE)
    ).all()
    engine = get_token_engine()
    for user in sorted(users, key=lambda u: u.email):
        try:
            pair = engine.rotation.issue_initial(user.id, device_info="flask seed")
        except ServiceError as exc:
            raise click.ClickException(f"Could not issue a session for {user.email}: {exc}") from exc
        click.echo(f"{user.email}")
        click.echo(f"  access:  {pair.access_token}")
        click.echo(f"  refresh: {pair.refresh_token}")


def _ensure_non_production() -> None:
    """Refuse to drop the schema outside development and testing."""
    config = current_app.config
    app_env = str(config.get("APP_ENV", "")).lower()
    if app_env == "production" or not (config.get("DEBUG") or config.get("TESTING")):
        raise click.UsageError(
            "'flask seed fresh' drops every table and is restricted to development."
        )


@click.group("seed")
@click.option("--verbose", is_flag=True, help="Log each seeded row.")
@click.pass_context
def seed_cli(ctx: click.Context, verbose: bool) -> None:
    """Seed roles and demo accounts."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@seed_cli.command("run")
@click.option(
    "--issue-sessions",
    is_flag=True,
    help="Also log in every active demo account and print its token pair.",
)
@click.pass_context
@with_appcontext
def run_command(ctx: click.Context, issue_sessions: bool) -> None:
    """Create missing roles and demo accounts. Safe to run repeatedly."""
    try:
        summary = seed_data.run_all(db, verbose=bool(ctx.obj.get("verbose", False)))
    except Exception as exc:  # pragma: no cover - CLI safeguard
        db.session.rollback()
        raise click.ClickException(f"Seeding failed: {exc}") from exc
    _echo_summary(summary)
    if issue_sessions:
        _issue_demo_sessions()


@seed_cli.command("fresh")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
@with_appcontext
def fresh_command(ctx: click.Context, yes: bool) -> None:
    """Drop the schema, recreate it and seed again.

    Every refresh session is lost; access credentials already handed out stay
    valid until they expire.
    """
    _ensure_non_production()
    if not yes:
        click.confirm("This drops every table, refresh sessions included. Continue?", abort=True)
    LOGGER.info("seed.fresh.drop_all")
    db.session.remove()
    db.drop_all()
    db.create_all()
    try:
        summary = seed_data.run_all(db, verbose=bool(ctx.obj.get("verbose", False)))
    except Exception as exc:  # pragma: no cover - CLI safeguard
        db.session.rollback()
        raise click.ClickException(f"Fresh seed failed: {exc}") from exc
    _echo_summary(summary)
