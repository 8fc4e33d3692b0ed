"""Flask CLI commands for refresh-token maintenance."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from tokenlife.services._shared.errors import StoreUnavailableError
from tokenlife.services.tokens.engine import get_token_engine


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh-token lifecycle maintenance commands."""


@tokens_cli.command("cleanup")
@with_appcontext
def cleanup_command() -> None:
    """Run one bounded garbage-collection pass over refresh records."""
    report = get_token_engine().cleanup.run_once()
    if report.failed:
        raise click.ClickException(
            f"Cleanup aborted after {report.batches} batch(es); deleted={report.deleted}"
        )
    suffix = " (batch bound reached, rerun to continue)" if report.exhausted else ""
    click.echo(f"Deleted {report.deleted} refresh record(s) in {report.batches} batch(es){suffix}")


@tokens_cli.command("sweep-denylist")
@with_appcontext
def sweep_denylist_command() -> None:
    """Drop expired entries from the in-process denylist."""
    cache = get_token_engine().revocation_cache
    try:
        removed = cache.sweep()
    except StoreUnavailableError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Swept {removed} expired denylist entr{'y' if removed == 1 else 'ies'} ({cache.backend})")


@tokens_cli.command("revoke-subject")
@click.argument("subject_id")
@with_appcontext
def revoke_subject_command(subject_id: str) -> None:
    """Revoke every refresh credential held by SUBJECT_ID."""
    try:
        revoked = get_token_engine().rotation.revoke_all_for_subject(subject_id)
    except StoreUnavailableError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Revoked {revoked} refresh credential(s) for subject {subject_id}")
