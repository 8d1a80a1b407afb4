"""Flask CLI commands for refresh-token administration."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from identity_service.infra.wiring import build_token_service
from identity_service.services._shared.errors import ServiceError

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh-token administration commands."""


@tokens_cli.command("revoke-all")
@click.argument("user_id", type=click.IntRange(min=1))
@with_appcontext
def revoke_all_command(user_id: int) -> None:
    """Revoke every refresh token of USER_ID, signing them out everywhere."""
    try:
        removed = build_token_service().revoke_all(user_id)
    except ServiceError as exc:
        LOGGER.error("revoke-all failed for user %s", user_id, exc_info=True)
        raise click.ClickException(exc.message) from exc
    click.echo(f"Revoked {removed} refresh token(s) for user {user_id}.")
