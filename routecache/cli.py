"""Command line entry points for operating the cache outside the API."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Sequence

import click
import httpx
import uvicorn

from .logging_config import configure_logging
from .models import Credential
from .platform.clients import get_redis
from .platform.wiring import HTTP_TIMEOUT, open_synchronizer
from .settings import get_settings
from .strava.application import StravaError, sync_all_users
from .strava.infrastructure import (
    create_activity_store,
    exchange_authorization_code,
    register_webhook,
)


@click.group()
def cli() -> None:
    """Maintain the local Strava activity cache."""
    configure_logging(get_settings().log_level)


@cli.command("sync-user")
@click.argument("user_id", type=int)
def sync_user_command(user_id: int) -> None:
    """Run a full reconciliation for USER_ID."""

    async def _run() -> None:
        settings = get_settings()
        async with open_synchronizer(settings, get_redis(settings)) as synchronizer:
            report = await synchronizer.sync_user(user_id)
        click.echo(report.model_dump_json(indent=2))

    try:
        asyncio.run(_run())
    except StravaError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.command("sync-all")
def sync_all_command() -> None:
    """Run a full reconciliation for every stored athlete."""

    async def _run() -> bool:
        settings = get_settings()
        redis = get_redis(settings)
        store = create_activity_store(redis=redis)
        async with open_synchronizer(settings, redis) as synchronizer:
            result = await sync_all_users(synchronizer, store)
        for user_id, report in result.reports.items():
            click.echo(f"{user_id}: created={report.created} renamed={report.renamed}")
        for user_id, error in result.failures.items():
            click.echo(f"{user_id}: failed: {error}", err=True)
        return bool(result.failures)

    if asyncio.run(_run()):
        raise click.exceptions.Exit(1)


@cli.command("authorize")
@click.argument("code")
def authorize_command(code: str) -> None:
    """Store the credential granted by a Strava OAuth authorization CODE."""

    async def _run() -> Credential:
        settings = get_settings()
        store = create_activity_store(redis=get_redis(settings))
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http_client:
            return await exchange_authorization_code(http_client, store, settings, code)

    try:
        credential = asyncio.run(_run())
    except StravaError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Authorized user {credential.user_id}")


@cli.command("register-webhook")
def register_webhook_command() -> None:
    """Create the Strava push subscription if it is missing."""

    async def _run() -> dict:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as http_client:
            return await register_webhook(http_client, get_settings())

    try:
        subscription = asyncio.run(_run())
    except (StravaError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(subscription, indent=2))


@cli.command("serve")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve_command(host: str, port: int) -> None:
    """Run the HTTP API with uvicorn."""
    uvicorn.run("routecache.main:app", host=host, port=port)


def main(argv: Sequence[str] | None = None) -> int:
    """Invoke the Click group and propagate the exit code."""
    args = list(argv) if argv is not None else None

    try:
        exit_code = cli.main(args=args, prog_name="routecache", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    return exit_code if isinstance(exit_code, int) else 0


if __name__ == "__main__":  # pragma: no cover - convenience execution path
    sys.exit(main(sys.argv[1:]))
