"""CLI commands for development utilities.

Usage:
    irp dev check
    irp dev ensure-bucket
"""

import asyncio
import sys

import click

from ..config import get_settings
from ..db import close_all_connections, ping_database
from ..storage import get_blob_store


@click.group(name="dev")
def cli():
    """Development utility commands."""
    pass


@cli.command("check")
def check() -> None:
    """Check connectivity to PostgreSQL and the blob store."""
    settings = get_settings()
    failures = 0

    async def _ping_db() -> None:
        try:
            await ping_database()
        finally:
            await close_all_connections()

    click.echo(f"PostgreSQL ({settings.postgres_host}:{settings.postgres_port})...", nl=False)
    try:
        asyncio.run(_ping_db())
        click.echo(" OK")
    except Exception as e:
        failures += 1
        click.echo(f" FAILED: {e}")

    click.echo(f"Blob store ({settings.s3_endpoint}, bucket {settings.report_bucket})...", nl=False)
    try:
        get_blob_store().ping()
        click.echo(" OK")
    except Exception as e:
        failures += 1
        click.echo(f" FAILED: {e}")

    click.echo(f"E-mail: {'enabled' if settings.email_enabled else 'disabled (no RESEND_API_KEY)'}")

    if failures:
        sys.exit(1)


@cli.command("ensure-bucket")
def ensure_bucket() -> None:
    """Create the report attachment bucket if it is missing."""
    store = get_blob_store()
    if store.ensure_bucket():
        click.echo(f"Created bucket {store.bucket}")
    else:
        click.echo(f"Bucket {store.bucket} already exists")
