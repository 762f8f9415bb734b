#!/usr/bin/env python3
"""GCS CLI interface using the gcs-asyncio-client library."""

import asyncio
import json
import logging
import sys

import click

from .client import GCSClient
from .credentials import ServiceAccountCredential
from .exceptions import GCSError


@click.group()
@click.option(
    "--service-account-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a service account JSON key file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, service_account_file, verbose):
    """GCS CLI - A command line interface for Google Cloud Storage."""
    ctx.ensure_object(dict)

    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        if service_account_file:
            credential = ServiceAccountCredential.from_service_account_file(
                service_account_file
            )
        else:
            credential = ServiceAccountCredential.from_environment()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error loading service account: {e}", err=True)
        sys.exit(1)

    ctx.obj["credential"] = credential


def _client(ctx, bucket) -> GCSClient:
    return GCSClient(ctx.obj["credential"], bucket)


def _run(coro):
    try:
        return asyncio.run(coro)
    except GCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _echo_object(obj):
    click.echo(f"Object: gs://{obj['bucket']}/{obj['name']}")
    click.echo(f"Content Type: {obj.get('contentType', 'N/A')}")
    click.echo(f"Size: {obj.get('size', 0)} bytes")
    click.echo(f"Generation: {obj.get('generation', 'N/A')}")
    click.echo(f"Updated: {obj.get('updated', 'N/A')}")

    if obj.get("metadata"):
        click.echo("Metadata:")
        for k, v in obj["metadata"].items():
            click.echo(f"  {k}: {v}")


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--content-type", default="application/octet-stream")
@click.pass_context
def upload(ctx, bucket, key, file_path, content_type):
    """Upload a file to GCS."""

    async def _upload():
        with open(file_path, "rb") as f:
            data = f.read()

        async with _client(ctx, bucket) as client:
            return await client.create_object(key, data, content_type=content_type)

    obj = _run(_upload())
    click.echo("Upload successful!")
    _echo_object(obj)


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.pass_context
def download(ctx, bucket, key, output_path):
    """Download an object to a local file."""

    async def _download():
        async with _client(ctx, bucket) as client:
            return await client.download_object(key)

    body = _run(_download())
    with open(output_path, "wb") as f:
        f.write(body)

    click.echo(f"Downloaded {len(body)} bytes to {output_path}")


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.pass_context
def stat(ctx, bucket, key):
    """Show object metadata without downloading."""

    async def _stat():
        async with _client(ctx, bucket) as client:
            return await client.read_object(key)

    _echo_object(_run(_stat()))


@cli.command("list")
@click.argument("bucket")
@click.option("--prefix", help="Object name prefix filter")
@click.pass_context
def list_(ctx, bucket, prefix):
    """List all objects in a bucket."""

    async def _list():
        async with _client(ctx, bucket) as client:
            return [obj async for obj in client.iter_objects(prefix=prefix)]

    objects = _run(_list())
    if not objects:
        click.echo("No objects found")
        return

    for obj in objects:
        size_mb = obj.get("size", 0) / (1024 * 1024)
        updated = obj.get("updated", "")[:19]
        click.echo(f"{updated} {size_mb:>8.2f} MB  {obj['name']}")


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.pass_context
def delete(ctx, bucket, key):
    """Delete an object."""

    async def _delete():
        async with _client(ctx, bucket) as client:
            await client.delete_object(key)

    _run(_delete())
    click.echo("Delete successful!")


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.argument("destination_bucket")
@click.argument("destination_key")
@click.pass_context
def copy(ctx, bucket, key, destination_bucket, destination_key):
    """Copy an object to another location."""

    async def _copy():
        async with _client(ctx, bucket) as client:
            return await client.copy_object(key, destination_bucket, destination_key)

    _echo_object(_run(_copy()))


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.argument("destination_bucket")
@click.argument("destination_key")
@click.pass_context
def rewrite(ctx, bucket, key, destination_bucket, destination_key):
    """Rewrite an object to another location."""

    async def _rewrite():
        async with _client(ctx, bucket) as client:
            return await client.rewrite_object(
                key, destination_bucket, destination_key
            )

    _echo_object(_run(_rewrite()))


@cli.command()
@click.argument("bucket")
@click.argument("destination_key")
@click.argument("source_keys", nargs=-1, required=True)
@click.option("--content-type", help="Content type of the composed object")
@click.pass_context
def compose(ctx, bucket, destination_key, source_keys, content_type):
    """Concatenate SOURCE_KEYS into DESTINATION_KEY."""

    async def _compose():
        destination = {"contentType": content_type} if content_type else None
        async with _client(ctx, bucket) as client:
            return await client.compose_object(
                list(source_keys), destination_key, destination=destination
            )

    _echo_object(_run(_compose()))


@cli.command()
@click.argument("bucket")
@click.argument("key")
@click.option(
    "--duration",
    default=3600,
    type=int,
    help="URL validity in seconds, at most 604800",
)
@click.option("--json", "as_json", is_flag=True, help="Print as JSON")
@click.pass_context
def signed_url(ctx, bucket, key, duration, as_json):
    """Generate a signed download URL for an object."""
    client = _client(ctx, bucket)

    try:
        url = client.download_url(key, duration)
    except GCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({"url": url, "expires_in": duration}))
    else:
        click.echo(url)


if __name__ == "__main__":
    cli()
