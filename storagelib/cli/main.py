"""
Command line interface for storage account containers, blobs and queues.

Credentials come from STORAGE_ACCOUNT_NAME plus STORAGE_ACCOUNT_KEY or
STORAGE_SAS_TOKEN, in the environment or a .env file.

Examples:
  storagelib container create reports
  storagelib blob upload reports a.csv --file ./a.csv
  storagelib blob sas reports a.csv --expire-minutes 10 --url
  storagelib queue send jobs "hello" --visibility-timeout 60
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Optional

import click

from storagelib.config.settings import StorageSettings, get_settings
from storagelib.monitoring.logging_config import set_correlation_id, setup_logging
from storagelib.storage.blob_container import BlobContainer
from storagelib.storage.exceptions import StorageError
from storagelib.storage.storage_queue import StorageQueue


def _run(operation: Awaitable[Any]) -> Any:
    """Run a coroutine, reporting storage errors as a failed command."""
    try:
        return asyncio.run(operation)
    except StorageError as e:
        click.echo(f"❌ Error {e.code}: {e.message}", err=True)
        raise click.Abort()


def _settings(ctx: click.Context) -> StorageSettings:
    return ctx.obj["settings"]


def _sas_options(f):
    """Shared options of the sas commands."""
    f = click.option('--url', 'as_url', is_flag=True, help='Print the full resource URL including the token')(f)
    f = click.option('--clock-skew-margin', type=int, default=None,
                     help='Minutes the token starts before now')(f)
    f = click.option('--expire-minutes', type=int, default=None, help='Minutes the token stays valid')(f)
    f = click.option('--permissions', default=None, help='Permission letters, read only (r) by default')(f)
    return f


def _sas_kwargs(settings: StorageSettings, permissions: Optional[str], expire_minutes: Optional[int],
                clock_skew_margin: Optional[int]) -> dict:
    return {
        "permissions": permissions,
        "expire_minutes": expire_minutes if expire_minutes is not None else settings.sas_expire_minutes,
        "clock_skew_margin_minutes": (
            clock_skew_margin if clock_skew_margin is not None else settings.sas_clock_skew_margin_minutes
        ),
    }


@click.group()
@click.option('--log-level', default=None, help='Override LOG_LEVEL')
@click.option('--json-logs/--plain-logs', default=None, help='Override LOG_FORMAT')
@click.pass_context
def cli(ctx, log_level, json_logs):
    """Manage Azure storage containers, blobs and queues"""
    ctx.ensure_object(dict)
    settings = ctx.obj.get("settings") or get_settings()
    ctx.obj["settings"] = settings

    setup_logging(
        log_level=(log_level or settings.log_level).upper(),
        enable_json=settings.use_json_logs if json_logs is None else json_logs
    )
    set_correlation_id()


# Containers

@cli.group()
def container():
    """Blob container commands"""
    pass


@container.command('create')
@click.argument('name')
@click.pass_context
def container_create(ctx, name: str):
    """Create a blob container"""
    async def _create():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.create_container(name)

    request_id = _run(_create())
    click.echo(f"✅ Container {name} created (request id {request_id})")


@container.command('list')
@click.pass_context
def container_list(ctx):
    """List blob containers"""
    async def _list():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.list_containers()

    for name in _run(_list()):
        click.echo(name)


@container.command('delete')
@click.argument('name')
@click.confirmation_option(prompt='Delete the container and all its blobs?')
@click.pass_context
def container_delete(ctx, name: str):
    """Delete a blob container with all its blobs"""
    async def _delete():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.delete_container(name)

    _run(_delete())
    click.echo(f"✅ Container {name} deleted")


@container.command('sas')
@click.argument('name')
@_sas_options
@click.pass_context
def container_sas(ctx, name: str, permissions, expire_minutes, clock_skew_margin, as_url):
    """Generate a SAS token for a container"""
    options = _sas_kwargs(_settings(ctx), permissions, expire_minutes, clock_skew_margin)

    async def _sas():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            if as_url:
                return blobs.get_sas_url(name, **options)
            return blobs.generate_sas_token(name, **options)

    click.echo(_run(_sas()))


# Blobs

@cli.group()
def blob():
    """Blob commands"""
    pass


@blob.command('upload')
@click.argument('container_name')
@click.argument('blob_name')
@click.option('--content', default=None, help='Text content of the blob')
@click.option('--file', 'file_path', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help='File to upload')
@click.pass_context
def blob_upload(ctx, container_name: str, blob_name: str, content: Optional[str], file_path: Optional[Path]):
    """Upload text or a file as a block blob"""
    if (content is None) == (file_path is None):
        raise click.UsageError("Pass exactly one of --content or --file")
    data = content if content is not None else file_path.read_bytes()

    async def _upload():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.create_blob(container_name, blob_name, data)

    request_id = _run(_upload())
    click.echo(f"✅ Uploaded {blob_name} to {container_name} (request id {request_id})")


@blob.command('list')
@click.argument('container_name')
@click.pass_context
def blob_list(ctx, container_name: str):
    """List the blobs in a container"""
    async def _list():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.list_blobs(container_name)

    for item in _run(_list()):
        click.echo(f"{item.name}\t{item.size}")


@blob.command('get')
@click.argument('container_name')
@click.argument('blob_name')
@click.pass_context
def blob_get(ctx, container_name: str, blob_name: str):
    """Print the content of a blob"""
    async def _get():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.get_blob_content(container_name, blob_name)

    click.echo(_run(_get()), nl=False)


@blob.command('delete')
@click.argument('container_name')
@click.argument('blob_name')
@click.pass_context
def blob_delete(ctx, container_name: str, blob_name: str):
    """Delete a blob with its snapshots"""
    async def _delete():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            return await blobs.delete_blob(container_name, blob_name)

    _run(_delete())
    click.echo(f"✅ Deleted {blob_name} from {container_name}")


@blob.command('sas')
@click.argument('container_name')
@click.argument('blob_name')
@_sas_options
@click.pass_context
def blob_sas(ctx, container_name: str, blob_name: str, permissions, expire_minutes, clock_skew_margin, as_url):
    """Generate a SAS token for a single blob"""
    options = _sas_kwargs(_settings(ctx), permissions, expire_minutes, clock_skew_margin)

    async def _sas():
        async with BlobContainer.from_settings(_settings(ctx)) as blobs:
            if as_url:
                return blobs.get_sas_url(container_name, blob_name, **options)
            return blobs.generate_sas_token(container_name, blob_name, **options)

    click.echo(_run(_sas()))


# Queues

@cli.group()
def queue():
    """Queue commands"""
    pass


@queue.command('create')
@click.argument('name')
@click.pass_context
def queue_create(ctx, name: str):
    """Create a queue"""
    async def _create():
        async with StorageQueue.from_settings(_settings(ctx)) as queues:
            return await queues.create(name)

    request_id = _run(_create())
    click.echo(f"✅ Queue {name} created (request id {request_id})")


@queue.command('list')
@click.option('--prefix', default=None, help='Only list queues starting with this prefix')
@click.pass_context
def queue_list(ctx, prefix: Optional[str]):
    """List queues"""
    async def _list():
        async with StorageQueue.from_settings(_settings(ctx)) as queues:
            return await queues.list(prefix)

    for name in _run(_list()):
        click.echo(name)


@queue.command('delete')
@click.argument('name')
@click.confirmation_option(prompt='Delete the queue and its messages?')
@click.pass_context
def queue_delete(ctx, name: str):
    """Delete a queue"""
    async def _delete():
        async with StorageQueue.from_settings(_settings(ctx)) as queues:
            return await queues.delete(name)

    _run(_delete())
    click.echo(f"✅ Queue {name} deleted")


@queue.command('send')
@click.argument('name')
@click.argument('message')
@click.option('--ttl', 'time_to_live', type=int, default=None, help='Time-to-live in seconds')
@click.option('--visibility-timeout', type=int, default=None, help='Seconds before the message becomes visible')
@click.pass_context
def queue_send(ctx, name: str, message: str, time_to_live: Optional[int], visibility_timeout: Optional[int]):
    """Send a message to a queue"""
    async def _send():
        async with StorageQueue.from_settings(_settings(ctx)) as queues:
            return await queues.send_message(name, message, time_to_live, visibility_timeout)

    result = _run(_send())
    click.echo(f"✅ Message {result.message_id} sent (request id {result.request_id})")


@queue.command('peek')
@click.argument('name')
@click.option('--max-messages', type=int, default=None, help='Number of messages to peek (1-32)')
@click.pass_context
def queue_peek(ctx, name: str, max_messages: Optional[int]):
    """Show messages at the front of a queue without dequeuing them"""
    async def _peek():
        async with StorageQueue.from_settings(_settings(ctx)) as queues:
            return await queues.peek_messages(name, max_messages)

    for message in _run(_peek()):
        click.echo(f"{message.id}\t{message.content}")


@queue.command('sas')
@click.argument('name')
@_sas_options
@click.pass_context
def queue_sas(ctx, name: str, permissions, expire_minutes, clock_skew_margin, as_url):
    """Generate a SAS token for a queue"""
    options = _sas_kwargs(_settings(ctx), permissions, expire_minutes, clock_skew_margin)

    async def _sas():
        async with StorageQueue.from_settings(_settings(ctx)) as queues:
            if as_url:
                return queues.get_sas_url(name, **options)
            return queues.generate_sas_token(name, **options)

    click.echo(_run(_sas()))


def main():
    """Console script entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
