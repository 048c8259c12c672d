"""CLI commands for Scenes."""

import asyncio
import base64
import re
import secrets
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import click


@click.group()
@click.version_option(package_name="scenes")
def cli():
    """Scenes - a hierarchical album for collections of files."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Run the Scenes server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    config = Config()
    config.application_path = "scenes.asgi:app"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from scenes.asgi import app

    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(
            hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait)
        )
    finally:
        loop.close()


@cli.command()
@click.option(
    "--write",
    type=click.Path(),
    default=None,
    help="Write SECRET_KEY to a .env file",
)
@click.option(
    "--format",
    "fmt",
    default="urlsafe",
    type=click.Choice(["urlsafe", "hex", "base64"]),
    help="Output format for the secret key",
)
@click.option("--length", default=32, type=int, help="Number of random bytes")
def secret(write, fmt, length):
    """Generate a secure secret key."""
    if fmt == "urlsafe":
        key = secrets.token_urlsafe(length)
    elif fmt == "hex":
        key = secrets.token_hex(length)
    else:  # base64
        key = base64.b64encode(secrets.token_bytes(length)).decode("ascii")

    if not write:
        click.echo(key)
        return

    env_path = Path(write)
    env_content = env_path.read_text() if env_path.exists() else ""

    secret_key_pattern = re.compile(r"^SECRET_KEY=.*$", re.MULTILINE)
    new_line = f"SECRET_KEY={key}"
    if secret_key_pattern.search(env_content):
        env_content = secret_key_pattern.sub(new_line, env_content)
    else:
        if env_content and not env_content.endswith("\n"):
            env_content += "\n"
        env_content += new_line + "\n"

    env_path.write_text(env_content)
    click.echo(f"SECRET_KEY written to {env_path}")


def _run_alembic(args: list[str]) -> None:
    """Build an Alembic Config programmatically and run the given command."""
    from alembic.config import CommandLine, Config

    alembic_ini = Path(__file__).parent / "alembic.ini"
    cfg = Config(str(alembic_ini))

    cmd = CommandLine()
    options = cmd.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        cmd.parser.error("too few arguments")
    else:
        cfg.cmd_opts = options
        fn, positional, kwarg = options.cmd
        fn(
            cfg,
            *[getattr(options, k, None) for k in positional],
            **{k: getattr(options, k, None) for k in kwarg},
        )


@cli.command(
    context_settings=dict(
        ignore_unknown_options=True,
        allow_extra_args=True,
    )
)
@click.pass_context
def db(ctx):
    """Run database migrations via Alembic.

    \b
    Examples:
        scenes db upgrade head     # Apply all migrations
        scenes db downgrade -1     # Rollback one migration
        scenes db current          # Show current revision
        scenes db history          # Show migration history
    """
    if not ctx.args:
        click.echo(ctx.get_help())
        return
    _run_alembic(ctx.args)


@asynccontextmanager
async def _session():
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from scenes.config import get_settings

    engine = create_async_engine(get_settings().db.url)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            yield session
    finally:
        await engine.dispose()


def _asset_store():
    from scenes.app_factory import build_asset_store
    from scenes.config import get_settings

    return build_asset_store(get_settings())


@cli.command()
def init():
    """Seed display modes and the reserved collections."""
    from scenes.db.services import collection_service, display_mode_service

    async def _init():
        async with _session() as session:
            modes = await display_mode_service.seed_display_modes(session)
            created = await collection_service.ensure_system_collections(session)
        return modes, created

    modes, created = asyncio.run(_init())
    click.echo(f"Added {modes} display mode(s)")
    for slug in created:
        click.echo(f"Created collection '{slug}'")


@cli.command(name="import")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--collection", "collection_slug", default=None, help="Also place the assets in this collection")
@click.option("--recursive", is_flag=True, help="Descend into directories")
def import_files(paths, collection_slug, recursive):
    """Ingest files into asset storage."""
    from scenes.db.services import asset_service, collection_service

    files = []
    for path in paths:
        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            files.extend(sorted(p for p in path.glob(pattern) if p.is_file()))
        else:
            files.append(path)

    async def _import():
        store = _asset_store()
        async with _session() as session:
            target = None
            if collection_slug:
                target = await collection_service.get_collection_by_slug(session, collection_slug)
                if target is None:
                    raise click.ClickException(f"Collection not found: {collection_slug}")
            for sort_order, path in enumerate(files):
                asset_id = await asset_service.create_from_file(session, store, path)
                if target is not None:
                    await collection_service.add_asset(
                        session, target.id, asset_id, {"sort_order": sort_order}
                    )
                click.echo(f"{asset_id}\t{path}")

    asyncio.run(_import())


@cli.command()
@click.option("--fix", is_flag=True, help="Store the current checksum of files that differ")
def verify(fix):
    """Check every asset file against its stored checksum."""
    from scenes.db.services import asset_service

    async def _verify() -> int:
        store = _asset_store()
        failures = 0
        async with _session() as session:
            for asset in await asset_service.list_assets(session):
                asset_id, filepath = asset.id, asset.filepath
                if await asset_service.verify_integrity(session, store, asset_id):
                    continue
                if fix and await asset_service.update_checksum(session, store, asset_id):
                    click.echo(f"fixed\t{asset_id}\t{filepath}")
                    continue
                failures += 1
                click.echo(f"failed\t{asset_id}\t{filepath}", err=True)
        return failures

    failures = asyncio.run(_verify())
    if failures:
        sys.exit(1)

