"""CLI interface for Forum Reply Miner."""

import asyncio
import logging
from datetime import datetime

import click
import uvicorn

from .config import load_settings
from .errors import ConfigurationError, PersistenceError
from .render import render_html
from .scheduler import CrawlScheduler
from .server import create_app
from .storage import DayBucketStore
from .utils import format_timestamp, today, yesterday
from .watermark import WatermarkStore

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def _settings(ctx: click.Context):
    try:
        return load_settings(ctx.obj["config"])
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def _resolve_day(day: str) -> str:
    if day == "today":
        return today()
    if day == "yesterday":
        return yesterday()
    return day


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help='JSON config file (environment variables MINER_* are used otherwise)'
)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def main(ctx, config, verbose):
    """Forum Reply Miner - incremental crawler for one user's forum replies."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.option('--port', type=int, default=None, help='Listen port (default from settings, 8090)')
@click.pass_context
def serve(ctx, port):
    """Run the polling loop and the query server."""
    settings = _settings(ctx)
    if port is not None:
        settings.port = port

    async def _serve():
        scheduler = CrawlScheduler.from_settings(settings)
        app = create_app(scheduler)
        config = uvicorn.Config(app, host=settings.host, port=settings.port, log_level="info")
        await uvicorn.Server(config).serve()

    click.echo(f"Listening on {settings.host}:{settings.port}")
    asyncio.run(_serve())


@main.command()
@click.option('--progress', is_flag=True, help='Show a progress bar over topics')
@click.pass_context
def crawl(ctx, progress):
    """Run a single crawl pass and exit."""
    settings = _settings(ctx)

    async def _crawl():
        scheduler = CrawlScheduler.from_settings(settings, progress=progress)
        try:
            return await scheduler.tick()
        finally:
            await scheduler.stop()

    result = asyncio.run(_crawl())
    if not result.ok:
        raise click.ClickException(f"Crawl pass failed: {result.error}")
    click.echo("find new" if result.has_new else "no new")


@main.command()
@click.argument('day', default='today')
@click.pass_context
def show(ctx, day):
    """Print the HTML of a day bucket (YYYY-MM-DD, today or yesterday)."""
    settings = _settings(ctx)
    store = DayBucketStore(settings.user_dir)
    try:
        bucket = store.load(_resolve_day(day))
    except PersistenceError as e:
        raise click.ClickException(str(e)) from e

    if not bucket.topics:
        click.echo("no new")
        return
    click.echo(render_html(bucket))


@main.command()
@click.argument('day', default='today')
@click.pass_context
def stats(ctx, day):
    """Show counts for a day bucket and the current watermark."""
    settings = _settings(ctx)
    store = DayBucketStore(settings.user_dir)
    day = _resolve_day(day)
    try:
        bucket = store.load(day)
    except PersistenceError as e:
        raise click.ClickException(str(e)) from e

    watermark = WatermarkStore(settings.user_dir, start=settings.crawl_start_time).load()

    click.echo("\n" + "=" * 60)
    click.echo(f"Forum Reply Miner Statistics ({settings.user_name}, {day})")
    click.echo("=" * 60)
    click.echo(f"Topics: {len(bucket)}")
    click.echo(f"Replies: {bucket.reply_count}")
    click.echo(f"Stored days: {len(store.days())}")
    click.echo(f"Watermark: {'none' if watermark == datetime.min else format_timestamp(watermark)}")
    click.echo("=" * 60 + "\n")


if __name__ == '__main__':
    main()
