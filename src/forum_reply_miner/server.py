"""
Query server for the accumulated day buckets.

Routes:
    GET  /topics/YYYY-MM-DD   bucket of that day as HTML
    GET  /topics/today        today's bucket
    GET  /topics/yesterday    yesterday's bucket
    GET|POST /api/crawl       run a pass in the background, answers "ok"
    GET  /api/status          scheduler state as JSON
    anything else             "no new"

An absent or empty bucket answers "no new" rather than an error page.
"""

import logging
import re
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from .errors import PersistenceError
from .render import render_html
from .scheduler import CrawlScheduler
from .storage import DayBucketStore
from .utils import today, yesterday

logger = logging.getLogger(__name__)

NO_NEW = "no new"

_DAY_PATTERN = re.compile(r"^20\d{2}-\d{2}-\d{2}$")


def topics_response(buckets: DayBucketStore, day: str) -> Response:
    """Render the bucket of ``day``, or "no new" if it has nothing."""
    try:
        bucket = buckets.load(day)
    except PersistenceError as e:
        logger.error("Could not load bucket %s: %s", day, e)
        return PlainTextResponse("inner error", status_code=500)

    if not bucket.topics:
        return PlainTextResponse(NO_NEW)
    return HTMLResponse(render_html(bucket))


def create_app(scheduler: CrawlScheduler, start_polling: bool = True) -> FastAPI:
    """
    Build the FastAPI application around a scheduler.

    Args:
        scheduler: Scheduler whose buckets are served and whose passes can be triggered
        start_polling: Start the background polling loop for the app's lifetime
    """

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        if start_polling:
            scheduler.start()
            logger.info("Polling loop started")
        yield
        await scheduler.stop()
        logger.info("Polling loop stopped")

    application = FastAPI(title="Forum Reply Miner", lifespan=lifespan)
    application.state.scheduler = scheduler

    @application.get("/topics/{day}")
    async def get_topics(day: str) -> Response:
        if day == "today":
            day = today()
        elif day == "yesterday":
            day = yesterday()
        elif not _DAY_PATTERN.match(day):
            return PlainTextResponse(NO_NEW)
        return topics_response(scheduler.buckets, day)

    @application.api_route("/api/crawl", methods=["GET", "POST"])
    async def trigger_crawl(background_tasks: BackgroundTasks) -> Response:
        background_tasks.add_task(scheduler.tick)
        return PlainTextResponse("ok")

    @application.get("/api/status")
    async def status() -> Response:
        return JSONResponse(scheduler.status())

    @application.api_route("/{path:path}", methods=["GET", "POST"], include_in_schema=False)
    async def fallback(path: str) -> Response:
        return PlainTextResponse(NO_NEW)

    return application
