"""
Crawl scheduling: single-flight passes and adaptive polling.

A *pass* walks the forum once, merges what it finds into today's bucket,
and, if anything was new, persists the bucket and watermark and sends a
notification. The scheduler:

- Serializes passes with an asyncio.Lock, so the polling loop and manual
  triggers from the query server never run two passes at once
- Polls every ``short_interval`` seconds while new replies keep appearing
- Switches to ``long_interval`` after ``max_no_new`` consecutive passes
  without new content, and back to short as soon as something new shows up
- Turns any unexpected failure inside a pass into PassResult.failure so a
  single bad pass never stops the polling loop

State machine:

    IDLE ──tick──> RUNNING ──new / < max_no_new quiet passes──> IDLE
                      │
                      └──>= max_no_new quiet passes──> BACKOFF ──tick──> RUNNING
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Optional, Protocol

from .config import LONG_INTERVAL, MAX_NO_NEW_SHORT_CRAWL, SHORT_INTERVAL, Settings
from .errors import PersistenceError
from .fetcher import PageFetcher
from .merge import merge_reply
from .models import DayBucket, ExtractedReply, PassResult
from .notifier import EmailNotifier
from .render import render_html
from .storage import DayBucketStore
from .traversal import TopicTraversal
from .utils import format_timestamp, today
from .watermark import WatermarkStore

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    BACKOFF = "backoff"


class RecordSource(Protocol):
    def walk(self, since: datetime) -> AsyncIterator[ExtractedReply]:
        ...


@dataclass
class CrawlSession:
    """
    Mutable state of one pass.

    Attributes:
        day: Bucket the pass writes to (the discovery day at pass start)
        bucket: Day bucket loaded at pass start
        since: Watermark in effect at pass start
        newest: Newest publication time seen so far in this pass
        has_new: Whether any reply was inserted
        seen: Number of records processed
    """
    day: str
    bucket: DayBucket
    since: datetime
    newest: datetime
    has_new: bool = False
    seen: int = 0

    def accept(self, record: ExtractedReply) -> bool:
        """Merge one record and track the newest publication time."""
        self.seen += 1
        if record.reply.pub_time > self.newest:
            self.newest = record.reply.pub_time
        inserted = merge_reply(self.bucket, record)
        if inserted:
            self.has_new = True
        return inserted


class CrawlScheduler:
    """
    Owns the polling cadence and runs crawl passes one at a time.

    Usage:
        scheduler = CrawlScheduler.from_settings(settings)
        scheduler.start()          # background polling loop
        await scheduler.tick()     # manual pass, queued behind a running one
        await scheduler.stop()
    """

    def __init__(
        self,
        source: RecordSource,
        buckets: DayBucketStore,
        watermark: WatermarkStore,
        notifier: Optional[EmailNotifier] = None,
        short_interval: float = SHORT_INTERVAL,
        long_interval: float = LONG_INTERVAL,
        max_no_new: int = MAX_NO_NEW_SHORT_CRAWL,
        day_provider: Callable[[], str] = today,
        fetcher: Optional[PageFetcher] = None,
    ):
        self.source = source
        self.buckets = buckets
        self.watermark = watermark
        self.notifier = notifier
        self.short_interval = short_interval
        self.long_interval = long_interval
        self.max_no_new = max_no_new
        self.day_provider = day_provider
        self.fetcher = fetcher

        self.state = CrawlState.IDLE
        self.interval = short_interval
        self.no_new_count = 0
        self.last_result: Optional[PassResult] = None
        self.last_run_at: Optional[datetime] = None

        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        fetcher: Optional[PageFetcher] = None,
        progress: bool = False,
    ) -> "CrawlScheduler":
        """Wire up fetcher, traversal, stores and notifier from settings."""
        if fetcher is None:
            fetcher = PageFetcher(
                max_attempts=settings.max_attempts,
                retry_delay=settings.retry_delay,
                timeout=settings.request_timeout,
            )
        traversal = TopicTraversal(
            fetcher,
            settings.site_url,
            settings.user_name,
            page_delay=settings.page_delay,
            per_page=settings.replies_per_page,
            progress=progress,
        )
        buckets = DayBucketStore(settings.user_dir)
        buckets.ensure_dir()
        watermark = WatermarkStore(settings.user_dir, start=settings.crawl_start_time)
        watermark.load()
        return cls(
            traversal,
            buckets,
            watermark,
            notifier=EmailNotifier.from_settings(settings),
            short_interval=settings.short_interval,
            long_interval=settings.long_interval,
            max_no_new=settings.max_no_new_short_crawl,
            fetcher=fetcher,
        )

    @property
    def busy(self) -> bool:
        """True while a pass is running."""
        return self._lock.locked()

    # -------------------------------------------------------
    # Passes
    # -------------------------------------------------------

    async def tick(self) -> PassResult:
        """
        Run one pass, waiting for a running pass to finish first.

        Never raises for failures inside the pass; they are returned as
        PassResult.failure and count as "no new content".
        """
        async with self._lock:
            self.state = CrawlState.RUNNING
            self.last_run_at = datetime.now()
            logger.info("Crawl pass started")

            result, session = await self._run_pass()
            try:
                self._update_cadence(result)
                if result.has_new and session is not None:
                    await self._publish(session)
            except Exception:
                logger.exception("Publishing crawl results failed")
            finally:
                self.last_result = result
            return result

    async def try_tick(self) -> Optional[PassResult]:
        """Run one pass unless one is already running (then return None)."""
        if self.busy:
            logger.info("Crawl pass already running, trigger dropped")
            return None
        return await self.tick()

    def new_session(self) -> CrawlSession:
        day = self.day_provider()
        since = self.watermark.current
        return CrawlSession(
            day=day,
            bucket=self.buckets.load(day),
            since=since,
            newest=since,
        )

    async def _run_pass(self):
        try:
            session = self.new_session()
            logger.info("Looking for replies after %s", session.since)
            async for record in self.source.walk(session.since):
                session.accept(record)
        except Exception as e:
            logger.exception("Crawl pass failed")
            return PassResult.failure(f"{type(e).__name__}: {e}"), None

        self.watermark.advance(session.newest)
        return PassResult.success(session.has_new), session

    def _update_cadence(self, result: PassResult) -> None:
        if result.has_new:
            logger.info("Found new replies")
            self.no_new_count = 0
            self.interval = self.short_interval
            self.state = CrawlState.IDLE
            return

        self.no_new_count += 1
        logger.info("No new replies (%d in a row)", self.no_new_count)
        if self.no_new_count >= self.max_no_new:
            self.interval = self.long_interval
            self.state = CrawlState.BACKOFF
        else:
            self.state = CrawlState.IDLE

    async def _publish(self, session: CrawlSession) -> None:
        """Persist the bucket and watermark, then notify."""
        try:
            self.buckets.save(session.bucket)
        except PersistenceError as e:
            # Leave the watermark file alone so a restart rediscovers these replies
            logger.error("Could not save day bucket %s: %s", session.day, e)
        else:
            try:
                self.watermark.commit()
            except PersistenceError as e:
                logger.error("Could not save watermark: %s", e)

        if self.notifier is not None:
            await self.notifier.notify(render_html(session.bucket))

    # -------------------------------------------------------
    # Polling loop
    # -------------------------------------------------------

    async def run_forever(self) -> None:
        """Tick, sleep for the current interval, repeat until cancelled."""
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception("Crawl pass raised, polling continues")
            logger.info("Next crawl in %d seconds", self.interval)
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        """Start the polling loop as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        """Cancel the polling loop and close the fetcher."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self.fetcher is not None:
            await self.fetcher.aclose()

    def status(self) -> Dict[str, Any]:
        """Snapshot of the scheduler for the status endpoint."""
        last = self.last_result
        current = self.watermark.current
        return {
            "state": self.state.value,
            "busy": self.busy,
            "interval_seconds": self.interval,
            "no_new_count": self.no_new_count,
            # datetime.min means no start time and nothing crawled yet
            "watermark": None if current == datetime.min else format_timestamp(current),
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": None if last is None else {
                "ok": last.ok,
                "has_new": last.has_new,
                "error": last.error,
            },
        }
