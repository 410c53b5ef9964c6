"""
Traversal of the forum's topic listing and reply pages.

The forum is a two-level document tree:

    listing page (table.olt)
      └── topic page (paginated, 100 replies per page)
            └── reply (li inside #comments)

TopicTraversal walks that tree sequentially and yields one ExtractedReply
per reply that was posted by the crawl target after the watermark. It
never mutates anything; merging the records into a day bucket is the
caller's job, so the traversal can be replaced by any async iterable of
records in tests.

Selectors are specific to this one forum layout.
"""

import asyncio
import logging
from datetime import datetime
from typing import AsyncIterator, Iterator, List, Optional, Protocol

from bs4 import BeautifulSoup, Tag
from tqdm import tqdm

from .config import PAGE_DELAY, REPLIES_PER_PAGE
from .errors import FetchError, ParseError
from .models import ExtractedReply, Reply, TopicRef
from .utils import parse_pub_time, reply_page_url, topic_id_from_url

logger = logging.getLogger(__name__)


class DocumentFetcher(Protocol):
    async def fetch(self, url: str) -> BeautifulSoup:
        ...


class TopicTraversal:
    """
    Sequential walk over the listing and every listed topic's reply pages.

    Fetches are paced: after each reply page the traversal sleeps
    ``page_delay`` seconds so the forum is not hammered.

    Usage:
        traversal = TopicTraversal(fetcher, listing_url, user_name="alice")
        async for record in traversal.walk(since=watermark):
            ...
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        listing_url: str,
        user_name: str,
        page_delay: float = PAGE_DELAY,
        per_page: int = REPLIES_PER_PAGE,
        progress: bool = False,
    ):
        self.fetcher = fetcher
        self.listing_url = listing_url
        self.user_name = user_name.strip()
        self.page_delay = page_delay
        self.per_page = per_page
        self.progress = progress

    # -------------------------------------------------------
    # Parsing (pure, no network)
    # -------------------------------------------------------

    def parse_listing(self, soup: BeautifulSoup) -> List[TopicRef]:
        """
        Extract the topic rows of a listing page.

        The first row of the listing table is the header and is skipped.
        Rows without a topic link are skipped without aborting the pass.

        Returns:
            Topic references in listing order; empty if there is no listing table
        """
        table = soup.select_one(".olt")
        if table is None:
            logger.info("No topic listing found on %s", self.listing_url)
            return []

        topics = []
        for row in table.find_all("tr")[1:]:
            cells = row.find_all("td")
            anchor = cells[0].find("a") if cells else None
            url = anchor.get("href") if anchor is not None else None
            if not url:
                logger.debug("Skipping listing row without topic link")
                continue

            try:
                topic_id = topic_id_from_url(url)
            except ParseError as e:
                logger.warning("Skipping listing row: %s", e)
                continue

            title = anchor.get("title") or anchor.get_text(strip=True)
            user_anchor = cells[1].find("a") if len(cells) > 1 else None
            user = user_anchor.get_text(strip=True) if user_anchor is not None else ""

            topics.append(TopicRef(topic_id=topic_id, title=title, url=url, user=user))

        return topics

    def reply_page_count(self, soup: BeautifulSoup) -> int:
        """
        Read the number of reply pages from the paginator.

        Defaults to 1 when the paginator or its total-page attribute is
        missing or not a number.
        """
        current = soup.select_one(".paginator .thispage")
        if current is None:
            return 1
        total = current.get("data-total-page")
        if total is None:
            return 1
        try:
            return max(1, int(total))
        except ValueError:
            logger.warning("Unexpected total page value %r, assuming 1", total)
            return 1

    def parse_replies(
        self, soup: BeautifulSoup, topic: TopicRef, since: datetime
    ) -> Iterator[ExtractedReply]:
        """
        Extract the crawl target's replies newer than ``since`` from one reply page.

        Replies without an id, from other posters, with an unparsable
        timestamp or not newer than ``since`` are skipped.
        """
        comments = soup.select_one("#comments")
        if comments is None:
            return

        for item in comments.find_all("li"):
            reply = self._parse_reply(item, topic, since)
            if reply is not None:
                yield ExtractedReply(topic=topic, reply=reply)

    def _parse_reply(self, item: Tag, topic: TopicRef, since: datetime) -> Optional[Reply]:
        reply_id = item.get("id")
        if not reply_id:
            return None

        doc = item.select_one(".reply-doc")
        if doc is None:
            logger.debug("Reply %s in topic %s has no body", reply_id, topic.topic_id)
            return None

        name_elem = doc.select_one(".bg-img-green a")
        name = name_elem.get_text(strip=True) if name_elem is not None else ""
        if name != self.user_name:
            return None

        time_elem = doc.select_one(".pubtime")
        try:
            pub_time = parse_pub_time(time_elem.get_text() if time_elem is not None else "")
        except ParseError as e:
            logger.warning("Skipping reply %s in topic %s: %s", reply_id, topic.topic_id, e)
            return None

        if pub_time <= since:
            return None

        quote_elem = doc.select_one(".reply-quote .all")
        quote = quote_elem.get_text(strip=True) if quote_elem is not None else ""
        content_elem = doc.find("p")
        content = content_elem.get_text(strip=True) if content_elem is not None else ""

        return Reply(reply_id=reply_id, quote=quote, content=content, pub_time=pub_time)

    # -------------------------------------------------------
    # Walking (network)
    # -------------------------------------------------------

    async def walk(self, since: datetime) -> AsyncIterator[ExtractedReply]:
        """
        Yield every new reply of the crawl target across all listed topics.

        A listing that cannot be fetched or has no table yields nothing.
        Topics and pages that cannot be fetched are skipped for this pass.
        """
        try:
            listing = await self.fetcher.fetch(self.listing_url)
        except FetchError as e:
            logger.warning("Topic listing unavailable this pass: %s", e)
            return

        topics = self.parse_listing(listing)
        total = len(topics)
        logger.info("Found %d topics, looking for replies after %s", total, since)

        for index, topic in enumerate(
            tqdm(topics, desc="Crawling topics", disable=not self.progress), start=1
        ):
            async for record in self.walk_topic(topic, since, index, total):
                yield record

    async def walk_topic(
        self, topic: TopicRef, since: datetime, index: int = 1, total: int = 1
    ) -> AsyncIterator[ExtractedReply]:
        """Yield the new replies of a single topic, page by page."""
        try:
            first_page = await self.fetcher.fetch(topic.url)
        except FetchError as e:
            logger.warning("Topic %s unavailable this pass: %s", topic.topic_id, e)
            return

        pages = self.reply_page_count(first_page)
        for page_index in range(pages):
            url = reply_page_url(topic.url, page_index, self.per_page)
            try:
                page = await self.fetcher.fetch(url)
            except FetchError as e:
                logger.warning("Reply page %d/%d of topic %s unavailable this pass: %s",
                               page_index + 1, pages, topic.topic_id, e)
                page = None

            if page is not None:
                for record in self.parse_replies(page, topic, since):
                    logger.info("Found reply %s in topic %s",
                                record.reply.reply_id, topic.topic_id)
                    yield record

            logger.info("Crawled reply page %d/%d of topic %d/%d",
                        page_index + 1, pages, index, total)
            await asyncio.sleep(self.page_delay)
