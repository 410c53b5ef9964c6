"""
Forum Reply Miner

Incrementally crawls a forum's topic listing for replies posted by one
user, stores newly discovered replies in day buckets, emails a summary
and serves the buckets over HTTP.

Main components:
- CrawlScheduler: single-flight crawl passes with adaptive polling
- TopicTraversal: walks the listing and each topic's reply pages
- PageFetcher: fetch-and-parse with bounded retry
- DayBucketStore / WatermarkStore: on-disk state
- create_app: FastAPI query server

Usage:
    from forum_reply_miner import CrawlScheduler, load_settings
    import asyncio

    scheduler = CrawlScheduler.from_settings(load_settings("config.json"))
    asyncio.run(scheduler.tick())
"""

from .config import Settings, load_settings
from .merge import merge_replies, merge_reply
from .models import DayBucket, ExtractedReply, PassResult, Reply, Topic, TopicRef
from .scheduler import CrawlScheduler, CrawlSession, CrawlState
from .storage import DayBucketStore
from .traversal import TopicTraversal
from .fetcher import PageFetcher
from .watermark import WatermarkStore

__all__ = [
    'CrawlScheduler',
    'CrawlSession',
    'CrawlState',
    'DayBucket',
    'DayBucketStore',
    'ExtractedReply',
    'PageFetcher',
    'PassResult',
    'Reply',
    'Settings',
    'Topic',
    'TopicRef',
    'TopicTraversal',
    'WatermarkStore',
    'load_settings',
    'merge_replies',
    'merge_reply',
]

__version__ = '1.0.0'
