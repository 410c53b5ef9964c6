"""
Utility functions for Forum Reply Miner.

This module provides helpers for timestamp parsing and formatting,
day-bucket naming and URL handling.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

from .errors import ParseError

# Layout of the forum's ".pubtime" text, also used for the watermark file
PUB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Layout of day bucket names: 2024-01-15
DAY_FORMAT = "%Y-%m-%d"

_PUB_TIME_PREFIX = re.compile(r"^\s*(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})")


def parse_pub_time(text: str) -> datetime:
    """
    Parse a publication timestamp in the forum's fixed layout.

    Args:
        text: Timestamp text, e.g. "2024-01-15 10:30:00"

    Returns:
        Naive datetime in local time

    Raises:
        ParseError: If the text does not match the layout

    Example:
        parse_pub_time(" 2024-01-15 10:30:00 ")
        # Returns: datetime(2024, 1, 15, 10, 30)
    """
    try:
        return datetime.strptime(text.strip(), PUB_TIME_FORMAT)
    except (ValueError, AttributeError) as e:
        raise ParseError(f"Unparsable timestamp {text!r}") from e


def format_timestamp(value: datetime) -> str:
    """Render a timestamp in the layout used by the watermark file."""
    return value.strftime(PUB_TIME_FORMAT)


def parse_watermark(text: str) -> datetime:
    """
    Parse the contents of the watermark file.

    Only the leading "YYYY-MM-DD HH:MM:SS" part is used. Files written by
    older versions carry a zone suffix (e.g. "+0800 CST") which is ignored;
    timestamps are always interpreted as local time.

    Raises:
        ParseError: If no timestamp can be found
    """
    match = _PUB_TIME_PREFIX.match(text or "")
    if not match:
        raise ParseError(f"Unparsable watermark {text!r}")
    return datetime.strptime(match.group(1), PUB_TIME_FORMAT)


def day_key(value: Optional[date] = None) -> str:
    """Return the bucket name for a date (default: today)."""
    if value is None:
        value = date.today()
    return value.strftime(DAY_FORMAT)


def today() -> str:
    return day_key(date.today())


def yesterday() -> str:
    return day_key(date.today() - timedelta(days=1))


def topic_id_from_url(url: str) -> str:
    """
    Extract the topic id from a topic URL.

    Topic URLs end with a slash, so the id is the last-but-one segment.

    Example:
        topic_id_from_url("https://www.example.com/group/topic/123456/")
        # Returns: "123456"

    Raises:
        ParseError: If the URL has fewer than two segments
    """
    parts = url.split("/")
    if len(parts) < 2 or not parts[-2]:
        raise ParseError(f"Cannot extract topic id from {url!r}")
    return parts[-2]


def reply_page_url(topic_url: str, page_index: int, per_page: int = 100) -> str:
    """Build the URL of the 0-based reply page of a topic."""
    return f"{topic_url}?start={page_index * per_page}"
