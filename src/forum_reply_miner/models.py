"""
Data models for Forum Reply Miner.

This module defines typed data structures for the replies we discover and
the day buckets they are stored in. Using dataclasses provides clear
structure, type hints, and easy JSON serialization.

The JSON layout (``Id``/``Title``/``Url``/``User``/``Replys``) is kept
stable so existing data directories stay readable.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .utils import PUB_TIME_FORMAT, parse_pub_time


@dataclass(frozen=True)
class Reply:
    """
    A single reply posted by the crawl target.

    Replies are immutable: once discovered they are never edited, only
    inserted into exactly one Topic.

    Attributes:
        reply_id: Identifier assigned by the forum (unique within a topic)
        quote: Text of the quoted reply, empty when nothing was quoted
        content: Body text of the reply
        pub_time: Publication time, naive local time

    Example:
        reply = Reply(
            reply_id="2547483391",
            quote="",
            content="Still available?",
            pub_time=datetime(2024, 1, 15, 10, 30, 0),
        )
    """
    reply_id: str
    content: str
    pub_time: datetime
    quote: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Convert the reply to a dictionary for JSON serialization."""
        return {
            "Id": self.reply_id,
            "Quote": self.quote,
            "Content": self.content,
            "Time": self.pub_time.strftime(PUB_TIME_FORMAT),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reply":
        return cls(
            reply_id=data["Id"],
            quote=data.get("Quote", ""),
            content=data.get("Content", ""),
            pub_time=parse_pub_time(data["Time"]),
        )


@dataclass(frozen=True)
class TopicRef:
    """
    The listing-row context a reply was found under.

    Attributes:
        topic_id: Last-but-one path segment of the topic URL
        title: Topic title
        url: Canonical topic URL
        user: Display name of the topic's author (not necessarily the crawl target)
    """
    topic_id: str
    title: str
    url: str
    user: str


@dataclass
class Topic:
    """
    A topic together with the target's replies discovered in it.

    Topics are created lazily the first time one of their replies is
    discovered and afterwards only gain replies. ``replies`` is keyed by
    reply id; ordering is reconstructed at render time.
    """
    topic_id: str
    title: str
    url: str
    user: str
    replies: Dict[str, Reply] = field(default_factory=dict)

    @classmethod
    def from_ref(cls, ref: TopicRef) -> "Topic":
        return cls(topic_id=ref.topic_id, title=ref.title, url=ref.url, user=ref.user)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "Id": self.topic_id,
            "Title": self.title,
            "Url": self.url,
            "User": self.user,
            "Replys": {key: reply.to_dict() for key, reply in self.replies.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Topic":
        replies = {
            key: Reply.from_dict(value)
            for key, value in (data.get("Replys") or {}).items()
        }
        return cls(
            topic_id=data["Id"],
            title=data.get("Title", ""),
            url=data.get("Url", ""),
            user=data.get("User", ""),
            replies=replies,
        )


@dataclass
class DayBucket:
    """
    Topics and replies discovered on one calendar day.

    The day is the day of *discovery*, not the day the replies were posted.
    A bucket is the read-modify-write unit of a crawl pass.

    Attributes:
        day: Date string in YYYY-MM-DD format
        topics: Mapping from topic id to Topic
    """
    day: str
    topics: Dict[str, Topic] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.topics)

    @property
    def reply_count(self) -> int:
        """Total number of replies across all topics."""
        return sum(len(topic.replies) for topic in self.topics.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert the bucket to the on-disk dictionary keyed by topic id."""
        return {key: topic.to_dict() for key, topic in self.topics.items()}

    @classmethod
    def from_dict(cls, day: str, data: Dict[str, Any]) -> "DayBucket":
        topics = {key: Topic.from_dict(value) for key, value in data.items()}
        return cls(day=day, topics=topics)


@dataclass(frozen=True)
class ExtractedReply:
    """One reply yielded by the traversal, tagged with its topic context."""
    topic: TopicRef
    reply: Reply


@dataclass(frozen=True)
class PassResult:
    """
    Outcome of one crawl pass.

    A pass either succeeds (with or without new content) or fails with a
    reason. The scheduler treats a failure exactly like "no new content".
    """
    has_new: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, has_new: bool) -> "PassResult":
        return cls(has_new=has_new)

    @classmethod
    def failure(cls, reason: str) -> "PassResult":
        return cls(has_new=False, error=reason)
