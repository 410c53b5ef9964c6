"""
Deduplicating merge of extracted replies into a day bucket.

Merging is idempotent: feeding the same record twice leaves the bucket
unchanged the second time and reports no insertion.
"""

import logging
from typing import Iterable

from .models import DayBucket, ExtractedReply, Topic

logger = logging.getLogger(__name__)


def merge_reply(bucket: DayBucket, record: ExtractedReply) -> bool:
    """
    Fold one extracted reply into the bucket.

    The topic entry is created on the first reply seen for it; the reply
    is inserted only if no reply with the same id exists under the topic.

    Args:
        bucket: Day bucket to mutate
        record: Reply tagged with its topic context

    Returns:
        True if the reply was inserted, False if it was already present
    """
    topic = bucket.topics.get(record.topic.topic_id)
    if topic is None:
        topic = Topic.from_ref(record.topic)
        bucket.topics[topic.topic_id] = topic

    reply = record.reply
    if reply.reply_id in topic.replies:
        return False

    topic.replies[reply.reply_id] = reply
    logger.debug("New reply %s in topic %s", reply.reply_id, topic.topic_id)
    return True


def merge_replies(bucket: DayBucket, records: Iterable[ExtractedReply]) -> bool:
    """
    Merge a sequence of records.

    Every record is merged (no short-circuit).

    Returns:
        True if at least one reply was inserted
    """
    has_new = False
    for record in records:
        if merge_reply(bucket, record):
            has_new = True
    return has_new
