"""HTML rendering of day buckets for the query server and email summaries."""

from html import escape

from .models import DayBucket
from .utils import format_timestamp

PAGE_HEAD = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>topic and reply</title>
</head>
"""

PAGE_FOOT = """
</html>
"""


def render_html(bucket: DayBucket) -> str:
    """
    Render a bucket as a standalone HTML page.

    Topics are ordered by topic id and replies within a topic by reply id,
    both in plain string order.
    """
    items = []
    for topic_id in sorted(bucket.topics):
        topic = bucket.topics[topic_id]
        replies = []
        for reply_id in sorted(topic.replies):
            reply = topic.replies[reply_id]
            replies.append(
                "<li>"
                f"<quote>{escape(reply.quote)}</quote>"
                f"<h3>{escape(reply.content)}</h3>"
                f"<h5>{format_timestamp(reply.pub_time)}</h5>"
                "</li>"
            )
        items.append(
            "<li>"
            f"<a href=\"{escape(topic.url)}\" style=\"text-decoration: none;\" target=\"_blank\">"
            f"{escape(topic.title)} -- {escape(topic.user)}</a>"
            "<br>"
            f"<ul>{''.join(replies)}</ul>"
            "</li>"
        )

    body = f"<body><ol>{''.join(items)}</ol></body>"
    return PAGE_HEAD + body + PAGE_FOOT
