"""Configure test paths and shared fixtures."""
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pytest
from bs4 import BeautifulSoup

# Add src/ to path so tests can import the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from forum_reply_miner.errors import FetchError  # noqa: E402

LISTING_URL = "https://www.example.com/group/test/discussion"
TARGET = "alice"


def topic_url(topic_id: str) -> str:
    return f"https://www.example.com/group/topic/{topic_id}/"


def listing_html(rows: Iterable[Tuple[Optional[str], str, str]]) -> str:
    """Listing page; each row is (topic url or None, title, author)."""
    body = ['<tr class="th"><td>Topic</td><td>Author</td></tr>']
    for url, title, author in rows:
        href = f' href="{url}"' if url else ""
        body.append(
            f'<tr><td class="title"><a{href} title="{title}">{title}</a></td>'
            f'<td><a href="https://www.example.com/people/x/">{author}</a></td></tr>'
        )
    return f'<html><body><table class="olt">{"".join(body)}</table></body></html>'


def reply_html(reply_id: Optional[str], author: str, pub_time: str,
               content: str = "content", quote: Optional[str] = None) -> str:
    id_attr = f' id="{reply_id}"' if reply_id else ""
    quote_html = (
        f'<div class="reply-quote"><span class="all">{quote}</span></div>' if quote else ""
    )
    return (
        f'<li class="clearfix comment-item"{id_attr}>'
        f'<div class="reply-doc content">'
        f'<div class="bg-img-green"><h4><a href="https://www.example.com/people/{author}/">{author}</a>'
        f'<span class="pubtime">{pub_time}</span></h4></div>'
        f'{quote_html}<p class="reply-content">{content}</p>'
        f'</div></li>'
    )


def topic_page_html(replies: Iterable[str] = (), total_pages: Optional[int] = None) -> str:
    paginator = ""
    if total_pages is not None:
        paginator = (
            f'<div class="paginator"><span class="thispage" '
            f'data-total-page="{total_pages}">1</span></div>'
        )
    return (
        f'<html><body><ul id="comments" class="topic-reply">{"".join(replies)}</ul>'
        f'{paginator}</body></html>'
    )


class FakeFetcher:
    """Serves canned HTML by URL and records every fetch."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, failing: Iterable[str] = ()):
        self.pages = dict(pages or {})
        self.failing = set(failing)
        self.calls: List[str] = []
        self.closed = False

    async def fetch(self, url: str) -> BeautifulSoup:
        self.calls.append(url)
        if url in self.failing or url not in self.pages:
            raise FetchError(url, 5, "unavailable")
        return BeautifulSoup(self.pages[url], "lxml")

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()
