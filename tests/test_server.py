"""Tests for the query server routes."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from forum_reply_miner.models import DayBucket, Reply, Topic
from forum_reply_miner.scheduler import CrawlScheduler
from forum_reply_miner.server import create_app
from forum_reply_miner.storage import DayBucketStore
from forum_reply_miner.utils import today, yesterday
from forum_reply_miner.watermark import WatermarkStore


class CountingSource:
    def __init__(self):
        self.runs = 0

    async def walk(self, since):
        self.runs += 1
        return
        yield  # pragma: no cover


def make_bucket(day):
    def reply(reply_id, minute):
        return Reply(reply_id=reply_id, content=f"reply {reply_id}",
                     pub_time=datetime(2024, 1, 15, 10, minute))

    return DayBucket(day=day, topics={
        "200": Topic("200", "Second & last", "https://x/topic/200/", "eve", {"b": reply("b", 2)}),
        "100": Topic("100", "First", "https://x/topic/100/", "bob",
                     {"z": reply("z", 1), "a": reply("a", 0)}),
    })


@pytest.fixture
def source():
    return CountingSource()


@pytest.fixture
def store(tmp_path):
    return DayBucketStore(tmp_path)


@pytest.fixture
def client(tmp_path, store, source):
    scheduler = CrawlScheduler(source, store, WatermarkStore(tmp_path))
    return TestClient(create_app(scheduler, start_polling=False))


def test_day_route_renders_sorted_html(client, store):
    store.save(make_bucket("2024-01-15"))

    response = client.get("/topics/2024-01-15")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    body = response.text
    assert body.index("First") < body.index("Second &amp; last")
    assert body.index("reply a") < body.index("reply z")
    assert "2024-01-15 10:01:00" in body


def test_today_and_yesterday(client, store):
    store.save(make_bucket(today()))
    store.save(make_bucket(yesterday()))

    assert "First" in client.get("/topics/today").text
    assert "First" in client.get("/topics/yesterday").text


def test_missing_bucket_is_no_new(client):
    response = client.get("/topics/2024-01-15")
    assert response.status_code == 200
    assert response.text == "no new"


def test_empty_bucket_is_no_new(client, tmp_path):
    (tmp_path / "2024-01-15.json").write_text("{}")
    assert client.get("/topics/2024-01-15").text == "no new"


def test_corrupt_bucket_is_inner_error(client, tmp_path):
    (tmp_path / "2024-01-15.json").write_text("{oops")
    response = client.get("/topics/2024-01-15")
    assert response.status_code == 500
    assert response.text == "inner error"


@pytest.mark.parametrize("path", ["/", "/topics/", "/topics/1999-01-01", "/topics/someday",
                                  "/anything/else"])
def test_unknown_paths_are_no_new(client, path):
    response = client.get(path)
    assert response.status_code == 200
    assert response.text == "no new"


def test_crawl_trigger_runs_a_pass(client, source):
    response = client.get("/api/crawl")
    assert response.text == "ok"
    assert source.runs == 1

    client.post("/api/crawl")
    assert source.runs == 2


def test_status(client):
    client.get("/api/crawl")
    data = client.get("/api/status").json()
    assert data["state"] == "idle"
    assert data["no_new_count"] == 1
    assert data["last_result"]["ok"] is True
