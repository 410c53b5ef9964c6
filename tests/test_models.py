"""Tests for data models."""

from datetime import datetime

from forum_reply_miner.models import (
    DayBucket, ExtractedReply, PassResult, Reply, Topic, TopicRef
)


def make_reply(reply_id="1", minute=0):
    return Reply(reply_id=reply_id, content="hi", pub_time=datetime(2024, 1, 15, 10, minute))


class TestReply:
    def test_defaults(self):
        reply = make_reply()
        assert reply.quote == ""

    def test_to_dict(self):
        reply = Reply(reply_id="42", quote="q", content="c",
                      pub_time=datetime(2024, 1, 15, 10, 30, 5))
        assert reply.to_dict() == {
            "Id": "42", "Quote": "q", "Content": "c", "Time": "2024-01-15 10:30:05"
        }

    def test_from_dict(self):
        reply = Reply.from_dict({"Id": "42", "Content": "c", "Time": "2024-01-15 10:30:05"})
        assert reply.reply_id == "42"
        assert reply.quote == ""
        assert reply.pub_time == datetime(2024, 1, 15, 10, 30, 5)


class TestTopic:
    def test_from_ref(self):
        ref = TopicRef(topic_id="7", title="T", url="https://x/topic/7/", user="bob")
        topic = Topic.from_ref(ref)
        assert topic.topic_id == "7"
        assert topic.user == "bob"
        assert topic.replies == {}

    def test_to_dict_uses_replys_key(self):
        topic = Topic(topic_id="7", title="T", url="u", user="bob",
                      replies={"1": make_reply("1")})
        d = topic.to_dict()
        assert d["Id"] == "7"
        assert list(d["Replys"]) == ["1"]
        assert d["Replys"]["1"]["Id"] == "1"

    def test_from_dict_without_replies(self):
        topic = Topic.from_dict({"Id": "7", "Title": "T", "Url": "u", "User": "bob",
                                 "Replys": None})
        assert topic.replies == {}


class TestDayBucket:
    def test_counts(self):
        bucket = DayBucket(day="2024-01-15", topics={
            "a": Topic("a", "A", "u", "x", {"1": make_reply("1"), "2": make_reply("2")}),
            "b": Topic("b", "B", "u", "x", {"3": make_reply("3")}),
        })
        assert len(bucket) == 2
        assert bucket.reply_count == 3

    def test_dict_keyed_by_topic_id(self):
        bucket = DayBucket(day="2024-01-15", topics={
            "a": Topic("a", "A", "u", "x", {"1": make_reply("1")}),
        })
        restored = DayBucket.from_dict("2024-01-15", bucket.to_dict())
        assert restored == bucket


class TestPassResult:
    def test_success(self):
        result = PassResult.success(True)
        assert result.ok
        assert result.has_new

    def test_failure_is_never_new(self):
        result = PassResult.failure("boom")
        assert not result.ok
        assert not result.has_new
        assert result.error == "boom"


def test_extracted_reply_is_hashable():
    ref = TopicRef(topic_id="7", title="T", url="u", user="bob")
    record = ExtractedReply(topic=ref, reply=make_reply())
    assert record in {record}
