"""
Unit tests for notification classification and normalization.
"""

from datetime import datetime, timezone

import pytest

from umami_sync.errors import MalformedPayloadError
from umami_sync.models import RecordKind
from umami_sync.normalizer import (
    SESSION_CHANNEL,
    UNKNOWN,
    WEBSITE_EVENT_CHANNEL,
    classify,
    normalize,
)
from umami_sync.utils import format_timestamp, parse_datetime

PAGEVIEW_ROW = {
    "event_id": "9f1c6a52-3b1d-4e1f-8d2a-0c7e5b4a1f11",
    "website_id": "c1b7a0de-5b5e-4a43-9c1e-8b0c4a6f2d10",
    "session_id": "5e2d9f43-1a7c-4b8e-a0f3-2d6c9e1b7a54",
    "created_at": "2024-03-05T10:15:30.123456+00:00",
    "url_path": "/pricing",
    "url_query": "ref=nav",
    "referrer_path": "/",
    "referrer_domain": "news.example.org",
    "page_title": "Pricing",
    "hostname": "example.com",
    "event_type": 1,
    "event_name": None,
}


class TestClassify:
    def test_pageview_and_custom_event(self):
        assert classify(WEBSITE_EVENT_CHANNEL, {"event_type": 1}) is RecordKind.PAGEVIEW
        assert classify(WEBSITE_EVENT_CHANNEL, {"event_type": 2}) is RecordKind.EVENT

    def test_session_channel(self):
        assert classify(SESSION_CHANNEL, {}) is RecordKind.SESSION

    def test_unmirrored_rows_ignored(self):
        assert classify(WEBSITE_EVENT_CHANNEL, {"event_type": 3}) is None
        assert classify(WEBSITE_EVENT_CHANNEL, {}) is None
        assert classify("other_channel", {"event_type": 1}) is None


class TestNormalize:
    def test_pageview(self):
        item = normalize(RecordKind.PAGEVIEW, PAGEVIEW_ROW)

        assert item.kind is RecordKind.PAGEVIEW
        assert item.site_id == PAGEVIEW_ROW["website_id"]
        assert item.source_id == PAGEVIEW_ROW["event_id"]
        assert item.occurred_at == "2024-03-05T10:15:30.123Z"
        assert item.body["url_query"] == "ref=nav"
        assert item.body["created_at"] == item.occurred_at
        assert "event_type" not in item.body
        assert item.tags == {
            "url_path": "/pricing",
            "hostname": "example.com",
            "referrer_domain": "news.example.org",
        }

    def test_custom_event_tags(self):
        row = {**PAGEVIEW_ROW, "event_type": 2, "event_name": "signup"}
        item = normalize(RecordKind.EVENT, row)

        assert item.kind is RecordKind.EVENT
        assert item.body["event_name"] == "signup"
        assert list(item.tags) == ["event_name", "url_path", "hostname"]

    def test_session_missing_descriptive_fields_use_sentinel(self):
        row = {
            "session_id": "5e2d9f43-1a7c-4b8e-a0f3-2d6c9e1b7a54",
            "website_id": "c1b7a0de-5b5e-4a43-9c1e-8b0c4a6f2d10",
            "created_at": "2024-03-05T10:15:30Z",
            "browser": "firefox",
            "country": None,
        }
        item = normalize(RecordKind.SESSION, row)

        assert item.source_id == row["session_id"]
        assert item.tags == {
            "country": UNKNOWN,
            "device": UNKNOWN,
            "browser": "firefox",
            "os": UNKNOWN,
        }
        assert item.body["country"] is None

    def test_missing_website_id_is_malformed(self):
        row = {k: v for k, v in PAGEVIEW_ROW.items() if k != "website_id"}
        with pytest.raises(MalformedPayloadError, match="website_id"):
            normalize(RecordKind.PAGEVIEW, row)

    def test_missing_source_id_still_normalizes(self):
        row = {**PAGEVIEW_ROW, "event_id": None}
        item = normalize(RecordKind.PAGEVIEW, row)
        assert item.source_id is None

    def test_non_object_payload_is_malformed(self):
        with pytest.raises(MalformedPayloadError):
            normalize(RecordKind.SESSION, ["not", "an", "object"])

    def test_numeric_tags_stringified_when_descriptive(self):
        row = {**PAGEVIEW_ROW, "hostname": 1234}
        item = normalize(RecordKind.PAGEVIEW, row)
        assert item.tags["hostname"] == "1234"


class TestTimestamps:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-01-01T00:00:00Z", "2024-01-01T00:00:00Z"),
            ("2024-01-01T02:00:00+02:00", "2024-01-01T00:00:00Z"),
            ("2024-01-01 00:00:00.500", "2024-01-01T00:00:00.500Z"),
            (datetime(2024, 1, 1, tzinfo=timezone.utc), "2024-01-01T00:00:00Z"),
            (1704067200, "2024-01-01T00:00:00Z"),
            (1704067200000, "2024-01-01T00:00:00Z"),
        ],
    )
    def test_canonical_form(self, value, expected):
        assert format_timestamp(value) == expected

    def test_missing_or_garbage_falls_back_to_now(self):
        for value in (None, "", "yesterday-ish"):
            dt = parse_datetime(format_timestamp(value))
            assert dt is not None
            assert abs((datetime.now(timezone.utc) - dt).total_seconds()) < 5

    def test_naive_datetime_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 6, 1, 12, 0, 0)) == "2024-06-01T12:00:00Z"


def test_falsy_but_present_tag_values_are_kept():
    row = {**PAGEVIEW_ROW, "hostname": 0, "referrer_domain": ""}
    item = normalize(RecordKind.PAGEVIEW, row)
    assert item.tags["hostname"] == "0"
    assert item.tags["referrer_domain"] == UNKNOWN
