"""
Dedup / recency filters for both source kinds.
"""

from datetime import datetime, timedelta, timezone

import pytest
import requests

from releasewatch.models.schemas import FeedItem, Release
from releasewatch.services.release_feed import fetch_new, fetch_releases, select_new_releases
from releasewatch.services.rss_ingest import fetch_feed_text, select_new

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def _item(item_id, published=NOW):
    return FeedItem(id=item_id, title=item_id, published_at=published)


def _release(rid, date="2024-06-09T00:00:00Z"):
    return Release.model_validate({
        "id": rid,
        "product": {"display_name": "Widget", "vendor": {"display_name": "Acme", "slug": "acme"}},
        "release_details": {"release_summary": f"summary {rid}", "release_number": f"1.{rid}"},
        "release_date": date,
    })


class TestSelectNew:

    def test_skips_seen_ids(self):
        items = [_item("a"), _item("c"), _item("d")]
        selected, seen = select_new(items, ["a", "b"], None, max_per_feed=10)
        assert [it.id for it in selected] == ["c", "d"]
        assert seen == ["a", "b", "c", "d"]

    def test_cap_keeps_feed_order(self):
        items = [_item(x) for x in ["z", "y", "x", "w"]]
        selected, seen = select_new(items, [], None, max_per_feed=2)
        assert [it.id for it in selected] == ["z", "y"]
        assert seen == ["z", "y"]

    def test_seen_ids_are_bounded_oldest_first(self):
        old = [f"o{i}" for i in range(5)]
        selected, seen = select_new([_item("n1"), _item("n2")], old, None, max_per_feed=10, max_seen_ids=4)
        assert seen == ["o3", "o4", "n1", "n2"]

    def test_duplicate_ids_in_one_batch(self):
        selected, seen = select_new([_item("a"), _item("a")], [], None, max_per_feed=10)
        assert [it.id for it in selected] == ["a"]
        assert seen == ["a"]

    def test_recency_window(self):
        since = NOW - timedelta(days=7)
        items = [
            _item("fresh", NOW - timedelta(days=1)),
            _item("stale", NOW - timedelta(days=8)),
            _item("undated", None),
        ]
        selected, _ = select_new(items, [], since, max_per_feed=10)
        assert [it.id for it in selected] == ["fresh"]

    def test_undated_items_pass_without_window(self):
        selected, _ = select_new([_item("undated", None)], [], None, max_per_feed=10)
        assert [it.id for it in selected] == ["undated"]

    def test_inputs_not_mutated(self):
        seen_in = ["a"]
        select_new([_item("b")], seen_in, None, max_per_feed=10)
        assert seen_in == ["a"]


class TestSelectNewReleases:

    def test_newer_ids_oldest_first(self):
        releases = [_release(7), _release(5), _release(6)]
        fresh, last = select_new_releases(releases, 5, None)
        assert [r.id for r in fresh] == [6, 7]
        assert last == 7

    def test_nothing_new_keeps_last_seen(self):
        fresh, last = select_new_releases([_release(3), _release(4)], 5, None)
        assert fresh == []
        assert last == 5

    def test_window_drops_old_and_undated(self):
        since = NOW - timedelta(days=7)
        releases = [
            _release(10, "2024-06-09T00:00:00Z"),
            _release(11, "2024-05-01T00:00:00Z"),
            _release(12, None),
            _release(13, "garbage date"),
        ]
        fresh, last = select_new_releases(releases, 0, since)
        assert [r.id for r in fresh] == [10]
        assert last == 10


class TestFetch:

    def test_fetch_releases_skips_bad_records(self, session, response):
        session.get.return_value = response(json_data={"releases": [
            {"id": 1, "product": {"display_name": "A"}},
            {"product": {"display_name": "no id"}},
            {"id": "x"},
        ]})
        releases = fetch_releases("https://releases.test/feed.json", session=session)
        assert [r.id for r in releases] == [1]

    def test_fetch_releases_tolerates_nulls_and_numeric_versions(self, session, response):
        session.get.return_value = response(json_data={"releases": [
            {"id": 6, "product": {"display_name": "A", "vendor": {"display_name": "Acme", "slug": None}}},
            {"id": 7, "product": {"display_name": None}, "release_details": {"release_number": 2}},
        ]})
        six, seven = fetch_releases("https://releases.test/feed.json", session=session)

        assert (six.id, seven.id) == (6, 7)
        assert six.to_feed_item().vendor_slug is None
        assert six.vendor_name == "Acme"
        assert seven.product_name == "Unknown Product"
        assert seven.version == "2"
        assert seven.to_feed_item().title == "Unknown Product"

    def test_fetch_releases_without_releases_key(self, session, response):
        session.get.return_value = response(json_data={})
        assert fetch_releases("https://releases.test", session=session) == []

    def test_fetch_releases_rejects_non_object(self, session, response):
        session.get.return_value = response(json_data=[1, 2])
        with pytest.raises(ValueError):
            fetch_releases("https://releases.test", session=session)

    def test_fetch_new(self, session, response):
        session.get.return_value = response(json_data={"releases": [
            {"id": 5}, {"id": 6}, {"id": 7},
        ]})
        fresh, last = fetch_new(5, None, url="https://releases.test", session=session)
        assert [r.id for r in fresh] == [6, 7]
        assert last == 7

    def test_fetch_feed_text_propagates_http_errors(self, session, response, feed):
        session.get.return_value = response(status=503)
        with pytest.raises(requests.HTTPError):
            fetch_feed_text(feed, session=session)

    def test_fetch_feed_text(self, session, response, feed):
        session.get.return_value = response(text="<rss/>")
        assert fetch_feed_text(feed, session=session, timeout=5) == "<rss/>"
        args, kwargs = session.get.call_args
        assert args[0] == feed.url
        assert kwargs["timeout"] == 5
