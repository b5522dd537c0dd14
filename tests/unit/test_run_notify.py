"""
Orchestrator: fetch -> filter -> per-item send -> persist.
"""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import requests

from releasewatch.models.schemas import FeedConfig
from releasewatch.models.state import BootstrapEntry, RssFeedState, RunState, load_state, save_state
from releasewatch.services.slack_client import SlackError
from releasewatch.services.translator import TranslationResult
from releasewatch.tools.dates import local_day
from releasewatch.workflows.run_notify import run_notify

NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def _releases(*ids, date="2024-06-09T00:00:00Z"):
    return {"releases": [
        {
            "id": i,
            "product": {"display_name": f"P{i}", "vendor": {"display_name": "Acme", "slug": "acme"}},
            "release_details": {"release_summary": f"summary {i}", "release_number": f"1.{i}"},
            "release_date": date,
        }
        for i in ids
    ]}


def _sink(name="slack", bootstrap_key=None):
    sink = MagicMock()
    sink.name = name
    sink.bootstrap_key = bootstrap_key
    return sink


class TestReleaseFlow:

    def test_sends_new_releases_oldest_first(self, settings, session, response):
        save_state(RunState.model_validate({"release_feed": {"last_seen_id": 5}}), settings.state_file)
        session.get.return_value = response(json_data=_releases(7, 5, 6))
        sink = _sink()
        sleep = MagicMock()

        result = run_notify(settings, [], [sink], session=session, sleep=sleep, now=NOW)

        sent_ids = [c.args[0].id for c in sink.send.call_args_list]
        assert sent_ids == ["6", "7"]
        assert result["last_seen_id"] == 7
        assert result["sent"] == 2
        assert load_state(settings.state_file).release_feed.last_seen_id == 7
        # one pause between two items
        sleep.assert_called_once_with(1.0)

    def test_send_failure_does_not_stop_run(self, settings, session, response):
        session.get.return_value = response(json_data=_releases(1, 2, 3))
        sink = _sink()
        sink.send.side_effect = [None, SlackError("Slack API error: rate_limited"), None]

        result = run_notify(settings, [], [sink], session=session, sleep=MagicMock(), now=NOW)

        assert sink.send.call_count == 3
        assert result["send_failures"] == 1
        assert result["sent"] == 2
        assert load_state(settings.state_file).release_feed.last_seen_id == 3

    def test_failure_on_last_item_still_advances(self, settings, session, response):
        session.get.return_value = response(json_data=_releases(1, 2))
        sink = _sink()
        sink.send.side_effect = [None, requests.ConnectionError("reset")]

        run_notify(settings, [], [sink], session=session, sleep=MagicMock(), now=NOW)
        assert load_state(settings.state_file).release_feed.last_seen_id == 2

    def test_fetch_failure_keeps_state_and_saves(self, settings, session):
        save_state(RunState.model_validate({"release_feed": {"last_seen_id": 9}}), settings.state_file)
        session.get.side_effect = requests.ConnectionError("dns")
        sink = _sink()

        result = run_notify(settings, [], [sink], session=session, sleep=MagicMock(), now=NOW)

        sink.send.assert_not_called()
        assert result["source_errors"] == 1
        assert load_state(settings.state_file).release_feed.last_seen_id == 9

    def test_bad_json_is_a_source_error(self, settings, session, response):
        session.get.return_value = response(json_data=ValueError("Expecting value"))
        result = run_notify(settings, [], [_sink()], session=session, sleep=MagicMock(), now=NOW)
        assert result["source_errors"] == 1
        assert result["items_processed"] == 0

    def test_empty_run_still_writes_state(self, settings, session, response):
        session.get.return_value = response(json_data={"releases": []})
        run_notify(settings, [], [_sink()], session=session, sleep=MagicMock(), now=NOW)
        assert load_state(settings.state_file) == RunState()
        assert Path(settings.state_file).exists()

    def test_recency_window_applies(self, settings, session, response):
        settings.time_window_hours = 48
        payload = _releases(1, date="2024-01-01T00:00:00Z")
        payload["releases"] += _releases(2)["releases"]
        payload["releases"].append({"id": 3, "product": {"display_name": "undated"}})
        session.get.return_value = response(json_data=payload)
        sink = _sink()

        result = run_notify(settings, [], [sink], session=session, sleep=MagicMock(), now=NOW)

        assert [c.args[0].id for c in sink.send.call_args_list] == ["2"]
        assert result["last_seen_id"] == 2

    def test_translation_and_annotation_are_passed_to_sinks(self, settings, session, response):
        session.get.return_value = response(json_data=_releases(1))
        translator = MagicMock()
        translator.try_translate.return_value = TranslationResult(text="요약 1", provider="deepl")
        annotator = MagicMock()
        annotator.annotate.return_value = "Relevance: high"
        sink = _sink()

        result = run_notify(
            settings, [], [sink],
            session=session, translator=translator, annotator=annotator,
            environment="tools: Acme", sleep=MagicMock(), now=NOW,
        )

        item, summary, annotation, container = sink.send.call_args.args
        assert (summary, annotation, container) == ("요약 1", "Relevance: high", None)
        translator.try_translate.assert_called_once_with("summary 1", "KO")
        annotator.annotate.assert_called_once_with(item, "tools: Acme")
        assert result["translated"] == 1
        assert result["annotated"] == 1

    def test_dry_run_sends_nothing_and_saves_nothing(self, settings, session, response):
        session.get.return_value = response(json_data=_releases(1, 2))
        sink = _sink()

        result = run_notify(settings, [], [sink], session=session, sleep=MagicMock(), now=NOW, dry_run=True)

        sink.send.assert_not_called()
        assert result["items_processed"] == 2
        assert not Path(settings.state_file).exists()


class TestRssFlow:

    FEED = FeedConfig(id="blog", name="Blog", vendor="Acme", url="https://acme.test/feed.xml")

    def test_rss_items_dedup_against_seen_ids(self, settings, session, response, rss_doc):
        settings.release_feed_url = ""
        state = RunState()
        state.rss["blog"] = RssFeedState(seen_ids=["g1"])
        save_state(state, settings.state_file)
        session.get.return_value = response(text=rss_doc)
        sink = _sink()

        result = run_notify(settings, [self.FEED], [sink], session=session, sleep=MagicMock(), now=NOW)

        sent = [c.args[0].id for c in sink.send.call_args_list]
        assert sent == ["https://acme.test/posts/2", "g3"]
        assert result["rss_new"] == 2
        assert load_state(settings.state_file).seen_ids_for("blog") == ["g1", "https://acme.test/posts/2", "g3"]

    def test_second_run_sends_nothing(self, settings, session, response, rss_doc):
        settings.release_feed_url = ""
        session.get.return_value = response(text=rss_doc)
        run_notify(settings, [self.FEED], [_sink()], session=session, sleep=MagicMock(), now=NOW)

        sink = _sink()
        result = run_notify(settings, [self.FEED], [sink], session=session, sleep=MagicMock(), now=NOW)
        sink.send.assert_not_called()
        assert result["rss_new"] == 0

    def test_failing_feed_does_not_block_others(self, settings, session, response, rss_doc):
        settings.release_feed_url = ""
        broken = FeedConfig(id="broken", name="Broken", url="https://broken.test/rss")
        session.get.side_effect = [response(status=500), response(text=rss_doc)]
        sink = _sink()

        result = run_notify(settings, [broken, self.FEED], [sink], session=session, sleep=MagicMock(), now=NOW)

        assert result["source_errors"] == 1
        assert sink.send.call_count == 3

    def test_disabled_feed_is_skipped(self, settings, session):
        settings.release_feed_url = ""
        disabled = self.FEED.model_copy(update={"enabled": False})
        run_notify(settings, [disabled], [_sink()], session=session, sleep=MagicMock(), now=NOW)
        session.get.assert_not_called()


class TestBootstrap:

    def test_container_created_once_and_stored(self, settings, session, response):
        session.get.return_value = response(json_data=_releases(1, 2))
        notion = _sink("notion", "notion_page")
        notion.ensure_container.side_effect = (
            lambda entry, today: entry or BootstrapEntry(id="page-1", created_on=today)
        )

        run_notify(settings, [], [notion], session=session, sleep=MagicMock(), now=NOW)

        containers = [c.args[3] for c in notion.send.call_args_list]
        assert containers == ["page-1", "page-1"]
        stored = load_state(settings.state_file).sink_bootstrap["notion_page"]
        assert stored.id == "page-1"
        assert stored.created_on == local_day(NOW)

    def test_container_failure_counts_as_send_failure(self, settings, session, response):
        from releasewatch.services.notion_client import NotionError

        session.get.return_value = response(json_data=_releases(1))
        slack = _sink()
        notion = _sink("notion", "notion_page")
        notion.ensure_container.side_effect = NotionError("unauthorized", status=401)

        result = run_notify(settings, [], [slack, notion], session=session, sleep=MagicMock(), now=NOW)

        slack.send.assert_called_once()
        notion.send.assert_not_called()
        assert result["send_failures"] == 1
        assert "notion_page" not in load_state(settings.state_file).sink_bootstrap
