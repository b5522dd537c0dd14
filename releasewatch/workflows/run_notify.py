from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable

import requests
from pydantic import ValidationError

from releasewatch.config.settings import Settings
from releasewatch.models.schemas import FeedConfig, FeedItem, FeedKind
from releasewatch.models.state import RssFeedState, RunState, load_state, save_state
from releasewatch.services import feed_parser
from releasewatch.services.formatter import format_slack_message
from releasewatch.services.release_feed import fetch_new
from releasewatch.services.relevance import RelevanceAnnotator
from releasewatch.services.rss_ingest import fetch_feed_text, select_new
from releasewatch.services.sinks import SEND_ERRORS
from releasewatch.services.translator import Translator
from releasewatch.tools.dates import local_day, utcnow, window_start

log = logging.getLogger(__name__)

FETCH_ERRORS = (requests.RequestException, ValueError, ValidationError)


def _collect_releases(s: Settings, state: RunState, since, session, stats: dict) -> tuple[list[FeedItem], int]:
    last_seen = state.release_feed.last_seen_id
    if not s.release_feed_url:
        return [], last_seen

    log.info("Last seen release id: %d", last_seen)
    try:
        releases, new_last = fetch_new(
            last_seen, since, url=s.release_feed_url, session=session, timeout=s.http_timeout,
        )
    except FETCH_ERRORS as e:
        log.error("Release feed fetch failed: %s", e)
        stats["source_errors"] += 1
        return [], last_seen

    log.info("New releases to notify: %d", len(releases))
    return [r.to_feed_item() for r in releases], new_last


def _collect_rss(s: Settings, feeds: list[FeedConfig], state: RunState, since, session, stats: dict) -> list[FeedItem]:
    out: list[FeedItem] = []
    for feed in feeds:
        if not feed.enabled:
            continue
        try:
            xml_text = fetch_feed_text(feed, session=session, timeout=s.http_timeout)
        except FETCH_ERRORS as e:
            log.error("Feed %s fetch failed: %s", feed.id, e)
            stats["source_errors"] += 1
            continue

        items = feed_parser.parse(xml_text, feed)
        selected, seen = select_new(
            items,
            state.seen_ids_for(feed.id),
            since,
            s.rss_max_per_feed,
            s.max_seen_ids,
        )
        state.rss[feed.id] = RssFeedState(seen_ids=seen)
        log.info("Feed %s: %d items, %d new", feed.id, len(items), len(selected))
        out.extend(selected)
    return out


def _send_all(item: FeedItem, summary: str, annotation: str | None, sinks: list, state: RunState, today, stats: dict) -> None:
    for sink in sinks:
        try:
            container_id = None
            if sink.bootstrap_key:
                entry = sink.ensure_container(state.sink_bootstrap.get(sink.bootstrap_key), today)
                state.sink_bootstrap[sink.bootstrap_key] = entry
                container_id = entry.id
            sink.send(item, summary, annotation, container_id)
            stats["sent"] += 1
            log.info("  ✓ %s: posted %s", sink.name, item.id)
        except SEND_ERRORS as e:
            stats["send_failures"] += 1
            log.error("  ✗ %s: failed to post %s: %s", sink.name, item.id, e)


def run_notify(
    s: Settings,
    feeds: list[FeedConfig],
    sinks: list,
    *,
    session: requests.Session | None = None,
    translator: Translator | None = None,
    annotator: RelevanceAnnotator | None = None,
    environment: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
    now: datetime | None = None,
    dry_run: bool = False,
) -> dict:
    """
    One polling pass: load state, fetch every source, keep what is new,
    translate/annotate/send each item, then persist state.
    """
    now = now or utcnow()
    today = local_day(now)
    since = window_start(now, s.time_window_hours)
    stats = {"source_errors": 0, "sent": 0, "send_failures": 0, "translated": 0, "annotated": 0}

    # 1) Load state
    state = load_state(s.state_file)

    # 2) Fetch + filter
    release_items, new_last_seen = _collect_releases(s, state, since, session, stats)
    rss_items = _collect_rss(s, feeds, state, since, session, stats)
    items = release_items + rss_items

    # 3) Per item
    for i, item in enumerate(items):
        log.info("Processing: %s %s", item.title, item.version or "")

        summary = item.summary
        if translator is not None and summary:
            result = translator.try_translate(summary, s.translate_target_lang)
            if result.translated:
                stats["translated"] += 1
            summary = result.text

        annotation = annotator.annotate(item, environment) if annotator is not None else None
        if annotation:
            stats["annotated"] += 1

        if dry_run:
            msg = format_slack_message(item, summary, annotation, max_chars=s.summary_max_chars, lang=s.translate_target_lang)
            log.info("[dry-run] %s", msg.text)
        else:
            _send_all(item, summary, annotation, sinks, state, today, stats)

        # attempted, so never retried for this id
        if item.feed_kind == FeedKind.STRUCTURED_RELEASE:
            state.release_feed.last_seen_id = max(state.release_feed.last_seen_id, int(item.id))

        if i < len(items) - 1 and s.rate_limit_seconds > 0:
            sleep(s.rate_limit_seconds)

    state.release_feed.last_seen_id = max(state.release_feed.last_seen_id, new_last_seen)

    # 4) Persist
    if dry_run:
        log.info("[dry-run] state not saved")
    else:
        save_state(state, s.state_file)
        log.info("Saved state (last seen release id: %d)", state.release_feed.last_seen_id)

    return {
        "releases_new": len(release_items),
        "rss_new": len(rss_items),
        "items_processed": len(items),
        "last_seen_id": state.release_feed.last_seen_id,
        **stats,
    }
