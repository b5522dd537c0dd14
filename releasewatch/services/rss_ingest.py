from __future__ import annotations

from datetime import datetime

import requests

from releasewatch.models.schemas import FeedConfig, FeedItem
from releasewatch.tools.dates import within_window

MAX_SEEN_IDS = 200

_HEADERS = {
    "User-Agent": "releasewatch/0.1 (+feed poller)",
    "Accept": "application/atom+xml, application/rss+xml, application/xml;q=0.9, */*;q=0.8",
}


def fetch_feed_text(feed: FeedConfig, session: requests.Session | None = None, timeout: float = 20) -> str:
    http = session or requests
    r = http.get(feed.url, headers=_HEADERS, timeout=timeout)
    r.raise_for_status()
    return r.text


def select_new(
    items: list[FeedItem],
    seen_ids: list[str],
    since: datetime | None,
    max_per_feed: int,
    max_seen_ids: int = MAX_SEEN_IDS,
) -> tuple[list[FeedItem], list[str]]:
    """
    Cheap rules, in feed order: recency window, already seen, per-feed cap.
    Returns the selection and the bounded seen-id list to persist.
    """
    seen = set(seen_ids)
    selected: list[FeedItem] = []

    for it in items:
        if max_per_feed > 0 and len(selected) >= max_per_feed:
            break
        if not within_window(it.published_at, since):
            continue
        if it.id in seen:
            continue
        seen.add(it.id)
        selected.append(it)

    updated = list(seen_ids) + [it.id for it in selected]
    if max_seen_ids > 0 and len(updated) > max_seen_ids:
        updated = updated[-max_seen_ids:]
    return selected, updated
