from __future__ import annotations

import logging
from datetime import datetime

import requests
from pydantic import ValidationError

from releasewatch.models.schemas import Release
from releasewatch.tools.dates import within_window

log = logging.getLogger(__name__)


def fetch_releases(url: str, session: requests.Session | None = None, timeout: float = 20) -> list[Release]:
    """
    GET the JSON release feed and return its records.
    Records without a usable integer id are skipped.
    """
    http = session or requests
    r = http.get(url, timeout=timeout)
    r.raise_for_status()
    data = r.json()

    if not isinstance(data, dict):
        raise ValueError(f"Release feed returned {type(data).__name__}, expected an object")

    releases: list[Release] = []
    for raw in data.get("releases") or []:
        try:
            releases.append(Release.model_validate(raw))
        except ValidationError as e:
            log.warning("Skipping malformed release record: %s", e.errors()[:1])
    return releases


def select_new_releases(
    releases: list[Release],
    last_seen_id: int,
    since: datetime | None,
) -> tuple[list[Release], int]:
    """
    Releases newer than last_seen_id (and inside the recency window when
    one is set), oldest id first, plus the id to remember next.
    """
    fresh = [
        r for r in releases
        if r.id > last_seen_id and within_window(r.released_at, since)
    ]
    fresh.sort(key=lambda r: r.id)

    new_last = fresh[-1].id if fresh else last_seen_id
    return fresh, new_last


def fetch_new(
    last_seen_id: int,
    since: datetime | None,
    *,
    url: str,
    session: requests.Session | None = None,
    timeout: float = 20,
) -> tuple[list[Release], int]:
    releases = fetch_releases(url, session=session, timeout=timeout)
    log.info("Release feed: %d releases total", len(releases))
    return select_new_releases(releases, last_seen_id, since)
