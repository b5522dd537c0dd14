from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from releasewatch.models.schemas import FeedConfig

log = logging.getLogger(__name__)

_FEEDS = TypeAdapter(list[FeedConfig])


def load_feed_configs(path: str | Path) -> list[FeedConfig]:
    """
    Read the RSS/Atom feed list (a JSON array of {id, name, vendor, url, enabled}).
    A missing or malformed file means "no RSS feeds".
    """
    p = Path(path)
    if not p.exists():
        log.info("No feed list at %s, RSS sources disabled", p)
        return []

    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("feeds", [])
        feeds = _FEEDS.validate_python(raw)
    except (OSError, ValueError, ValidationError) as e:
        log.warning("Could not read feed list %s (%s), RSS sources disabled", p, e)
        return []

    ids = [f.id for f in feeds]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        log.warning("Duplicate feed ids share dedup state: %s", ", ".join(dupes))
    return feeds
