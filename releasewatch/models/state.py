from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

log = logging.getLogger(__name__)


class ReleaseFeedState(BaseModel):
    last_seen_id: int = 0


class RssFeedState(BaseModel):
    # oldest first
    seen_ids: list[str] = Field(default_factory=list)


class BootstrapEntry(BaseModel):
    id: str
    created_on: date


class RunState(BaseModel):
    """
    Everything a run needs to remember: dedup positions per source and
    the ids of lazily created destination containers.
    """

    release_feed: ReleaseFeedState = Field(default_factory=ReleaseFeedState)
    rss: dict[str, RssFeedState] = Field(default_factory=dict)
    sink_bootstrap: dict[str, BootstrapEntry] = Field(default_factory=dict)

    def seen_ids_for(self, feed_id: str) -> list[str]:
        st = self.rss.get(feed_id)
        return list(st.seen_ids) if st else []


def load_state(path: str | Path) -> RunState:
    """
    Read persisted state. Missing, unreadable or invalid files give an
    empty state: re-notifying is acceptable, aborting the run is not.
    """
    p = Path(path)
    if not p.exists():
        log.info("No previous state at %s, starting fresh", p)
        return RunState()

    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
        return RunState.model_validate(raw)
    except (OSError, ValueError, ValidationError) as e:
        log.warning("Could not read state file %s (%s), starting fresh", p, e)
        return RunState()


def save_state(state: RunState, path: str | Path) -> None:
    """Write state atomically (temp file in the same dir + rename)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    data = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
