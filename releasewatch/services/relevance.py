from __future__ import annotations

import json
import logging
from pathlib import Path

import requests

from releasewatch.models.schemas import FeedItem
from releasewatch.services.ollama_client import OllamaClient

log = logging.getLogger(__name__)


RELEVANCE_SYSTEM = """You review software release notes for one engineer.
You get a release/news item and a description of the engineer's environment
(tools, skills, active projects).
Answer in at most 3 short lines:
Relevance: high | medium | low | none
Why: one sentence naming the affected tool or project
Action: one concrete next step, or "none"
Be strict: an unrelated product is "none".
"""


def load_environment(path: str | Path) -> str | None:
    """
    Read the environment description. JSON is re-serialised for the prompt,
    anything else is passed through as text. Missing/empty file -> None.
    """
    p = Path(path)
    if not p.exists():
        return None
    try:
        text = p.read_text(encoding="utf-8").strip()
    except OSError as e:
        log.warning("Could not read environment file %s: %s", p, e)
        return None
    if not text:
        return None

    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except ValueError:
        return text


def _item_to_prompt(item: FeedItem, environment: str) -> str:
    return f"""Rate this item:

TITLE: {item.title}
VENDOR: {item.vendor_name or "-"}
VERSION: {item.version or "-"}
SOURCE: {item.source_name or "-"}
SUMMARY: {item.summary[:1200]}

ENVIRONMENT:
{environment}
"""


class RelevanceAnnotator:
    def __init__(self, llm: OllamaClient | None, timeout: float = 30) -> None:
        self.llm = llm if llm is not None and llm.enabled else None
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.llm is not None

    def annotate(self, item: FeedItem, environment: str | None) -> str | None:
        if self.llm is None or not environment:
            return None
        try:
            out = self.llm.chat(RELEVANCE_SYSTEM, _item_to_prompt(item, environment), timeout=self.timeout)
        except (requests.RequestException, ValueError, RuntimeError) as e:
            log.warning("Relevance annotation failed for %s: %s", item.id, e)
            return None
        return out or None
