from __future__ import annotations

import logging
from datetime import date

import requests

from releasewatch.config.settings import Settings, check_required_credentials
from releasewatch.models.schemas import FeedItem
from releasewatch.models.state import BootstrapEntry
from releasewatch.services.formatter import (
    DATABASE_SCHEMA,
    daily_title,
    format_notion_blocks,
    format_notion_row,
    format_slack_message,
)
from releasewatch.services.notion_client import NotionClient, NotionError
from releasewatch.services.slack_client import SlackClient, SlackError

log = logging.getLogger(__name__)

# errors a single send may raise; anything else is a bug and propagates
SEND_ERRORS = (SlackError, NotionError, requests.RequestException)


class SlackSink:
    name = "slack"
    bootstrap_key: str | None = None

    def __init__(self, client: SlackClient, max_chars: int = 500, lang: str | None = None) -> None:
        self.client = client
        self.max_chars = max_chars
        self.lang = lang

    def send(self, item: FeedItem, summary: str, annotation: str | None, container_id: str | None = None) -> None:
        msg = format_slack_message(item, summary, annotation, max_chars=self.max_chars, lang=self.lang)
        self.client.post_message(msg.blocks, msg.text)


class _NotionSink:
    """A Notion container that is created at most once per logical day."""

    name = "notion"
    bootstrap_key: str = ""

    def __init__(
        self,
        client: NotionClient,
        parent_page_id: str,
        title_prefix: str,
        max_chars: int = 500,
        lang: str | None = None,
    ) -> None:
        self.client = client
        self.parent_page_id = parent_page_id
        self.title_prefix = title_prefix
        self.max_chars = max_chars
        self.lang = lang

    def _create(self, title: str) -> str:
        raise NotImplementedError

    def ensure_container(self, entry: BootstrapEntry | None, today: date) -> BootstrapEntry:
        if entry is not None and entry.created_on == today:
            return entry
        title = daily_title(self.title_prefix, today)
        new_id = self._create(title)
        log.info("Created Notion %s %r (%s)", self.bootstrap_key, title, new_id)
        return BootstrapEntry(id=new_id, created_on=today)


class NotionPageSink(_NotionSink):
    bootstrap_key = "notion_page"

    def _create(self, title: str) -> str:
        return self.client.create_page(self.parent_page_id, title)

    def send(self, item: FeedItem, summary: str, annotation: str | None, container_id: str | None = None) -> None:
        if not container_id:
            raise NotionError("No Notion page to append to")
        blocks = format_notion_blocks(item, summary, annotation, max_chars=self.max_chars, lang=self.lang)
        self.client.append_blocks(container_id, blocks)


class NotionDatabaseSink(_NotionSink):
    bootstrap_key = "notion_database"

    def _create(self, title: str) -> str:
        return self.client.create_database(self.parent_page_id, title, DATABASE_SCHEMA)

    def send(self, item: FeedItem, summary: str, annotation: str | None, container_id: str | None = None) -> None:
        if not container_id:
            raise NotionError("No Notion database to add rows to")
        children = None
        if annotation:
            children = format_notion_blocks(item, summary, annotation, max_chars=self.max_chars, lang=self.lang)
        self.client.create_row(container_id, format_notion_row(item, summary, max_chars=self.max_chars), children)


def build_sinks(s: Settings, session: requests.Session | None = None) -> list:
    """
    Sinks for this run, primary first. Raises ConfigError when the primary
    sink has no credentials; an unconfigured secondary sink is skipped.
    """
    check_required_credentials(s)

    sinks: list = []
    if s.slack_configured:
        sinks.append(SlackSink(
            SlackClient(s.slack_bot_token, s.slack_channel_id, session=session, timeout=s.http_timeout),
            max_chars=s.summary_max_chars,
            lang=s.translate_target_lang,
        ))
    elif s.primary_sink != "slack":
        log.warning("Slack not configured (SLACK_BOT_TOKEN / SLACK_CHANNEL_ID), skipping Slack")

    if s.notion_configured:
        client = NotionClient(s.notion_token, session=session, timeout=s.http_timeout, version=s.notion_version)
        cls = NotionDatabaseSink if s.notion_mode == "database" else NotionPageSink
        sink = cls(
            client, s.notion_parent_page_id, s.notion_title_prefix,
            max_chars=s.summary_max_chars, lang=s.translate_target_lang,
        )
        if s.primary_sink == "notion":
            sinks.insert(0, sink)
        else:
            sinks.append(sink)
    elif s.primary_sink != "notion":
        log.warning("Notion not configured (NOTION_TOKEN / NOTION_PARENT_PAGE_ID), skipping Notion")

    return sinks
