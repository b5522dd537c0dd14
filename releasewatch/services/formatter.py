from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from releasewatch.models.schemas import FeedItem, FeedKind
from releasewatch.services.text_normalizer import truncate
from releasewatch.tools.dates import display_date

SLACK_HEADER_MAX = 150
SUMMARY_MAX = 500
NOTION_TEXT_MAX = 2000

# Message chrome follows the translation target; anything else gets English.
LABELS: dict[str, dict[str, str]] = {
    "EN": {
        "version": "Version",
        "no_version": "No version info",
        "notes": "Release notes",
        "release": "release",
        "relevance": "Relevance",
    },
    "KO": {
        "version": "버전",
        "no_version": "버전 정보 없음",
        "notes": "릴리스 노트",
        "release": "릴리스",
        "relevance": "관련성",
    },
}


def labels_for(lang: str | None) -> dict[str, str]:
    base = (lang or "").strip().upper().split("-")[0]
    return LABELS.get(base, LABELS["EN"])


# ---------------------------
# Slack mrkdwn helpers
# ---------------------------

def mrkdwn_escape(text: str) -> str:
    if text is None:
        return ""
    # Slack only needs these three escaped
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def fmt_link(title: str, url: str) -> str:
    safe_title = mrkdwn_escape(title).replace("|", "¦")
    if not url:
        return f"*{safe_title}*"
    return f"<{url}|{safe_title}>"


def _header_text(item: FeedItem) -> str:
    if item.feed_kind == FeedKind.STRUCTURED_RELEASE:
        text = f"🚀 {item.title}"
    else:
        label = item.source_name or item.vendor_name or "News"
        text = f"📰 {label}"
    return truncate(text, SLACK_HEADER_MAX - 3, "...")


@dataclass
class SlackMessage:
    blocks: list[dict[str, Any]]
    text: str


def format_slack_message(
    item: FeedItem,
    summary: str | None = None,
    annotation: str | None = None,
    max_chars: int = SUMMARY_MAX,
    lang: str | None = None,
) -> SlackMessage:
    body = (summary if summary is not None else item.summary).strip()
    labels = labels_for(lang)

    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": _header_text(item), "emoji": True},
        }
    ]

    if item.feed_kind == FeedKind.STRUCTURED_RELEASE:
        if item.version:
            line = f"*{labels['version']}:* `{mrkdwn_escape(item.version)}`"
        else:
            line = f"_{labels['no_version']}_"
        if item.link:
            line += f"  •  <{item.link}|{labels['notes']}>"
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": line}})
    else:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": fmt_link(item.title or "Untitled", item.link)}})

    if body:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": mrkdwn_escape(truncate(body, max_chars, "..."))},
        })

    if annotation:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"🎯 *{labels['relevance']}*\n{mrkdwn_escape(annotation.strip())}"},
        })

    context = []
    if item.published_at:
        context.append(f"📅 {display_date(item.published_at, lang)}")
    if item.feed_kind == FeedKind.RSS and item.vendor_name:
        context.append(f"🏷️ {mrkdwn_escape(item.vendor_name)}")
    if context:
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": "  •  ".join(context)}],
        })

    blocks.append({"type": "divider"})

    if item.feed_kind == FeedKind.STRUCTURED_RELEASE:
        fallback = f"{item.title} {item.version or ''} {labels['release']}".replace("  ", " ")
    else:
        fallback = f"{item.source_name}: {item.title}" if item.source_name else item.title
    return SlackMessage(blocks=blocks, text=fallback.strip())


# ---------------------------
# Notion blocks / rows
# ---------------------------

def rich_text(content: str, url: str | None = None, bold: bool = False) -> list[dict[str, Any]]:
    """Notion rich_text array; long content is split into 2000-char chunks."""
    content = content or ""
    chunks = [content[i:i + NOTION_TEXT_MAX] for i in range(0, len(content), NOTION_TEXT_MAX)] or [""]
    out = []
    for chunk in chunks:
        text: dict[str, Any] = {"content": chunk}
        if url:
            text["link"] = {"url": url}
        rt: dict[str, Any] = {"type": "text", "text": text}
        if bold:
            rt["annotations"] = {"bold": True}
        out.append(rt)
    return out


def _block(kind: str, **body: Any) -> dict[str, Any]:
    return {"object": "block", "type": kind, kind: body}


def _display_title(item: FeedItem) -> str:
    if item.feed_kind == FeedKind.STRUCTURED_RELEASE and item.version:
        return f"{item.title} {item.version}"
    return item.title or "Untitled"


def format_notion_blocks(
    item: FeedItem,
    summary: str | None = None,
    annotation: str | None = None,
    max_chars: int = SUMMARY_MAX,
    lang: str | None = None,
) -> list[dict[str, Any]]:
    body = (summary if summary is not None else item.summary).strip()
    blocks = [_block("heading_3", rich_text=rich_text(_display_title(item), url=item.link or None))]

    if body:
        blocks.append(_block("paragraph", rich_text=rich_text(truncate(body, max_chars, "..."))))

    if annotation:
        blocks.append(_block(
            "callout",
            rich_text=rich_text(annotation.strip()),
            icon={"type": "emoji", "emoji": "🎯"},
        ))

    meta = [p for p in (item.vendor_name, display_date(item.published_at, lang), item.source_name) if p]
    if meta:
        blocks.append(_block("paragraph", rich_text=rich_text(" · ".join(meta))))

    blocks.append(_block("divider"))
    return blocks


DATABASE_SCHEMA: dict[str, Any] = {
    "Title": {"title": {}},
    "Vendor": {"rich_text": {}},
    "Date": {"date": {}},
    "Summary": {"rich_text": {}},
    "URL": {"url": {}},
    "Source": {"select": {}},
}


def format_notion_row(
    item: FeedItem,
    summary: str | None = None,
    max_chars: int = SUMMARY_MAX,
) -> dict[str, Any]:
    body = (summary if summary is not None else item.summary).strip()
    props: dict[str, Any] = {
        "Title": {"title": rich_text(_display_title(item))},
        "Vendor": {"rich_text": rich_text(item.vendor_name)},
        "Summary": {"rich_text": rich_text(truncate(body, max_chars, "..."))},
        "URL": {"url": item.link or None},
        "Date": {"date": {"start": item.published_at.isoformat()} if item.published_at else None},
    }
    if item.source_name:
        # select options cannot contain commas
        props["Source"] = {"select": {"name": item.source_name.replace(",", " ")[:100]}}
    return props


def daily_title(prefix: str, day: date) -> str:
    return f"{prefix} {day.isoformat()}"
