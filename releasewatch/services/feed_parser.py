from __future__ import annotations

import hashlib
import logging
import re

from releasewatch.models.schemas import FeedConfig, FeedItem, FeedKind
from releasewatch.services.text_normalizer import decode, truncate
from releasewatch.tools.dates import parse_date

log = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 500

_ENTRY_RE = re.compile(r"<entry\b[^>]*>(.*?)</entry\s*>", re.IGNORECASE | re.DOTALL)
_ITEM_RE = re.compile(r"<item\b[^>]*>(.*?)</item\s*>", re.IGNORECASE | re.DOTALL)
_LINK_TAG_RE = re.compile(r"<link\b([^>]*)/?>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""([\w:-]+)\s*=\s*("([^"]*)"|'([^']*)')""")


def extract_tag_content(block: str, tag: str) -> str:
    """
    Raw inner text of the first <tag>...</tag> in block.
    A CDATA-wrapped body wins over a plain one; tag may carry a prefix ("dc:date").
    """
    t = re.escape(tag)
    cdata = re.search(
        rf"<{t}(?:\s[^>]*)?>\s*<!\[CDATA\[(.*?)\]\]>\s*</{t}\s*>",
        block,
        re.IGNORECASE | re.DOTALL,
    )
    if cdata:
        return cdata.group(1)

    plain = re.search(rf"<{t}(?:\s[^>]*)?>(.*?)</{t}\s*>", block, re.IGNORECASE | re.DOTALL)
    if plain:
        return plain.group(1)
    return ""


def _first_tag(block: str, *tags: str) -> str:
    for tag in tags:
        value = extract_tag_content(block, tag)
        if value.strip():
            return value
    return ""


def _attrs(raw: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for m in _ATTR_RE.finditer(raw):
        value = m.group(3) if m.group(3) is not None else m.group(4)
        out[m.group(1).lower()] = value
    return out


def _atom_link(block: str) -> str:
    fallback = ""
    for m in _LINK_TAG_RE.finditer(block):
        attrs = _attrs(m.group(1))
        href = attrs.get("href", "")
        if not href:
            continue
        if attrs.get("rel", "").lower() == "alternate":
            return href
        if not fallback:
            fallback = href
    return fallback


def _content_id(*parts: str) -> str:
    h = hashlib.sha1("\n".join(parts).encode("utf-8")).hexdigest()
    return f"sha1:{h[:16]}"


def _make_item(
    feed: FeedConfig,
    *,
    raw_id: str,
    raw_title: str,
    raw_link: str,
    raw_date: str,
    raw_body: str,
) -> FeedItem:
    title = decode(raw_title)
    link = decode(raw_link)
    summary = truncate(decode(raw_body), SUMMARY_MAX_CHARS)
    item_id = decode(raw_id) or link or _content_id(title, summary)

    return FeedItem(
        id=item_id,
        title=title,
        link=link,
        summary=summary,
        published_at=parse_date(decode(raw_date)),
        source_name=feed.name,
        vendor_name=feed.vendor,
        feed_kind=FeedKind.RSS,
    )


def _degraded_item(feed: FeedConfig, block: str) -> FeedItem:
    return FeedItem(
        id=_content_id(feed.id, block),
        source_name=feed.name,
        vendor_name=feed.vendor,
        feed_kind=FeedKind.RSS,
    )


def _parse_atom_entry(block: str, feed: FeedConfig) -> FeedItem:
    link = _atom_link(block)
    return _make_item(
        feed,
        raw_id=extract_tag_content(block, "id") or link,
        raw_title=extract_tag_content(block, "title"),
        raw_link=link,
        raw_date=_first_tag(block, "published", "updated"),
        raw_body=_first_tag(block, "content", "summary"),
    )


def _parse_rss_item(block: str, feed: FeedConfig) -> FeedItem:
    link = extract_tag_content(block, "link")
    return _make_item(
        feed,
        raw_id=extract_tag_content(block, "guid") or link,
        raw_title=extract_tag_content(block, "title"),
        raw_link=link,
        raw_date=_first_tag(block, "pubDate", "dc:date"),
        raw_body=_first_tag(block, "description", "content:encoded"),
    )


def parse(xml_text: str, feed: FeedConfig) -> list[FeedItem]:
    """
    Extract items from an Atom or RSS 2.0 document, in document order.

    Atom wins when any <entry> block exists. A block that fails to parse
    becomes a degraded item instead of aborting the feed.
    """
    if not xml_text:
        return []

    blocks = _ENTRY_RE.findall(xml_text)
    build = _parse_atom_entry
    if not blocks:
        blocks = _ITEM_RE.findall(xml_text)
        build = _parse_rss_item

    items: list[FeedItem] = []
    for block in blocks:
        try:
            items.append(build(block, feed))
        except Exception as e:
            log.warning("Feed %s: malformed entry (%s), keeping degraded item", feed.id, e)
            items.append(_degraded_item(feed, block))
    return items
