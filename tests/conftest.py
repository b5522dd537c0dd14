"""
Shared fixtures for releasewatch tests.

HTTP is never touched: clients take a session object, tests hand them a
MagicMock whose get/post/request return canned responses.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from releasewatch.config.settings import Settings
from releasewatch.models.schemas import FeedConfig


def make_response(status=200, json_data=None, text=""):
    r = MagicMock()
    r.status_code = status
    r.ok = status < 400
    r.text = text
    if isinstance(json_data, Exception):
        r.json.side_effect = json_data
    else:
        r.json.return_value = json_data
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        r.raise_for_status.return_value = None
    return r


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def feed():
    return FeedConfig(id="blog", name="Vendor Blog", vendor="Acme", url="https://acme.test/feed.xml")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        slack_bot_token="xoxb-test",
        slack_channel_id="C123",
        release_feed_url="https://releases.test/feed.json",
        state_file=str(tmp_path / "state.json"),
        lock_file=str(tmp_path / "run.lock"),
        log_file=str(tmp_path / "run.log"),
        rate_limit_seconds=1.0,
        time_window_hours=0,
    )


RSS_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel>
  <title>Acme Blog</title>
  <link>https://acme.test/</link>
  <item>
    <title>Foo &amp; Bar</title>
    <link>https://acme.test/posts/1</link>
    <guid isPermaLink="false">g1</guid>
    <pubDate>Mon, 01 Jan 2024 00:00:00 GMT</pubDate>
    <description><![CDATA[<p>Hi</p>]]></description>
  </item>
  <item>
    <title><![CDATA[Second <b>post</b>]]></title>
    <link>https://acme.test/posts/2</link>
    <dc:date>2024-01-02T10:30:00Z</dc:date>
    <content:encoded><![CDATA[<div>Body <script>alert(1)</script>text</div>]]></content:encoded>
  </item>
  <item>
    <title>Undated</title>
    <link>https://acme.test/posts/3</link>
    <guid>g3</guid>
    <description>No date here</description>
  </item>
</channel>
</rss>
"""

ATOM_DOC = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Acme Releases</title>
  <link href="https://acme.test/atom" rel="self"/>
  <entry>
    <title type="html">Release 2.0 &amp; notes</title>
    <link rel="self" href="https://acme.test/entries/1.xml"/>
    <link rel="alternate" type="text/html" href="https://acme.test/releases/2.0"/>
    <id>tag:acme.test,2024:1</id>
    <published>2024-03-01T12:00:00+09:00</published>
    <updated>2024-03-02T00:00:00Z</updated>
    <content type="html">&lt;p&gt;Big release&lt;/p&gt;</content>
  </entry>
  <entry>
    <title>Patch 2.0.1</title>
    <link href="https://acme.test/releases/2.0.1"/>
    <updated>2024-03-05T08:00:00Z</updated>
    <summary>Fixes</summary>
  </entry>
</feed>
"""


@pytest.fixture
def rss_doc():
    return RSS_DOC


@pytest.fixture
def atom_doc():
    return ATOM_DOC
