from __future__ import annotations

from typing import Any

import requests

SLACK_API = "https://slack.com/api"


class SlackError(RuntimeError):
    pass


class SlackClient:
    def __init__(
        self,
        token: str,
        channel: str,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        self.token = token
        self.channel = channel
        self.http = session or requests
        self.timeout = timeout

    def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        r = self.http.post(
            f"{SLACK_API}/{method}",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json; charset=utf-8",
            },
            timeout=self.timeout,
        )
        r.raise_for_status()
        try:
            data = r.json()
        except ValueError as e:
            raise SlackError(f"Failed to parse Slack response: {e}") from e
        if not data.get("ok"):
            raise SlackError(f"Slack API error: {data.get('error', 'unknown_error')}")
        return data

    def post_message(self, blocks: list[dict[str, Any]], text: str) -> dict[str, Any]:
        return self._call(
            "chat.postMessage",
            {"channel": self.channel, "blocks": blocks, "text": text, "unfurl_links": False},
        )

    def auth_test(self) -> dict[str, Any]:
        return self._call("auth.test", {})
