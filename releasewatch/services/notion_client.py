from __future__ import annotations

from typing import Any

import requests

NOTION_API = "https://api.notion.com/v1"
APPEND_CHUNK = 100  # Notion rejects more children per request


class NotionError(RuntimeError):
    def __init__(self, message: str, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


def _title(text: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": text[:2000]}}]


class NotionClient:
    def __init__(
        self,
        token: str,
        session: requests.Session | None = None,
        timeout: float = 30,
        version: str = "2022-06-28",
    ) -> None:
        self.token = token
        self.http = session or requests
        self.timeout = timeout
        self.version = version

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Notion-Version": self.version,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        r = self.http.request(
            method,
            f"{NOTION_API}{path}",
            json=payload,
            headers=self._headers(),
            timeout=self.timeout,
        )
        if r.status_code >= 300:
            raise NotionError(
                f"Notion {method} {path} failed: {r.status_code}",
                status=r.status_code,
                body=r.text[:2000],
            )
        return r.json()

    def create_page(
        self,
        parent_page_id: str,
        title: str,
        children: list[dict[str, Any]] | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "parent": {"page_id": parent_page_id},
            "properties": {"title": {"title": _title(title)}},
        }
        if children:
            payload["children"] = children[:APPEND_CHUNK]
        page = self._request("POST", "/pages", payload)
        if children and len(children) > APPEND_CHUNK:
            self.append_blocks(page["id"], children[APPEND_CHUNK:])
        return page["id"]

    def create_database(self, parent_page_id: str, title: str, schema: dict[str, Any]) -> str:
        payload = {
            "parent": {"type": "page_id", "page_id": parent_page_id},
            "title": _title(title),
            "properties": schema,
        }
        return self._request("POST", "/databases", payload)["id"]

    def append_blocks(self, block_id: str, children: list[dict[str, Any]]) -> None:
        for i in range(0, len(children), APPEND_CHUNK):
            self._request(
                "PATCH",
                f"/blocks/{block_id}/children",
                {"children": children[i:i + APPEND_CHUNK]},
            )

    def create_row(
        self,
        database_id: str,
        properties: dict[str, Any],
        children: list[dict[str, Any]] | None = None,
    ) -> str:
        payload: dict[str, Any] = {
            "parent": {"database_id": database_id},
            "properties": properties,
        }
        if children:
            payload["children"] = children[:APPEND_CHUNK]
        return self._request("POST", "/pages", payload)["id"]
