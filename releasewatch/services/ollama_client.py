from __future__ import annotations

import requests

from releasewatch.config.settings import Settings


class OllamaClient:
    """
    HTTP client for an Ollama-compatible /api/chat endpoint
    (local daemon or a hosted one behind a bearer key).
    """

    def __init__(self, s: Settings, session: requests.Session | None = None) -> None:
        self.base_url = s.ollama_base_url.rstrip("/")
        self.model = s.ollama_model
        self.api_key = s.ollama_api_key
        self.temperature = s.ollama_temperature
        self.http = session or requests

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def chat(self, system: str, user: str, timeout: float = 30) -> str:
        """
        One non-streaming chat turn; returns the assistant text, stripped.
        Raises requests.RequestException / ValueError on transport or shape errors.
        """
        if not self.enabled:
            raise RuntimeError("OLLAMA_BASE_URL is not set")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": False,
            "options": {"temperature": self.temperature},
        }
        r = self.http.post(
            f"{self.base_url}/api/chat",
            json=payload,
            headers=self._headers(),
            timeout=timeout,
        )
        r.raise_for_status()

        data = r.json()
        try:
            content = data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Unexpected chat response: {str(data)[:500]}") from e
        if not isinstance(content, str):
            raise ValueError("Chat response content is not text")
        return content.strip()
