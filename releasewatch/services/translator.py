from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from releasewatch.services.ollama_client import OllamaClient

log = logging.getLogger(__name__)

DEEPL_FREE_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_URL = "https://api.deepl.com/v2/translate"

LANGUAGE_NAMES = {
    "KO": "Korean",
    "JA": "Japanese",
    "ZH": "Chinese",
    "DE": "German",
    "FR": "French",
    "ES": "Spanish",
    "PT": "Portuguese",
    "IT": "Italian",
    "EN": "English",
}

TRANSLATE_SYSTEM = """You are a translator for software release notes.
Translate the user's text into {language}.
Keep product names, version numbers, code and URLs unchanged.
Return ONLY the translation, with no preface or explanation.
"""


@dataclass
class TranslationResult:
    text: str
    provider: str | None = None  # "deepl" | "ollama" | None when untouched
    error: str | None = None

    @property
    def translated(self) -> bool:
        return self.provider is not None


def deepl_endpoint(api_key: str) -> str:
    # free-tier keys end in ":fx"
    return DEEPL_FREE_URL if api_key.strip().endswith(":fx") else DEEPL_PRO_URL


class Translator:
    """
    Best-effort translation: DeepL first, the chat model second.
    translate() never raises; the original text is the fallback.
    """

    def __init__(
        self,
        deepl_api_key: str = "",
        llm: OllamaClient | None = None,
        session: requests.Session | None = None,
        timeout: float = 10,
    ) -> None:
        self.deepl_api_key = deepl_api_key.strip()
        self.llm = llm if llm is not None and llm.enabled else None
        self.http = session or requests
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.deepl_api_key) or self.llm is not None

    def _deepl(self, text: str, target_lang: str) -> str:
        r = self.http.post(
            deepl_endpoint(self.deepl_api_key),
            headers={"Authorization": f"DeepL-Auth-Key {self.deepl_api_key}"},
            data={"text": text, "target_lang": target_lang.upper()},
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        translations = data.get("translations") if isinstance(data, dict) else None
        if not isinstance(translations, list) or not translations:
            raise ValueError("DeepL response has no translations")
        first = translations[0]
        if not isinstance(first, dict) or not isinstance(first.get("text"), str):
            raise ValueError("DeepL response has an unexpected shape")
        return first["text"]

    def _fallback(self, text: str, target_lang: str) -> str:
        language = LANGUAGE_NAMES.get(target_lang.upper(), target_lang)
        return self.llm.chat(TRANSLATE_SYSTEM.format(language=language), text, timeout=self.timeout)

    def try_translate(self, text: str, target_lang: str) -> TranslationResult:
        if not text or not text.strip() or not self.enabled:
            return TranslationResult(text=text)

        error: str | None = None
        if self.deepl_api_key:
            try:
                out = self._deepl(text, target_lang)
                if out and out != text:
                    return TranslationResult(text=out, provider="deepl")
            except (requests.RequestException, ValueError, AttributeError) as e:
                error = f"deepl: {e}"
                log.warning("DeepL translation failed, trying fallback: %s", e)

        if self.llm is not None:
            try:
                out = self._fallback(text, target_lang)
                if out:
                    return TranslationResult(text=out, provider="ollama")
            except (requests.RequestException, ValueError, RuntimeError) as e:
                error = f"{error + '; ' if error else ''}ollama: {e}"
                log.warning("Fallback translation failed, using original text: %s", e)

        return TranslationResult(text=text, error=error)

    def translate(self, text: str, target_lang: str) -> str:
        return self.try_translate(text, target_lang).text
