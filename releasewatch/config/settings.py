from dotenv import load_dotenv
from pydantic import BaseModel, Field
import os


class ConfigError(RuntimeError):
    """Raised at startup when a mandatory credential is missing."""


def _to_int(v: str | None, default: int) -> int:
    if v is None or not v.strip():
        return default
    return int(v.strip())

def _to_float(v: str | None, default: float) -> float:
    if v is None or not v.strip():
        return default
    return float(v.strip())

def _to_str(v: str | None, default: str = "") -> str:
    if v is None:
        return default
    return v.strip()



class Settings(BaseModel):
    # sinks
    slack_bot_token: str = Field(default="")
    slack_channel_id: str = Field(default="")
    primary_sink: str = Field(default="slack")  # slack | notion

    notion_token: str = Field(default="")
    notion_parent_page_id: str = Field(default="")
    notion_mode: str = Field(default="page")  # page | database
    notion_version: str = Field(default="2022-06-28")
    notion_title_prefix: str = Field(default="Release Notes")

    # sources
    release_feed_url: str = Field(default="")
    rss_feeds_file: str = Field(default="feeds.json")
    rss_max_per_feed: int = Field(default=5)
    max_seen_ids: int = Field(default=200)

    # 0 disables the recency filter
    time_window_hours: int = Field(default=168)

    # translation
    deepl_api_key: str = Field(default="")
    translate_target_lang: str = Field(default="KO")
    translate_timeout: float = Field(default=10.0)

    # text generation (translation fallback + relevance notes)
    ollama_base_url: str = Field(default="")
    ollama_model: str = Field(default="llama3.1:8b")
    ollama_api_key: str = Field(default="")
    ollama_temperature: float = Field(default=0.1)
    annotate_timeout: float = Field(default=30.0)
    environment_file: str = Field(default="environment.json")

    # runtime
    state_file: str = Field(default="data/state.json")
    lock_file: str = Field(default="data/run.lock")
    http_timeout: float = Field(default=20.0)
    rate_limit_seconds: float = Field(default=1.0)
    summary_max_chars: int = Field(default=500)

    log_level: str = Field(default="INFO")
    log_file: str = Field(default="logs/run.log")

    @property
    def slack_configured(self) -> bool:
        return bool(self.slack_bot_token and self.slack_channel_id)

    @property
    def notion_configured(self) -> bool:
        return bool(self.notion_token and self.notion_parent_page_id)

    @property
    def recency_enabled(self) -> bool:
        return self.time_window_hours > 0


def check_required_credentials(s: Settings) -> None:
    """
    Fail fast when the primary sink cannot be used.
    Secondary sinks and the optional services only degrade.
    """
    primary = s.primary_sink.strip().lower()
    if primary == "slack":
        if not s.slack_bot_token:
            raise ConfigError("SLACK_BOT_TOKEN environment variable is required")
        if not s.slack_channel_id:
            raise ConfigError("SLACK_CHANNEL_ID environment variable is required")
    elif primary == "notion":
        if not s.notion_token:
            raise ConfigError("NOTION_TOKEN environment variable is required")
        if not s.notion_parent_page_id:
            raise ConfigError("NOTION_PARENT_PAGE_ID environment variable is required")
    else:
        raise ConfigError(f"Unknown PRIMARY_SINK: {s.primary_sink!r} (expected slack or notion)")

    if s.notion_mode not in {"page", "database"}:
        raise ConfigError(f"Unknown NOTION_MODE: {s.notion_mode!r} (expected page or database)")


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        slack_bot_token=_to_str(os.getenv("SLACK_BOT_TOKEN")),
        slack_channel_id=_to_str(os.getenv("SLACK_CHANNEL_ID")),
        primary_sink=_to_str(os.getenv("PRIMARY_SINK"), "slack").lower(),
        notion_token=_to_str(os.getenv("NOTION_TOKEN")),
        notion_parent_page_id=_to_str(os.getenv("NOTION_PARENT_PAGE_ID")),
        notion_mode=_to_str(os.getenv("NOTION_MODE"), "page").lower(),
        notion_version=_to_str(os.getenv("NOTION_VERSION"), "2022-06-28"),
        notion_title_prefix=_to_str(os.getenv("NOTION_TITLE_PREFIX"), "Release Notes"),
        release_feed_url=_to_str(os.getenv("RELEASE_FEED_URL")),
        rss_feeds_file=_to_str(os.getenv("RSS_FEEDS_FILE"), "feeds.json"),
        rss_max_per_feed=_to_int(os.getenv("RSS_MAX_PER_FEED"), 5),
        max_seen_ids=_to_int(os.getenv("MAX_SEEN_IDS"), 200),
        time_window_hours=_to_int(os.getenv("TIME_WINDOW_HOURS"), 168),
        deepl_api_key=_to_str(os.getenv("DEEPL_API_KEY")),
        translate_target_lang=_to_str(os.getenv("TRANSLATE_TARGET_LANG"), "KO").upper(),
        translate_timeout=_to_float(os.getenv("TRANSLATE_TIMEOUT"), 10.0),
        ollama_base_url=_to_str(os.getenv("OLLAMA_BASE_URL")),
        ollama_model=_to_str(os.getenv("OLLAMA_MODEL"), "llama3.1:8b"),
        ollama_api_key=_to_str(os.getenv("OLLAMA_API_KEY")),
        ollama_temperature=_to_float(os.getenv("OLLAMA_TEMPERATURE"), 0.1),
        annotate_timeout=_to_float(os.getenv("ANNOTATE_TIMEOUT"), 30.0),
        environment_file=_to_str(os.getenv("ENVIRONMENT_FILE"), "environment.json"),
        state_file=_to_str(os.getenv("STATE_FILE"), "data/state.json"),
        lock_file=_to_str(os.getenv("LOCK_FILE"), "data/run.lock"),
        http_timeout=_to_float(os.getenv("HTTP_TIMEOUT"), 20.0),
        rate_limit_seconds=_to_float(os.getenv("RATE_LIMIT_SECONDS"), 1.0),
        summary_max_chars=_to_int(os.getenv("SUMMARY_MAX_CHARS"), 500),
        log_level=_to_str(os.getenv("LOG_LEVEL"), "INFO"),
        log_file=_to_str(os.getenv("LOG_FILE"), "logs/run.log"),
    )


_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
