from pathlib import Path

import requests
import typer
from rich import print
from rich.table import Table

from releasewatch.config.feeds import load_feed_configs
from releasewatch.config.settings import ConfigError, check_required_credentials, get_settings
from releasewatch.models.schemas import FeedConfig
from releasewatch.models.state import load_state
from releasewatch.services import feed_parser
from releasewatch.services.ollama_client import OllamaClient
from releasewatch.services.relevance import RelevanceAnnotator, load_environment
from releasewatch.services.sinks import build_sinks
from releasewatch.services.slack_client import SlackClient, SlackError
from releasewatch.services.translator import Translator
from releasewatch.tools.dates import display_date
from releasewatch.tools.lock import RunLock
from releasewatch.tools.logging_setup import setup_logging
from releasewatch.workflows.run_notify import run_notify


app = typer.Typer(help="Release feed poller: dedup, translate, post to Slack / Notion")


@app.callback()
def main():
    setup_logging(get_settings())


@app.command()
def doctor():
    """Check config, feed list and Slack credentials."""
    s = get_settings()
    print("[bold green]Config loaded[/bold green]")
    print("Primary sink:", s.primary_sink, "| Notion mode:", s.notion_mode)
    print("Release feed:", s.release_feed_url or "[dim]disabled[/dim]")
    print("Recency window:", f"{s.time_window_hours}h" if s.recency_enabled else "disabled")
    print("DeepL:", "on" if s.deepl_api_key else "off", "| Ollama:", s.ollama_base_url or "off")

    feeds = load_feed_configs(s.rss_feeds_file)
    print(f"RSS feeds: {sum(f.enabled for f in feeds)} enabled / {len(feeds)}")

    env = load_environment(s.environment_file)
    print("Environment description:", "loaded" if env else "[dim]none[/dim]")

    try:
        check_required_credentials(s)
    except ConfigError as e:
        print(f"[bold red]Config error[/bold red]: {e}")
        raise SystemExit(1)

    if s.slack_configured:
        try:
            who = SlackClient(s.slack_bot_token, s.slack_channel_id, timeout=s.http_timeout).auth_test()
            print(f"[bold green]Slack OK[/bold green] ({who.get('team')} / {who.get('user')})")
        except (SlackError, requests.RequestException) as e:
            print(f"[bold red]Slack check failed[/bold red]: {e}")
            raise SystemExit(1)


@app.command()
def run(dry_run: bool = typer.Option(False, "--dry-run", help="Format and log instead of sending; state is not saved.")):
    """Run one polling pass."""
    s = get_settings()
    try:
        with requests.Session() as session:
            sinks = build_sinks(s, session=session)
            llm = OllamaClient(s, session=session)
            translator = Translator(s.deepl_api_key, llm=llm, session=session, timeout=s.translate_timeout)
            if not translator.enabled:
                print("[yellow]Warning[/yellow]: DEEPL_API_KEY / OLLAMA_BASE_URL not set, translations will be skipped")
            environment = load_environment(s.environment_file)
            annotator = RelevanceAnnotator(llm, timeout=s.annotate_timeout)

            with RunLock(s.lock_file):
                result = run_notify(
                    s,
                    load_feed_configs(s.rss_feeds_file),
                    sinks,
                    session=session,
                    translator=translator,
                    annotator=annotator,
                    environment=environment,
                    dry_run=dry_run,
                )
        print("[bold green]Run complete[/bold green]")
        print(result)
    except ConfigError as e:
        print(f"[bold red]Config error[/bold red]: {e}")
        raise SystemExit(1)
    except Exception as e:
        print(f"[bold red]Run failed[/bold red]: {e}")
        raise SystemExit(1)


@app.command("parse-feed")
def parse_feed(source: str = typer.Argument(..., help="Feed URL or local XML file")):
    """Parse one RSS/Atom feed and print its items."""
    s = get_settings()
    if Path(source).exists():
        xml_text = Path(source).read_text(encoding="utf-8")
    else:
        r = requests.get(source, timeout=s.http_timeout)
        r.raise_for_status()
        xml_text = r.text

    items = feed_parser.parse(xml_text, FeedConfig(id="cli", name=source, url=source))

    table = Table(title=f"{len(items)} items")
    table.add_column("Date")
    table.add_column("Title")
    table.add_column("Id", overflow="fold")
    for it in items:
        table.add_row(display_date(it.published_at) or "-", it.title, it.id)
    print(table)


@app.command("show-state")
def show_state():
    """Print the persisted dedup state."""
    s = get_settings()
    state = load_state(s.state_file)
    print(state.model_dump(mode="json"))


if __name__ == "__main__":
    app()
