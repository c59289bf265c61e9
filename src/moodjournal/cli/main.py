"""
Command Line Interface for Mood Journal AI.

Thin shell over the AI client: every command builds a prompt through the
client, prints the result with Rich and exits non-zero on failure. Diary
analysis is limited to one use per user per day.
"""

import logging
import sys
from datetime import date, timedelta
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from moodjournal import __version__
from moodjournal.ai.client import get_client
from moodjournal.ai.errors import AIRequestError
from moodjournal.ai.rate_limiter import RateLimiter
from moodjournal.config import (
    AppConfig,
    ConfigError,
    get_config,
    get_key_manager,
    load_config,
)
from moodjournal.core.storage import JsonFileStore, StorageError
from moodjournal.utils.logging import setup_logging

logger = logging.getLogger(__name__)

console = Console()

# Allow "-" as TEXT to read the entry from stdin
STDIN_MARKER = "-"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def print_header(text: str) -> None:
    """Print a styled header."""
    console.print()
    console.print(Panel(text, style="bold blue", expand=False))
    console.print()


def print_success(text: str) -> None:
    """Print green success message."""
    console.print(f"[bold green]✓[/bold green] {text}")


def print_warning(text: str) -> None:
    """Print yellow warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {text}")


def print_error(text: str) -> None:
    """Print red error message."""
    console.print(f"[bold red]✗[/bold red] {text}")


def print_info_panel(title: str, content: str, border_style: str = "blue") -> None:
    """Print info panel box."""
    console.print(Panel(content, title=title, border_style=border_style))


def read_text_argument(text: str) -> str:
    if text == STDIN_MARKER:
        return click.get_text_stream("stdin").read()
    return text


def make_rate_limiter(config: AppConfig) -> RateLimiter:
    return RateLimiter(JsonFileStore(config.paths.quota_file), key_prefix=config.quota.key_prefix)


# =============================================================================
# MAIN CLI GROUP
# =============================================================================


@click.group()
@click.version_option(__version__, prog_name="moodjournal")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Custom config file",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write logs to this file",
)
@click.pass_context
def moodjournal(ctx, verbose, debug, config_path, log_file):
    """
    Mood Journal AI - Reflections, motivation and mood readings for your diary.

    Requests go to Gemini through an ordered cascade of access paths, API
    versions and models; the first one that answers wins.
    """
    config = load_config(config_path) if config_path else get_config()

    if debug or config.debug:
        level = "DEBUG"
    elif verbose or config.verbose:
        level = "INFO"
    else:
        level = "WARNING"
    setup_logging(level=level, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["debug"] = debug


# =============================================================================
# STATUS COMMANDS
# =============================================================================


@moodjournal.command()
@click.pass_context
def status(ctx):
    """Show whether the AI service is usable."""
    config = ctx.obj["config"]
    client = get_client(config)

    print_header("Mood Journal AI")

    key_source = get_key_manager().get_key_source()
    paths = ", ".join(p.value for p in client.access_paths) or "none"

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("API key source", key_source.value)
    table.add_row("Access paths", paths)
    table.add_row("Strategies", str(len(client.strategies)))
    table.add_row("Quota file", str(config.paths.quota_file))
    console.print(table)

    if client.is_available():
        print_success("AI service available")
    else:
        print_warning("AI service unavailable (configure a key with: moodjournal set-key)")
        sys.exit(1)


@moodjournal.command()
@click.pass_context
def strategies(ctx):
    """List the strategies in the order they are attempted."""
    client = get_client(ctx.obj["config"])

    table = Table(title="Strategy Cascade")
    table.add_column("#", justify="right")
    table.add_column("Access path", style="cyan")
    table.add_column("API version")
    table.add_column("Model", style="green")

    for index, strategy in enumerate(client.strategies, start=1):
        table.add_row(str(index), strategy.access_path.value, strategy.api_version, strategy.model_id)

    console.print(table)


@moodjournal.command("set-key")
@click.option(
    "--key",
    prompt="Gemini API key",
    hide_input=True,
    help="The key to store (prompted if omitted)",
)
def set_key(key):
    """Store the Gemini API key in the system keyring."""
    try:
        get_key_manager().store_key(key)
    except ConfigError as e:
        print_error(str(e))
        sys.exit(1)
    print_success("API key stored in system keyring")


# =============================================================================
# AI COMMANDS
# =============================================================================


@moodjournal.command()
@click.argument("text")
@click.option(
    "--user", "-u", "user_id", default="local", show_default=True, help="User id for the daily quota"
)
@click.pass_context
def analyze(ctx, text, user_id):
    """
    Analyse a diary entry (one analysis per user per day).

    Pass "-" as TEXT to read the entry from stdin.

    Example:
        moodjournal analyze "Long day, but I went for a run." --user alice
    """
    config = ctx.obj["config"]
    diary_text = read_text_argument(text)
    limiter = make_rate_limiter(config)
    today = date.today()

    if not limiter.can_use(user_id, today):
        print_warning("You have already used today's AI analysis. Try again tomorrow.")
        sys.exit(2)

    result = get_client(config).analyze_diary_entry(diary_text)
    try:
        reflection = result.unwrap()
    except AIRequestError as e:
        print_error(e.user_message)
        sys.exit(1)

    limiter.mark_used(user_id, today)
    print_info_panel("Reflection", reflection, border_style="green")


@moodjournal.command()
@click.argument("text")
@click.pass_context
def mood(ctx, text):
    """Read mood, sentiment and suggestions from a diary entry."""
    analysis = get_client(ctx.obj["config"]).analyze_mood(read_text_argument(text))

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Mood", analysis.mood)
    table.add_row("Sentiment", analysis.sentiment)
    table.add_row("Suggestions", "\n".join(analysis.suggestions) or "-")
    console.print(table)


@moodjournal.command()
@click.option("--mood", "user_mood", help="How you feel today")
@click.option("--completed", type=click.IntRange(min=0), help="Tasks completed today")
@click.pass_context
def motivate(ctx, user_mood, completed):
    """Get a short motivation message for today."""
    result = get_client(ctx.obj["config"]).generate_motivation_message(user_mood, completed)
    try:
        message = result.unwrap()
    except AIRequestError as e:
        print_error(e.user_message)
        sys.exit(1)
    print_info_panel("Today's Motivation", message, border_style="magenta")


@moodjournal.command()
@click.option("--goal", "-g", "goals", multiple=True, help="A goal to plan around (repeatable)")
@click.pass_context
def suggest(ctx, goals):
    """Suggest up to five small tasks for today."""
    tasks = get_client(ctx.obj["config"]).suggest_tasks(list(goals) or None)

    if not tasks:
        print_warning("No task suggestions available right now")
        return

    for index, task in enumerate(tasks, start=1):
        console.print(f"  {index}. {task}")


# =============================================================================
# QUOTA COMMANDS
# =============================================================================


@moodjournal.group()
def quota():
    """Inspect and maintain the daily analysis quota."""
    pass


@quota.command("status")
@click.option("--user", "-u", "user_id", default="local", show_default=True)
@click.pass_context
def quota_status(ctx, user_id):
    """Show whether the user can still analyse today."""
    limiter = make_rate_limiter(ctx.obj["config"])

    try:
        used_at = limiter.used_at(user_id)
    except StorageError as e:
        print_error(f"Cannot read quota store: {e}")
        sys.exit(1)

    if used_at is None:
        print_success(f"Analysis available today for '{user_id}'")
    else:
        when = used_at.isoformat(timespec="seconds")
        console.print(f"'{user_id}' used today's analysis at {when}")


@quota.command("prune")
@click.option("--days", type=click.IntRange(min=1), help="Keep markers from the last N days")
@click.pass_context
def quota_prune(ctx, days):
    """Remove quota markers older than the retention window."""
    config = ctx.obj["config"]
    keep_days = days or config.quota.retention_days
    cutoff = date.today() - timedelta(days=keep_days)

    try:
        removed = make_rate_limiter(config).prune(before=cutoff)
    except StorageError as e:
        print_error(f"Cannot prune quota store: {e}")
        if ctx.obj.get("debug"):
            logger.exception("Prune failure details")
        sys.exit(1)

    print_success(f"Removed {removed} quota marker(s) older than {cutoff.isoformat()}")


def main():
    """Entry point for the console script."""
    moodjournal()


if __name__ == "__main__":
    main()
