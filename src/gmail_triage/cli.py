"""CLI entry point for Gmail Triage."""

from __future__ import annotations

import asyncio
import logging

import click
from rich.logging import RichHandler

from . import __version__
from .auth import get_authenticated_address, get_gmail_service
from .config import Settings, load_settings, save_taxonomy, suggest_label_mapping
from .decision import LabelDecisionEngine
from .display import console, display_labels, display_outcome_detail, display_outcomes, display_stats
from .exceptions import ConfigError
from .export import export_outcomes
from .gmail_client import GmailMailbox
from .llm import OpenAIModel
from .orchestrator import Orchestrator, classification_stats


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # googleapiclient and httpx are chatty at INFO
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_settings() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _gmail_service():
    try:
        return get_gmail_service()
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e


def _build_orchestrator(settings: Settings, service, dry_run: bool) -> Orchestrator:
    if not settings.openai_api_key:
        raise click.ClickException("OPENAI_API_KEY is not set (environment or .env file).")

    my_email = settings.my_email or get_authenticated_address(service)
    engine = LabelDecisionEngine(taxonomy=settings.taxonomy, my_email=my_email)
    model = OpenAIModel(
        api_key=settings.openai_api_key,
        model=settings.model,
        max_tokens=settings.max_tokens,
    )
    return Orchestrator(GmailMailbox(service), engine, model, dry_run=dry_run)


@click.group()
@click.version_option(version=__version__, prog_name="gmail-triage")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Gmail Triage - label incoming mail using sender history and an LLM."""
    _configure_logging(verbose)


@cli.command()
@click.argument("message_ids", nargs=-1, required=True)
@click.option("--dry-run", is_flag=True, help="Classify without applying labels.")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "json"]),
    default="json",
    help="Format for --output.",
)
@click.option("-o", "--output", default=None, help="Also write results to this file.")
def classify(message_ids: tuple[str, ...], dry_run: bool, fmt: str, output: str | None) -> None:
    """Classify and label one or more messages by Gmail message ID."""
    settings = _load_settings()
    service = _gmail_service()
    orchestrator = _build_orchestrator(settings, service, dry_run)

    outcomes = asyncio.run(orchestrator.classify_batch(list(message_ids)))

    if len(outcomes) == 1:
        display_outcome_detail(outcomes[0])
    display_outcomes(outcomes)
    display_stats(classification_stats(outcomes))

    if output:
        export_outcomes(outcomes, format=fmt, output_path=output)
        console.print(f"[dim]Results saved to {output}[/dim]")


@cli.command()
@click.option("--interval", default=None, type=float, help="Seconds between polls.")
@click.option("-q", "--query", default="in:inbox", show_default=True, help="Gmail search query.")
@click.option("--dry-run", is_flag=True, help="Classify without applying labels.")
def monitor(interval: float | None, query: str, dry_run: bool) -> None:
    """Poll Gmail and classify new mail until interrupted."""
    settings = _load_settings()
    service = _gmail_service()
    orchestrator = _build_orchestrator(settings, service, dry_run)

    try:
        asyncio.run(
            orchestrator.monitor(
                poll_interval=interval or settings.poll_interval,
                max_results=settings.max_results,
                query=query,
            )
        )
    except KeyboardInterrupt:
        console.print("[yellow]Monitoring stopped.[/yellow]")


@cli.command()
@click.option("--save", is_flag=True, help="Write the suggested mapping to labels.json.")
def labels(save: bool) -> None:
    """List Gmail labels and suggest a taxonomy mapping."""
    service = _gmail_service()
    label_list = asyncio.run(GmailMailbox(service).list_labels())
    suggested = suggest_label_mapping(label_list)
    display_labels(label_list, suggested)

    if save:
        path = save_taxonomy(suggested)
        console.print(f"[green]Saved label mapping to {path}[/green]")


@cli.command()
def auth() -> None:
    """Test or reset Gmail authentication."""
    service = _gmail_service()
    try:
        address = get_authenticated_address(service)
    except Exception as e:  # noqa: BLE001
        raise click.ClickException(f"Authentication failed: {e}") from e
    console.print(f"[green]Authenticated as {address}[/green]")
