"""Rich-based display functions for Gmail Triage."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import ClassificationOutcome, Confidence

console = Console()


def _confidence_color(confidence: Confidence) -> str:
    """Return a Rich color name for a confidence level."""
    if confidence is Confidence.HIGH:
        return "green"
    if confidence is Confidence.MEDIUM:
        return "yellow"
    return "red"


def display_outcomes(outcomes: list[ClassificationOutcome]) -> None:
    """Display one row per classified message."""
    table = Table(title="Classification Results")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Message")
    table.add_column("From")
    table.add_column("Subject")
    table.add_column("Label")
    table.add_column("Confidence")
    table.add_column("Applied", justify="center")

    for idx, outcome in enumerate(outcomes, start=1):
        email = outcome.email
        sender = email.sender.address if email else ""
        subject = email.subject if email else ""

        if not outcome.success or outcome.classification is None:
            table.add_row(
                str(idx),
                outcome.message_id,
                sender,
                subject,
                f"[red]failed: {outcome.error}[/red]",
                "",
                "",
            )
            continue

        classification = outcome.classification
        color = _confidence_color(classification.confidence)
        table.add_row(
            str(idx),
            outcome.message_id,
            sender,
            subject,
            f"{classification.label_name} [dim]({classification.label_id})[/dim]",
            f"[{color}]{classification.confidence.value}[/{color}]",
            "yes" if outcome.label_applied else "-",
        )

    console.print(table)


def display_outcome_detail(outcome: ClassificationOutcome) -> None:
    """Show the analysis and reasoning behind a single classification."""
    lines = [f"[bold]Message:[/bold] {outcome.message_id}"]
    if outcome.email:
        lines.append(f"[bold]From:[/bold] {outcome.email.sender.address}")
        lines.append(f"[bold]Subject:[/bold] {outcome.email.subject}")
    if outcome.analysis:
        analysis = outcome.analysis
        lines.append(f"[bold]History:[/bold] {analysis.history.summary}")
        lines.append(f"[bold]Thread:[/bold] {analysis.thread.context}")
        lines.append(f"[bold]Hints:[/bold] {', '.join(h.value for h in analysis.hints)}")
    if outcome.classification:
        lines.append("")
        lines.append(f"[bold]Label:[/bold] {outcome.classification.label_name}")
        lines.append(f"[bold]Reasoning:[/bold] {outcome.classification.reasoning}")
    if outcome.error:
        lines.append(f"[bold red]Error:[/bold red] {outcome.error}")

    console.print(Panel("\n".join(lines), title="Classification Detail"))


def display_stats(stats: dict) -> None:
    """Display a run summary produced by classification_stats()."""
    labels = ", ".join(f"{name}: {count}" for name, count in sorted(stats["label_counts"].items()))
    confidence = ", ".join(f"{level}: {count}" for level, count in stats["confidence_counts"].items())
    console.print(
        Panel(
            f"Total: {stats['total']}  |  "
            f"Successful: {stats['successful']}  |  "
            f"Failed: {stats['failed']}\n"
            f"Labels: {labels or '-'}\n"
            f"Confidence: {confidence}",
            title="Summary",
        )
    )


def display_labels(labels: list[dict], suggested: dict[str, str]) -> None:
    """List the account's Gmail labels and the suggested taxonomy mapping."""
    table = Table(title="Gmail Labels")
    table.add_column("Type", style="dim")
    table.add_column("Name")
    table.add_column("ID")
    for label in sorted(labels, key=lambda label: (label.get("type") != "user", label.get("name", "").lower())):
        table.add_row(label.get("type", ""), label.get("name", ""), label.get("id", ""))
    console.print(table)

    lines = [f"{key} -> {label_id}" for key, label_id in suggested.items()]
    console.print(Panel("\n".join(lines), title="Suggested labels.json"))
