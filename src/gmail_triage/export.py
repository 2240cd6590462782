"""Export classification results to CSV or JSON."""

import csv
import json

from .models import ClassificationOutcome

FIELDNAMES = [
    "message_id",
    "success",
    "sender",
    "subject",
    "label_id",
    "label_name",
    "confidence",
    "source",
    "reasoning",
    "hints",
    "label_applied",
    "error",
]


def outcome_row(outcome: ClassificationOutcome) -> dict:
    """Flatten an outcome into a single export row."""
    email = outcome.email
    classification = outcome.classification
    analysis = outcome.analysis
    return {
        "message_id": outcome.message_id,
        "success": outcome.success,
        "sender": email.sender.address if email else "",
        "subject": email.subject if email else "",
        "label_id": classification.label_id if classification else "",
        "label_name": classification.label_name if classification else "",
        "confidence": classification.confidence.value if classification else "",
        "source": classification.source if classification else "",
        "reasoning": classification.reasoning if classification else "",
        "hints": [h.value for h in analysis.hints] if analysis else [],
        "label_applied": outcome.label_applied,
        "error": outcome.error or "",
    }


def export_outcomes(outcomes: list[ClassificationOutcome], format: str, output_path: str) -> None:
    """Export classification outcomes to a file.

    Args:
        outcomes: Results returned by the orchestrator.
        format: Output format, either 'csv' or 'json'.
        output_path: Path to write the output file.
    """
    rows = [outcome_row(o) for o in outcomes]

    if format == "csv":
        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
            writer.writeheader()
            for row in rows:
                writer.writerow({**row, "hints": "; ".join(row["hints"])})
    elif format == "json":
        with open(output_path, "w") as f:
            json.dump(rows, f, indent=2)
    else:
        raise ValueError(f"Unsupported export format: {format}")
