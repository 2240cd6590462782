"""Gmail Triage - relationship-aware email labelling."""

__version__ = "0.1.0"
