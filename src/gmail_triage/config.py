"""Runtime settings loaded from the environment and the labels file."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from . import constants
from .exceptions import ConfigError
from .models import LabelKey, LabelTaxonomy


@dataclass(frozen=True)
class Settings:
    my_email: str = ""
    openai_api_key: str | None = None
    model: str = constants.DEFAULT_MODEL
    max_tokens: int = constants.DEFAULT_MAX_TOKENS
    poll_interval: float = constants.POLL_INTERVAL_SECONDS
    max_results: int = constants.POLL_MAX_RESULTS
    taxonomy: LabelTaxonomy = field(default_factory=LabelTaxonomy)


def _number(env: Mapping[str, str], key: str, default, cast):
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


def load_taxonomy(path: Path | None = None) -> LabelTaxonomy:
    """Build the label taxonomy, overriding defaults from a JSON file.

    The file maps label keys to Gmail label ids, e.g.
    ``{"TO_RESPOND": "Label_19", "FYI": "Label_18"}``. Keys left out keep
    their default id.
    """
    path = Path(path) if path is not None else constants.LABELS_PATH
    label_ids = {LabelKey(k): v for k, v in constants.DEFAULT_LABEL_IDS.items()}
    if not path.exists():
        return LabelTaxonomy(label_ids=label_ids)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Labels file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Labels file {path} must contain a JSON object")

    for key, label_id in data.items():
        try:
            label_key = LabelKey(key.upper())
        except ValueError as e:
            valid = ", ".join(k.value for k in LabelKey)
            raise ConfigError(f"Unknown label key {key!r} in {path} (expected one of {valid})") from e
        if not isinstance(label_id, str) or not label_id:
            raise ConfigError(f"Label id for {key} in {path} must be a non-empty string")
        label_ids[label_key] = label_id

    return LabelTaxonomy(label_ids=label_ids)


def load_settings(
    env: Mapping[str, str] | None = None,
    labels_path: Path | None = None,
) -> Settings:
    """Load settings from ``env`` (defaults to ``os.environ`` after reading ``.env``)."""
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        my_email=env.get("GMAIL_TRIAGE_MY_EMAIL", "").strip(),
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        model=env.get("GMAIL_TRIAGE_MODEL") or constants.DEFAULT_MODEL,
        max_tokens=_number(env, "GMAIL_TRIAGE_MAX_TOKENS", constants.DEFAULT_MAX_TOKENS, int),
        poll_interval=_number(
            env, "GMAIL_TRIAGE_POLL_INTERVAL", constants.POLL_INTERVAL_SECONDS, float
        ),
        max_results=_number(env, "GMAIL_TRIAGE_MAX_RESULTS", constants.POLL_MAX_RESULTS, int),
        taxonomy=load_taxonomy(labels_path),
    )


def suggest_label_mapping(labels: list[dict]) -> dict[str, str]:
    """Guess a label id for each taxonomy key from the user's Gmail labels.

    A user label whose name contains one of the key's keywords wins; keys
    with no match map to ``INBOX``.
    """
    user_labels = sorted(
        (label for label in labels if label.get("type") == "user"),
        key=lambda label: label.get("name", "").lower(),
    )
    mapping: dict[str, str] = {}
    for key in LabelKey:
        keywords = constants.LABEL_SUGGESTION_KEYWORDS[key.value]
        match = next(
            (
                label for label in user_labels
                if any(k in label.get("name", "").lower() for k in keywords)
            ),
            None,
        )
        mapping[key.value] = match["id"] if match else "INBOX"
    return mapping


def save_taxonomy(mapping: dict[str, str], path: Path | None = None) -> Path:
    path = Path(path) if path is not None else constants.LABELS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(mapping, indent=2), encoding="utf-8")
    return path
