"""Data models for Gmail Triage."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .constants import DEFAULT_LABEL_IDS, HINT_DESCRIPTIONS, LABEL_NAMES, UNKNOWN_LABEL_NAME


class LabelKey(str, Enum):
    """Semantic label taxonomy. Declaration order is significant."""

    TO_RESPOND = "TO_RESPOND"
    FYI = "FYI"
    COMMENT = "COMMENT"
    NOTIFICATION = "NOTIFICATION"
    MEETING_UPDATE = "MEETING_UPDATE"
    MARKETING = "MARKETING"
    TICKETS = "TICKETS"
    RECEIPTS = "RECEIPTS"

    @property
    def display_name(self) -> str:
        return LABEL_NAMES[self.value]


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ClassificationHint(str, Enum):
    """Semantic tags summarizing one aspect of a relationship analysis."""

    COLD_EMAIL = "COLD_EMAIL"
    LIKELY_MARKETING = "LIKELY_MARKETING"
    KNOWN_CONTACT = "KNOWN_CONTACT"
    ONGOING_CONVERSATION = "ONGOING_CONVERSATION"
    AUTOMATED = "AUTOMATED"
    BULK_EMAIL = "BULK_EMAIL"
    NOTIFICATION_TYPE = "NOTIFICATION_TYPE"

    @property
    def description(self) -> str:
        return HINT_DESCRIPTIONS[self.value]

    def render(self) -> str:
        return f"{self.value}: {self.description}"


@dataclass(frozen=True)
class LabelTaxonomy:
    """Mapping from semantic label keys to provider-specific label ids."""

    label_ids: dict[LabelKey, str] = field(
        default_factory=lambda: {LabelKey(k): v for k, v in DEFAULT_LABEL_IDS.items()}
    )

    def id_for(self, key: LabelKey) -> str:
        return self.label_ids[key]

    def ordered_ids(self) -> list[str]:
        """Label ids in the declared taxonomy order."""
        return [self.label_ids[key] for key in LabelKey]

    def name_for_id(self, label_id: str) -> str:
        for key in LabelKey:
            if self.label_ids[key] == label_id:
                return key.display_name
        return UNKNOWN_LABEL_NAME


@dataclass(frozen=True)
class EmailAddress:
    name: str = ""
    address: str = ""


@dataclass(frozen=True)
class Email:
    """A single message as fetched from the mailbox. Never mutated."""

    id: str
    thread_id: str = ""
    subject: str = ""
    sender: EmailAddress = field(default_factory=EmailAddress)
    to: tuple[EmailAddress, ...] = ()
    cc: tuple[EmailAddress, ...] = ()
    text: str = ""
    label_ids: frozenset[str] = frozenset()
    headers: Mapping[str, str | None] = field(default_factory=dict, hash=False)  # lower-cased keys
    history_id: int | None = None
    snippet: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower())


@dataclass(frozen=True)
class HistoryCheck:
    """Prior correspondence with a sender."""

    has_history: bool
    received_count: int = 0
    sent_count: int = 0
    received_emails: tuple[Email, ...] = ()
    sent_emails: tuple[Email, ...] = ()
    summary: str = ""
    error: str | None = None


@dataclass(frozen=True)
class ThreadContext:
    is_reply: bool
    is_auto_submitted: bool
    has_unsubscribe: bool
    is_bulk: bool
    context: str
    thread_id: str = ""


@dataclass(frozen=True)
class DomainAnalysis:
    domain: str
    local_part: str
    is_no_reply: bool = False
    is_automated: bool = False
    is_marketing: bool = False


@dataclass(frozen=True)
class RelationshipAnalysis:
    """Derived signals for one email. Recomputed per request, never stored."""

    history: HistoryCheck
    thread: ThreadContext
    domain: DomainAnalysis
    hints: tuple[ClassificationHint, ...] = ()


@dataclass(frozen=True)
class Classification:
    label_id: str
    label_name: str
    confidence: Confidence
    reasoning: str
    source: str = "model"  # "model", "model_substring" or "fallback"
    raw_response: str | None = None


@dataclass
class ClassificationOutcome:
    """Result of running the pipeline for a single message."""

    message_id: str
    success: bool
    email: Email | None = None
    analysis: RelationshipAnalysis | None = None
    classification: Classification | None = None
    label_applied: bool = False
    error: str | None = None
