"""Deterministic rule cascade used when the model path is unavailable."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from .constants import (
    CATEGORY_PROMOTIONS,
    CATEGORY_UPDATES,
    COMMENT_KEYWORDS,
    MEETING_KEYWORDS,
    NOTIFICATION_KEYWORDS,
    PROMOTIONAL_KEYWORDS,
    QUESTION_MARK_THRESHOLD,
    RECEIPT_KEYWORDS,
    TICKET_KEYWORDS,
)
from .models import Classification, Confidence, Email, LabelKey, LabelTaxonomy, RelationshipAnalysis


def contains_any(text: str | None, needles: Sequence[str]) -> bool:
    """True if any needle is a substring of text (case-insensitive)."""
    t = (text or "").lower()
    return any(n.lower() in t for n in needles)


def _subject_and_body(email: Email) -> str:
    return f"{email.subject} {email.text}"


def appears_ticket(email: Email, analysis: RelationshipAnalysis) -> bool:
    return contains_any(_subject_and_body(email), TICKET_KEYWORDS)


def appears_receipt(email: Email, analysis: RelationshipAnalysis) -> bool:
    return contains_any(_subject_and_body(email), RECEIPT_KEYWORDS)


def has_meeting_subject(email: Email, analysis: RelationshipAnalysis) -> bool:
    return contains_any(email.subject, MEETING_KEYWORDS)


def has_comment_subject(email: Email, analysis: RelationshipAnalysis) -> bool:
    return contains_any(email.subject, COMMENT_KEYWORDS)


def appears_cold_promotional(email: Email, analysis: RelationshipAnalysis) -> bool:
    if analysis.history.has_history:
        return False
    return (
        contains_any(_subject_and_body(email), PROMOTIONAL_KEYWORDS)
        or CATEGORY_PROMOTIONS in email.label_ids
        or bool(email.header("list-unsubscribe"))
    )


def appears_notification(email: Email, analysis: RelationshipAnalysis) -> bool:
    return (
        contains_any(_subject_and_body(email), NOTIFICATION_KEYWORDS)
        or CATEGORY_UPDATES in email.label_ids
        or analysis.domain.is_no_reply
        or bool(email.header("auto-submitted"))
    )


def needs_response(email: Email, analysis: RelationshipAnalysis) -> bool:
    return analysis.thread.is_reply or (email.text or "").count("?") >= QUESTION_MARK_THRESHOLD


Rule = tuple[LabelKey, Callable[[Email, RelationshipAnalysis], bool], str]

# Evaluated top to bottom; the first match wins.
FALLBACK_RULES: tuple[Rule, ...] = (
    (LabelKey.TICKETS, appears_ticket, "Appears to be travel/ticket related"),
    (LabelKey.RECEIPTS, appears_receipt, "Appears to be purchase/receipt related"),
    (LabelKey.MEETING_UPDATE, has_meeting_subject, "Subject contains meeting-related keywords"),
    (LabelKey.COMMENT, has_comment_subject, "Subject indicates comment/feedback"),
    (LabelKey.MARKETING, appears_cold_promotional, "No history and appears promotional"),
    (LabelKey.NOTIFICATION, appears_notification, "Appears to be service notification"),
    (LabelKey.TO_RESPOND, needs_response, "Part of conversation thread or contains questions"),
)
DEFAULT_RULE_REASON = "Fallback classification"


def fallback_label(email: Email, analysis: RelationshipAnalysis) -> tuple[LabelKey, str]:
    """Return the first matching (label key, reason), defaulting to FYI."""
    for key, predicate, reason in FALLBACK_RULES:
        if predicate(email, analysis):
            return key, reason
    return LabelKey.FYI, DEFAULT_RULE_REASON


def fallback_classification(
    email: Email,
    analysis: RelationshipAnalysis,
    taxonomy: LabelTaxonomy,
) -> Classification:
    key, reason = fallback_label(email, analysis)
    return Classification(
        label_id=taxonomy.id_for(key),
        label_name=key.display_name,
        confidence=Confidence.LOW,
        reasoning=f"Fallback: {reason}",
        source="fallback",
    )
