"""Relationship analysis: prior correspondence, thread context, sender domain."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from typing import Protocol

from .constants import (
    AUTO_SUBMITTED_CONTEXT,
    AUTOMATED_PATTERN,
    BULK_CONTEXT,
    DIRECT_CONTEXT,
    HISTORY_ERROR_SUMMARY,
    HISTORY_SAMPLE_LIMIT,
    MARKETING_PATTERN,
    NO_HISTORY_SUMMARY,
    NO_REPLY_PATTERN,
    REPLY_CONTEXT,
    UNSUBSCRIBE_CONTEXT,
)
from .models import (
    ClassificationHint,
    DomainAnalysis,
    Email,
    HistoryCheck,
    RelationshipAnalysis,
    ThreadContext,
)

logger = logging.getLogger(__name__)

_NO_REPLY_RE = re.compile(NO_REPLY_PATTERN, re.IGNORECASE)
_AUTOMATED_RE = re.compile(AUTOMATED_PATTERN, re.IGNORECASE)
_MARKETING_RE = re.compile(MARKETING_PATTERN, re.IGNORECASE)


class HistoryLookup(Protocol):
    async def emails_from(self, address: str) -> Sequence[Email]: ...
    async def emails_to(self, address: str) -> Sequence[Email]: ...


def summarize_history(has_history: bool, received_count: int, sent_count: int) -> str:
    """Human-readable summary of prior correspondence."""
    if not has_history:
        return NO_HISTORY_SUMMARY

    parts = []
    if received_count > 0:
        parts.append(f"{received_count} email(s) received from this sender")
    if sent_count > 0:
        parts.append(f"{sent_count} email(s) sent to this sender")
    return f"Prior email history exists: {', '.join(parts)}"


async def check_history(
    address: str,
    lookup: HistoryLookup,
    exclude_id: str | None = None,
) -> HistoryCheck:
    """Look up mail received from and sent to ``address``.

    ``exclude_id`` is the message being classified; a sender search also
    finds it, and it is not prior correspondence.

    A failure of either lookup degrades to "no history" instead of raising:
    treating an unknown sender as a cold contact is the safe default.
    """
    received, sent = await asyncio.gather(
        lookup.emails_from(address),
        lookup.emails_to(address),
        return_exceptions=True,
    )
    for result in (received, sent):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, Exception):
            logger.warning("History lookup for %s failed: %s", address, result)
            return HistoryCheck(
                has_history=False,
                summary=HISTORY_ERROR_SUMMARY,
                error=str(result) or type(result).__name__,
            )

    received = [e for e in received if e.id != exclude_id]
    sent = [e for e in sent if e.id != exclude_id]
    has_history = len(received) > 0 or len(sent) > 0
    return HistoryCheck(
        has_history=has_history,
        received_count=len(received),
        sent_count=len(sent),
        received_emails=tuple(received[:HISTORY_SAMPLE_LIMIT]),
        sent_emails=tuple(sent[:HISTORY_SAMPLE_LIMIT]),
        summary=summarize_history(has_history, len(received), len(sent)),
    )


def analyze_thread_context(email: Email) -> ThreadContext:
    """Derive conversation/automation flags from the classification headers."""
    is_reply = bool(email.header("in-reply-to") or email.header("references"))
    is_auto_submitted = bool(email.header("auto-submitted"))
    has_unsubscribe = bool(email.header("list-unsubscribe"))
    # Exact, case-sensitive comparison; "Bulk" does not count.
    is_bulk = email.header("precedence") == "bulk"

    contexts = []
    if is_reply:
        contexts.append(REPLY_CONTEXT)
    if is_auto_submitted:
        contexts.append(AUTO_SUBMITTED_CONTEXT)
    if has_unsubscribe:
        contexts.append(UNSUBSCRIBE_CONTEXT)
    if is_bulk:
        contexts.append(BULK_CONTEXT)

    return ThreadContext(
        is_reply=is_reply,
        is_auto_submitted=is_auto_submitted,
        has_unsubscribe=has_unsubscribe,
        is_bulk=is_bulk,
        context=", ".join(contexts) if contexts else DIRECT_CONTEXT,
        thread_id=email.thread_id,
    )


def analyze_sender_domain(address: str) -> DomainAnalysis:
    """Classify the sender's local part against no-reply/automated/marketing patterns.

    Malformed addresses (no ``@``) produce an empty domain rather than an error.
    """
    parts = (address or "").split("@")
    local_part = parts[0].lower()
    domain = parts[1].lower() if len(parts) > 1 else ""

    return DomainAnalysis(
        domain=domain,
        local_part=local_part,
        is_no_reply=bool(_NO_REPLY_RE.match(local_part)),
        is_automated=bool(_AUTOMATED_RE.match(local_part)),
        is_marketing=bool(_MARKETING_RE.match(local_part)),
    )


def generate_hints(
    history: HistoryCheck,
    thread: ThreadContext,
    domain: DomainAnalysis,
) -> tuple[ClassificationHint, ...]:
    hints: list[ClassificationHint] = []

    if not history.has_history:
        hints.append(ClassificationHint.COLD_EMAIL)
        if domain.is_marketing:
            hints.append(ClassificationHint.LIKELY_MARKETING)
    else:
        hints.append(ClassificationHint.KNOWN_CONTACT)
        if thread.is_reply:
            hints.append(ClassificationHint.ONGOING_CONVERSATION)

    if thread.is_auto_submitted:
        hints.append(ClassificationHint.AUTOMATED)

    if thread.has_unsubscribe and thread.is_bulk:
        hints.append(ClassificationHint.BULK_EMAIL)

    if domain.is_no_reply:
        hints.append(ClassificationHint.NOTIFICATION_TYPE)

    return tuple(hints)


class RelationshipAnalyzer:
    """Combines history, thread and domain signals into a RelationshipAnalysis."""

    async def analyze(self, email: Email, history_lookup: HistoryLookup) -> RelationshipAnalysis:
        sender_address = email.sender.address

        # Thread and domain analysis are pure; only the history check awaits I/O.
        history = await check_history(sender_address, history_lookup, exclude_id=email.id)
        thread = analyze_thread_context(email)
        domain = analyze_sender_domain(sender_address)

        analysis = RelationshipAnalysis(
            history=history,
            thread=thread,
            domain=domain,
            hints=generate_hints(history, thread, domain),
        )
        logger.debug(
            "Relationship analysis for %s: %s; hints=%s",
            email.id,
            history.summary,
            [h.value for h in analysis.hints],
        )
        return analysis
