"""Pipeline orchestration - fetch, analyze, decide, label."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from .analyzer import HistoryLookup, RelationshipAnalyzer
from .constants import (
    BATCH_DELAY_SECONDS,
    DEFAULT_POLL_QUERY,
    INITIAL_POLL_LIMIT,
    POLL_INTERVAL_SECONDS,
    POLL_ITEM_DELAY_SECONDS,
    POLL_MAX_RESULTS,
)
from .decision import LabelDecisionEngine, ModelCall
from .models import ClassificationOutcome, Confidence, Email

logger = logging.getLogger(__name__)


class Mailbox(HistoryLookup, Protocol):
    async def get_email(self, message_id: str) -> Email: ...
    async def search(self, query: str, max_results: int = 10) -> Sequence[Email]: ...
    async def apply_label(self, message_id: str, label_id: str) -> None: ...
    async def list_history_message_ids(self, start_history_id: int) -> Sequence[str]: ...


def _error_text(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


async def _sleep_unless_stopped(stop: asyncio.Event, seconds: float) -> None:
    """Sleep for ``seconds``, waking early if ``stop`` is set."""
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


class Orchestrator:
    """Runs the per-email pipeline and the batch/poll loops around it.

    ``last_history_id`` is the polling cursor. It only moves forward and only
    after an email has been classified successfully.
    """

    def __init__(
        self,
        mailbox: Mailbox,
        engine: LabelDecisionEngine,
        model_call: ModelCall,
        analyzer: RelationshipAnalyzer | None = None,
        *,
        batch_delay: float = BATCH_DELAY_SECONDS,
        poll_item_delay: float = POLL_ITEM_DELAY_SECONDS,
        dry_run: bool = False,
    ) -> None:
        self.mailbox = mailbox
        self.engine = engine
        self.model_call = model_call
        self.analyzer = analyzer or RelationshipAnalyzer()
        self.batch_delay = batch_delay
        self.poll_item_delay = poll_item_delay
        self.dry_run = dry_run
        self.last_history_id: int | None = None

    # --- single message ---

    async def classify_email(self, email: Email) -> ClassificationOutcome:
        """Analyze, classify and label an already fetched email."""
        outcome = ClassificationOutcome(message_id=email.id, success=False, email=email)
        try:
            outcome.analysis = await self.analyzer.analyze(email, self.mailbox)
            logger.info("Relationship analysis for %s: %s", email.id, outcome.analysis.history.summary)

            outcome.classification = await self.engine.decide(email, outcome.analysis, self.model_call)
            classification = outcome.classification
            logger.info(
                "Classified %s as %s (%s)",
                email.id,
                classification.label_name,
                classification.confidence.value,
            )

            if self.dry_run:
                logger.info("Dry run: not applying %s to %s", classification.label_id, email.id)
            elif classification.label_id in email.label_ids:
                logger.info("Label %s already on %s", classification.label_id, email.id)
            else:
                await self.mailbox.apply_label(email.id, classification.label_id)
                outcome.label_applied = True
                logger.info("Applied label %s to %s", classification.label_name, email.id)

            outcome.success = True
        except Exception as e:  # noqa: BLE001
            outcome.error = _error_text(e)
            logger.warning("Classification of %s failed: %s", email.id, outcome.error)
        return outcome

    async def classify_message(self, message_id: str) -> ClassificationOutcome:
        """Fetch a message by id and run it through the pipeline. Never raises."""
        logger.info("Starting classification for %s", message_id)
        try:
            email = await self.mailbox.get_email(message_id)
        except Exception as e:  # noqa: BLE001
            logger.warning("Could not fetch %s: %s", message_id, e)
            return ClassificationOutcome(message_id=message_id, success=False, error=_error_text(e))
        return await self.classify_email(email)

    # --- batch ---

    async def classify_batch(self, message_ids: Sequence[str]) -> list[ClassificationOutcome]:
        """Classify messages one at a time, pausing between them."""
        outcomes: list[ClassificationOutcome] = []
        for index, message_id in enumerate(message_ids):
            if index and self.batch_delay:
                await asyncio.sleep(self.batch_delay)
            outcomes.append(await self.classify_message(message_id))
        return outcomes

    # --- polling ---

    def select_new_emails(self, emails: Sequence[Email]) -> list[Email]:
        """Emails not yet seen by the cursor, oldest history id first."""
        if self.last_history_id is None:
            # First poll: search results are newest first, take the most recent few.
            candidates = list(emails[:INITIAL_POLL_LIMIT])
        else:
            candidates = [
                e for e in emails
                if e.history_id is not None and e.history_id > self.last_history_id
            ]
        return sorted(candidates, key=lambda e: e.history_id or 0)

    def _advance_cursor(self, history_id: int | None) -> None:
        if history_id is None:
            return
        if self.last_history_id is None or history_id > self.last_history_id:
            self.last_history_id = history_id

    async def poll_once(
        self,
        query: str = DEFAULT_POLL_QUERY,
        max_results: int = POLL_MAX_RESULTS,
    ) -> list[ClassificationOutcome]:
        """One polling pass. Search errors propagate to the caller."""
        emails = await self.mailbox.search(query, max_results)
        new_emails = self.select_new_emails(emails)
        if not new_emails:
            logger.info("No new emails to process")
            return []

        logger.info("Found %d new emails to classify", len(new_emails))
        outcomes: list[ClassificationOutcome] = []
        for index, email in enumerate(new_emails):
            if index and self.poll_item_delay:
                await asyncio.sleep(self.poll_item_delay)
            outcome = await self.classify_email(email)
            outcomes.append(outcome)
            if outcome.success:
                self._advance_cursor(email.history_id)
        return outcomes

    async def monitor(
        self,
        stop: asyncio.Event | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_results: int = POLL_MAX_RESULTS,
        query: str = DEFAULT_POLL_QUERY,
        max_polls: int | None = None,
    ) -> int:
        """Poll for new mail until ``stop`` is set (or ``max_polls`` passes run).

        A failed search doubles the wait before the next poll, once.
        Returns the number of polls performed.
        """
        stop = stop or asyncio.Event()
        polls = 0
        logger.info("Starting email monitoring (polling every %ss)", poll_interval)

        while not stop.is_set():
            polls += 1
            wait = poll_interval
            try:
                await self.poll_once(query=query, max_results=max_results)
            except Exception as e:  # noqa: BLE001
                logger.warning("Polling for new mail failed: %s", e)
                wait = poll_interval * 2

            if max_polls is not None and polls >= max_polls:
                break
            await _sleep_unless_stopped(stop, wait)

        logger.info("Monitoring stopped after %d polls", polls)
        return polls

    # --- push notifications ---

    async def process_history_changes(self, history_id: int) -> list[ClassificationOutcome]:
        """Classify messages added since the cursor, then move it to ``history_id``.

        The cursor stays put if any message fails, so the next notification
        picks the failed messages up again.
        """
        try:
            if self.last_history_id is None:
                logger.info("No stored history id, classifying recent inbox emails")
                recent = await self.mailbox.search(DEFAULT_POLL_QUERY, INITIAL_POLL_LIMIT)
                outcomes = []
                for index, email in enumerate(recent):
                    if index and self.batch_delay:
                        await asyncio.sleep(self.batch_delay)
                    outcomes.append(await self.classify_email(email))
            else:
                message_ids = await self.mailbox.list_history_message_ids(self.last_history_id)
                logger.info(
                    "Found %d new messages between history %s and %s",
                    len(message_ids),
                    self.last_history_id,
                    history_id,
                )
                outcomes = await self.classify_batch(message_ids)
        except Exception as e:  # noqa: BLE001
            logger.warning("Processing history changes up to %s failed: %s", history_id, e)
            return []

        failed = [o.message_id for o in outcomes if not o.success]
        if failed:
            logger.warning(
                "Keeping history cursor at %s, %d message(s) failed: %s",
                self.last_history_id,
                len(failed),
                ", ".join(failed),
            )
        else:
            self._advance_cursor(history_id)
        return outcomes


def classification_stats(outcomes: Sequence[ClassificationOutcome]) -> dict:
    """Summarize a run: totals plus per-label and per-confidence counts."""
    stats = {
        "total": len(outcomes),
        "successful": sum(1 for o in outcomes if o.success),
        "failed": sum(1 for o in outcomes if not o.success),
        "label_counts": {},
        "confidence_counts": {c.value: 0 for c in Confidence},
    }
    for outcome in outcomes:
        if not outcome.success or outcome.classification is None:
            continue
        name = outcome.classification.label_name
        stats["label_counts"][name] = stats["label_counts"].get(name, 0) + 1
        stats["confidence_counts"][outcome.classification.confidence.value] += 1
    return stats
