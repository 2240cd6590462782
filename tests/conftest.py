"""Shared fixtures and fakes for tests."""

from __future__ import annotations

import pytest

from gmail_triage.analyzer import RelationshipAnalyzer
from gmail_triage.decision import LabelDecisionEngine
from gmail_triage.models import Email, EmailAddress, LabelTaxonomy


def make_email(
    message_id: str = "msg_001",
    subject: str = "",
    text: str = "",
    sender: str = "alice@example.com",
    sender_name: str = "Alice",
    labels: tuple[str, ...] = ("INBOX",),
    history_id: int | None = None,
    **headers: str,
) -> Email:
    """Build an Email; header kwargs use underscores (in_reply_to=...)."""
    return Email(
        id=message_id,
        thread_id=f"thread_{message_id}",
        subject=subject,
        sender=EmailAddress(name=sender_name, address=sender),
        to=(EmailAddress(name="Me", address="me@example.com"),),
        text=text,
        label_ids=frozenset(labels),
        headers={name.replace("_", "-"): value for name, value in headers.items()},
        history_id=history_id,
    )


class FakeMailbox:
    """In-memory mailbox implementing both history lookup and label mutation."""

    def __init__(
        self,
        emails: list[Email] | None = None,
        received: dict[str, list[Email]] | None = None,
        sent: dict[str, list[Email]] | None = None,
    ) -> None:
        self.emails = {e.id: e for e in emails or []}
        self.received = received or {}
        self.sent = sent or {}
        self.search_results: list[Email] = list(emails or [])
        self.history_ids: list[str] = []
        self.applied: list[tuple[str, str]] = []
        self.searches: list[str] = []
        self.fail_lookup = False
        self.fail_sent = False
        self.fail_search = False
        self.fail_apply_for: set[str] = set()

    async def emails_from(self, address: str) -> list[Email]:
        if self.fail_lookup:
            raise RuntimeError("search quota exceeded")
        return self.received.get(address, [])

    async def emails_to(self, address: str) -> list[Email]:
        if self.fail_sent:
            raise RuntimeError("sent folder unavailable")
        return self.sent.get(address, [])

    async def get_email(self, message_id: str) -> Email:
        if message_id not in self.emails:
            raise KeyError(message_id)
        return self.emails[message_id]

    async def search(self, query: str, max_results: int = 10) -> list[Email]:
        self.searches.append(query)
        if self.fail_search:
            raise RuntimeError("mailbox unavailable")
        return self.search_results[:max_results]

    async def apply_label(self, message_id: str, label_id: str) -> None:
        if message_id in self.fail_apply_for:
            raise RuntimeError("label mutation rejected")
        self.applied.append((message_id, label_id))

    async def list_history_message_ids(self, start_history_id: int) -> list[str]:
        return list(self.history_ids)


class FakeModel:
    """Model call returning a canned response (or raising) and recording prompts."""

    def __init__(self, response: str | None = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response or ""


@pytest.fixture
def taxonomy() -> LabelTaxonomy:
    return LabelTaxonomy()


@pytest.fixture
def engine(taxonomy: LabelTaxonomy) -> LabelDecisionEngine:
    return LabelDecisionEngine(taxonomy=taxonomy, my_email="me@example.com")


@pytest.fixture
def analyzer() -> RelationshipAnalyzer:
    return RelationshipAnalyzer()


@pytest.fixture
def known_contact_mailbox() -> FakeMailbox:
    prior = make_email("old_001", subject="Earlier thread")
    return FakeMailbox(received={"alice@example.com": [prior]})


@pytest.fixture
def cold_mailbox() -> FakeMailbox:
    return FakeMailbox()
