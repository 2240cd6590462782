"""Tests for Gmail message parsing and the async mailbox facade."""

import base64

import httplib2
import pytest
from googleapiclient.errors import HttpError

from conftest import make_email
from gmail_triage import gmail_client
from gmail_triage.exceptions import HistoryLookupError, LabelApplyError, MailboxError
from gmail_triage.gmail_client import (
    GmailMailbox,
    extract_text_body,
    list_history_message_ids,
    list_message_ids,
    parse_address_list,
    parse_from_header,
    parse_message,
)
from gmail_triage.models import EmailAddress


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"error")


class FakeRequest:
    def __init__(self, response):
        self.response = response

    def execute(self):
        return self.response


class FakePagedResource:
    """Stands in for users().messages() / users().history() list calls."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.calls = []

    def list(self, **kwargs):
        self.calls.append(kwargs)
        return FakeRequest(self.pages.pop(0))


class FakeService:
    def __init__(self, messages=None, history=None):
        self._messages = messages
        self._history = history

    def users(self):
        return self

    def messages(self):
        return self._messages

    def history(self):
        return self._history


# --- parsing ---


def test_parse_from_header_formats():
    assert parse_from_header('"John Doe" <john@example.com>') == EmailAddress("John Doe", "john@example.com")
    assert parse_from_header("<john@example.com>") == EmailAddress("", "john@example.com")
    assert parse_from_header("john@example.com") == EmailAddress("", "john@example.com")
    assert parse_from_header("") == EmailAddress()


def test_parse_address_list():
    result = parse_address_list("A <a@x.com>, b@y.com, ")
    assert [r.address for r in result] == ["a@x.com", "b@y.com"]
    assert parse_address_list("") == ()


def test_extract_text_body_prefers_plain_part():
    payload = {
        "mimeType": "multipart/alternative",
        "parts": [
            {"mimeType": "text/html", "body": {}},
            {"mimeType": "text/plain", "body": {"data": _b64("Plain body")}},
        ],
    }
    assert extract_text_body(payload) == "Plain body"


def test_extract_text_body_nested_and_missing():
    nested = {
        "parts": [
            {"mimeType": "multipart/mixed", "parts": [{"mimeType": "text/plain", "body": {"data": _b64("Deep")}}]}
        ]
    }
    assert extract_text_body(nested) == "Deep"
    assert extract_text_body({"parts": []}) == ""


def test_parse_message():
    """Full message resources become Email objects with lower-cased headers."""
    resource = {
        "id": "m1",
        "threadId": "t1",
        "historyId": "12345",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "Hi there",
        "payload": {
            "headers": [
                {"name": "Subject", "value": "Hello"},
                {"name": "From", "value": "Alice <alice@example.com>"},
                {"name": "To", "value": "me@example.com"},
                {"name": "Cc", "value": "Bob <bob@example.com>"},
                {"name": "In-Reply-To", "value": "<abc@x>"},
                {"name": "X-Mailer", "value": "ignored"},
            ],
            "body": {"data": _b64("Body text")},
        },
    }

    email = parse_message(resource)

    assert email.id == "m1"
    assert email.thread_id == "t1"
    assert email.history_id == 12345
    assert email.subject == "Hello"
    assert email.sender == EmailAddress("Alice", "alice@example.com")
    assert [r.address for r in email.cc] == ["bob@example.com"]
    assert email.text == "Body text"
    assert email.label_ids == frozenset({"INBOX", "UNREAD"})
    assert email.header("In-Reply-To") == "<abc@x>"
    assert email.header("precedence") is None
    assert "x-mailer" not in email.headers


# --- paginated listing ---


def test_list_message_ids_paginates_and_caps():
    messages = FakePagedResource([
        {"messages": [{"id": "a"}, {"id": "b"}], "nextPageToken": "p2"},
        {"messages": [{"id": "c"}, {"id": "d"}]},
    ])

    ids = list_message_ids(FakeService(messages=messages), query="from:x@y.com", max_results=3)

    assert ids == ["a", "b", "c"]
    assert messages.calls[0]["q"] == "from:x@y.com"
    assert messages.calls[1]["pageToken"] == "p2"


def test_list_history_message_ids_dedupes():
    history = FakePagedResource([
        {"history": [{"messagesAdded": [{"message": {"id": "a"}}, {"message": {"id": "b"}}]}], "nextPageToken": "n"},
        {"history": [{"messagesAdded": [{"message": {"id": "b"}}]}, {"messagesAdded": [{"message": {"id": "c"}}]}]},
    ])

    ids = list_history_message_ids(FakeService(history=history), 900)

    assert ids == ["a", "b", "c"]
    assert history.calls[0]["startHistoryId"] == "900"
    assert history.calls[0]["historyTypes"] == ["messageAdded"]


# --- GmailMailbox ---


@pytest.mark.asyncio
async def test_mailbox_history_queries(monkeypatch):
    calls = []

    def fake_search(service, query, max_results):
        calls.append((query, max_results))
        return [make_email("h1")]

    monkeypatch.setattr(gmail_client, "search_emails", fake_search)
    mailbox = GmailMailbox(service=object())

    received = await mailbox.emails_from("bob@example.com")
    await mailbox.emails_to("bob@example.com")

    assert [e.id for e in received] == ["h1"]
    assert calls == [("from:bob@example.com", 10), ("to:bob@example.com in:sent", 10)]


@pytest.mark.asyncio
async def test_mailbox_apply_label(monkeypatch):
    calls = []
    monkeypatch.setattr(gmail_client, "add_labels", lambda service, msg_id, ids: calls.append((msg_id, ids)))

    await GmailMailbox(service=object()).apply_label("m1", "Label_18")

    assert calls == [("m1", ["Label_18"])]


@pytest.mark.asyncio
async def test_mailbox_wraps_http_errors(monkeypatch):
    def failing(*args):
        raise _http_error(404)

    for name in ("get_message", "search_emails", "add_labels", "list_history_message_ids"):
        monkeypatch.setattr(gmail_client, name, failing)
    mailbox = GmailMailbox(service=object())

    with pytest.raises(MailboxError):
        await mailbox.get_email("m1")
    with pytest.raises(MailboxError):
        await mailbox.search("in:inbox")
    with pytest.raises(HistoryLookupError):
        await mailbox.emails_from("a@b.com")
    with pytest.raises(LabelApplyError):
        await mailbox.apply_label("m1", "Label_1")
    with pytest.raises(MailboxError):
        await mailbox.list_history_message_ids(1)
