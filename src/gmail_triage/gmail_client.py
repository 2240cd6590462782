"""Gmail API client functions for fetching and labelling messages."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re

from googleapiclient.errors import HttpError
from googleapiclient.http import BatchHttpRequest
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from gmail_triage.constants import BATCH_SIZE, CLASSIFICATION_HEADERS, HISTORY_LOOKUP_RESULTS, PAGE_SIZE
from gmail_triage.exceptions import HistoryLookupError, LabelApplyError, MailboxError
from gmail_triage.models import Email, EmailAddress

logger = logging.getLogger(__name__)

_FROM_RE = re.compile(r"^(.*?)\s*<([^>]+)>$")


def _is_retryable_http_error(exc: BaseException) -> bool:
    return isinstance(exc, HttpError) and exc.resp.status in (429, 500, 503)


_gmail_retry = retry(
    retry=retry_if_exception(_is_retryable_http_error),
    wait=wait_exponential(multiplier=1, min=1, max=60),
    stop=stop_after_attempt(5),
    reraise=True,
)


def parse_from_header(from_value: str) -> EmailAddress:
    """Parse an address header value into an EmailAddress.

    Handles formats like:
      "John Doe <john@example.com>" -> ("John Doe", "john@example.com")
      "<john@example.com>"          -> ("", "john@example.com")
      "john@example.com"            -> ("", "john@example.com")
    """
    if not from_value:
        return EmailAddress()
    m = _FROM_RE.match(from_value.strip())
    if m:
        name = m.group(1).strip().strip('"').strip("'")
        return EmailAddress(name=name, address=m.group(2).strip())
    return EmailAddress(address=from_value.strip().strip("<>"))


def parse_address_list(value: str) -> tuple[EmailAddress, ...]:
    """Parse a comma-separated To/Cc header."""
    if not value:
        return ()
    return tuple(parse_from_header(part) for part in value.split(",") if part.strip())


def extract_headers(raw_headers: list[dict]) -> dict[str, str]:
    """Turn Gmail's header list into a dict keyed by lower-cased name."""
    return {h["name"].lower(): h["value"] for h in raw_headers or []}


def _decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def extract_text_body(payload: dict) -> str:
    """Return the first text/plain body found depth-first, or ''."""
    if payload.get("body", {}).get("data"):
        return _decode(payload["body"]["data"])

    for part in payload.get("parts", []) or []:
        if part.get("mimeType") == "text/plain" and part.get("body", {}).get("data"):
            return _decode(part["body"]["data"])
        text = extract_text_body(part)
        if text:
            return text
    return ""


def parse_message(resource: dict) -> Email:
    """Convert a Gmail ``format=full`` message resource into an Email."""
    payload = resource.get("payload", {}) or {}
    headers = extract_headers(payload.get("headers", []))
    history_id = resource.get("historyId")

    return Email(
        id=resource["id"],
        thread_id=resource.get("threadId", ""),
        subject=headers.get("subject", ""),
        sender=parse_from_header(headers.get("from", "")),
        to=parse_address_list(headers.get("to", "")),
        cc=parse_address_list(headers.get("cc", "")),
        text=extract_text_body(payload),
        label_ids=frozenset(resource.get("labelIds", []) or []),
        headers={name: headers.get(name) for name in CLASSIFICATION_HEADERS},
        history_id=int(history_id) if history_id else None,
        snippet=resource.get("snippet", ""),
    )


def list_message_ids(
    service,
    query: str | None = None,
    max_results: int | None = None,
) -> list[str]:
    """List message IDs matching the query, handling pagination."""
    ids: list[str] = []
    page_token: str | None = None

    while True:
        page_size = min(PAGE_SIZE, max_results) if max_results else PAGE_SIZE
        kwargs: dict = {"userId": "me", "maxResults": page_size, "fields": "messages/id,nextPageToken"}
        if query:
            kwargs["q"] = query
        if page_token:
            kwargs["pageToken"] = page_token

        resp = _execute(service.users().messages().list(**kwargs))
        for msg in resp.get("messages", []):
            ids.append(msg["id"])
            if max_results and len(ids) >= max_results:
                return ids[:max_results]

        page_token = resp.get("nextPageToken")
        if not page_token:
            break

    return ids


@_gmail_retry
def _execute(request):
    return request.execute()


@_gmail_retry
def _execute_batch(batch: BatchHttpRequest) -> None:
    batch.execute()


def get_message(service, message_id: str) -> Email:
    """Fetch and parse a single message."""
    resource = _execute(
        service.users().messages().get(userId="me", id=message_id, format="full")
    )
    return parse_message(resource)


def fetch_messages(service, message_ids: list[str]) -> list[Email]:
    """Fetch full messages in batches, preserving the order of ``message_ids``."""
    by_id: dict[str, Email] = {}

    for start in range(0, len(message_ids), BATCH_SIZE):
        chunk = message_ids[start:start + BATCH_SIZE]
        batch = service.new_batch_http_request()

        def _make_callback(msg_id: str):
            def _cb(request_id, response, exception):
                if exception is not None:
                    logger.debug("Skipping message %s: %s", msg_id, exception)
                    return
                by_id[msg_id] = parse_message(response)

            return _cb

        for msg_id in chunk:
            batch.add(
                service.users().messages().get(userId="me", id=msg_id, format="full"),
                callback=_make_callback(msg_id),
            )

        _execute_batch(batch)

    return [by_id[msg_id] for msg_id in message_ids if msg_id in by_id]


def search_emails(service, query: str, max_results: int = 10) -> list[Email]:
    """Run a Gmail search and return the matching messages, newest first."""
    ids = list_message_ids(service, query=query, max_results=max_results)
    if not ids:
        return []
    return fetch_messages(service, ids)


def add_labels(service, message_id: str, label_ids: list[str]) -> dict:
    return _execute(
        service.users().messages().modify(
            userId="me",
            id=message_id,
            body={"addLabelIds": label_ids},
        )
    )


def list_history_message_ids(service, start_history_id: int) -> list[str]:
    """Message ids added to the mailbox since ``start_history_id``."""
    ids: list[str] = []
    page_token: str | None = None

    while True:
        kwargs: dict = {
            "userId": "me",
            "startHistoryId": str(start_history_id),
            "historyTypes": ["messageAdded"],
        }
        if page_token:
            kwargs["pageToken"] = page_token

        resp = _execute(service.users().history().list(**kwargs))
        for change in resp.get("history", []):
            for added in change.get("messagesAdded", []):
                msg_id = added["message"]["id"]
                if msg_id not in ids:
                    ids.append(msg_id)

        page_token = resp.get("nextPageToken")
        if not page_token:
            break

    return ids


def list_labels(service) -> list[dict]:
    resp = _execute(service.users().labels().list(userId="me"))
    return resp.get("labels", [])


class GmailMailbox:
    """Async facade over the blocking Gmail functions.

    Serves as both the orchestrator's mailbox and the analyzer's history
    lookup. Calls run in a worker thread so the event loop stays free; the
    underlying httplib2 transport is not thread-safe, so they run one at a time.
    """

    def __init__(self, service, history_results: int = HISTORY_LOOKUP_RESULTS) -> None:
        self.service = service
        self.history_results = history_results
        self._lock = asyncio.Lock()

    async def _run(self, func, *args):
        async with self._lock:
            return await asyncio.to_thread(func, self.service, *args)

    async def get_email(self, message_id: str) -> Email:
        try:
            return await self._run(get_message, message_id)
        except HttpError as e:
            raise MailboxError(f"Could not fetch message {message_id}: {e}") from e

    async def search(self, query: str, max_results: int = 10) -> list[Email]:
        try:
            return await self._run(search_emails, query, max_results)
        except HttpError as e:
            raise MailboxError(f"Search {query!r} failed: {e}") from e

    async def emails_from(self, address: str) -> list[Email]:
        try:
            return await self._run(search_emails, f"from:{address}", self.history_results)
        except HttpError as e:
            raise HistoryLookupError(f"Lookup of mail from {address} failed: {e}") from e

    async def emails_to(self, address: str) -> list[Email]:
        try:
            return await self._run(search_emails, f"to:{address} in:sent", self.history_results)
        except HttpError as e:
            raise HistoryLookupError(f"Lookup of mail sent to {address} failed: {e}") from e

    async def apply_label(self, message_id: str, label_id: str) -> None:
        try:
            await self._run(add_labels, message_id, [label_id])
        except HttpError as e:
            raise LabelApplyError(f"Could not add label {label_id} to {message_id}: {e}") from e

    async def list_history_message_ids(self, start_history_id: int) -> list[str]:
        try:
            return await self._run(list_history_message_ids, start_history_id)
        except HttpError as e:
            raise MailboxError(f"History listing from {start_history_id} failed: {e}") from e

    async def list_labels(self) -> list[dict]:
        try:
            return await self._run(list_labels)
        except HttpError as e:
            raise MailboxError(f"Could not list labels: {e}") from e
