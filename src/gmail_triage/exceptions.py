"""Exception types raised by Gmail Triage."""


class TriageError(Exception):
    """Base class for all Gmail Triage errors."""


class ConfigError(TriageError):
    """Configuration is missing or malformed."""


class MailboxError(TriageError):
    """A mailbox request (fetch, search, history) failed."""


class HistoryLookupError(MailboxError):
    """Searching prior correspondence with a sender failed."""


class LabelApplyError(MailboxError):
    """Adding a label to a message failed."""


class ModelCallError(TriageError):
    """The language model request failed or returned no content."""
