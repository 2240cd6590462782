"""Constants for Gmail Triage."""

from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path.home() / ".gmail-triage"
CREDENTIALS_PATH = CONFIG_DIR / "credentials.json"
TOKEN_PATH = CONFIG_DIR / "token.json"
LABELS_PATH = CONFIG_DIR / "labels.json"

# --- Gmail API ---
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
BATCH_SIZE = 50  # messages per BatchHttpRequest
PAGE_SIZE = 500  # messages per list page
HISTORY_LOOKUP_RESULTS = 10  # prior messages fetched per history search
CLASSIFICATION_HEADERS = [
    "auto-submitted",
    "sender",
    "in-reply-to",
    "references",
    "list-unsubscribe",
    "precedence",
]
CATEGORY_PROMOTIONS = "CATEGORY_PROMOTIONS"
CATEGORY_UPDATES = "CATEGORY_UPDATES"

# --- Model ---
DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 10000
BODY_PROMPT_LIMIT = 2000  # characters of body text sent to the model

# --- Label taxonomy (provider ids are configuration) ---
DEFAULT_LABEL_IDS = {
    "TO_RESPOND": "Label_19",
    "FYI": "Label_18",
    "COMMENT": "Label_20",
    "NOTIFICATION": "Label_17",
    "MEETING_UPDATE": "INBOX",
    "MARKETING": "Label_15",
    "TICKETS": "Label_10",
    "RECEIPTS": "Label_2",
}
LABEL_NAMES = {
    "TO_RESPOND": "To Respond",
    "FYI": "FYI",
    "COMMENT": "Comment",
    "NOTIFICATION": "Notification",
    "MEETING_UPDATE": "Meeting Update",
    "MARKETING": "Marketing",
    "TICKETS": "Tickets",
    "RECEIPTS": "Receipts",
}
UNKNOWN_LABEL_NAME = "Unknown"

# Keywords used to suggest a label mapping from the user's own Gmail labels
LABEL_SUGGESTION_KEYWORDS = {
    "TO_RESPOND": ["to respond", "respond", "action", "urgent"],
    "FYI": ["fyi", "info", "information"],
    "COMMENT": ["comment", "feedback"],
    "NOTIFICATION": ["notification", "notify", "alert"],
    "MEETING_UPDATE": ["meeting", "calendar", "event"],
    "MARKETING": ["marketing", "promo", "promotion", "sales"],
    "TICKETS": ["ticket", "travel", "flight"],
    "RECEIPTS": ["receipt", "bill", "invoice"],
}

# --- Sender local-part patterns (anchored at start, case-insensitive) ---
NO_REPLY_PATTERN = r"^(no-?reply|noreply|do-?not-?reply)"
AUTOMATED_PATTERN = r"^(notification|alert|system|admin|support)"
MARKETING_PATTERN = r"^(marketing|promo|newsletter|info)"

# --- History ---
HISTORY_SAMPLE_LIMIT = 5
NO_HISTORY_SUMMARY = "No prior email history found - this appears to be a cold email"
HISTORY_ERROR_SUMMARY = "Error checking history - treating as no history"

# --- Thread context phrases (in output order) ---
REPLY_CONTEXT = "Part of ongoing conversation thread"
AUTO_SUBMITTED_CONTEXT = "Auto-generated/system email"
UNSUBSCRIBE_CONTEXT = "Contains unsubscribe mechanism"
BULK_CONTEXT = "Mass/bulk email"
DIRECT_CONTEXT = "Direct individual email"

# --- Classification hints ---
HINT_DESCRIPTIONS = {
    "COLD_EMAIL": "No prior communication history",
    "LIKELY_MARKETING": "Cold email from marketing-type address",
    "KNOWN_CONTACT": "Prior email history exists",
    "ONGOING_CONVERSATION": "Part of active thread",
    "AUTOMATED": "System-generated email",
    "BULK_EMAIL": "Mass mailing with unsubscribe",
    "NOTIFICATION_TYPE": "No-reply address suggests notification",
}

# --- Fallback cascade keywords (case-insensitive substring match) ---
TICKET_KEYWORDS = [
    "booking confirmation",
    "flight",
    "boarding pass",
    "check-in",
    "travel itinerary",
    "train",
    "bus",
    "ferry",
    "airline",
    "departure",
    "arrival",
    "ticket",
    "reservation",
    "booking",
    "travel",
    "journey",
    "trip",
]
RECEIPT_KEYWORDS = [
    "order confirmation",
    "receipt",
    "invoice",
    "payment",
    "purchase",
    "shipped",
    "delivered",
    "order",
    "transaction",
    "billing",
    "your order",
    "payment confirmation",
    "thank you for your order",
    "delivery confirmation",
    "shipping notification",
]
MEETING_KEYWORDS = [
    "accepted:",
    "declined:",
    "invitation",
    "meeting",
    "calendar",
    "cancelled:",
    "updated invitation",
]
COMMENT_KEYWORDS = ["new comment", "comment on", "feedback on", "review requested"]
PROMOTIONAL_KEYWORDS = [
    "sale",
    "discount",
    "offer",
    "deal",
    "promotion",
    "marketing",
    "advertisement",
]
NOTIFICATION_KEYWORDS = [
    "important update",
    "service notification",
    "policy change",
    "dpa update",
    "security alert",
]
QUESTION_MARK_THRESHOLD = 2

# --- Orchestration ---
BATCH_DELAY_SECONDS = 1.0  # pause between batch items
POLL_ITEM_DELAY_SECONDS = 2.0  # pause between emails found by a poll
POLL_INTERVAL_SECONDS = 300.0
POLL_MAX_RESULTS = 200
INITIAL_POLL_LIMIT = 5  # emails processed when no cursor exists yet
DEFAULT_POLL_QUERY = "in:inbox"
