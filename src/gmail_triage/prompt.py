"""Prompt construction for the label classifier model."""

from __future__ import annotations

from .constants import BODY_PROMPT_LIMIT, CLASSIFICATION_HEADERS
from .models import Email, LabelKey, LabelTaxonomy, RelationshipAnalysis

_HEADER_TITLES = {
    "auto-submitted": "Auto-Submitted Header",
    "sender": "Original Sender Header",
    "in-reply-to": "In-Reply-To Header",
    "references": "References Header",
    "list-unsubscribe": "List-Unsubscribe Header",
    "precedence": "Precedence Header",
}


def truncate_body(text: str, limit: int = BODY_PROMPT_LIMIT) -> str:
    """Cut ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    text = text or ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _label_section(taxonomy: LabelTaxonomy) -> str:
    ids = {key: taxonomy.id_for(key) for key in LabelKey}
    return f"""* **To Respond (Label ID: `{ids[LabelKey.TO_RESPOND]}`):**
    * **Primary Criteria:** Requires direct, timely action/reply.
    * **Key Indicators (especially if Prior Email History = "Yes"):** Direct questions, assigned tasks, requests for info, deadlines, part of an active conversation (indicated by `In-Reply-To`/`References`).
    * **Sales Process Prioritization (typically Prior Email History = "Yes"):** Ongoing, active sales process discussions.
    * **High-Value Cold Outreach (Exceptional Cases - Prior Email History = "No"):** Highly personalized, strategic opportunity requiring personal attention. (Default for cold sales is "Marketing").

* **FYI (Label ID: `{ids[LabelKey.FYI]}`):**
    * **Primary Criteria:** For awareness; no immediate action/reply required.
    * **Key Indicators:**
        * CC'd, primary action for others.
        * General announcements, **non-promotional** newsletters from **known entities/subscriptions** (Prior Email History = "Yes") that aren't critical service notifications.
        * Informational updates within ongoing projects where not the primary actor.
    * A mass mailing (`Precedence: Bulk`, `List-Unsubscribe` present) from a **known entity** that is purely informational without a direct call to action or critical service update could be "FYI."

* **Comment (Label ID: `{ids[LabelKey.COMMENT]}`):**
    * Comment/feedback on a document, task, system (e.g., subject "New comment on...").

* **Notification (Label ID: `{ids[LabelKey.NOTIFICATION]}`):**
    * **Primary Criteria:** Important, often non-promotional, updates or alerts about an existing service, account, or system. Action is awareness, a configuration change, or noting a deadline rather than a conversational reply.
    * **Key Indicators:**
        * Updates from known service providers: Terms of Service, Privacy Policy or Data Processing Agreement (DPA) changes, outages and maintenance, account security alerts, important feature changes that are not primarily marketing.
        * System-generated alerts (e.g., `Auto-Submitted Header` = `auto-generated`) like social media notifications, non-meeting calendar reminders, some financial transaction alerts.
        * Subject lines may contain: "Important Update," "Service Notification," "Policy Change," "DPA Update," "Security Alert."
        * Even with a `List-Unsubscribe` link, a critical service/account/legal update from a company already doing business with is a "Notification."
        * `Existing Gmail Labels` might include `CATEGORY_UPDATES`.

* **Meeting Update (Label ID: `{ids[LabelKey.MEETING_UPDATE]}`):**
    * Update specifically regarding a scheduled meeting (e.g., "Accepted:", "Declined:", "Updated Invitation:", "Cancelled:").

* **Marketing (Label ID: `{ids[LabelKey.MARKETING]}`):**
    * **Primary Criteria:** Unsolicited promotional sales pitch, advertisement, or general marketing newsletter, especially if **Prior Email History = "No".**
    * **Key Indicators:**
        * **No prior email history with the `Sender Email`,** AND the email mainly sells a product/service or promotes a company/event.
        * Generic content focused on features/benefits without personalization to known, active projects.
        * A `List-Unsubscribe Header` AND promotional content.
        * `Existing Gmail Labels` may include `CATEGORY_PROMOTIONS`.
    * If **Prior Email History = "Yes":** still "Marketing" when it is clearly a promotional newsletter/offer that doesn't fit "Notification" or demand a "To Respond."

* **Tickets (Label ID: `{ids[LabelKey.TICKETS]}`):**
    * **Primary Criteria:** Travel-related confirmations and tickets for transportation.
    * **Key Indicators:** Flight bookings, check-in reminders, boarding passes; train, bus, ferry or other transportation tickets; travel itineraries and booking confirmations. Senders are typically airlines, travel agencies, booking platforms, transportation companies.

* **Receipts (Label ID: `{ids[LabelKey.RECEIPTS]}`):**
    * **Primary Criteria:** Purchase confirmations, receipts, invoices, and order-related communications.
    * **Key Indicators:** Order confirmations, purchase receipts, invoices, bills, shipping and delivery notifications, payment and transaction confirmations. Senders are typically e-commerce sites, stores, payment processors, shipping companies."""


def build_prompt(
    email: Email,
    analysis: RelationshipAnalysis,
    taxonomy: LabelTaxonomy,
    my_email: str,
) -> str:
    """Render the single-turn classification prompt for ``email``."""
    history = analysis.history
    domain = analysis.domain
    has_history = "Yes" if history.has_history else "No"
    address_kind = "No-reply address" if domain.is_no_reply else "Regular address"
    hints = ", ".join(hint.render() for hint in analysis.hints)

    header_lines = "\n".join(
        f"* **{_HEADER_TITLES[name]}:** `{email.header(name) or 'None'}`"
        for name in CLASSIFICATION_HEADERS
    )

    return f"""**Objective:** Analyze the provided email data and classify it with the most appropriate label. **Use the email history analysis** to determine whether this is a first-time interaction (cold email) or part of an existing relationship. This context is crucial for distinguishing between Marketing, Notifications, and FYI.

**Your Email Address (for context):** `{my_email}`

**Email History Analysis:**
* **Prior Email History:** {has_history} ({history.summary})
* **Thread Context:** {analysis.thread.context}
* **Domain Analysis:** {domain.domain} ({address_kind})
* **Classification Hints:** {hints}

**Input Email Data:**
* **Sender Email:** `{email.sender.address}`
* **Sender Name:** `{email.sender.name}`
* **Direct Recipient Emails (To):** `{', '.join(r.address for r in email.to)}`
* **CC Recipient Emails:** `{', '.join(r.address for r in email.cc)}`
* **Subject:** `{email.subject}`
* **Body (Plain Text):** `{truncate_body(email.text)}`
* **Existing Gmail Labels:** `{', '.join(sorted(email.label_ids))}`
{header_lines}

**Guidance on Using Prior Email History & Unsubscribe Links:**
* **Prior Email History = "No":** Strong indicator of a **cold/unsolicited email**.
    * If promotional/sales pitch: Likely "Marketing."
    * If exceptionally personalized & high-value for business: Rare "To Respond."
* **Prior Email History = "Yes":** Indicates an **existing relationship/conversation**.
    * An update on terms, policies, or service changes from this known entity: Likely "Notification."
    * A subscribed newsletter: "FYI" or "Marketing" depending on content.
    * A direct message requiring action: Likely "To Respond."
* **`List-Unsubscribe` Header or Unsubscribe Links in Body:** common in "Marketing" but also present in many legitimate "Notification" and "FYI" emails. An unsubscribe link alone does not define the category; weigh it with Prior Email History and the email's purpose.
* **`Precedence: Bulk` Header:** Often indicates mass mailings, common for Marketing, Notifications, and some FYIs.

**Labels, Descriptions, and Prioritization Logic:**

{_label_section(taxonomy)}

**Output Format:**
Respond ONLY with a JSON object in the following format:
{{
  "labelId": "[LABEL_ID]",
  "labelName": "[LABEL_NAME]",
  "confidence": "[HIGH/MEDIUM/LOW]",
  "reasoning": "[Brief explanation of why this label was chosen]"
}}"""
