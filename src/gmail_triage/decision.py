"""Label decision: model classification with a deterministic fallback."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable

from .fallback import fallback_classification
from .models import Classification, Confidence, Email, LabelTaxonomy, RelationshipAnalysis
from .prompt import build_prompt

logger = logging.getLogger(__name__)

ModelCall = Callable[[str], Awaitable[str]]

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

NO_REASONING = "No reasoning provided"
SUBSTRING_REASONING = "Label ID matched by substring in model response"


def _parse_confidence(value) -> Confidence:
    if isinstance(value, str):
        try:
            return Confidence(value.strip().upper())
        except ValueError:
            pass
    return Confidence.MEDIUM


def parse_model_response(response: str, taxonomy: LabelTaxonomy) -> Classification | None:
    """Extract a classification from raw model output.

    Tries a JSON object first, then a literal label id anywhere in the text.
    Returns None when neither yields a label. A JSON ``labelId`` outside the
    taxonomy is passed through as-is.
    """
    response = response or ""

    match = _JSON_OBJECT_RE.search(response)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict) and parsed.get("labelId"):
            label_id = str(parsed["labelId"])
            return Classification(
                label_id=label_id,
                label_name=str(parsed.get("labelName") or taxonomy.name_for_id(label_id)),
                confidence=_parse_confidence(parsed.get("confidence")),
                reasoning=str(parsed.get("reasoning") or NO_REASONING),
                source="model",
                raw_response=response,
            )

    for label_id in taxonomy.ordered_ids():
        if label_id in response:
            return Classification(
                label_id=label_id,
                label_name=taxonomy.name_for_id(label_id),
                confidence=Confidence.MEDIUM,
                reasoning=SUBSTRING_REASONING,
                source="model_substring",
                raw_response=response,
            )

    return None


class LabelDecisionEngine:
    """Picks exactly one label for an email; never raises."""

    def __init__(self, taxonomy: LabelTaxonomy | None = None, my_email: str = "") -> None:
        self.taxonomy = taxonomy or LabelTaxonomy()
        self.my_email = my_email

    def build_prompt(self, email: Email, analysis: RelationshipAnalysis) -> str:
        return build_prompt(email, analysis, self.taxonomy, self.my_email)

    def fallback(self, email: Email, analysis: RelationshipAnalysis) -> Classification:
        return fallback_classification(email, analysis, self.taxonomy)

    async def decide(
        self,
        email: Email,
        analysis: RelationshipAnalysis,
        model_call: ModelCall,
    ) -> Classification:
        prompt = self.build_prompt(email, analysis)

        try:
            response = await model_call(prompt)
        except Exception as e:  # noqa: BLE001
            logger.warning("Model call failed for %s, using fallback rules: %s", email.id, e)
            return self.fallback(email, analysis)

        classification = parse_model_response(response, self.taxonomy)
        if classification is None:
            logger.warning("Unusable model response for %s, using fallback rules", email.id)
            logger.debug("Raw response for %s: %r", email.id, response)
            return self.fallback(email, analysis)

        return classification
