"""
Lead classification.

The generation service is asked once, near-deterministically, for a strict
JSON verdict. Whatever comes back is parsed leniently (prose around the
object is tolerated, finer-grained labels are folded onto the canonical set)
and anything unusable becomes a low-confidence ``invalid`` classification.
``classify`` never raises.
"""

import json
import re
from typing import Any, Iterable, Optional

from leadbot.config import config
from leadbot.errors import ClassificationFailure, FailureCause, GenerationServiceError
from leadbot.llm_client import GenerationService
from leadbot.logging_config import get_logger
from leadbot.models import BusinessProfile, Classification, LeadStatus
from leadbot.prompts import build_classification_prompt
from leadbot.transcript import Transcript

logger = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.1

# Substring rules, checked in order. "invalid" wins over everything else so a
# label like "invalid_hot_lead" cannot be promoted.
_STATUS_RULES: list[tuple[tuple[str, ...], LeadStatus]] = [
    (("invalid", "spam", "junk", "fake"), LeadStatus.INVALID),
    (("hot",), LeadStatus.HOT),
    (("warm",), LeadStatus.WARM),
    (("cold",), LeadStatus.COLD),
]

_EMPTY_VALUES = {"", "null", "none", "n/a", "na", "not provided", "not mentioned", "unknown", "not specified"}


def normalize_status(label: Any) -> Optional[LeadStatus]:
    """Map any recognized label variant (``hot_premium``, ``Warm``...) to a LeadStatus."""
    if not isinstance(label, str):
        return None
    text = label.strip().lower()
    if not text:
        return None
    for needles, status in _STATUS_RULES:
        if any(needle in text for needle in needles):
            return status
    return None


def extract_json_object(raw: str) -> str:
    """Return the first balanced top-level ``{...}`` span in ``raw``.

    Braces inside JSON strings are ignored. Raises MALFORMED_OUTPUT when no
    complete object exists (including truncated output).
    """
    start = raw.find("{")
    if start == -1:
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, "no JSON object in reply")

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(raw)):
        ch = raw[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return raw[start: index + 1]
    raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, "unterminated JSON object")


def _key(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _clean_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v is not None)
    text = " ".join(str(value).split())
    return None if text.lower() in _EMPTY_VALUES else text


def _match_metadata(raw_metadata: Any, criteria: Iterable[str]) -> dict[str, Optional[str]]:
    """Project returned fields onto the criterion names.

    Exact matches ignore case and separators (``property_type`` ->
    ``propertyType``); otherwise a field whose name starts with the criterion
    name is used (``budget_range`` -> ``budget``).
    """
    criteria = list(criteria)
    result: dict[str, Optional[str]] = {name: None for name in criteria}
    if not isinstance(raw_metadata, dict):
        return result

    fields = {_key(str(k)): v for k, v in raw_metadata.items()}
    for name in criteria:
        wanted = _key(name)
        if wanted in fields:
            result[name] = _clean_value(fields[wanted])
            continue
        for field_key, value in fields.items():
            if field_key.startswith(wanted):
                result[name] = _clean_value(value)
                break
    return result


def _confidence(value: Any) -> float:
    if isinstance(value, bool):
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, "confidence is not a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, f"confidence is not a number: {value!r}")
    if number != number:  # NaN
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, "confidence is NaN")
    return min(max(number, 0.0), 1.0)


def parse_classification(raw: str, criteria: Iterable[str]) -> Classification:
    """Parse a raw generation reply into a canonical Classification.

    Raises ClassificationFailure (MALFORMED_OUTPUT or INVALID_CATEGORY).
    """
    span = extract_json_object(raw or "")
    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, f"invalid JSON: {e.msg}")
    if not isinstance(data, dict):
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, "JSON is not an object")

    label = data.get("status", data.get("classification"))
    if label is None:
        raise ClassificationFailure(FailureCause.MALFORMED_OUTPUT, "missing status")
    status = normalize_status(label)
    if status is None:
        raise ClassificationFailure(FailureCause.INVALID_CATEGORY, f"unrecognized status {label!r}")

    raw_confidence = data.get("confidence")
    # Missing and null both mean the model gave no estimate.
    confidence = _confidence(0.5 if raw_confidence is None else raw_confidence)
    reasoning = data.get("reasoning") or ""
    metadata = data.get("metadata", data.get("extracted_data"))

    return Classification(
        status=status,
        confidence=confidence,
        reasoning=" ".join(str(reasoning).split()),
        metadata=_match_metadata(metadata, criteria),
    )


def fallback_classification(cause: FailureCause, detail: str = "") -> Classification:
    reason = f"Classification fallback: {cause.value}"
    if detail:
        reason += f": {detail}"
    return Classification(
        status=LeadStatus.INVALID,
        confidence=FALLBACK_CONFIDENCE,
        reasoning=reason,
        metadata={},
    )


class LeadClassifier:
    """Classifies a completed conversation through the generation service."""

    def __init__(
        self,
        service: GenerationService,
        max_output_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        self.service = service
        self.max_output_tokens = max_output_tokens or config.CLASSIFICATION_MAX_TOKENS
        self.temperature = config.CLASSIFICATION_TEMPERATURE if temperature is None else temperature

    def classify(self, transcript: Transcript, profile: BusinessProfile) -> Classification:
        criteria = list(profile.qualification_criteria)
        try:
            prompt = build_classification_prompt(transcript, profile)
            result = self.service.generate(prompt, self.max_output_tokens, self.temperature)
            classification = parse_classification(result.text, criteria)
        except GenerationServiceError as e:
            logger.warning("classification_fallback", cause=FailureCause.GENERATION_SERVICE_ERROR.value,
                           kind=e.kind, status=e.status)
            return fallback_classification(FailureCause.GENERATION_SERVICE_ERROR, e.kind)
        except ClassificationFailure as e:
            logger.warning("classification_fallback", cause=e.cause.value, detail=e.detail)
            return fallback_classification(e.cause, e.detail)
        except Exception as e:
            logger.error("classification_fallback", cause=FailureCause.MALFORMED_OUTPUT.value,
                         error=str(e), exc_info=True)
            return fallback_classification(FailureCause.MALFORMED_OUTPUT, type(e).__name__)

        logger.info(
            "lead_classified",
            status=classification.status.value,
            confidence=classification.confidence,
        )
        return classification
