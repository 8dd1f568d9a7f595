"""Keyword coverage of qualification criteria across a whole conversation.

Detection is deliberately cheap: each criterion is a regex evaluated against
the lowercased text of every turn. A fact mentioned once anywhere counts as
covered for the rest of the conversation. Misses and false hits are expected;
the dialogue policy never relies on coverage alone to terminate.
"""

import re
from functools import lru_cache
from typing import Iterable

from leadbot.models import BusinessProfile, Criterion, CriterionSpec, CoverageReport
from leadbot.transcript import Transcript

# Built-in predicates for criteria that most real-estate profiles use.
# Keyed by the criterion name with case and separators removed.
DEFAULT_PREDICATES: dict[str, str] = {
    "budget": r"budget|price|cost|afford|money|lakh|crore|rupee|₹|\$|spend",
    "timeline": r"timeline|\btime\b|month|year|week|soon|urgent|asap|immediate|\bwhen\b|\bby\b|\bmove\b",
    "location": r"location|\barea\b|city|place|where|neighbou?rhood|locality",
    "propertytype": r"apartment|villa|house|flat|bhk|commercial|office|shop|bedroom|\bplot\b",
    "motivation": r"\bwhy\b|reason|need|family|investment|upgrade|first home",
}


def _normalize_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _name_as_keywords(name: str) -> str:
    # propertyType / property_type -> "property type"
    words = re.sub(r"([a-z])([A-Z])", r"\1 \2", name).replace("_", " ").replace("-", " ")
    return re.escape(words.lower().strip())


def _keywords_pattern(keywords: Iterable[str]) -> str:
    return "|".join(re.escape(k.lower()) for k in keywords if k.strip())


def make_criterion(name: str, spec) -> Criterion:
    """Build a Criterion from a profile entry (plain description or CriterionSpec)."""
    if isinstance(spec, CriterionSpec):
        description = spec.description
        if spec.pattern:
            re.compile(spec.pattern)
            return Criterion(name=name, description=description, pattern=spec.pattern)
        if spec.keywords:
            return Criterion(name=name, description=description, pattern=_keywords_pattern(spec.keywords))
    else:
        description = spec or ""

    pattern = DEFAULT_PREDICATES.get(_normalize_name(name)) or _name_as_keywords(name)
    return Criterion(name=name, description=description, pattern=pattern)


def build_criteria(profile: BusinessProfile) -> list[Criterion]:
    """The profile's qualification criteria as an ordered predicate table."""
    return [make_criterion(name, spec) for name, spec in profile.qualification_criteria.items()]


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def analyze(transcript: Transcript, criteria: Iterable[Criterion]) -> CoverageReport:
    """Recompute coverage from scratch for the full transcript."""
    blob = transcript.as_text()
    return CoverageReport(
        covered={c.name: bool(_compiled(c.pattern).search(blob)) for c in criteria}
    )
