"""Business profile loading."""

from pathlib import Path
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from leadbot.config import config
from leadbot.logging_config import get_logger
from leadbot.models import BusinessProfile

logger = get_logger(__name__)


def default_business_profile() -> BusinessProfile:
    """Built-in real-estate profile used when no profile file is available."""
    return BusinessProfile.model_validate({
        "companyName": "GrowEasy Real Estate",
        "industry": "Real Estate",
        "targetAudience": "Property buyers and sellers",
        "qualificationCriteria": {
            "budget": "Must have budget information",
            "timeline": "Must have timeline for purchase/sale",
            "location": "Must specify preferred location",
            "propertyType": "Must indicate property type interest",
        },
        "questions": [
            {"id": "location", "text": "Which city or area are you looking to buy in?"},
            {"id": "budget", "text": "What budget range do you have in mind?"},
            {
                "id": "propertyType",
                "text": "What type of property are you interested in?",
                "type": "fixed-choice",
                "options": ["Apartment", "Villa", "Plot", "Commercial"],
            },
            {"id": "timeline", "text": "When are you planning to make the purchase?"},
        ],
        "classification": {
            "hot": {"message": "Great news! Our senior consultant will call you within the next hour."},
            "warm": {"message": "Thank you! We'll send you a few matching listings and follow up soon."},
            "cold": {"message": "Thanks for chatting! We'll keep you posted on properties that fit your needs."},
            "invalid": {"message": "Thanks for stopping by. Feel free to reach out whenever you're ready."},
        },
    })


def load_business_profile(path: Optional[str] = None) -> BusinessProfile:
    """Read and validate the profile JSON; fall back to the built-in profile."""
    profile_path = Path(path or config.BUSINESS_PROFILE_PATH)
    try:
        raw = profile_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("business_profile_not_found", path=str(profile_path), error=str(e))
        return default_business_profile()

    try:
        profile = BusinessProfile.model_validate_json(raw)
    except PydanticValidationError as e:
        logger.error("business_profile_invalid", path=str(profile_path), errors=e.error_count())
        return default_business_profile()

    logger.info(
        "business_profile_loaded",
        path=str(profile_path),
        company=profile.company_name,
        questions=len(profile.questions),
        criteria=len(profile.qualification_criteria),
    )
    return profile
