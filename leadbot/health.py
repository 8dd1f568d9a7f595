"""
Health check and monitoring endpoints.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from leadbot.config import config
from leadbot.logging_config import logger
from leadbot.profile import load_business_profile

router = APIRouter(tags=["Health & Monitoring"])

SERVICE_NAME = "leadbot"
VERSION = "1.0.0"


# GET /health
# Gets: nothing
# Returns: {status, service, version}
# Example:
#   curl http://localhost:8000/health
@router.get("/health")
async def health_check():
    """
    Basic health check - returns 200 if service is running.
    Use this for basic liveness probes.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": VERSION,
    }


# GET /health/ready
# Gets: nothing
# Returns: dependency readiness checks; 503 when the service cannot hold a conversation
# Example:
#   curl http://localhost:8000/health/ready
@router.get("/health/ready")
async def readiness_check():
    """
    Readiness check.

    Checks:
    - OpenAI configuration (natural mode needs it for every turn)
    - Business profile has what the configured mode needs
    """
    checks = {
        "openai": config.has_openai_key(),
        "business_profile": False,
        "ready": False,
    }

    profile = load_business_profile()
    if config.is_scripted():
        checks["business_profile"] = bool(profile.questions)
    else:
        checks["business_profile"] = bool(profile.qualification_criteria)
    logger.debug("readiness_check", **checks)

    # Classification always needs generation, scripted mode included.
    checks["ready"] = bool(checks["openai"] and checks["business_profile"])

    return JSONResponse(status_code=200 if checks["ready"] else 503, content=checks)


# GET /health/info
# Gets: nothing
# Returns: service configuration summary
# Example:
#   curl http://localhost:8000/health/info
@router.get("/health/info")
async def system_info():
    """
    System information and configuration status.
    """
    return {
        "service": SERVICE_NAME,
        "version": VERSION,
        "configuration": {
            "openai_configured": config.has_openai_key(),
            "openai_model": config.OPENAI_MODEL if config.has_openai_key() else None,
            "conversation_mode": config.CONVERSATION_MODE,
            "max_transcript_turns": config.MAX_TRANSCRIPT_TURNS,
            "lead_sink": config.LEAD_SINK,
            "debug_mode": config.DEBUG,
        },
    }
