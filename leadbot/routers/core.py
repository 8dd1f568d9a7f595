from fastapi import APIRouter

from leadbot.config import config

router = APIRouter(tags=["Core"])


# GET /
# Gets: nothing
# Returns: basic API metadata and a map of key endpoints
# Example:
#   curl http://localhost:8000/
@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "leadbot API - Lead Qualification Chatbot",
        "version": "1.0.0",
        "description": "Qualifies inbound leads through a short conversation and classifies them as hot, warm, cold or invalid",
        "conversation_mode": config.CONVERSATION_MODE,
        "endpoints": {
            "chat": "/chat",
            "chat_start": "/chat/start",
            "reset": "/reset",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
