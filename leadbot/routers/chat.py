from datetime import datetime, timezone
import time
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from leadbot.errors import ErrorCode
from leadbot.logging_config import logger
from leadbot.metrics import (
    chat_request_duration,
    chat_requests_total,
    generation_errors_total,
    lead_classifications_total,
)
from leadbot.models import ChatRequest, SessionRequest, TurnResult
from leadbot.sessions import SessionStore, get_session_store

# Handlers are plain `def`: generation goes through the blocking OpenAI client,
# so FastAPI runs them in its threadpool instead of on the event loop.
router = APIRouter(tags=["Chat"])

_ERROR_STATUS = {
    ErrorCode.EMPTY_MESSAGE.value: 400,
    ErrorCode.MESSAGE_TOO_LONG.value: 400,
    ErrorCode.INVALID_JSON.value: 400,
    ErrorCode.AUTH_ERROR.value: 503,
    ErrorCode.RATE_LIMIT.value: 429,
    ErrorCode.SERVICE_ERROR.value: 502,
    ErrorCode.TIMEOUT_ERROR.value: 504,
}


def _respond(result: TurnResult, session_id: str) -> JSONResponse:
    status_code = 200 if result.success else _ERROR_STATUS.get(result.code, 500)
    result = result.model_copy(update={"session_id": session_id})
    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json", by_alias=True),
    )


# POST /chat
# Gets: JSON body {message: str, sessionId?: str}
# Returns: TurnResult {success, sessionId, reply, isComplete, classification?, progress?, options?, ...}
#   Without a sessionId a new session is opened; reuse the returned sessionId.
# Example:
#   curl -X POST http://localhost:8000/chat \
#     -H 'Content-Type: application/json' \
#     -d '{"message": "I want a 2BHK in Pune", "sessionId": "demo"}'
@router.post("/chat")
def chat(request: ChatRequest, store: SessionStore = Depends(get_session_store)):
    """Process one user message in the session's conversation."""
    started = time.perf_counter()
    session_id = request.session_id or store.new_session_id()

    with store.turn_lock(session_id):
        engine = store.get(session_id)
        was_complete = engine.is_complete
        result = engine.process_message(request.message)

    chat_request_duration.observe(time.perf_counter() - started)
    chat_requests_total.labels(status="ok" if result.success else "error").inc()
    if not result.success and result.code not in (ErrorCode.EMPTY_MESSAGE.value, ErrorCode.MESSAGE_TOO_LONG.value):
        generation_errors_total.labels(code=result.code).inc()
    if result.is_complete and not was_complete and result.classification:
        lead_classifications_total.labels(status=result.classification.status.value).inc()
        logger.info(
            "lead_classified_via_api",
            session_id=session_id,
            status=result.classification.status.value,
            confidence=result.classification.confidence,
        )

    return _respond(result, session_id)


# POST /chat/start
# Gets: JSON body {sessionId?: str}
# Returns: TurnResult with the opening message (greeting or first scripted question)
#   and the sessionId to send with every following /chat call.
# Example:
#   curl -X POST http://localhost:8000/chat/start -H 'Content-Type: application/json' -d '{"sessionId": "demo"}'
@router.post("/chat/start")
def start_chat(request: Optional[SessionRequest] = None, store: SessionStore = Depends(get_session_store)):
    """Open the session's conversation, minting a session id when none is given."""
    session_id = (request.session_id if request else None) or store.new_session_id()
    with store.turn_lock(session_id):
        result = store.get(session_id).start()
    return _respond(result, session_id)


# POST /reset
# Gets: JSON body {sessionId: str}
# Returns: {success, message, timestamp}
# Example:
#   curl -X POST http://localhost:8000/reset -H 'Content-Type: application/json' -d '{"sessionId": "demo"}'
@router.post("/reset")
def reset_chat(request: Optional[SessionRequest] = None, store: SessionStore = Depends(get_session_store)):
    """Discard the session's conversation."""
    session_id = request.session_id if request else None
    existed = store.reset(session_id) if session_id else False
    logger.info("conversation_reset_via_api", session_id=session_id, existed=existed)
    return {
        "success": True,
        "message": "Conversation reset successfully" if existed else "No conversation to reset",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
