"""Main FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from leadbot.config import config
from leadbot.database import init_db
from leadbot.errors import ErrorCode
from leadbot.health import router as health_router
from leadbot.logging_config import logger
from leadbot.routers.chat import router as chat_router
from leadbot.routers.core import router as core_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Startup
    logger.info("application_starting", version="1.0.0")
    if config.LEAD_SINK == "database":
        init_db()
        logger.info("database_initialized")
    logger.info("openai_configured", configured=config.has_openai_key())
    logger.info("conversation_mode", mode=config.CONVERSATION_MODE, lead_sink=config.LEAD_SINK)

    yield

    # Shutdown
    logger.info("application_shutting_down")


app = FastAPI(
    title="leadbot API",
    description="Lead qualification chatbot: converse, classify, record",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(core_router)
app.include_router(chat_router)
app.include_router(health_router)


@app.exception_handler(RequestValidationError)
async def invalid_request_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies get the same envelope as a failed chat turn."""
    logger.warning("invalid_request", path=request.url.path, errors=len(exc.errors()))
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request format",
            "code": ErrorCode.INVALID_JSON.value,
        },
    )


# GET /metrics
# Gets: nothing
# Returns: Prometheus text exposition
# Example:
#   curl http://localhost:8000/metrics
@app.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
