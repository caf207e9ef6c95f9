"""Main FastAPI application for the Telex Sentiment Modifier integration."""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time

import psutil
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from telex_sentiment import config
from telex_sentiment.api.errors import register_exception_handlers
from telex_sentiment.api.routers import integration, moderation
from telex_sentiment.api.services.deadline import Deadline, DeadlineExceeded
from telex_sentiment.api.services.model_registry import ModelRegistry

# Setup logging
logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format='%(asctime)s - [%(levelname)s] - %(name)s - %(message)s'
)
logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the sentiment provider and moderator at startup, close clients at shutdown."""
    logger.info("Connecting %s sentiment provider...", config.SENTIMENT_PROVIDER)
    await ModelRegistry.load_all()
    logger.info(f"✅ {config.APP_NAME} running on port {config.PORT}")
    yield
    logger.info("Shutting down and closing clients...")
    await ModelRegistry.unload_all()


app = FastAPI(
    title="Telex Sentiment Modifier",
    description=(
        "Telex modifier integration that scores each message with an external "
        "sentiment provider (OpenAI or AWS Comprehend) and flags potentially "
        "harmful messages below a configurable toxicity threshold."
    ),
    version=config.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware for cross-origin requests from Telex
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def stamp_arrival(request: Request, call_next):
    """Record arrival time; the latency budget is measured from here."""
    request.state.received_at = time.monotonic()
    return await call_next(request)


# ── Include Routers ────────────────────────────────────────────────────
app.include_router(moderation.router,  tags=["Modifier"])
app.include_router(integration.router, tags=["Integration"])


# ── Health Check ────────────────────────────────────────────────────────
@app.get("/health", tags=["Health"], summary="Service health check")
async def health():
    """
    Check process liveness and, when enabled, sentiment provider connectivity.

    Returns:
        - status: "ok", or "degraded" (HTTP 503) when the provider is unreachable
        - uptime: seconds since the process started
        - memory: resident/virtual memory of this process in bytes
        - aws_status: "connected" / "disconnected" when the provider check is on
    """
    mem = psutil.Process().memory_info()
    body = {
        "status": "ok",
        "version": config.APP_VERSION,
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
        "memory": {"rss": mem.rss, "vms": mem.vms},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not config.HEALTH_CHECK_PROVIDER:
        return body

    try:
        oracle = ModelRegistry.get("sentiment")
        reachable = await Deadline(config.EXTERNAL_DEADLINE_MS).run(oracle.ping)
    except (RuntimeError, DeadlineExceeded) as exc:
        logger.warning("Provider health check failed: %s", exc)
        reachable = False

    if reachable is None:
        return body
    body["aws_status"] = "connected" if reachable else "disconnected"
    if not reachable:
        body["status"] = "degraded"
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body


# ── API Info ────────────────────────────────────────────────────────────
@app.get("/", tags=["Info"], summary="API information")
async def root():
    """Get API metadata."""
    return {
        "name": config.APP_NAME,
        "version": config.APP_VERSION,
        "provider": config.SENTIMENT_PROVIDER,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "format_message":    "/format-message",
            "analyze_sentiment": "/analyze-sentiment",
            "integration":       "/integration.json",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "telex_sentiment.api.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=True,
        log_level=config.LOG_LEVEL,
    )
