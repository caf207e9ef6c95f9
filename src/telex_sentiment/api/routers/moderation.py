"""Modifier router — the endpoint Telex calls with every outgoing message."""
import logging
import time

from fastapi import APIRouter, Request, status

from telex_sentiment.api.errors import ModerationFailure
from telex_sentiment.api.schemas.moderation import (
    ErrorCode,
    ModerationError,
    ModerationRequest,
    ModerationResponse,
)
from telex_sentiment.api.schemas.sentiment import AnalyzeSentimentRequest, AnalyzeSentimentResponse
from telex_sentiment.api.services.model_registry import ModelRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ModerationError, "description": "Invalid request"},
    408: {"model": ModerationError, "description": "Processing budget exceeded"},
    500: {"model": ModerationError, "description": "Processing or provider failure"},
    503: {"model": ModerationError, "description": "Sentiment provider not configured"},
}


def _received_at(request: Request) -> float:
    return getattr(request.state, "received_at", time.monotonic())


def _get_moderator():
    try:
        return ModelRegistry.get("moderator")
    except RuntimeError as exc:
        raise ModerationFailure(
            ErrorCode.PROCESSING_ERROR,
            "Sentiment provider unavailable",
            details=str(exc),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )


@router.post(
    "/format-message",
    response_model=ModerationResponse,
    status_code=status.HTTP_200_OK,
    responses=_ERROR_RESPONSES,
    summary="Score a message and flag it if it falls below the toxicity threshold",
)
async def format_message(payload: ModerationRequest, request: Request):
    """
    Telex modifier hook.

    Returns the original message, or the message prefixed with a
    "potentially harmful" warning when its sentiment score is strictly
    below the request's "Toxicity Threshold" setting (default -0.5).
    """
    moderator = _get_moderator()
    try:
        return await moderator.moderate(payload, started=_received_at(request))
    except ModerationFailure:
        raise
    except Exception as exc:
        logger.error("Error processing message: %s", exc, exc_info=True)
        raise ModerationFailure(
            ErrorCode.PROCESSING_ERROR,
            "Processing failed",
            details=str(exc) or "Unknown error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# Older Telex integrations post to the descriptor's target_url path directly.
router.add_api_route(
    "/target_url",
    format_message,
    methods=["POST"],
    response_model=ModerationResponse,
    responses=_ERROR_RESPONSES,
    include_in_schema=False,
)


@router.post(
    "/analyze-sentiment",
    response_model=AnalyzeSentimentResponse,
    status_code=status.HTTP_200_OK,
    responses=_ERROR_RESPONSES,
    summary="Return the raw sentiment score for a message",
)
async def analyze_sentiment(payload: AnalyzeSentimentRequest, request: Request):
    moderator = _get_moderator()
    try:
        return await moderator.analyze(payload.message, started=_received_at(request))
    except ModerationFailure:
        raise
    except Exception as exc:
        logger.error("Sentiment analysis error: %s", exc, exc_info=True)
        raise ModerationFailure(
            ErrorCode.PROCESSING_ERROR,
            "Processing failed",
            details=str(exc) or "Unknown error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
