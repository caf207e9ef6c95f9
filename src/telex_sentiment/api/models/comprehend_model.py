"""
Managed-NLP sentiment provider (AWS Comprehend).

boto3 is synchronous, so every call runs in a worker thread via
``asyncio.to_thread``.
"""

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from telex_sentiment import config
from telex_sentiment.api.models.sentiment_oracle import FailurePolicy, SentimentOracle
from telex_sentiment.api.schemas.moderation import ErrorCode
from telex_sentiment.api.schemas.sentiment import DetailedSentiment

logger = logging.getLogger(__name__)

_PING_TEXT = "health check"


def comprehend_score(sentiment: str, weights: dict[str, float]) -> float:
    """
    Collapse a Comprehend label and its confidence weights into [-1, 1].

    POSITIVE → positive weight, NEGATIVE → -negative weight,
    NEUTRAL / MIXED → (positive - negative) / 2.
    """
    positive = float(weights.get("Positive", 0.0))
    negative = float(weights.get("Negative", 0.0))
    label = (sentiment or "").upper()
    if label == "POSITIVE":
        return positive
    if label == "NEGATIVE":
        return -negative
    return (positive - negative) / 2


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Trim *text* so its UTF-8 encoding fits in *max_bytes*."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


class ComprehendSentimentModel(SentimentOracle):
    """
    Scores text with Comprehend ``detect_sentiment``.
    score(text: str) -> float
    detailed(text: str) -> DetailedSentiment
    """

    provider = "comprehend"
    error_code = ErrorCode.AWS_ERROR

    def __init__(
        self,
        region: str = config.AWS_REGION,
        language: str = config.COMPREHEND_LANGUAGE,
        policy: FailurePolicy | str = FailurePolicy.LENIENT,
        client: Any = None,
    ):
        super().__init__(policy)
        self.language = language
        self._client = client or boto3.client("comprehend", region_name=region)
        logger.info("✓ ComprehendSentimentModel ready (region=%s, policy=%s)", region, self.policy.value)

    async def _detect(self, text: str) -> dict:
        if len(text.encode("utf-8")) > config.COMPREHEND_MAX_BYTES:
            logger.debug("Comprehend: truncating text to %d bytes", config.COMPREHEND_MAX_BYTES)
            text = truncate_utf8(text, config.COMPREHEND_MAX_BYTES)
        return await asyncio.to_thread(
            self._client.detect_sentiment, Text=text, LanguageCode=self.language
        )

    async def _score(self, text: str) -> float:
        response = await self._detect(text)
        return comprehend_score(response["Sentiment"], response["SentimentScore"])

    async def _detailed(self, text: str) -> Optional[DetailedSentiment]:
        response = await self._detect(text)
        weights = response["SentimentScore"]
        return DetailedSentiment(
            sentiment=response["Sentiment"],
            positive=weights.get("Positive", 0.0),
            negative=weights.get("Negative", 0.0),
            neutral=weights.get("Neutral", 0.0),
            mixed=weights.get("Mixed", 0.0),
        )

    async def ping(self) -> Optional[bool]:
        try:
            await asyncio.to_thread(
                self._client.detect_sentiment, Text=_PING_TEXT, LanguageCode=self.language
            )
            return True
        except (BotoCoreError, ClientError) as exc:
            logger.warning("Comprehend health check failed: %s", exc)
            return False
