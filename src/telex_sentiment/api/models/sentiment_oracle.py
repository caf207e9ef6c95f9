"""
Sentiment oracle base class.

Every provider wrapper subclasses SentimentOracle and implements ``_score``
(and optionally ``_detailed``). The public ``score``/``detailed``/``analyze``
methods apply input checks, range validation and the failure policy, so
provider code can simply raise.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from telex_sentiment.api.schemas.moderation import ErrorCode
from telex_sentiment.api.schemas.sentiment import DetailedSentiment, SentimentResult

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.0


class FailurePolicy(str, Enum):
    LENIENT = "lenient"  # log and return neutral
    STRICT = "strict"    # raise SentimentAnalysisError


class SentimentAnalysisError(Exception):
    """Provider call failed and the oracle runs in strict mode."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.API_ERROR):
        super().__init__(message)
        self.code = code


class InvalidScoreError(SentimentAnalysisError):
    """Provider answered, but not with a number in [-1, 1]."""


class SentimentOracle(ABC):
    """Abstract base class for all sentiment providers."""

    provider = "base"
    error_code = ErrorCode.API_ERROR

    def __init__(self, policy: FailurePolicy | str = FailurePolicy.LENIENT):
        self.policy = FailurePolicy(policy)

    # -- provider hooks ------------------------------------------------------

    @abstractmethod
    async def _score(self, text: str) -> float:
        """Return the raw provider score. May raise anything."""

    async def _detailed(self, text: str) -> Optional[DetailedSentiment]:
        """Return a per-class breakdown, or None if unsupported."""
        return None

    async def ping(self) -> Optional[bool]:
        """Check provider connectivity. None means no check is available."""
        return None

    async def aclose(self) -> None:
        """Release provider clients."""

    # -- public API ----------------------------------------------------------

    async def score(self, text) -> float:
        """Score *text* in [-1, 1]. Empty or non-string input is neutral."""
        if not isinstance(text, str) or not text.strip():
            return NEUTRAL_SCORE
        try:
            value = await self._score(text)
            return self._validate(value)
        except Exception as exc:
            self._handle_failure(exc)
            return NEUTRAL_SCORE

    async def detailed(self, text) -> Optional[DetailedSentiment]:
        if not isinstance(text, str) or not text.strip():
            return None
        try:
            return await self._detailed(text)
        except Exception as exc:
            self._handle_failure(exc)
            return None

    async def analyze(self, text, detailed: bool = False) -> SentimentResult:
        """Score *text*; with ``detailed`` the breakdown is fetched concurrently."""
        if not detailed:
            return SentimentResult(score=await self.score(text))
        score, details = await asyncio.gather(self.score(text), self.detailed(text))
        return SentimentResult(score=score, details=details)

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _validate(value) -> float:
        try:
            score = float(value)
        except (TypeError, ValueError):
            raise InvalidScoreError(f"Invalid sentiment score received: {value!r}")
        if math.isnan(score) or score < -1.0 or score > 1.0:
            raise InvalidScoreError(f"Invalid sentiment score received: {value!r}")
        return score

    def _handle_failure(self, exc: Exception) -> None:
        """Raise in strict mode, log in lenient mode."""
        if self.policy is FailurePolicy.STRICT:
            logger.error("%s sentiment analysis failed: %s", self.provider, exc)
            if isinstance(exc, SentimentAnalysisError):
                exc.code = self.error_code
                raise exc
            raise SentimentAnalysisError(
                f"{self.provider} sentiment analysis failed: {exc}", code=self.error_code
            ) from exc
        logger.warning("%s sentiment analysis failed, using neutral score: %s", self.provider, exc)
