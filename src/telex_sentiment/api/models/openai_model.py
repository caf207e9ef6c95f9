"""
Chat-completion sentiment provider (OpenAI).

The model is asked to answer with a bare number between -1 and 1. Only
the leading number of the reply is used, so answers such as ``"-0.8."``
or ``"0.6 (positive)"`` still parse.
"""

import logging
import re
from typing import Optional

from openai import AsyncOpenAI

from telex_sentiment import config
from telex_sentiment.api.models.sentiment_oracle import (
    FailurePolicy,
    InvalidScoreError,
    SentimentOracle,
)
from telex_sentiment.api.schemas.moderation import ErrorCode

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a sentiment analysis assistant. Respond with a single number "
    "between -1 (very negative) to 1 (very positive)."
)

_LEADING_NUMBER = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


def parse_score(reply: Optional[str]) -> float:
    """Extract the leading float from a model reply."""
    match = _LEADING_NUMBER.match(reply or "")
    if not match:
        raise InvalidScoreError(f"Invalid sentiment score received: {reply!r}")
    return float(match.group(1))


class OpenAISentimentModel(SentimentOracle):
    """
    Scores text with a single chat completion.
    score(text: str) -> float
    """

    provider = "openai"
    error_code = ErrorCode.API_ERROR

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = config.OPENAI_MODEL,
        policy: FailurePolicy | str = FailurePolicy.LENIENT,
        client: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(policy)
        self.model = model
        if client is None:
            api_key = api_key or config.OPENAI_API_KEY
            if not api_key:
                logger.warning("OPENAI_API_KEY is not set; every request will score neutral or fail")
            # single attempt, no retries
            client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._client = client
        logger.info("✓ OpenAISentimentModel ready (model=%s, policy=%s)", model, self.policy.value)

    async def _score(self, text: str) -> float:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f'Analyze the sentiment of this message: "{text}"'},
            ],
            max_tokens=config.OPENAI_MAX_TOKENS,
            temperature=config.OPENAI_TEMPERATURE,
        )
        reply = response.choices[0].message.content if response.choices else None
        return parse_score("0" if reply is None else reply.strip())

    async def aclose(self) -> None:
        await self._client.close()
