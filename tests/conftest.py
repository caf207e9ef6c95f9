"""Shared fixtures: a scriptable sentiment oracle and an API client wired to it."""

import asyncio
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from telex_sentiment.api.main import app
from telex_sentiment.api.models.sentiment_oracle import SentimentOracle
from telex_sentiment.api.schemas.sentiment import DetailedSentiment
from telex_sentiment.api.services.model_registry import ModelRegistry
from telex_sentiment.api.services.moderation_service import MessageModerator, ModeratorOptions


class StubOracle(SentimentOracle):
    """Deterministic oracle: returns *value*, or raises *exc*, after *delay* seconds."""

    provider = "stub"

    def __init__(
        self,
        value=0.0,
        exc: Optional[Exception] = None,
        delay: float = 0.0,
        details: Optional[DetailedSentiment] = None,
        reachable: Optional[bool] = None,
        policy="lenient",
    ):
        super().__init__(policy)
        self.value = value
        self.exc = exc
        self.delay = delay
        self.details = details
        self.reachable = reachable
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def _call(self, result):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.exc is not None:
                raise self.exc
            return result
        finally:
            self.in_flight -= 1

    async def _score(self, text):
        return await self._call(self.value)

    async def _detailed(self, text):
        return await self._call(self.details)

    async def ping(self):
        return self.reachable


def install(oracle: SentimentOracle, delivery=None, **options) -> MessageModerator:
    """Register *oracle* and a moderator built around it."""
    moderator = MessageModerator(oracle, ModeratorOptions(**options), delivery)
    ModelRegistry.register("sentiment", oracle)
    ModelRegistry.register("moderator", moderator)
    return moderator


@pytest.fixture(autouse=True)
def _clean_registry():
    saved = dict(ModelRegistry._registry)
    ModelRegistry._registry.clear()
    yield
    ModelRegistry._registry.clear()
    ModelRegistry._registry.update(saved)


@pytest.fixture
def client():
    # No context manager: the lifespan (real provider clients) is not run.
    return TestClient(app)


def threshold_settings(value=-0.5):
    return [{"label": "Toxicity Threshold", "type": "number", "default": value, "required": True}]
