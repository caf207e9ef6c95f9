"""Central registry - builds the sentiment oracle and moderator once at startup."""
import logging
from typing import Any

from telex_sentiment.api.models.sentiment_oracle import FailurePolicy, SentimentOracle

logger = logging.getLogger(__name__)


class ModelRegistry:
    """
    Process-wide context shared across requests.

    ``load_all`` builds the configured sentiment provider (OpenAI or AWS
    Comprehend), the outbound delivery client and the MessageModerator that
    ties them together. Handlers fetch them with ``get``; tests swap them in
    with ``register``.
    """
    _registry: dict[str, Any] = {}

    @classmethod
    async def load_all(cls) -> None:
        """Build provider clients and the moderator at startup."""
        from telex_sentiment import config
        from telex_sentiment.api.services.delivery_service import DeliveryClient
        from telex_sentiment.api.services.moderation_service import MessageModerator, ModeratorOptions

        cls._registry["sentiment"] = None
        cls._registry["moderator"] = None
        try:
            options = ModeratorOptions.from_config()
            FailurePolicy(config.FAILURE_POLICY)
        except ValueError as e:
            logger.error(f"✗ invalid moderator configuration: {e}")
            return
        try:
            oracle = build_oracle(config.SENTIMENT_PROVIDER, config.FAILURE_POLICY)
        except Exception as e:
            logger.error(f"✗ {config.SENTIMENT_PROVIDER} sentiment provider initialization failed: {e}")
            return

        delivery = DeliveryClient()
        cls._registry["sentiment"] = oracle
        cls._registry["delivery"] = delivery
        cls._registry["moderator"] = MessageModerator(oracle, options, delivery)
        logger.info(f"✓ moderator ready ({config.SENTIMENT_PROVIDER}, {config.FAILURE_POLICY})")

    @classmethod
    async def unload_all(cls) -> None:
        """Close provider and delivery clients at shutdown."""
        for key in ("sentiment", "delivery"):
            client = cls._registry.get(key)
            if client is not None:
                try:
                    await client.aclose()
                except Exception as e:
                    logger.warning(f"✗ closing {key} client failed: {e}")
        cls._registry.clear()
        logger.info("All clients closed")

    @classmethod
    def register(cls, key: str, value: Any) -> None:
        cls._registry[key] = value

    @classmethod
    def get(cls, key: str) -> Any:
        """Get a component from the registry."""
        component = cls._registry.get(key)
        if component is None:
            raise RuntimeError(f"Component '{key}' is not available.")
        return component

    @classmethod
    def loaded_models(cls) -> list[str]:
        """Return list of successfully loaded components."""
        return [k for k, v in cls._registry.items() if v is not None]


def build_oracle(provider: str, policy: str) -> SentimentOracle:
    """Instantiate the sentiment provider named by *provider*."""
    if provider == "openai":
        from telex_sentiment.api.models.openai_model import OpenAISentimentModel
        return OpenAISentimentModel(policy=policy)
    if provider == "comprehend":
        from telex_sentiment.api.models.comprehend_model import ComprehendSentimentModel
        return ComprehendSentimentModel(policy=policy)
    raise ValueError(f"Unknown SENTIMENT_PROVIDER '{provider}' (expected 'openai' or 'comprehend')")
