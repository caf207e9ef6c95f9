"""Integration descriptor service — builds the static Telex descriptor once."""
import logging
from functools import lru_cache

from telex_sentiment import config
from telex_sentiment.api.schemas.integration import IntegrationDescriptor
from telex_sentiment.api.schemas.moderation import Setting, SettingType

logger = logging.getLogger(__name__)


def _default_settings() -> list[Setting]:
    return [
        Setting(
            label="Toxicity Threshold",
            type=SettingType.NUMBER,
            required=True,
            default=str(config.DEFAULT_TOXICITY_THRESHOLD),
            description="Threshold for marking messages as potentially harmful",
        ),
        Setting(
            label="Add Warning Prefix",
            type=SettingType.CHECKBOX,
            required=True,
            default="Yes",
            description="Prepend warning symbol to toxic messages",
        ),
        Setting(
            label="Sensitivity Level",
            type=SettingType.DROPDOWN,
            required=True,
            default=config.DEFAULT_SENSITIVITY_LEVEL,
            options=["Low", "Medium", "High"],
            description="Adjust overall sensitivity of sentiment detection",
        ),
    ]


@lru_cache(maxsize=1)
def get_descriptor() -> IntegrationDescriptor:
    """Return the process-wide integration descriptor (built on first call)."""
    descriptor = IntegrationDescriptor.model_validate({
        "data": {
            "date": {"created_at": "2024-02-17", "updated_at": "2024-02-21"},
            "descriptions": {
                "app_name": "Message Sentiment Analyzer",
                "app_description": (
                    "Analyzes message sentiment using advanced NLP "
                    "and flags potentially harmful content."
                ),
                "app_logo": config.APP_LOGO,
                "app_url": config.APP_URL,
                "background_color": "#4A90E2",
            },
            "integration_category": "Communication & Collaboration",
            "integration_type": "modifier",
            "is_active": True,
            "output": [
                {"label": "sentiment_analysis", "value": True},
                {"label": "toxicity_detection", "value": True},
            ],
            "key_features": [
                "Real-time sentiment analysis of messages",
                "Toxicity detection and warning system",
                "Customizable sensitivity thresholds",
                "Multi-channel support",
            ],
            "permissions": {
                "monitoring_user": {"always_online": True, "display_name": "Sentiment Monitor"},
            },
            "settings": [s.model_dump() for s in _default_settings()],
            "target_url": config.TELEX_TARGET_URL,
        }
    })
    logger.info("Integration descriptor built (%d settings)", len(descriptor.data.settings))
    return descriptor


def default_settings() -> list[Setting]:
    """Settings used when a request carries none."""
    return list(get_descriptor().data.settings)
