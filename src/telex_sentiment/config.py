"""
Configuration Module
Provider credentials, latency budget, validation switches and descriptor values.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# --- Service ---
APP_NAME = "Telex Sentiment Modifier"
APP_VERSION = "1.0.0"
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "info")

# --- Sentiment Provider ---
SENTIMENT_PROVIDER = os.getenv("SENTIMENT_PROVIDER", "openai").lower()  # openai | comprehend
FAILURE_POLICY = os.getenv("FAILURE_POLICY", "lenient").lower()  # lenient | strict

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_MAX_TOKENS = 10
OPENAI_TEMPERATURE = 0.3  # low for consistent scores

AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
COMPREHEND_LANGUAGE = os.getenv("COMPREHEND_LANGUAGE", "en")
COMPREHEND_MAX_BYTES = 5000  # detect_sentiment hard limit

# --- Latency Budget ---
EXTERNAL_DEADLINE_MS = int(os.getenv("EXTERNAL_DEADLINE_MS", "1000"))
SAFETY_MARGIN_MS = int(os.getenv("SAFETY_MARGIN_MS", "100"))
PROCESSING_BUDGET_MS = EXTERNAL_DEADLINE_MS - SAFETY_MARGIN_MS
TIMEOUT_POLICY = os.getenv("TIMEOUT_POLICY", "return_original").lower()  # return_original | error

# --- Moderation ---
DEFAULT_TOXICITY_THRESHOLD = float(os.getenv("DEFAULT_TOXICITY_THRESHOLD", "-0.5"))
DEFAULT_SENSITIVITY_LEVEL = "Medium"
WARNING_TEMPLATE = "⚠️ Potentially harmful message detected (sentiment: {score}): {message}"

REQUIRE_CHANNEL_ID = _env_bool("REQUIRE_CHANNEL_ID", True)
REQUIRE_TARGET_URL = _env_bool("REQUIRE_TARGET_URL", False)
FORWARD_TO_TARGET_URL = _env_bool("FORWARD_TO_TARGET_URL", False)
INCLUDE_DETAILED_SENTIMENT = _env_bool("INCLUDE_DETAILED_SENTIMENT", False)

# --- Health ---
HEALTH_CHECK_PROVIDER = _env_bool("HEALTH_CHECK_PROVIDER", SENTIMENT_PROVIDER == "comprehend")

# --- Integration Descriptor ---
APP_URL = os.getenv("APP_URL", "https://telex-sentiment-analysis-modifier.onrender.com")
APP_LOGO = os.getenv("APP_LOGO", "https://i.ibb.co/4ZpTNTv3/Telex-Sentiment-Analyzer.png")
TELEX_TARGET_URL = os.getenv(
    "TELEX_TARGET_URL",
    "https://ping.telex.im/v1/webhooks/01951d72-fb32-74b0-9c9f-ed1347b1513b",
)
