"""
Message moderation service.

Validates a Telex modifier request, scores the message under the latency
budget, applies the toxicity threshold and builds the response. Optionally
forwards the decided message to the request's target_url.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from fastapi import status
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from telex_sentiment import config
from telex_sentiment.api.errors import ModerationFailure
from telex_sentiment.api.models.sentiment_oracle import SentimentAnalysisError, SentimentOracle
from telex_sentiment.api.schemas.moderation import (
    ErrorCode,
    ModerationError,
    ModerationRequest,
    ModerationResponse,
    ResponseMetadata,
    Setting,
)
from telex_sentiment.api.schemas.sentiment import AnalyzeSentimentResponse
from telex_sentiment.api.services.deadline import Deadline, DeadlineExceeded
from telex_sentiment.api.services.delivery_service import DeliveryClient
from telex_sentiment.api.services.integration_service import default_settings

logger = logging.getLogger(__name__)

_HTTP_URL = TypeAdapter(AnyHttpUrl)
_FALSY = {"no", "false", "0", "off", ""}
_CENTS = Decimal("0.01")


class TimeoutPolicy(str, Enum):
    RETURN_ORIGINAL = "return_original"  # 200 with the unmodified message
    ERROR = "error"                      # 408 TIMEOUT_ERROR


class SettingKey(str, Enum):
    """Labels of the settings this integration understands."""
    TOXICITY_THRESHOLD = "Toxicity Threshold"
    ADD_WARNING_PREFIX = "Add Warning Prefix"
    SENSITIVITY_LEVEL = "Sensitivity Level"


@dataclass(frozen=True)
class ModerationSettings:
    """Per-request settings after lookup and coercion."""

    toxicity_threshold: float
    add_warning_prefix: bool = True
    sensitivity_level: str = config.DEFAULT_SENSITIVITY_LEVEL


@dataclass(frozen=True)
class ModeratorOptions:
    """Process-wide moderator behaviour, normally read from config."""

    require_channel_id: bool = True
    require_target_url: bool = False
    forward_to_target_url: bool = False
    include_detailed: bool = False
    timeout_policy: TimeoutPolicy = TimeoutPolicy.RETURN_ORIGINAL
    budget_ms: int = 900
    deadline_ms: int = 1000
    default_threshold: float = -0.5

    def __post_init__(self):
        object.__setattr__(self, "timeout_policy", TimeoutPolicy(self.timeout_policy))

    @classmethod
    def from_config(cls) -> "ModeratorOptions":
        return cls(
            require_channel_id=config.REQUIRE_CHANNEL_ID,
            require_target_url=config.REQUIRE_TARGET_URL,
            forward_to_target_url=config.FORWARD_TO_TARGET_URL,
            include_detailed=config.INCLUDE_DETAILED_SENTIMENT,
            timeout_policy=TimeoutPolicy(config.TIMEOUT_POLICY),
            budget_ms=config.PROCESSING_BUDGET_MS,
            deadline_ms=config.EXTERNAL_DEADLINE_MS,
            default_threshold=config.DEFAULT_TOXICITY_THRESHOLD,
        )


# ---------------------------------------------------------------------------
# Settings lookup
# ---------------------------------------------------------------------------


def lookup_setting(settings: list[Setting], key: SettingKey) -> Optional[Setting]:
    """Return the first setting labelled *key*, if any."""
    return next((s for s in settings if s.label == key.value), None)


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in _FALSY


def resolve_settings(settings: list[Setting], default_threshold: float) -> ModerationSettings:
    """Typed lookup of the known settings with validated fallbacks."""
    threshold = default_threshold
    entry = lookup_setting(settings, SettingKey.TOXICITY_THRESHOLD)
    if entry is not None:
        parsed = _as_float(entry.default)
        if parsed is None:
            logger.warning("Ignoring unusable toxicity threshold %r, using %s", entry.default, default_threshold)
        else:
            threshold = parsed

    prefix = lookup_setting(settings, SettingKey.ADD_WARNING_PREFIX)
    sensitivity = lookup_setting(settings, SettingKey.SENSITIVITY_LEVEL)
    return ModerationSettings(
        toxicity_threshold=threshold,
        add_warning_prefix=_as_bool(prefix.default if prefix else None, True),
        sensitivity_level=(
            str(sensitivity.default)
            if sensitivity is not None and sensitivity.default not in (None, "")
            else config.DEFAULT_SENSITIVITY_LEVEL
        ),
    )


def is_valid_url(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError:
        return False
    return True


def format_warning(score: float, message: str) -> str:
    """Prefix *message* with the score rounded to two places, ties away from zero."""
    rounded = Decimal(score).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return config.WARNING_TEMPLATE.format(score=rounded, message=message)


# ---------------------------------------------------------------------------
# Moderator
# ---------------------------------------------------------------------------


class MessageModerator:
    """Request handler for the modifier endpoint."""

    def __init__(
        self,
        oracle: SentimentOracle,
        options: Optional[ModeratorOptions] = None,
        delivery: Optional[DeliveryClient] = None,
    ):
        self.oracle = oracle
        self.options = options or ModeratorOptions.from_config()
        self.delivery = delivery

    def validate(self, request: ModerationRequest) -> None:
        """Raise ModerationFailure (400) for the first invalid field."""
        if not isinstance(request.message, str) or not request.message.strip():
            raise ModerationFailure(ErrorCode.INVALID_MESSAGE, "Invalid request: message is required")
        if self.options.require_channel_id and not (request.channel_id or "").strip():
            raise ModerationFailure(ErrorCode.INVALID_CHANNEL, "Invalid request: channel_id is required")
        if request.target_url is not None or self.options.require_target_url:
            if not request.target_url:
                raise ModerationFailure(ErrorCode.INVALID_TARGET_URL, "Invalid request: target_url is required")
            if not is_valid_url(request.target_url):
                raise ModerationFailure(
                    ErrorCode.INVALID_TARGET_URL,
                    "Invalid request: target_url must be a valid URL",
                    details=request.target_url,
                )

    async def moderate(self, request: ModerationRequest, started: Optional[float] = None) -> ModerationResponse:
        """Run one request through validation, scoring and the threshold decision."""
        budget = Deadline(self.options.budget_ms, started)
        self.validate(request)

        message = request.message
        settings = resolve_settings(request.settings or default_settings(), self.options.default_threshold)
        request_id = request.metadata.request_id if request.metadata else None

        if budget.expired():
            return self._on_timeout(request, settings, budget, "before scoring")
        try:
            result = await budget.run(self.oracle.analyze, message, detailed=self.options.include_detailed)
        except DeadlineExceeded:
            return self._on_timeout(request, settings, budget, "while scoring")
        except SentimentAnalysisError as exc:
            raise ModerationFailure(
                exc.code,
                "Sentiment analysis failed",
                details=str(exc),
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            ) from exc
        if budget.expired():
            return self._on_timeout(request, settings, budget, "after scoring")

        score = result.score
        flagged = score < settings.toxicity_threshold
        output = format_warning(score, message) if flagged and settings.add_warning_prefix else message
        if flagged:
            logger.info(
                "Flagged message (score=%.2f, threshold=%.2f, request_id=%s)",
                score, settings.toxicity_threshold, request_id,
            )

        metadata = ResponseMetadata(
            processed=True,
            sentiment_score=score,
            flagged=flagged,
            channel_id=request.channel_id,
            target_url=request.target_url,
            sensitivity_level=settings.sensitivity_level,
            detailed_sentiment=result.details,
        )

        if self.options.forward_to_target_url and request.target_url and self.delivery is not None:
            metadata.delivered, metadata.delivery_error = await self._forward(request, output, budget.started)

        metadata.processing_time = budget.elapsed_ms()
        return ModerationResponse(message=output, metadata=metadata)

    async def analyze(self, message: Optional[str], started: Optional[float] = None) -> AnalyzeSentimentResponse:
        """Score a message without applying the threshold."""
        if not isinstance(message, str) or not message.strip():
            raise ModerationFailure(ErrorCode.INVALID_MESSAGE, "Invalid request: message is required")
        deadline = Deadline(self.options.deadline_ms, started)
        try:
            result = await deadline.run(self.oracle.analyze, message, detailed=self.options.include_detailed)
        except DeadlineExceeded as exc:
            raise ModerationFailure(
                ErrorCode.TIMEOUT_ERROR, "Processing timed out", str(exc), status.HTTP_408_REQUEST_TIMEOUT
            ) from exc
        except SentimentAnalysisError as exc:
            raise ModerationFailure(
                exc.code, "Sentiment analysis failed", str(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
            ) from exc
        return AnalyzeSentimentResponse(
            message=message, sentiment_score=result.score, detailed_sentiment=result.details
        )

    # -- helpers -------------------------------------------------------------

    def _on_timeout(
        self, request: ModerationRequest, settings: ModerationSettings, budget: Deadline, stage: str
    ) -> ModerationResponse:
        elapsed = budget.elapsed_ms()
        logger.warning("Approaching timeout %s (%d ms), policy=%s", stage, elapsed, self.options.timeout_policy.value)
        if self.options.timeout_policy is TimeoutPolicy.ERROR:
            raise ModerationFailure(
                ErrorCode.TIMEOUT_ERROR,
                "Processing timed out",
                details=f"Exceeded {budget.budget_ms} ms budget {stage} ({elapsed} ms)",
                status_code=status.HTTP_408_REQUEST_TIMEOUT,
            )
        return ModerationResponse(
            message=request.message,
            metadata=ResponseMetadata(
                processed=False,
                processing_time=elapsed,
                channel_id=request.channel_id,
                target_url=request.target_url,
                sensitivity_level=settings.sensitivity_level,
            ),
        )

    async def _forward(
        self, request: ModerationRequest, message: str, started: float
    ) -> tuple[bool, Optional[ModerationError]]:
        deadline = Deadline(self.options.deadline_ms, started)
        try:
            outcome = await deadline.run(self.delivery.deliver, request.target_url, request.channel_id, message)
        except DeadlineExceeded as exc:
            logger.error("Delivery to %s abandoned: %s", request.target_url, exc)
            return False, ModerationError(error="Delivery failed", code=self.oracle.error_code, details=str(exc))
        if outcome.success:
            return True, None
        return False, ModerationError(error="Delivery failed", code=self.oracle.error_code, details=outcome.error)
