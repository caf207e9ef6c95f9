"""Modifier request/response schemas (Telex plugin protocol)."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from telex_sentiment.api.schemas.sentiment import DetailedSentiment


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ErrorCode(str, Enum):
    INVALID_MESSAGE = "INVALID_MESSAGE"
    INVALID_CHANNEL = "INVALID_CHANNEL"
    INVALID_TARGET_URL = "INVALID_TARGET_URL"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    API_ERROR = "API_ERROR"
    AWS_ERROR = "AWS_ERROR"


class SettingType(str, Enum):
    NUMBER = "number"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    TEXT = "text"
    MULTI_SELECT = "multi-select"
    STRING = "string"
    BOOLEAN = "boolean"


class Setting(BaseModel):
    """A single named integration setting."""
    label: str
    type: Union[SettingType, str]
    default: Union[bool, int, float, str, list[str], None] = None
    required: bool = False
    description: Optional[str] = None
    options: Optional[list[str]] = None


class RequestMetadata(BaseModel):
    """Free-form diagnostic fields sent by the caller."""
    model_config = ConfigDict(extra="allow")

    user_id: Any = None
    timestamp: Any = None
    client_version: Any = None
    environment: Any = None
    request_id: Any = None


class ModerationRequest(BaseModel):
    """Inbound message from the Telex platform."""
    message: Optional[str] = None
    channel_id: Optional[str] = None
    target_url: Optional[str] = None
    settings: list[Setting] = []
    metadata: Optional[RequestMetadata] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "I absolutely love this product! It's amazing!",
                "channel_id": "01951d72-fb32-74b0-9c9f-ed1347b1513b",
                "settings": [
                    {"label": "Toxicity Threshold", "type": "number", "default": -0.5, "required": True}
                ],
            }
        }
    }


class ModerationError(BaseModel):
    """Error body returned on every failure path."""
    error: str
    code: ErrorCode
    details: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)


class ResponseMetadata(BaseModel):
    """Processing metadata attached to a moderated message."""
    processed: bool
    sentiment_score: Optional[float] = None
    processing_time: int = 0
    flagged: bool = False
    channel_id: Optional[str] = None
    target_url: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)
    sensitivity_level: str = "Medium"
    detailed_sentiment: Optional[DetailedSentiment] = None
    delivered: Optional[bool] = None
    delivery_error: Optional[ModerationError] = None


class ModerationResponse(BaseModel):
    """Possibly rewritten message returned to the Telex platform."""
    message: str
    metadata: ResponseMetadata
