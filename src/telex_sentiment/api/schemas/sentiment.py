"""Sentiment scoring request/response schemas."""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class DetailedSentiment(BaseModel):
    """Categorical sentiment plus per-class confidence weights."""
    sentiment: str
    positive: float = Field(0.0, ge=0.0, le=1.0)
    negative: float = Field(0.0, ge=0.0, le=1.0)
    neutral: float = Field(0.0, ge=0.0, le=1.0)
    mixed: float = Field(0.0, ge=0.0, le=1.0)


class SentimentResult(BaseModel):
    """Normalised oracle output."""
    score: float = Field(0.0, ge=-1.0, le=1.0)
    details: Optional[DetailedSentiment] = None


class AnalyzeSentimentRequest(BaseModel):
    """Request to score a single message."""
    message: Optional[str] = None

    model_config = {"json_schema_extra": {"example": {"message": "The weather is cloudy today."}}}


class AnalyzeSentimentResponse(BaseModel):
    """Raw score for a single message."""
    message: str
    sentiment_score: float = Field(..., ge=-1.0, le=1.0)
    detailed_sentiment: Optional[DetailedSentiment] = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
