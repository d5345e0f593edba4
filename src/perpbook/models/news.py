"""Narrative headline models."""

import enum

from pydantic import BaseModel


class Sentiment(str, enum.Enum):
    """Keyword-derived tone of a headline."""

    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class NarrativeItem(BaseModel):
    """A single headline tagged with its category and sentiment."""

    model_config = {"frozen": True}

    id: str
    category: str
    title: str
    sentiment: Sentiment
