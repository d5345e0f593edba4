"""Data models (Pydantic).

Re-exports all core data models for convenient imports:

    from perpbook.models import Opportunity, VenueLeg, TradeIdea
"""

from perpbook.models.filters import FilterSettings
from perpbook.models.idea import Direction, TradeIdea
from perpbook.models.news import NarrativeItem, Sentiment
from perpbook.models.opportunity import (
    ArbType,
    LegSide,
    Opportunity,
    Venue,
    VenueLeg,
    format_clock,
    split_symbol,
)

__all__ = [
    "ArbType",
    "Direction",
    "FilterSettings",
    "LegSide",
    "NarrativeItem",
    "Opportunity",
    "Sentiment",
    "TradeIdea",
    "Venue",
    "VenueLeg",
    "format_clock",
    "split_symbol",
]
