"""Non-price feeds."""

from perpbook.feeds.narrative import NarrativeFeed, NarrativeSource, classify_sentiment

__all__ = ["NarrativeFeed", "NarrativeSource", "classify_sentiment"]
