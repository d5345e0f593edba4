"""Narrative headline feed.

Pulls a few headlines per RSS source through the rss2json proxy and tags
each one with a keyword sentiment. A failing source contributes nothing;
if nothing at all comes back the static placeholder set is served instead.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable, Sequence
from uuid import uuid4

import aiohttp
from pydantic import BaseModel

from perpbook.logging import get_logger
from perpbook.models.news import NarrativeItem, Sentiment

RSS2JSON_URL = "https://api.rss2json.com/v1/api.json"

_BULLISH = re.compile(r"up|rise|gain|bull|strong|surge|higher", re.IGNORECASE)
_BEARISH = re.compile(r"down|fall|drop|sell|bear|weaker|lower", re.IGNORECASE)


class NarrativeSource(BaseModel):
    """One RSS feed and the category its headlines are filed under."""

    model_config = {"frozen": True}

    url: str
    category: str


DEFAULT_SOURCES: tuple[NarrativeSource, ...] = (
    NarrativeSource(url="https://finance.yahoo.com/topic/private-equity/rss/", category="Private Equity"),
    NarrativeSource(url="https://finance.yahoo.com/topic/markets/rss/", category="Global Markets"),
    NarrativeSource(url="https://finance.yahoo.com/topic/crypto/rss/", category="Digital Assets"),
    NarrativeSource(url="https://www.coindesk.com/arc/outboundfeeds/rss/", category="Digital Assets"),
    NarrativeSource(url="https://www.cnbc.com/id/100003114/device/rss/rss.html", category="Global Markets"),
)

PLACEHOLDER_ITEMS: tuple[NarrativeItem, ...] = (
    NarrativeItem(
        id="placeholder-private-equity",
        category="Private Equity",
        title="Mega-buyout funds accelerate deployment as global valuations stabilize.",
        sentiment=Sentiment.BULLISH,
    ),
    NarrativeItem(
        id="placeholder-global-markets",
        category="Global Markets",
        title="US CPI cooldown fuels mixed flows across equities and FX.",
        sentiment=Sentiment.NEUTRAL,
    ),
    NarrativeItem(
        id="placeholder-digital-assets",
        category="Digital Assets",
        title="Liquidity pockets thinning in altcoin complex as funding turns negative.",
        sentiment=Sentiment.BEARISH,
    ),
)


def classify_sentiment(title: str) -> Sentiment:
    """Tag a headline by case-insensitive keyword match, bullish first."""
    if _BULLISH.search(title):
        return Sentiment.BULLISH
    if _BEARISH.search(title):
        return Sentiment.BEARISH
    return Sentiment.NEUTRAL


def make_item(category: str, title: str) -> NarrativeItem:
    return NarrativeItem(
        id=f"{category}-{uuid4().hex[:12]}",
        category=category,
        title=title,
        sentiment=classify_sentiment(title),
    )


class NarrativeFeed:
    """Fetches and normalizes headlines from several RSS sources.

    Args:
        sources: Feeds to read, in priority order.
        proxy_url: rss2json-compatible endpoint.
        per_source_limit: Headlines taken from each source.
        max_items: Headlines kept overall.
        timeout_s: Per-request timeout.
        session: Shared aiohttp session. One is opened per fetch if omitted.
    """

    def __init__(
        self,
        sources: Sequence[NarrativeSource] = DEFAULT_SOURCES,
        proxy_url: str = RSS2JSON_URL,
        per_source_limit: int = 3,
        max_items: int = 6,
        timeout_s: float = 10.0,
        session: aiohttp.ClientSession | None = None,
        on_fetch: Callable[[bool], None] | None = None,
    ) -> None:
        self.sources = list(sources)
        self.proxy_url = proxy_url
        self.per_source_limit = per_source_limit
        self.max_items = max_items
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._on_fetch = on_fetch
        self._logger = get_logger("narrative_feed")

    async def fetch(self) -> list[NarrativeItem]:
        """Fetch all sources and return at most ``max_items`` headlines.

        Returns:
            Headlines in source order, or the placeholder set when no
            source produced anything.
        """
        if self._session is not None:
            batches = await self._fetch_all(self._session)
        else:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                batches = await self._fetch_all(session)

        items = [item for batch in batches for item in batch][: self.max_items]
        if not items:
            self._logger.warning("narrative_feed_empty", sources=len(self.sources))
            return list(PLACEHOLDER_ITEMS)
        return items

    async def poll(
        self,
        on_items: Callable[[list[NarrativeItem]], None],
        interval_s: float,
    ) -> None:
        """Fetch forever, handing each batch to ``on_items``. Cancel to stop."""
        while True:
            on_items(await self.fetch())
            await asyncio.sleep(interval_s)

    async def _fetch_all(self, session: aiohttp.ClientSession) -> list[list[NarrativeItem]]:
        return list(await asyncio.gather(*(self.fetch_source(session, s) for s in self.sources)))

    async def fetch_source(
        self,
        session: aiohttp.ClientSession,
        source: NarrativeSource,
    ) -> list[NarrativeItem]:
        """Fetch one source; any failure yields an empty list."""
        try:
            async with session.get(
                self.proxy_url,
                params={"rss_url": source.url},
                timeout=self._timeout,
            ) as resp:
                if resp.status != 200:
                    self._failed(source, f"HTTP {resp.status}")
                    return []
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self._failed(source, str(e) or type(e).__name__)
            return []

        raw_items = body.get("items") if isinstance(body, dict) else None
        if not isinstance(raw_items, list):
            self._failed(source, "no items")
            return []

        items = [
            make_item(source.category, raw["title"].strip())
            for raw in raw_items[: self.per_source_limit]
            if isinstance(raw, dict) and isinstance(raw.get("title"), str) and raw["title"].strip()
        ]
        if self._on_fetch is not None:
            self._on_fetch(True)
        return items

    def _failed(self, source: NarrativeSource, reason: str) -> None:
        self._logger.warning(
            "narrative_source_failed",
            url=source.url,
            category=source.category,
            reason=reason,
        )
        if self._on_fetch is not None:
            self._on_fetch(False)
