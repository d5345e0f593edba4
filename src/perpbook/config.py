"""Configuration management with Pydantic Settings and YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from perpbook.connectors.binance import WS_COMBINED_URL
from perpbook.engine.universe import Universe
from perpbook.feeds.narrative import DEFAULT_SOURCES, RSS2JSON_URL, NarrativeSource
from perpbook.models.filters import FilterSettings

DEFAULT_SYMBOLS: list[str] = [
    "BTC/USDT",
    "ETH/USDT",
    "SOL/USDT",
    "XRP/USDT",
    "LINK/USDT",
    "TON/USDT",
    "DOGE/USDT",
    "ARB/USDT",
    "SEI/USDT",
    "OP/USDT",
]

DEFAULT_ANCHORS: dict[str, float] = {
    "BTC/USDT": 98000,
    "ETH/USDT": 3600,
    "SOL/USDT": 210,
    "XRP/USDT": 0.62,
    "LINK/USDT": 18,
    "TON/USDT": 6,
    "DOGE/USDT": 0.18,
    "ARB/USDT": 1.25,
    "SEI/USDT": 0.8,
    "OP/USDT": 2.4,
}


# --- Sub-config models ---


class SystemConfig(BaseModel):
    """Process-level settings."""

    log_level: str = "INFO"
    json_logs: bool = False
    random_seed: int | None = None
    summary_interval_s: float = 30.0


class UniverseConfig(BaseModel):
    """Tracked symbols, their static anchors and the supported venues."""

    symbols: list[str] = Field(default_factory=lambda: list(DEFAULT_SYMBOLS))
    anchors: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_ANCHORS))
    venues: list[str] = Field(default_factory=lambda: ["BINANCE"])


class BinanceFeedConfig(BaseModel):
    """Binance ticker stream settings."""

    enabled: bool = True
    ws_url: str = WS_COMBINED_URL
    reconnect_delay_s: float = 1.0
    max_reconnect_delay_s: float = 60.0
    heartbeat_interval_s: float = 30.0


class NarrativeConfig(BaseModel):
    """Narrative headline feed settings."""

    enabled: bool = True
    proxy_url: str = RSS2JSON_URL
    sources: list[NarrativeSource] = Field(default_factory=lambda: list(DEFAULT_SOURCES))
    per_source_limit: int = 3
    max_items: int = 6
    refresh_interval_s: float = 300.0
    timeout_s: float = 10.0


class MonitoringConfig(BaseModel):
    """Prometheus exporter settings."""

    metrics_enabled: bool = False
    metrics_port: int = 9108


# --- Main config ---


class AppConfig(BaseSettings):
    """Application configuration.

    Loads from a YAML file, with environment variable overrides
    (``PERPBOOK_`` prefix, ``__`` between nested keys).
    """

    model_config = SettingsConfigDict(
        env_prefix="PERPBOOK_",
        env_nested_delimiter="__",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Environment variables override YAML (init) values."""
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    system: SystemConfig = Field(default_factory=SystemConfig)
    universe: UniverseConfig = Field(default_factory=UniverseConfig)
    filters: FilterSettings = Field(default_factory=FilterSettings)
    binance: BinanceFeedConfig = Field(default_factory=BinanceFeedConfig)
    narrative: NarrativeConfig = Field(default_factory=NarrativeConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    def build_universe(self) -> Universe:
        """Validate the universe section.

        Raises:
            UniverseError: If symbols, anchors or venues are unusable.
        """
        return Universe.build(
            symbols=self.universe.symbols,
            anchors=self.universe.anchors,
            venues=self.universe.venues,
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def load_config(
    config_dir: str | Path = "configs",
    config_file: str = "default.yaml",
) -> AppConfig:
    """Load application configuration from YAML with env var overrides.

    Args:
        config_dir: Path to the configuration directory.
        config_file: Name of the YAML file inside it. A missing file means
            all defaults.

    Returns:
        Validated AppConfig instance.
    """
    path = Path(config_dir) / config_file
    raw: dict[str, Any] = _load_yaml(path) if path.exists() else {}
    return AppConfig(**raw)
