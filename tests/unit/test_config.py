"""Unit tests for configuration loading."""

from pathlib import Path

import pytest

from perpbook.config import DEFAULT_SYMBOLS, AppConfig, load_config
from perpbook.engine.universe import InvalidAnchorError
from perpbook.models import ArbType

REPO_CONFIG_DIR = Path(__file__).resolve().parents[2] / "configs"


class TestDefaults:
    """Tests for built-in defaults."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(config_dir=tmp_path)
        assert config.system.log_level == "INFO"
        assert config.universe.symbols == DEFAULT_SYMBOLS
        assert config.universe.anchors["BTC/USDT"] == 98000
        assert config.filters.min_edge_bps == 8.0
        assert config.filters.min_notional == 100_000.0
        assert config.filters.type is None
        assert config.narrative.max_items == 6
        assert config.monitoring.metrics_enabled is False

    def test_default_universe_is_valid(self) -> None:
        universe = AppConfig().build_universe()
        assert len(universe) == 10
        assert universe.anchor_for("DOGE/USDT") == 0.18

    def test_shipped_yaml_loads(self) -> None:
        config = load_config(config_dir=REPO_CONFIG_DIR)
        assert config.universe.symbols[0] == "BTC/USDT"
        assert config.binance.ws_url.startswith("wss://")
        assert len(config.build_universe()) == 10


class TestYamlLoading:
    """Tests for YAML overrides."""

    def test_yaml_values(self, tmp_path: Path) -> None:
        (tmp_path / "default.yaml").write_text(
            "system:\n"
            "  log_level: DEBUG\n"
            "  random_seed: 42\n"
            "universe:\n"
            "  symbols: [BTC/USDT, NEW/USDT]\n"
            "  anchors:\n"
            "    BTC/USDT: 100000\n"
            "filters:\n"
            "  type: SPOT/PERP\n"
            "  min_edge_bps: 2.5\n"
        )
        config = load_config(config_dir=tmp_path)

        assert config.system.log_level == "DEBUG"
        assert config.system.random_seed == 42
        assert config.filters.type == ArbType.SPOT_PERP
        assert config.filters.min_edge_bps == 2.5
        universe = config.build_universe()
        assert universe.symbols == ("BTC/USDT", "NEW/USDT")
        assert universe.anchor_for("NEW/USDT") is None

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / "default.yaml").write_text("")
        config = load_config(config_dir=tmp_path)
        assert config.universe.symbols == DEFAULT_SYMBOLS

    def test_custom_file_name(self, tmp_path: Path) -> None:
        (tmp_path / "prod.yaml").write_text("monitoring:\n  metrics_port: 9200\n")
        config = load_config(config_dir=tmp_path, config_file="prod.yaml")
        assert config.monitoring.metrics_port == 9200

    def test_zero_anchor_fails_universe_build(self, tmp_path: Path) -> None:
        (tmp_path / "default.yaml").write_text(
            "universe:\n  symbols: [BTC/USDT]\n  anchors:\n    BTC/USDT: 0\n"
        )
        config = load_config(config_dir=tmp_path)
        with pytest.raises(InvalidAnchorError):
            config.build_universe()


class TestEnvOverrides:
    """Tests for PERPBOOK_* environment overrides."""

    def test_env_overrides_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PERPBOOK_SYSTEM__LOG_LEVEL", "WARNING")
        config = load_config(config_dir=tmp_path)
        assert config.system.log_level == "WARNING"

    def test_env_beats_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "default.yaml").write_text("monitoring:\n  metrics_port: 9200\n  metrics_enabled: true\n")
        monkeypatch.setenv("PERPBOOK_MONITORING__METRICS_PORT", "9300")

        config = load_config(config_dir=tmp_path)

        assert config.monitoring.metrics_port == 9300
        assert config.monitoring.metrics_enabled is True
