"""
Configuration Tests.

Tests for YAML loading, environment overlays and variable substitution.
"""

import pytest

from index_fund.config import (
    AppConfig,
    ConfigFileNotFoundError,
    ConfigLoader,
    ConfigParseError,
    ConfigValidationError,
    EngineConfig,
    FactoryConfig,
    load_config,
)

BASE_YAML = """
app_name: "Test Fund"
environment: "development"
engine:
  max_slippage_bps: 300
  rebalance_tolerance_bps: 50
storage:
  enabled: false
  db_path: "data/test.db"
"""


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "index_fund.yaml").write_text(BASE_YAML, encoding="utf-8")
    return tmp_path


class TestModels:
    """Test configuration models."""

    def test_defaults(self):
        config = AppConfig()
        assert config.engine.max_slippage_bps == 300
        assert config.engine.slippage_factor_bps == 9_700
        assert config.factory.creation_fee == 100 * 10**18
        assert config.storage.enabled is False
        assert not config.is_production

    def test_frozen(self):
        config = EngineConfig()
        with pytest.raises(Exception):
            config.max_slippage_bps = 1

    def test_normalizes_environment_and_level(self):
        config = AppConfig(environment=" PROD ", log_level="verbose")
        assert config.environment == "prod"
        assert config.is_production
        assert config.log_level == "INFO"

    def test_empty_factory_account(self):
        with pytest.raises(Exception):
            FactoryConfig(treasury="")

    def test_model_env_substitution(self, monkeypatch):
        monkeypatch.setenv("TEST_FACTORY_OWNER", "multisig")
        config = FactoryConfig(owner="${TEST_FACTORY_OWNER:deployer}")
        assert config.owner == "multisig"


class TestConfigLoader:
    """Test ConfigLoader."""

    def test_load(self, config_dir):
        config = ConfigLoader().load(config_dir / "index_fund.yaml")

        assert config.app_name == "Test Fund"
        assert config.engine.rebalance_tolerance_bps == 50
        assert config.engine.call_timeout_seconds == 30.0
        assert config.storage.path.name == "test.db"

    def test_environment_overlay(self, config_dir):
        (config_dir / "index_fund.production.yaml").write_text(
            "engine:\n  max_slippage_bps: 100\nstorage:\n  enabled: true\n",
            encoding="utf-8",
        )

        config = load_config(config_dir / "index_fund.yaml", env="production")

        assert config.engine.max_slippage_bps == 100
        assert config.engine.rebalance_tolerance_bps == 50
        assert config.storage.enabled is True
        assert config.storage.db_path == "data/test.db"

    def test_missing_overlay_ignored(self, config_dir):
        config = load_config(config_dir / "index_fund.yaml", env="staging")
        assert config.engine.max_slippage_bps == 300

    def test_env_var_substitution(self, tmp_path, monkeypatch):
        path = tmp_path / "index_fund.yaml"
        path.write_text(
            "engine:\n"
            "  max_slippage_bps: ${TEST_SLIPPAGE_BPS:250}\n"
            "  rebalance_on_set_proportions: ${TEST_AUTO_REBALANCE:false}\n"
            "storage:\n"
            "  db_path: ${TEST_DB_DIR:/tmp}/funds.db\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("TEST_SLIPPAGE_BPS", "120")
        monkeypatch.setenv("TEST_AUTO_REBALANCE", "yes")
        monkeypatch.delenv("TEST_DB_DIR", raising=False)

        config = load_config(path)

        assert config.engine.max_slippage_bps == 120
        assert config.engine.rebalance_on_set_proportions is True
        assert config.storage.db_path == "/tmp/funds.db"

    def test_env_var_default(self, tmp_path, monkeypatch):
        path = tmp_path / "index_fund.yaml"
        path.write_text("engine:\n  max_slippage_bps: ${TEST_UNSET_BPS:250}\n", encoding="utf-8")
        monkeypatch.delenv("TEST_UNSET_BPS", raising=False)

        assert load_config(path).engine.max_slippage_bps == 250

    def test_validation_error(self, tmp_path):
        path = tmp_path / "index_fund.yaml"
        path.write_text("engine:\n  max_slippage_bps: 20000\n", encoding="utf-8")

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        assert any("max_slippage_bps" in error for error in exc_info.value.errors)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("engine: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigParseError):
            ConfigLoader().load_yaml(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path).engine.max_slippage_bps == 300

    def test_merge_configs(self):
        merged = ConfigLoader().merge_configs(
            {"engine": {"a": 1, "b": 2}, "x": 1},
            {"engine": {"a": 10}},
        )
        assert merged == {"engine": {"a": 10, "b": 2}, "x": 1}
