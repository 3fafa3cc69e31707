"""
Configuration loading tests.

Reloads are atomic: a broken faucet.yaml never replaces a good config.
"""
import pytest

from faucet.daemon.utils.config_loader import ConfigLoader, GrantConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FAUCET_TELEGRAM_TOKEN", "FAUCET_LEDGER_URL", "FAUCET_OWNER_ADDRESS", "FAUCET_STORE_PATH"):
        monkeypatch.delenv(name, raising=False)


class TestConfigReloadSafety:
    def test_valid_config_loads(self, tmp_path):
        (tmp_path / "faucet.yaml").write_text("""
version: 1
bot_name: test faucet
ledger:
  url: http://node:35997
  owner_address: z1owner
grants:
  symbol: QSR
  default_amount: 20
  default_max_quota: 100
scheduler:
  drain_order: fifo
""")
        config = ConfigLoader(tmp_path).load_config()
        assert config.bot_name == "test faucet"
        assert config.ledger.owner_address == "z1owner"
        assert config.grants.default_amount == 20
        assert config.grants.min_amount == 10
        assert config.scheduler.drain_order == "fifo"

    def test_missing_file_yields_defaults(self, tmp_path):
        config = ConfigLoader(tmp_path).load_config()
        assert config.grants.default_max_quota == 50
        assert config.grants.pending_timeout_seconds == 180
        assert config.scheduler.reconcile_interval_seconds == 10
        assert config.scheduler.drain_order == "lifo"
        assert config.store.path == "./db.json"

    def test_invalid_yaml_preserves_old(self, tmp_path):
        config_file = tmp_path / "faucet.yaml"
        config_file.write_text("bot_name: original\n")
        loader = ConfigLoader(tmp_path)
        loader.load_config()

        config_file.write_text("this is not valid yaml: [[[")
        with pytest.raises(ValueError, match="previous config retained"):
            loader.load_config()
        assert loader.config.bot_name == "original"

    def test_schema_violation_preserves_old(self, tmp_path):
        config_file = tmp_path / "faucet.yaml"
        config_file.write_text("bot_name: original\n")
        loader = ConfigLoader(tmp_path)
        loader.load_config()

        config_file.write_text("scheduler:\n  drain_order: random\n")
        with pytest.raises(ValueError):
            loader.load_config()
        assert loader.config.scheduler.drain_order == "lifo"

    def test_first_load_failure_has_no_fallback(self, tmp_path):
        (tmp_path / "faucet.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="no fallback"):
            ConfigLoader(tmp_path).load_config()

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "faucet.yaml").write_text("store:\n  path: /from/file.json\n")
        monkeypatch.setenv("FAUCET_STORE_PATH", "/from/env.json")
        monkeypatch.setenv("FAUCET_TELEGRAM_TOKEN", "123:abc")
        config = ConfigLoader(tmp_path).load_config()
        assert config.store.path == "/from/env.json"
        assert config.telegram.token == "123:abc"

    def test_config_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FAUCET_CONFIG_DIR", str(tmp_path))
        assert ConfigLoader().config_file == tmp_path / "faucet.yaml"


class TestGrantConfig:
    def test_default_below_minimum_rejected(self):
        with pytest.raises(ValueError):
            GrantConfig(min_amount=10, default_amount=5)

    def test_unit_conversion(self):
        grants = GrantConfig()
        assert grants.to_base_units(10) == 1_000_000_000
        assert grants.format_amount(1_050_000_000) == "10.5"
