"""Configuration loading, environment overrides and validation."""

from decimal import Decimal

import pytest

from takeprofit.config import LedgerConfig, load_config
from takeprofit.exceptions import ConfigurationError
from takeprofit.exchange.state_manager import TakeProfitStateManager

_ENV_VARS = (
    "TAKEPROFIT_CROSSING_MODE",
    "TAKEPROFIT_AMOUNT_QUANTUM",
    "TAKEPROFIT_CUSTODY_ADDRESS",
    "TAKEPROFIT_LOG_LEVEL",
    "TAKEPROFIT_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestLedgerConfig:

    def test_defaults(self):
        cfg = LedgerConfig()
        assert cfg.ledger.crossing_mode == "single"
        assert cfg.ledger.amount_quantum == Decimal("0.00000001")
        assert cfg.ledger.custody_address == "takeprofit-ledger"
        assert cfg.validate()

    def test_from_file(self, tmp_path):
        path = tmp_path / "takeprofit.toml"
        path.write_text(
            '[ledger]\n'
            'crossing_mode = "range"\n'
            'amount_quantum = "0.0001"\n'
            'custody_address = "vault"\n'
            '\n'
            '[logging]\n'
            'level = "debug"\n'
        )
        cfg = LedgerConfig.from_file(str(path))
        assert cfg.ledger.crossing_mode == "range"
        assert cfg.ledger.amount_quantum == Decimal("0.0001")
        assert cfg.ledger.custody_address == "vault"
        assert cfg.logging.level == "DEBUG"

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = LedgerConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.to_dict() == LedgerConfig().to_dict()

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[ledger\ncrossing_mode = ")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            LedgerConfig.from_file(str(path))

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "takeprofit.toml"
        path.write_text('[ledger]\ncrossing_mode = "single"\n')
        monkeypatch.setenv("TAKEPROFIT_CROSSING_MODE", "range")
        monkeypatch.setenv("TAKEPROFIT_AMOUNT_QUANTUM", "0.01")
        monkeypatch.setenv("TAKEPROFIT_LOG_LEVEL", "warning")

        cfg = LedgerConfig.from_file(str(path))
        assert cfg.ledger.crossing_mode == "range"
        assert cfg.ledger.amount_quantum == Decimal("0.01")
        assert cfg.logging.level == "WARNING"

    def test_bad_decimal(self):
        with pytest.raises(ConfigurationError, match="amount_quantum"):
            LedgerConfig.from_dict({"ledger": {"amount_quantum": "lots"}})

    def test_load_config_from_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text('[ledger]\ncustody_address = "custom-vault"\n')
        monkeypatch.setenv("TAKEPROFIT_CONFIG", str(path))
        assert load_config().ledger.custody_address == "custom-vault"


class TestValidation:

    def test_unknown_crossing_mode(self):
        cfg = LedgerConfig.from_dict({"ledger": {"crossing_mode": "sweep"}})
        with pytest.raises(ConfigurationError, match="crossing_mode"):
            cfg.validate()

    def test_non_positive_quantum(self):
        cfg = LedgerConfig.from_dict({"ledger": {"amount_quantum": "0"}})
        with pytest.raises(ConfigurationError, match="positive"):
            cfg.validate()

    def test_empty_custody(self):
        cfg = LedgerConfig.from_dict({"ledger": {"custody_address": ""}})
        with pytest.raises(ConfigurationError, match="custody_address"):
            cfg.validate()

    def test_bad_log_level(self):
        cfg = LedgerConfig.from_dict({"logging": {"level": "loud"}})
        with pytest.raises(ConfigurationError, match="log level"):
            cfg.validate()

    def test_state_manager_validates(self):
        cfg = LedgerConfig.from_dict({"ledger": {"crossing_mode": "sweep"}})
        with pytest.raises(ConfigurationError):
            TakeProfitStateManager(cfg)

    def test_state_manager_uses_config(self):
        cfg = LedgerConfig.from_dict({
            "ledger": {"crossing_mode": "range", "amount_quantum": "0.01", "custody_address": "vault"},
        })
        mgr = TakeProfitStateManager(cfg)
        assert mgr.hook.detector.mode == "range"
        assert mgr.hook.redeemer.quantum == Decimal("0.01")
        assert mgr.hook.custody_address == "vault"
