"""
Take-Profit Ledger TOML Configuration Loader

Loads every section of takeprofit.toml with environment variable overrides.
Each section is a dataclass with from_dict + apply_env.

Environment variable mapping:
    [ledger] crossing_mode    → TAKEPROFIT_CROSSING_MODE
    [ledger] amount_quantum   → TAKEPROFIT_AMOUNT_QUANTUM
    [ledger] custody_address  → TAKEPROFIT_CUSTODY_ADDRESS
    [logging] level           → TAKEPROFIT_LOG_LEVEL
"""

from __future__ import annotations

import decimal
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    AMOUNT_QUANTUM,
    CROSSING_MODES,
    TAKEPROFIT_CROSSING_MODE,
    TAKEPROFIT_CUSTODY_ADDRESS,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LedgerSectionConfig:
    """[ledger] section."""
    crossing_mode: str = str(TAKEPROFIT_CROSSING_MODE)
    amount_quantum: Decimal = AMOUNT_QUANTUM
    custody_address: str = str(TAKEPROFIT_CUSTODY_ADDRESS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerSectionConfig":
        return cls(
            crossing_mode=data.get("crossing_mode", str(TAKEPROFIT_CROSSING_MODE)),
            amount_quantum=_to_decimal(data.get("amount_quantum", AMOUNT_QUANTUM), "amount_quantum"),
            custody_address=data.get("custody_address", str(TAKEPROFIT_CUSTODY_ADDRESS)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("TAKEPROFIT_CROSSING_MODE"):
            self.crossing_mode = v
        if v := os.environ.get("TAKEPROFIT_AMOUNT_QUANTUM"):
            self.amount_quantum = _to_decimal(v, "TAKEPROFIT_AMOUNT_QUANTUM")
        if v := os.environ.get("TAKEPROFIT_CUSTODY_ADDRESS"):
            self.custody_address = v


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=bool(data.get("file_output", False)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("TAKEPROFIT_LOG_LEVEL"):
            self.level = v.upper()


@dataclass
class LedgerConfig:
    """
    Top-level configuration.

    Loads every section of takeprofit.toml and applies environment variable
    overrides on top.
    """
    ledger: LedgerSectionConfig = field(default_factory=LedgerSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        cfg = cls(
            ledger=LedgerSectionConfig.from_dict(data.get("ledger", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )
        cfg.apply_env()
        return cfg

    @classmethod
    def from_file(cls, config_path: str) -> "LedgerConfig":
        """
        Load from a TOML file.

        A missing file yields defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.info("Config file %s not found, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        logger.info("Loaded config from %s", config_path)
        return cls.from_dict(raw)

    def apply_env(self) -> None:
        self.ledger.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if self.ledger.crossing_mode not in CROSSING_MODES:
            raise ConfigurationError(
                f"crossing_mode must be one of {CROSSING_MODES}, got {self.ledger.crossing_mode!r}"
            )
        if self.ledger.amount_quantum <= 0:
            raise ConfigurationError("amount_quantum must be positive")
        if not self.ledger.custody_address:
            raise ConfigurationError("custody_address cannot be empty")
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledger": {
                "crossing_mode": self.ledger.crossing_mode,
                "amount_quantum": str(self.ledger.amount_quantum),
                "custody_address": self.ledger.custody_address,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


def _to_decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except decimal.InvalidOperation as e:
        raise ConfigurationError(f"{name} is not a decimal: {value!r}") from e


def load_config(path: Optional[str] = None) -> LedgerConfig:
    """
    Load ledger configuration.

    Resolution order:
        1. Explicit *path* argument
        2. TAKEPROFIT_CONFIG env var
        3. ./takeprofit.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("TAKEPROFIT_CONFIG", "takeprofit.toml")

    return LedgerConfig.from_file(path)
