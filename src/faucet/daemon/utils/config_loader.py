import os
import re
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .logging_config import StructuredLogger

logger = StructuredLogger(__name__)

DEFAULT_BENEFICIARY_PATTERN = r"^z1[02-9ac-hj-np-z]{38}$"

# --- Schema Models ---


class TelegramConfig(BaseModel):
    token: str = ""
    api_base: str = "https://api.telegram.org"
    poll_timeout_seconds: int = Field(30, ge=0, le=50)
    request_timeout_seconds: float = Field(60.0, gt=0)


class LedgerConfig(BaseModel):
    url: str = "http://127.0.0.1:35997"
    owner_address: str = ""
    page_size: int = Field(1024, ge=1)
    timeout_seconds: float = Field(30.0, gt=0)
    submit_method: str = "faucet.fuse"
    cancel_method: str = "faucet.cancel"
    list_method: str = "embedded.plasma.getEntriesByAddress"


class StoreConfig(BaseModel):
    path: str = "./db.json"


class GrantConfig(BaseModel):
    symbol: str = "QSR"
    decimals: int = Field(8, ge=0, le=18)
    min_amount: int = Field(10, ge=0)
    default_amount: int = Field(10, ge=1)
    default_max_quota: int = Field(50, ge=0)
    pending_timeout_seconds: int = Field(180, ge=1)
    lock_duration_seconds: int = Field(10 * 60 * 60, ge=0)
    beneficiary_pattern: str = DEFAULT_BENEFICIARY_PATTERN

    @field_validator("beneficiary_pattern")
    def validate_pattern(cls, v):
        re.compile(v)
        return v

    @model_validator(mode="after")
    def validate_amounts(self):
        if self.default_amount < self.min_amount:
            raise ValueError("default_amount must be >= min_amount")
        return self

    def to_base_units(self, whole_units: int) -> int:
        return whole_units * 10 ** self.decimals

    def format_amount(self, base_units: int) -> str:
        return f"{base_units / 10 ** self.decimals:.1f}"


class SchedulerConfig(BaseModel):
    command_tick_ms: int = Field(100, ge=1)
    reconcile_interval_seconds: float = Field(10.0, gt=0)
    drain_order: Literal["lifo", "fifo"] = "lifo"


class FaucetConfig(BaseModel):
    version: int = Field(1, ge=1, le=1)
    bot_name: str = "free plasma bot"
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    grants: GrantConfig = Field(default_factory=GrantConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


# Environment variables win over the YAML file so secrets stay out of it.
_ENV_OVERRIDES = {
    "FAUCET_TELEGRAM_TOKEN": ("telegram", "token"),
    "FAUCET_LEDGER_URL": ("ledger", "url"),
    "FAUCET_OWNER_ADDRESS": ("ledger", "owner_address"),
    "FAUCET_STORE_PATH": ("store", "path"),
}


def _apply_env_overrides(raw: dict) -> dict:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = (os.getenv(env_name) or "").strip()
        if value:
            raw.setdefault(section, {})
            raw[section][key] = value
    return raw


# --- Config Loader (Atomic Reload) ---


class ConfigLoader:
    def __init__(self, config_dir: Optional[Path] = None):
        default_dir = Path.home() / ".faucet" / "config"
        self.config_dir = Path(config_dir or os.getenv("FAUCET_CONFIG_DIR") or default_dir)
        self.config_file = self.config_dir / "faucet.yaml"
        self.config: Optional[FaucetConfig] = None

    def load_config(self) -> FaucetConfig:
        """
        Loads and validates configuration from faucet.yaml.
        A missing file yields defaults plus environment overrides.
        ATOMIC: On failure, previous config is preserved.
        """
        try:
            raw_data = {}
            if self.config_file.exists():
                with open(self.config_file, "r") as f:
                    raw_data = yaml.safe_load(f) or {}
                if not isinstance(raw_data, dict):
                    raise ValueError("top-level document must be a mapping")
                logger.info("Loading configuration", path=str(self.config_file))
            else:
                logger.warning("Config file not found, using defaults", path=str(self.config_file))

            # Validate into temporary, never touch self.config until success
            new_config = FaucetConfig(**_apply_env_overrides(raw_data))

            self.config = new_config
            logger.info(
                "Configuration loaded successfully",
                version=self.config.version,
                store=self.config.store.path,
                drain_order=self.config.scheduler.drain_order,
            )
            return self.config

        except Exception as e:
            logger.error("Configuration validation failed", error=str(e))
            if self.config is not None:
                logger.warning("Keeping previous valid configuration")
                raise ValueError(f"Invalid configuration (previous config retained): {e}")
            logger.critical("No previous configuration to fall back to")
            raise ValueError(f"Invalid configuration (no fallback): {e}")

    def get_config(self) -> FaucetConfig:
        if not self.config:
            self.load_config()
        return self.config
