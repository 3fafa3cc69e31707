"""Faucet daemon utilities: logging, config, invariants, formatting.

Individual modules are imported directly by consumers, e.g.:
    from ..utils.logging_config import StructuredLogger
    from ..utils.config_loader import ConfigLoader

NOTE: invariants is not re-exported here. It imports the store package,
and the store package imports logging_config from here.
"""

from .logging_config import setup_logging, StructuredLogger, JSONFormatter
from .config_loader import ConfigLoader, FaucetConfig, GrantConfig

__all__ = [
    "setup_logging", "StructuredLogger", "JSONFormatter",
    "ConfigLoader", "FaucetConfig", "GrantConfig",
]
