"""Faucet - quota-bounded plasma fuse bot."""

__version__ = "2.0.0"

__all__ = ["__version__"]
