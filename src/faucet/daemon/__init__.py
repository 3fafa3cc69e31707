"""Faucet daemon: store, ledger reconciliation, command processing, HTTP admin."""
