"""Error taxonomy shared by the store, the grant engine and the handlers."""

from __future__ import annotations


class FaucetError(Exception):
    """Base class for faucet failures."""


class CorruptState(FaucetError):
    """The persisted store cannot be read back into the schema."""


class QuotaExceeded(FaucetError):
    def __init__(self, requested: int, remaining: int):
        super().__init__(f"Requested {requested} but only {remaining} remaining")
        self.requested = requested
        self.remaining = remaining


class AmountTooSmall(FaucetError):
    def __init__(self, requested: int, minimum: int):
        super().__init__(f"Requested {requested} is below minimum {minimum}")
        self.requested = requested
        self.minimum = minimum


class SubmissionFailed(FaucetError):
    """A grant or cancel transaction could not be submitted to the ledger."""


class NotFound(FaucetError):
    def __init__(self, sequence_number: int):
        super().__init__(f"No grant entry with sequence number {sequence_number}")
        self.sequence_number = sequence_number


class LedgerError(FaucetError):
    """Transport or protocol failure talking to the ledger gateway."""
