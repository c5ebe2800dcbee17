"""
Take-Profit Ledger Exceptions

Every condition the ledger core detects aborts the current operation and is
raised synchronously to the caller. Nothing is retried internally.
"""


class TakeProfitError(Exception):
    """Base exception for the take-profit ledger."""
    pass


class InvalidAmount(TakeProfitError):
    """Zero or negative amount supplied to a mutating call."""
    pass


class NoClaim(TakeProfitError):
    """Caller holds no claim receipts for the order."""
    pass


class InsufficientClaim(TakeProfitError):
    """Caller holds fewer claim receipts than requested."""
    pass


class InsufficientPending(TakeProfitError):
    """Ledger math would drive pending input negative (internal-consistency fault)."""
    pass


class NothingToRedeem(TakeProfitError):
    """Order has no filled proceeds yet."""
    pass


class TransferFailed(TakeProfitError):
    """Asset-transfer collaborator declined a pull or push."""
    pass


class PoolCallFailed(TakeProfitError):
    """Swap or settlement collaborator declined."""
    pass


class ReentrancyDetected(TakeProfitError):
    """A guarded operation was entered while another one was running."""
    pass


class UnknownPool(TakeProfitError):
    """Pool has not been registered with the ledger."""
    pass


class InvalidTick(TakeProfitError):
    """Order tick lies outside the pool's tradable tick range."""
    pass


class ConfigurationError(TakeProfitError):
    """Configuration error."""
    pass
