"""
Reference token collaborators

Provides:
  - TokenBank        : multi-asset balance book
  - CustodyTransfer  : pull / push bound to the ledger's custody address
  - ClaimLedger      : multi-id fungible claim receipts
"""

from .bank import (
    AssetTransferEvent,
    BankError,
    CustodyTransfer,
    InsufficientBalanceError,
    TokenBank,
)
from .claims import (
    ClaimError,
    ClaimLedger,
    ClaimTransferEvent,
    InsufficientReceiptsError,
)

__all__ = [
    # Assets
    "TokenBank",
    "CustodyTransfer",
    "AssetTransferEvent",
    "BankError",
    "InsufficientBalanceError",
    # Receipts
    "ClaimLedger",
    "ClaimTransferEvent",
    "ClaimError",
    "InsufficientReceiptsError",
]
