"""
Claim Receipt Ledger

Multi-id fungible receipts: every order key digest is its own token id.
Receipts are minted 1:1 on deposit and burned 1:1 on cancellation or
redemption; they can also be transferred between holders.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from ..logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


class ClaimError(Exception):
    """Base exception for claim receipt operations."""


class InsufficientReceiptsError(ClaimError):
    """Raised when a holder has fewer receipts than required."""


@dataclass(frozen=True)
class ClaimTransferEvent:
    """Emitted on mint (sender empty), burn (recipient empty) and transfer."""
    token_id: str
    sender: str
    recipient: str
    amount: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "TransferSingle",
            "id": self.token_id,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


class ClaimLedger:
    """Balances and supplies of claim receipts, keyed by (holder, token id)."""

    def __init__(self) -> None:
        self._balances: Dict[Tuple[str, str], Decimal] = {}
        self._supply: Dict[str, Decimal] = {}
        self._events: List[ClaimTransferEvent] = []

    def balance_of(self, holder: str, token_id: str) -> Decimal:
        return self._balances.get((holder, token_id), ZERO)

    def total_supply(self, token_id: str) -> Decimal:
        return self._supply.get(token_id, ZERO)

    @property
    def events(self) -> List[ClaimTransferEvent]:
        return list(self._events)

    def mint(self, holder: str, token_id: str, amount: Decimal) -> None:
        if amount <= 0:
            raise ClaimError("Mint amount must be positive")
        self._balances[(holder, token_id)] = self.balance_of(holder, token_id) + amount
        self._supply[token_id] = self.total_supply(token_id) + amount
        self._events.append(ClaimTransferEvent(token_id, "", holder, amount))

    def burn(self, holder: str, token_id: str, amount: Decimal) -> None:
        if amount <= 0:
            raise ClaimError("Burn amount must be positive")
        bal = self.balance_of(holder, token_id)
        if bal < amount:
            raise InsufficientReceiptsError(
                f"{holder} holds {bal} receipts of {token_id[:16]}, cannot burn {amount}"
            )
        self._balances[(holder, token_id)] = bal - amount
        self._supply[token_id] = self.total_supply(token_id) - amount
        self._events.append(ClaimTransferEvent(token_id, holder, "", amount))

    def transfer(self, sender: str, recipient: str, token_id: str, amount: Decimal) -> None:
        """Move receipts between holders; supply is unchanged."""
        if amount <= 0:
            raise ClaimError("Transfer amount must be positive")
        bal = self.balance_of(sender, token_id)
        if bal < amount:
            raise InsufficientReceiptsError(
                f"{sender} holds {bal} receipts of {token_id[:16]}, cannot transfer {amount}"
            )
        self._balances[(sender, token_id)] = bal - amount
        self._balances[(recipient, token_id)] = self.balance_of(recipient, token_id) + amount
        self._events.append(ClaimTransferEvent(token_id, sender, recipient, amount))
        logger.debug(f"Receipt transfer: {sender} → {recipient} {amount} of {token_id[:16]}")

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            "balances": dict(self._balances),
            "supply": dict(self._supply),
            "events": len(self._events),
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self._balances = dict(snapshot["balances"])
        self._supply = dict(snapshot["supply"])
        del self._events[snapshot["events"]:]
