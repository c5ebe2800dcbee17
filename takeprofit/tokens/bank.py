"""
Multi-Asset Token Bank

In-memory fungible balance book used as the asset-transfer collaborator:
  - mint / transfer / balanceOf / totalSupply per asset symbol
  - Event log of every movement
  - Snapshot / restore so it can take part in a Journal
  - CustodyTransfer: pull / push bound to a single custodian address
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from ..logger import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


# ══════════════════════════════════════════════════════════════════════
#  EXCEPTIONS
# ══════════════════════════════════════════════════════════════════════

class BankError(Exception):
    """Base exception for bank operations."""


class InsufficientBalanceError(BankError):
    """Raised when sender balance is too low."""


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AssetTransferEvent:
    """Emitted on every successful transfer or mint."""
    asset: str
    sender: str
    recipient: str
    amount: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "asset": self.asset,
            "from": self.sender,
            "to": self.recipient,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


# ══════════════════════════════════════════════════════════════════════
#  TOKEN BANK
# ══════════════════════════════════════════════════════════════════════

class TokenBank:
    """
    Balance book for any number of assets.

    Mirrors ERC-20 semantics per asset:
        - balance_of(asset, address) → Decimal
        - transfer(asset, sender, recipient, amount)
        - total_supply(asset) → Decimal
    """

    MINTER = ""

    def __init__(self) -> None:
        self._balances: Dict[Tuple[str, str], Decimal] = {}  # (asset, address)
        self._supply: Dict[str, Decimal] = {}
        self._events: List[AssetTransferEvent] = []

    # ── Read-only views ───────────────────────────────────────────────

    def balance_of(self, asset: str, address: str) -> Decimal:
        return self._balances.get((asset, address), ZERO)

    def total_supply(self, asset: str) -> Decimal:
        return self._supply.get(asset, ZERO)

    @property
    def events(self) -> List[AssetTransferEvent]:
        return list(self._events)

    # ── Mutations ─────────────────────────────────────────────────────

    def mint(self, asset: str, recipient: str, amount: Decimal) -> AssetTransferEvent:
        """Credit new units of *asset* to *recipient*."""
        if amount <= 0:
            raise BankError("Mint amount must be positive")

        self._balances[(asset, recipient)] = self.balance_of(asset, recipient) + amount
        self._supply[asset] = self.total_supply(asset) + amount

        event = AssetTransferEvent(asset=asset, sender=self.MINTER, recipient=recipient, amount=amount)
        self._events.append(event)
        logger.debug(f"Mint: {recipient} +{amount} {asset}")
        return event

    def transfer(self, asset: str, sender: str, recipient: str, amount: Decimal) -> AssetTransferEvent:
        if amount <= 0:
            raise BankError("Transfer amount must be positive")
        if sender == recipient:
            raise BankError("Cannot transfer to self")

        bal = self.balance_of(asset, sender)
        if bal < amount:
            raise InsufficientBalanceError(
                f"{sender} balance {bal} < transfer amount {amount} {asset}"
            )

        self._balances[(asset, sender)] = bal - amount
        self._balances[(asset, recipient)] = self.balance_of(asset, recipient) + amount

        event = AssetTransferEvent(asset=asset, sender=sender, recipient=recipient, amount=amount)
        self._events.append(event)
        logger.debug(f"Transfer: {sender} → {recipient} {amount} {asset}")
        return event

    # ── Journal participation ─────────────────────────────────────────

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


class CustodyTransfer:
    """
    Asset-transfer primitive bound to one custodian.

    ``pull`` moves funds from a holder into custody, ``push`` pays out of
    custody. Bank errors propagate unchanged; the ledger translates them.
    """

    def __init__(self, bank: TokenBank, custodian: str):
        self.bank = bank
        self.custodian = custodian

    def pull(self, asset: str, from_addr: str, amount: Decimal) -> None:
        self.bank.transfer(asset, from_addr, self.custodian, amount)

    def push(self, asset: str, to: str, amount: Decimal) -> None:
        self.bank.transfer(asset, self.custodian, to, amount)

    def custody_balance(self, asset: str) -> Decimal:
        return self.bank.balance_of(asset, self.custodian)
