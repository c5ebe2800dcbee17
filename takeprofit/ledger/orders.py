"""
Order Ledger

Owns every order record. One flat table maps an OrderKey
(pool id, tick, direction) to its Order; records are created on first
deposit and never deleted.

Deposits mint claim receipts 1:1. Cancellation burns the caller's whole
receipt balance and refunds the same amount of input asset.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from ..constants import ORDER_KEY_DOMAIN
from ..exceptions import InsufficientPending, InvalidAmount, NoClaim, TransferFailed
from .collaborators import AssetTransfer, ClaimReceipts, translate_errors


ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Keys & records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderKey:
    """Composite identity of an order: (pool id, tick, direction)."""
    pool_id: str
    tick: int
    zero_for_one: bool

    @property
    def id(self) -> str:
        """Claim-receipt token id: blake2b-256 over the triple."""
        payload = (
            ORDER_KEY_DOMAIN
            + self.pool_id.encode()
            + self.tick.to_bytes(4, "big", signed=True)
            + (b"\x01" if self.zero_for_one else b"\x00")
        )
        return hashlib.blake2b(payload, digest_size=32).hexdigest()

    @property
    def direction(self) -> str:
        return "zero_for_one" if self.zero_for_one else "one_for_zero"

    def __str__(self) -> str:
        return f"order={self.id[:16]} tick={self.tick} {self.direction}"


@dataclass
class Order:
    """Bookkeeping for one OrderKey."""
    pending_in: Decimal = ZERO
    filled_out: Decimal = ZERO
    exists: bool = False

    @property
    def is_dormant(self) -> bool:
        return self.exists and self.pending_in == 0 and self.filled_out == 0


def input_currency(pool_key: Any, zero_for_one: bool) -> str:
    return pool_key.currency0 if zero_for_one else pool_key.currency1


def output_currency(pool_key: Any, zero_for_one: bool) -> str:
    return pool_key.currency1 if zero_for_one else pool_key.currency0


# ---------------------------------------------------------------------------
# Order table
# ---------------------------------------------------------------------------

class OrderTable:
    """Single mapping OrderKey → Order."""

    def __init__(self) -> None:
        self._orders: Dict[OrderKey, Order] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def __iter__(self) -> Iterator[Tuple[OrderKey, Order]]:
        return iter(list(self._orders.items()))

    def get(self, key: OrderKey) -> Optional[Order]:
        return self._orders.get(key)

    def slot(self, key: OrderKey) -> Order:
        """Return the record for *key*, creating an empty one if absent."""
        order = self._orders.get(key)
        if order is None:
            order = Order()
            self._orders[key] = order
        return order

    def keys_for_pool(self, pool_id: str) -> List[OrderKey]:
        return [k for k in self._orders if k.pool_id == pool_id]

    def ticks_for_pool(self, pool_id: str) -> Set[int]:
        return {k.tick for k in self._orders if k.pool_id == pool_id}

    def state_root(self) -> str:
        """Deterministic digest of every record, sorted by key."""
        hasher = hashlib.blake2b(digest_size=32)
        for key in sorted(self._orders, key=lambda k: (k.pool_id, k.tick, k.zero_for_one)):
            order = self._orders[key]
            hasher.update(f"{key.id}:{order.pending_in}:{order.filled_out}:{int(order.exists)}".encode())
        return hasher.hexdigest()

    def take_snapshot(self) -> Dict[OrderKey, Tuple[Decimal, Decimal, bool]]:
        return {k: (o.pending_in, o.filled_out, o.exists) for k, o in self._orders.items()}

    def restore_snapshot(self, snapshot: Dict[OrderKey, Tuple[Decimal, Decimal, bool]]) -> None:
        # Restore in place so callers holding an Order see the rolled-back values
        for key in list(self._orders):
            if key not in snapshot:
                del self._orders[key]
        for key, (pending_in, filled_out, exists) in snapshot.items():
            order = self.slot(key)
            order.pending_in = pending_in
            order.filled_out = filled_out
            order.exists = exists


# ---------------------------------------------------------------------------
# Order ledger
# ---------------------------------------------------------------------------

class OrderLedger:
    """Deposit and cancellation accounting."""

    def __init__(self, table: OrderTable, assets: AssetTransfer, claims: ClaimReceipts):
        self.table = table
        self.assets = assets
        self.claims = claims

    def place_order(self, sender: str, pool_key: Any, key: OrderKey, amount_in: Decimal) -> Decimal:
        """
        Deposit *amount_in* of the input asset into the order at *key*.

        Returns:
            claim receipts minted (equal to amount_in)

        Raises:
            InvalidAmount: amount_in <= 0
            TransferFailed: the input asset could not be pulled from sender
        """
        if amount_in <= 0:
            raise InvalidAmount(f"Order amount must be positive, got {amount_in}")

        asset = input_currency(pool_key, key.zero_for_one)
        with translate_errors(TransferFailed, f"pull of {amount_in} {asset} from {sender}"):
            self.assets.pull(asset, sender, amount_in)

        order = self.table.slot(key)
        order.exists = True
        order.pending_in += amount_in
        self.claims.mint(sender, key.id, amount_in)
        return amount_in

    def cancel_order(self, sender: str, pool_key: Any, key: OrderKey) -> Decimal:
        """
        Cancel the caller's whole stake in the pending part of the order.

        Returns:
            input asset refunded (equal to the receipts burned)

        Raises:
            NoClaim: caller holds no receipts for key
            InsufficientPending: pending input is smaller than the caller's receipts
            TransferFailed: refund could not be paid
        """
        balance = self.claims.balance_of(sender, key.id)
        if balance <= 0:
            raise NoClaim(f"{sender} holds no receipts for {key}")

        order = self.table.get(key)
        pending = order.pending_in if order is not None else ZERO
        if pending < balance:
            raise InsufficientPending(
                f"Pending {pending} < receipts {balance} for {key}"
            )

        self.claims.burn(sender, key.id, balance)
        order.pending_in = pending - balance

        asset = input_currency(pool_key, key.zero_for_one)
        with translate_errors(TransferFailed, f"refund of {balance} {asset} to {sender}"):
            self.assets.push(asset, sender, balance)
        return balance
