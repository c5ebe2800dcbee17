"""Ledger events, recorded on the hook's event log."""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict


@dataclass(frozen=True)
class OrderPlaced:
    order_id: str
    pool_id: str
    tick: int
    zero_for_one: bool
    owner: str
    amount: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "OrderPlaced",
            "orderId": self.order_id,
            "poolId": self.pool_id,
            "tick": self.tick,
            "zeroForOne": self.zero_for_one,
            "owner": self.owner,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OrderCancelled:
    order_id: str
    owner: str
    refunded: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "OrderCancelled",
            "orderId": self.order_id,
            "owner": self.owner,
            "refunded": str(self.refunded),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class OrderFilled:
    order_id: str
    tick: int
    amount_in: Decimal
    amount_out: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "OrderFilled",
            "orderId": self.order_id,
            "tick": self.tick,
            "amountIn": str(self.amount_in),
            "amountOut": str(self.amount_out),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ProceedsRedeemed:
    order_id: str
    owner: str
    recipient: str
    receipts_burned: Decimal
    released: Decimal
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "ProceedsRedeemed",
            "orderId": self.order_id,
            "owner": self.owner,
            "to": self.recipient,
            "receiptsBurned": str(self.receipts_burned),
            "released": str(self.released),
            "timestamp": self.timestamp,
        }
