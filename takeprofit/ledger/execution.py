"""
Execution Engine

Fills a crossable order by swapping its whole pending input through the
pool collaborator, then settles the resulting balance delta:

    delta > 0  ledger owes the pool  → push to pool custody, then settle
    delta < 0  pool owes the ledger  → take into ledger custody

The output taken is added to the order's filled proceeds.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from ..constants import MAX_SQRT_RATIO, MIN_SQRT_RATIO
from ..exceptions import PoolCallFailed, TransferFailed
from ..logger import get_logger
from .collaborators import AssetTransfer, PoolCollaborator, translate_errors
from .orders import OrderKey, OrderTable, input_currency, output_currency

logger = get_logger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class Fill:
    """Outcome of executing one order."""
    key: OrderKey
    amount_in: Decimal
    amount_out: Decimal


def price_limit(zero_for_one: bool) -> Decimal:
    """Most permissive sqrt-price bound in the swap direction."""
    return MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1


class ExecutionEngine:

    def __init__(
        self,
        table: OrderTable,
        pool: PoolCollaborator,
        assets: AssetTransfer,
        custody_address: str,
    ):
        self.table = table
        self.pool = pool
        self.assets = assets
        self.custody_address = custody_address

    def execute(self, pool_key: Any, key: OrderKey) -> Optional[Fill]:
        """
        Swap the order's pending input and record the proceeds.

        Returns None when the order does not exist or has nothing pending.

        Raises:
            PoolCallFailed: swap / settle / take declined
            TransferFailed: payment to the pool declined
        """
        order = self.table.get(key)
        if order is None or order.pending_in <= 0:
            return None

        amount_in = order.pending_in
        with translate_errors(PoolCallFailed, f"swap for {key}"):
            delta0, delta1 = self.pool.swap(
                pool_key, key.zero_for_one, amount_in, price_limit(key.zero_for_one), self.custody_address,
            )

        self._settle(pool_key, pool_key.currency0, delta0)
        self._settle(pool_key, pool_key.currency1, delta1)

        if key.zero_for_one:
            consumed, received = delta0, -delta1
        else:
            consumed, received = delta1, -delta0
        consumed = max(consumed, ZERO)
        received = max(received, ZERO)

        # The swap handed control to the pool; work on a fresh read
        order = self.table.slot(key)
        order.pending_in = max(order.pending_in - consumed, ZERO)
        order.filled_out += received
        if order.pending_in > 0:
            logger.warning(
                "Partial fill for %s: %s of %s %s consumed, %s still pending",
                key, consumed, amount_in, input_currency(pool_key, key.zero_for_one), order.pending_in,
            )

        logger.info(
            "Filled %s: %s %s → %s %s",
            key, consumed, input_currency(pool_key, key.zero_for_one),
            received, output_currency(pool_key, key.zero_for_one),
        )
        return Fill(key=key, amount_in=consumed, amount_out=received)

    def _settle(self, pool_key: Any, currency: str, delta: Decimal) -> None:
        if delta > 0:
            logger.debug("Settling %s %s owed to pool", delta, currency)
            with translate_errors(TransferFailed, f"payment of {delta} {currency} to pool"):
                self.assets.push(currency, self.pool.custody_address, delta)
            with translate_errors(PoolCallFailed, f"settle of {delta} {currency}"):
                self.pool.settle(pool_key, currency, delta, self.custody_address)
        elif delta < 0:
            logger.debug("Taking %s %s owed by pool", -delta, currency)
            with translate_errors(PoolCallFailed, f"take of {-delta} {currency}"):
                self.pool.take(pool_key, currency, -delta, self.custody_address)
