"""
Redemption Engine

Burns claim receipts and pays out the matching share of an order's filled
proceeds. The share is ``filled_out * amount / total receipt supply``,
rounded down to the amount quantum; redeeming the whole outstanding supply
releases everything that is left, so no dust is stranded.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Any

from ..constants import AMOUNT_QUANTUM
from ..exceptions import InsufficientClaim, InvalidAmount, NothingToRedeem, TransferFailed
from .collaborators import AssetTransfer, ClaimReceipts, translate_errors
from .orders import OrderKey, OrderTable, output_currency


class RedemptionEngine:

    def __init__(
        self,
        table: OrderTable,
        assets: AssetTransfer,
        claims: ClaimReceipts,
        quantum: Decimal = AMOUNT_QUANTUM,
    ):
        self.table = table
        self.assets = assets
        self.claims = claims
        self.quantum = quantum

    def share_of(self, filled_out: Decimal, amount: Decimal, supply: Decimal) -> Decimal:
        if amount >= supply:
            return filled_out
        return (filled_out * amount / supply).quantize(self.quantum, rounding=ROUND_DOWN)

    def redeem(self, sender: str, pool_key: Any, key: OrderKey, amount: Decimal, to: str) -> Decimal:
        """
        Burn *amount* receipts of *sender* and pay the released proceeds to *to*.

        Raises:
            InvalidAmount: amount <= 0
            InsufficientClaim: sender holds fewer than *amount* receipts
            NothingToRedeem: the order has no filled proceeds
            TransferFailed: payout declined
        """
        if amount <= 0:
            raise InvalidAmount(f"Redeem amount must be positive, got {amount}")

        balance = self.claims.balance_of(sender, key.id)
        if balance < amount:
            raise InsufficientClaim(f"{sender} holds {balance} receipts for {key}, requested {amount}")

        order = self.table.get(key)
        if order is None or order.filled_out <= 0:
            raise NothingToRedeem(f"No filled proceeds for {key}")

        supply = self.claims.total_supply(key.id)
        released = self.share_of(order.filled_out, amount, supply)

        order.filled_out -= released
        self.claims.burn(sender, key.id, amount)

        if released > 0:
            asset = output_currency(pool_key, key.zero_for_one)
            with translate_errors(TransferFailed, f"payout of {released} {asset} to {to}"):
                self.assets.push(asset, to, released)
        return released
