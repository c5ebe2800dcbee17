"""
Take-Profit Hook

Public surface of the ledger. Depositors call place_order / cancel_order /
redeem; the pool calls on_after_initialize / on_after_swap through its
HookRegistry.

Every operation:
  - holds a global reentrancy lock while it runs (the execution swap hands
    control to the pool, which notifies every hook again)
  - runs inside Journal.atomic(), so any failure leaves no partial effects
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from ..constants import AMOUNT_QUANTUM, CROSSING_MODE_SINGLE, MAX_TICK, MIN_TICK
from ..exceptions import InvalidTick, PoolCallFailed, ReentrancyDetected, UnknownPool
from ..exchange.hooks import HookContext, HookFlags, HookResult
from ..exchange.journal import Journal
from ..logger import get_logger
from .collaborators import AssetTransfer, ClaimReceipts, PoolCollaborator, translate_errors
from .crossing import CrossingDetector, tick_lower
from .events import OrderCancelled, OrderFilled, OrderPlaced, ProceedsRedeemed
from .execution import ExecutionEngine
from .orders import Order, OrderKey, OrderLedger, OrderTable
from .redemption import RedemptionEngine

logger = get_logger(__name__)


class TakeProfitHook:
    """
    Take-profit limit orders beside a pool.

    Usage:

        hook = TakeProfitHook(pool_manager, CustodyTransfer(bank, "ledger"),
                              claims, custody_address="ledger",
                              journal=pool_manager.journal)
        pool_manager.hooks.register(hook)
        hook.place_order(alice, key, 60, Decimal("100"), zero_for_one=True)
    """

    def __init__(
        self,
        pool: PoolCollaborator,
        assets: AssetTransfer,
        claims: ClaimReceipts,
        custody_address: str,
        *,
        journal: Optional[Journal] = None,
        crossing_mode: str = CROSSING_MODE_SINGLE,
        amount_quantum: Decimal = AMOUNT_QUANTUM,
    ):
        self.pool = pool
        self.claims = claims
        self.custody_address = custody_address
        self.journal = journal or Journal()

        self.orders = OrderTable()
        self.detector = CrossingDetector(crossing_mode)
        self.ledger = OrderLedger(self.orders, assets, claims)
        self.executor = ExecutionEngine(self.orders, pool, assets, custody_address)
        self.redeemer = RedemptionEngine(self.orders, assets, claims, amount_quantum)

        self._pools: Dict[str, Any] = {}        # pool id → pool key
        self._last_ticks: Dict[str, int] = {}   # pool id → tick after last processed trade
        self._events: List[Any] = []
        self._locked: bool = False

        self.journal.register(self)
        if hasattr(claims, "take_snapshot"):
            self.journal.register(claims)

    @property
    def flags(self) -> HookFlags:
        return HookFlags.AFTER_INITIALIZE | HookFlags.AFTER_SWAP

    @property
    def events(self) -> List[Any]:
        return list(self._events)

    @property
    def is_locked(self) -> bool:
        return self._locked

    # -- Guard --------------------------------------------------------------

    @contextmanager
    def _guarded(self, operation: str) -> Iterator[None]:
        if self._locked:
            raise ReentrancyDetected(f"{operation} entered while the ledger is locked")
        self._locked = True
        try:
            with self.journal.atomic():
                yield
        finally:
            self._locked = False

    # -- Pools --------------------------------------------------------------

    def register_pool(self, pool_key: Any, tick: Optional[int] = None) -> None:
        """Track a pool; pools initialized after the hook was attached register themselves."""
        if tick is None:
            with translate_errors(PoolCallFailed, "current_tick"):
                tick = self.pool.current_tick(pool_key)
        self._pools[pool_key.id] = pool_key
        self._last_ticks[pool_key.id] = tick
        logger.info("Tracking pool %s at tick=%d", pool_key.id[:16], tick)

    def _require_pool(self, pool_key: Any) -> None:
        if pool_key.id not in self._pools:
            raise UnknownPool(f"Pool {pool_key.id[:16]} is not registered with the ledger")

    def order_key(self, pool_key: Any, tick: int, zero_for_one: bool) -> OrderKey:
        """
        Key addressing the order at *tick* (aligned down to the pool's tick spacing).

        Raises:
            InvalidTick: the aligned tick lies outside [MIN_TICK, MAX_TICK]
        """
        aligned = tick_lower(tick, pool_key.tick_spacing)
        if not MIN_TICK <= aligned <= MAX_TICK:
            raise InvalidTick(f"Tick {tick} aligns to {aligned}, outside [{MIN_TICK}, {MAX_TICK}]")
        return OrderKey(pool_key.id, aligned, zero_for_one)

    # -- Depositor operations ----------------------------------------------

    def place_order(
        self,
        sender: str,
        pool_key: Any,
        tick: int,
        amount_in: Decimal,
        zero_for_one: bool,
    ) -> Decimal:
        """Deposit into the order at (pool, tick, direction); returns receipts minted."""
        self._require_pool(pool_key)
        key = self.order_key(pool_key, tick, zero_for_one)
        with self._guarded("place_order"):
            receipts = self.ledger.place_order(sender, pool_key, key, amount_in)
            self._events.append(OrderPlaced(
                order_id=key.id, pool_id=key.pool_id, tick=key.tick,
                zero_for_one=zero_for_one, owner=sender, amount=amount_in,
            ))
        logger.info("Order placed: %s owner=%s amount=%s", key, sender, amount_in)
        return receipts

    def cancel_order(self, sender: str, pool_key: Any, tick: int, zero_for_one: bool) -> Decimal:
        """Cancel the caller's full receipt balance; returns input asset refunded."""
        self._require_pool(pool_key)
        key = self.order_key(pool_key, tick, zero_for_one)
        with self._guarded("cancel_order"):
            refunded = self.ledger.cancel_order(sender, pool_key, key)
            self._events.append(OrderCancelled(order_id=key.id, owner=sender, refunded=refunded))
        logger.info("Order cancelled: %s owner=%s refunded=%s", key, sender, refunded)
        return refunded

    def redeem(
        self,
        sender: str,
        pool_key: Any,
        tick: int,
        zero_for_one: bool,
        amount: Decimal,
        to: Optional[str] = None,
    ) -> Decimal:
        """Burn *amount* receipts and pay the proceeds share to *to* (default: sender)."""
        self._require_pool(pool_key)
        key = self.order_key(pool_key, tick, zero_for_one)
        recipient = to or sender
        with self._guarded("redeem"):
            released = self.redeemer.redeem(sender, pool_key, key, amount, recipient)
            self._events.append(ProceedsRedeemed(
                order_id=key.id, owner=sender, recipient=recipient,
                receipts_burned=amount, released=released,
            ))
        logger.info("Redeemed: %s owner=%s burned=%s released=%s", key, sender, amount, released)
        return released

    # -- Pool notifications --------------------------------------------------

    def on_after_initialize(self, ctx: HookContext) -> HookResult:
        self.register_pool(ctx.pool_key, ctx.tick_after)
        return HookResult(allow=True)

    def on_after_swap(self, ctx: HookContext) -> HookResult:
        """Trade-completion hook: fill every order the new price crossed."""
        if self._locked:
            # Our own execution swaps notify every hook again
            logger.debug("Ignoring re-entrant swap notification on %s", ctx.pool_id[:16])
            return HookResult(allow=True)

        pool_key = self._pools.get(ctx.pool_id)
        if pool_key is None:
            return HookResult(allow=True)

        with self._guarded("trade completion"):
            self._process_trade(pool_key, ctx.tick_before)
        return HookResult(allow=True)

    def _process_trade(self, pool_key: Any, tick_before: int) -> None:
        with translate_errors(PoolCallFailed, "current_tick"):
            tick_after = self.pool.current_tick(pool_key)
        tick_before = self._last_ticks.get(pool_key.id, tick_before)

        keys = self.detector.crossable_keys(
            pool_key, tick_after, tick_before,
            candidates=self.orders.ticks_for_pool(pool_key.id),
        )
        for key in keys:
            fill = self.executor.execute(pool_key, key)
            if fill is not None:
                self._events.append(OrderFilled(
                    order_id=key.id, tick=key.tick,
                    amount_in=fill.amount_in, amount_out=fill.amount_out,
                ))

        with translate_errors(PoolCallFailed, "current_tick"):
            self._last_ticks[pool_key.id] = self.pool.current_tick(pool_key)

    # -- Queries ------------------------------------------------------------

    def get_order(self, pool_key: Any, tick: int, zero_for_one: bool) -> Optional[Order]:
        return self.orders.get(self.order_key(pool_key, tick, zero_for_one))

    def orders_for_pool(self, pool_key: Any) -> Dict[OrderKey, Order]:
        return {key: self.orders.get(key) for key in self.orders.keys_for_pool(pool_key.id)}

    def claim_balance(self, holder: str, pool_key: Any, tick: int, zero_for_one: bool) -> Decimal:
        return self.claims.balance_of(holder, self.order_key(pool_key, tick, zero_for_one).id)

    def last_tick(self, pool_key: Any) -> Optional[int]:
        return self._last_ticks.get(pool_key.id)

    # -- Journal participation ---------------------------------------------

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            "orders": self.orders.take_snapshot(),
            "pools": dict(self._pools),
            "last_ticks": dict(self._last_ticks),
            "events": len(self._events),
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        self.orders.restore_snapshot(snapshot["orders"])
        self._pools = dict(snapshot["pools"])
        self._last_ticks = dict(snapshot["last_ticks"])
        del self._events[snapshot["events"]:]
