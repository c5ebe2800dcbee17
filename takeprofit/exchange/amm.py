"""
Reference Pool Manager

The pool/swap collaborator the take-profit ledger trades against. It is a
small concentrated-liquidity model (Uniswap V3 style ticks and Q64.96 sqrt
prices) in which a swap is priced against the liquidity active at the
current tick; initialized ticks are never crossed. It is a test double that
behaves like a pool, not a general AMM.

Accounting model:
  - A swap leaves signed balance deltas open for its caller
    (positive = caller owes the pool, negative = pool owes the caller)
  - settle() acknowledges funds the caller already sent to custody,
    take() pays funds out of custody
  - Every mutation runs inside a Journal scope, so a hook that fails inside
    the after-swap notification reverts the swap as well
"""

from __future__ import annotations

import copy
import hashlib
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_DOWN, ROUND_UP, getcontext
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple, Union

from ..constants import MAX_SQRT_RATIO, MAX_TICK, MIN_SQRT_RATIO, MIN_TICK
from ..tokens.bank import TokenBank
from .hooks import HookContext, HookRegistry
from .journal import Journal

# Products of Q96 prices and liquidity exceed the default 28 digits
getcontext().prec = 78

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")
Q96 = Decimal(2**96)
AMOUNT_STEP = Decimal("0.00000001")
_LN_TICK_BASE = math.log(1.0001)


class FeeTier(IntEnum):
    """Swap fee in millionths; each tier fixes a default tick spacing."""
    ULTRA_LOW = 100
    LOW = 500
    MEDIUM = 3000
    HIGH = 10000

    @property
    def rate(self) -> Decimal:
        return Decimal(self.value).scaleb(-6)

    @property
    def tick_spacing(self) -> int:
        return {100: 1, 500: 10, 3000: 60, 10000: 200}[self.value]


# ---------------------------------------------------------------------------
# Tick / price conversions
# ---------------------------------------------------------------------------

def tick_to_sqrt_price(tick: int) -> Decimal:
    """sqrt(1.0001 ** tick) as a Q64.96 value."""
    return Decimal(repr(math.exp(tick * _LN_TICK_BASE / 2))) * Q96


def sqrt_price_to_tick(sqrt_price: Decimal) -> int:
    """Tick at or below *sqrt_price*, clamped to [MIN_TICK, MAX_TICK]."""
    ratio = float(sqrt_price / Q96)
    if ratio <= 0:
        return MIN_TICK
    return max(MIN_TICK, min(MAX_TICK, math.floor(2 * math.log(ratio) / _LN_TICK_BASE)))


def sqrt_price_to_price(sqrt_price: Decimal) -> Decimal:
    """currency1 per currency0."""
    return ((sqrt_price / Q96) ** 2).quantize(AMOUNT_STEP)


def amounts_for_liquidity(
    sqrt_price: Decimal, tick_lower: int, tick_upper: int, liquidity: Decimal,
) -> Tuple[Decimal, Decimal]:
    """Token amounts backing *liquidity* in [tick_lower, tick_upper) at *sqrt_price*."""
    sa = tick_to_sqrt_price(tick_lower)
    sb = tick_to_sqrt_price(tick_upper)
    sp = min(max(sqrt_price, sa), sb)
    amount0 = liquidity * Q96 * (sb - sp) / (sp * sb)
    amount1 = liquidity * (sp - sa) / Q96
    return _to_amount(amount0, ROUND_UP), _to_amount(amount1, ROUND_UP)


def _to_amount(value: Decimal, rounding: str) -> Decimal:
    return value.quantize(AMOUNT_STEP, rounding=rounding)


def _gross_up(net: Decimal, fee_rate: Decimal) -> Tuple[Decimal, Decimal]:
    """Input (fee included) that leaves *net* after the fee is taken."""
    gross = _to_amount(net / (ONE - fee_rate), ROUND_UP)
    return gross, gross - net


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PoolKey:
    """
    Immutable pool configuration.

    currency0 < currency1 (canonical ordering). The id is derived from the
    configuration alone, so the same key always addresses the same pool.
    """
    currency0: str
    currency1: str
    fee_tier: FeeTier
    tick_spacing: int

    @classmethod
    def create(
        cls,
        token_a: str,
        token_b: str,
        fee_tier: FeeTier,
        tick_spacing: Optional[int] = None,
    ) -> PoolKey:
        if token_a == token_b:
            raise ValueError("Pool assets must differ")
        if token_a > token_b:
            token_a, token_b = token_b, token_a
        spacing = fee_tier.tick_spacing if tick_spacing is None else tick_spacing
        if spacing <= 0:
            raise ValueError("tick_spacing must be positive")
        return cls(token_a, token_b, fee_tier, spacing)

    @property
    def id(self) -> str:
        raw = f"{self.currency0}:{self.currency1}:{int(self.fee_tier)}:{self.tick_spacing}".encode()
        return hashlib.blake2b(raw, digest_size=16).hexdigest()


@dataclass
class TickInfo:
    """Liquidity added (or removed, if negative) when the price moves up through *tick*."""
    tick: int
    liquidity_net: Decimal = ZERO


@dataclass
class Position:
    id: str
    owner: str
    tick_lower: int
    tick_upper: int
    liquidity: Decimal


@dataclass
class PoolState:
    key: PoolKey
    sqrt_price: Decimal = ZERO
    tick: int = 0
    liquidity: Decimal = ZERO      # active at the current tick
    ticks: Dict[int, TickInfo] = field(default_factory=dict)
    positions: Dict[str, Position] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.key.id

    @property
    def price(self) -> Decimal:
        return sqrt_price_to_price(self.sqrt_price)


# ---------------------------------------------------------------------------
# Pool engine
# ---------------------------------------------------------------------------

class ConcentratedLiquidityPool:
    """Swap and liquidity math for one pool, guarded against reentry."""

    def __init__(self, state: PoolState):
        self.state = state
        self._locked = False
        self._positions_opened = 0

    def _acquire_lock(self) -> None:
        if self._locked:
            raise ValueError("Reentrancy detected: pool is locked")
        self._locked = True

    def _release_lock(self) -> None:
        self._locked = False

    def swap(
        self,
        amount_in: Decimal,
        zero_for_one: bool,
        sqrt_price_limit: Decimal,
    ) -> Tuple[Decimal, Decimal, Decimal]:
        """
        Exact-input swap that stops at *sqrt_price_limit*.

        If the limit would be passed, the price settles on it and only the
        input needed to get there is consumed.

        Returns:
            (amount_in_used, amount_out, fee)
        """
        if amount_in <= 0:
            raise ValueError("Swap amount must be positive")
        if self.state.liquidity <= 0:
            raise ValueError("No liquidity in pool")
        current = self.state.sqrt_price
        lo, hi = (MIN_SQRT_RATIO, current) if zero_for_one else (current, MAX_SQRT_RATIO)
        if not lo < sqrt_price_limit < hi:
            direction = "zero_for_one" if zero_for_one else "one_for_zero"
            raise ValueError(f"Invalid price limit {sqrt_price_limit} for {direction} swap")

        self._acquire_lock()
        try:
            return self._swap_in_range(amount_in, zero_for_one, sqrt_price_limit)
        finally:
            self._release_lock()

    def _swap_in_range(
        self,
        amount_in: Decimal,
        zero_for_one: bool,
        limit: Decimal,
    ) -> Tuple[Decimal, Decimal, Decimal]:
        fee_rate = self.state.key.fee_tier.rate
        fee = _to_amount(amount_in * fee_rate, ROUND_UP)
        net_in = amount_in - fee
        liquidity = self.state.liquidity
        start = self.state.sqrt_price

        if zero_for_one:
            # currency0 in: 1/sqrtP rises by net_in / L
            target = (liquidity * start / (liquidity + net_in * start / Q96)).quantize(ONE, rounding=ROUND_UP)
            if target < limit:
                target = limit
                net_in = _to_amount(liquidity * Q96 * (start - target) / (start * target), ROUND_UP)
                amount_in, fee = _gross_up(net_in, fee_rate)
            amount_out = _to_amount(liquidity * (start - target) / Q96, ROUND_DOWN)
        else:
            # currency1 in: sqrtP rises by net_in / L
            target = start + (net_in * Q96 / liquidity).quantize(ONE, rounding=ROUND_DOWN)
            if target > limit:
                target = limit
                net_in = _to_amount((target - start) * liquidity / Q96, ROUND_UP)
                amount_in, fee = _gross_up(net_in, fee_rate)
            amount_out = _to_amount(liquidity * Q96 * (target - start) / (start * target), ROUND_DOWN)

        self.state.sqrt_price = target
        self.state.tick = sqrt_price_to_tick(target)
        return amount_in, max(amount_out, ZERO), fee

    def add_liquidity(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        amount: Decimal,
    ) -> Position:
        """Add *amount* of liquidity over [tick_lower, tick_upper)."""
        spacing = self.state.key.tick_spacing
        if tick_lower >= tick_upper:
            raise ValueError("tick_lower must be below tick_upper")
        if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
            raise ValueError(f"Range [{tick_lower}, {tick_upper}) is outside the tick bounds")
        if tick_lower % spacing or tick_upper % spacing:
            raise ValueError(f"Range ends must be multiples of tick_spacing {spacing}")
        if amount <= 0:
            raise ValueError("Liquidity must be positive")

        self._acquire_lock()
        try:
            self._positions_opened += 1
            position = Position(
                id=_position_id(self.state.id, owner, tick_lower, tick_upper, self._positions_opened),
                owner=owner,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
                liquidity=amount,
            )
            self._tick(tick_lower).liquidity_net += amount
            self._tick(tick_upper).liquidity_net -= amount
            if tick_lower <= self.state.tick < tick_upper:
                self.state.liquidity += amount
            self.state.positions[position.id] = position
            return position
        finally:
            self._release_lock()

    def _tick(self, tick: int) -> TickInfo:
        return self.state.ticks.setdefault(tick, TickInfo(tick))


def _position_id(pool_id: str, owner: str, tick_lower: int, tick_upper: int, seq: int) -> str:
    raw = f"{pool_id}:{owner}:{tick_lower}:{tick_upper}:{seq}".encode()
    return hashlib.blake2b(raw, digest_size=8).hexdigest()


# ---------------------------------------------------------------------------
# Pool Manager
# ---------------------------------------------------------------------------

class PoolManager:
    """
    Manages all pools and the custody of their reserves.

    Handles:
      - Pool initialization keyed by PoolKey
      - Swaps with open-delta (flash) accounting per caller
      - settle / take to close open deltas against the bank
      - afterInitialize / afterSwap hook dispatch
    """

    def __init__(
        self,
        bank: TokenBank,
        hooks: Optional[HookRegistry] = None,
        journal: Optional[Journal] = None,
        address: str = "pool-manager",
    ) -> None:
        self.bank = bank
        self.hooks = hooks or HookRegistry()
        self.journal = journal or Journal()
        self.custody_address = address
        self._pools: Dict[str, ConcentratedLiquidityPool] = {}
        self._reserves: Dict[str, Decimal] = {}               # accounted custody per currency
        self._deltas: Dict[Tuple[str, str], Decimal] = {}     # (address, currency) → open delta

        self.journal.register(bank)
        self.journal.register(self)

    @property
    def pool_count(self) -> int:
        return len(self._pools)

    # -- Pools --------------------------------------------------------------

    def initialize(self, key: PoolKey, sqrt_price: Decimal, sender: str = "") -> ConcentratedLiquidityPool:
        """Create a pool at *sqrt_price* and notify afterInitialize hooks."""
        if key.id in self._pools:
            raise ValueError(f"Pool already initialized for {key.currency0}/{key.currency1} fee={int(key.fee_tier)}")
        if not (MIN_SQRT_RATIO <= sqrt_price < MAX_SQRT_RATIO):
            raise ValueError("Initial sqrt price out of range")

        with self.journal.atomic():
            state = PoolState(key=key, sqrt_price=sqrt_price, tick=sqrt_price_to_tick(sqrt_price))
            pool = ConcentratedLiquidityPool(state)
            self._pools[key.id] = pool

            ctx = HookContext(pool_id=key.id, pool_key=key, sender=sender,
                              tick_before=state.tick, tick_after=state.tick)
            result = self.hooks.run_after_initialize(ctx)
            if not result.allow:
                raise ValueError(f"Initialize reverted by hook: {result.reason}")

        logger.info("Pool %s initialized: %s/%s fee=%s tick=%d",
                    key.id[:16], key.currency0, key.currency1, int(key.fee_tier), state.tick)
        return pool

    def get_pool(self, key: Union[PoolKey, str]) -> Optional[ConcentratedLiquidityPool]:
        pool_id = key.id if isinstance(key, PoolKey) else key
        return self._pools.get(pool_id)

    def current_tick(self, key: PoolKey) -> int:
        return self._require_pool(key).state.tick

    def add_liquidity(
        self,
        key: PoolKey,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity: Decimal,
    ) -> Position:
        """Add liquidity, pulling the backing token amounts from *owner*."""
        pool = self._require_pool(key)
        with self.journal.atomic():
            amount0, amount1 = amounts_for_liquidity(pool.state.sqrt_price, tick_lower, tick_upper, liquidity)
            position = pool.add_liquidity(owner, tick_lower, tick_upper, liquidity)
            for currency, amount in ((key.currency0, amount0), (key.currency1, amount1)):
                if amount > 0:
                    self.bank.transfer(currency, owner, self.custody_address, amount)
                    self._reserves[currency] = self.reserve_of(currency) + amount
        return position

    # -- Swaps & settlement -------------------------------------------------

    def swap(
        self,
        key: PoolKey,
        zero_for_one: bool,
        amount_in: Decimal,
        sqrt_price_limit: Decimal,
        sender: str,
    ) -> Tuple[Decimal, Decimal]:
        """
        Swap and leave the resulting deltas open for *sender*.

        Returns:
            (delta0, delta1): positive = sender owes the pool,
            negative = pool owes the sender
        """
        pool = self._require_pool(key)
        with self.journal.atomic():
            tick_before = pool.state.tick
            used, amount_out, _fee = pool.swap(amount_in, zero_for_one, sqrt_price_limit)
            if zero_for_one:
                delta0, delta1 = used, -amount_out
            else:
                delta0, delta1 = -amount_out, used
            self._account(sender, key.currency0, delta0)
            self._account(sender, key.currency1, delta1)

            ctx = HookContext(
                pool_id=key.id,
                pool_key=key,
                sender=sender,
                zero_for_one=zero_for_one,
                amount_in=used,
                amount_out=amount_out,
                tick_before=tick_before,
                tick_after=pool.state.tick,
            )
            result = self.hooks.run_after_swap(ctx)
            if not result.allow:
                raise ValueError(f"Swap reverted by hook: {result.reason}")

        logger.debug("Swap on %s by %s: tick %d → %d, deltas (%s, %s)",
                     key.id[:16], sender, tick_before, ctx.tick_after, delta0, delta1)
        return delta0, delta1

    def settle(self, key: PoolKey, currency: str, amount: Decimal, payer: str) -> None:
        """Acknowledge *amount* of *currency* already transferred to custody by *payer*."""
        self._require_currency(key, currency)
        if amount <= 0:
            raise ValueError("Settle amount must be positive")
        paid = self.bank.balance_of(currency, self.custody_address) - self.reserve_of(currency)
        if paid < amount:
            raise ValueError(f"Settle of {amount} {currency} exceeds unaccounted payment {paid}")
        self._reserves[currency] = self.reserve_of(currency) + amount
        self._account(payer, currency, -amount)

    def take(self, key: PoolKey, currency: str, amount: Decimal, to: str) -> None:
        """Pay *amount* of *currency* out of custody to *to*."""
        self._require_currency(key, currency)
        if amount <= 0:
            raise ValueError("Take amount must be positive")
        if self.reserve_of(currency) < amount:
            raise ValueError(f"Insufficient {currency} reserves for take of {amount}")
        self.bank.transfer(currency, self.custody_address, to, amount)
        self._reserves[currency] = self.reserve_of(currency) - amount
        self._account(to, currency, amount)

    def swap_exact_in(
        self,
        key: PoolKey,
        trader: str,
        zero_for_one: bool,
        amount_in: Decimal,
        min_amount_out: Decimal = ZERO,
    ) -> Decimal:
        """
        Swap for an external trader and settle both legs through the bank.

        Returns:
            amount received by the trader
        """
        limit = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1
        currency_in, currency_out = (
            (key.currency0, key.currency1) if zero_for_one else (key.currency1, key.currency0)
        )
        with self.journal.atomic():
            delta0, delta1 = self.swap(key, zero_for_one, amount_in, limit, trader)
            owed, credit = (delta0, -delta1) if zero_for_one else (delta1, -delta0)

            # --- Slippage protection ---
            if min_amount_out > 0 and credit < min_amount_out:
                raise ValueError(f"Slippage exceeded: got {credit}, minimum {min_amount_out}")

            if owed > 0:
                self.bank.transfer(currency_in, trader, self.custody_address, owed)
                self.settle(key, currency_in, owed, trader)
            if credit > 0:
                self.take(key, currency_out, credit, trader)
        return credit

    def open_delta(self, address: str, currency: str) -> Decimal:
        return self._deltas.get((address, currency), ZERO)

    def reserve_of(self, currency: str) -> Decimal:
        return self._reserves.get(currency, ZERO)

    # -- Journal participation ---------------------------------------------

    def take_snapshot(self) -> Dict[str, Any]:
        return {
            "pools": {pid: copy.deepcopy(pool.state) for pid, pool in self._pools.items()},
            "sequences": {pid: pool._positions_opened for pid, pool in self._pools.items()},
            "reserves": dict(self._reserves),
            "deltas": dict(self._deltas),
        }

    def restore_snapshot(self, snapshot: Dict[str, Any]) -> None:
        pools: Dict[str, ConcentratedLiquidityPool] = {}
        for pid, state in snapshot["pools"].items():
            pool = self._pools.get(pid) or ConcentratedLiquidityPool(state)
            pool.state = copy.deepcopy(state)
            pool._positions_opened = snapshot["sequences"][pid]
            pool._release_lock()
            pools[pid] = pool
        self._pools = pools
        self._reserves = dict(snapshot["reserves"])
        self._deltas = dict(snapshot["deltas"])

    # -- Internal -----------------------------------------------------------

    def _require_pool(self, key: PoolKey) -> ConcentratedLiquidityPool:
        pool = self._pools.get(key.id)
        if pool is None:
            raise ValueError(f"Pool {key.id[:16]} not initialized")
        return pool

    def _require_currency(self, key: PoolKey, currency: str) -> None:
        self._require_pool(key)
        if currency not in (key.currency0, key.currency1):
            raise ValueError(f"{currency} is not traded in pool {key.id[:16]}")

    def _account(self, address: str, currency: str, delta: Decimal) -> None:
        if delta == 0:
            return
        total = self.open_delta(address, currency) + delta
        if total == 0:
            self._deltas.pop((address, currency), None)
        else:
            self._deltas[(address, currency)] = total
