"""
Shared fixtures for the take-profit ledger tests.

ScriptedPool is a pool collaborator whose tick and swap output are set by
the test, so crossing and execution can be driven without AMM math.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, List, Optional

import pytest

from takeprofit.exchange.amm import FeeTier, PoolKey
from takeprofit.exchange.hooks import HookContext
from takeprofit.exchange.journal import Journal
from takeprofit.ledger.hook import TakeProfitHook
from takeprofit.tokens.bank import CustodyTransfer, TokenBank
from takeprofit.tokens.claims import ClaimLedger

ALICE = "alice"
BOB = "bob"
CAROL = "carol"
LEDGER = "takeprofit-ledger"


class ScriptedPool:
    """Pool collaborator with a test-controlled tick and output rate."""

    custody_address = "scripted-pool"

    def __init__(self, bank: TokenBank, tick: int = 0, rate: Decimal = Decimal("2")):
        self.bank = bank
        self.tick = tick
        self.rate = rate
        self.fixed_out: Optional[Decimal] = None    # overrides rate when set
        self.max_input: Optional[Decimal] = None    # consume at most this much per swap
        self.max_swaps: Optional[int] = None        # fail every swap after this many
        self.fail_on: Optional[str] = None          # "swap" | "settle" | "take"
        self.on_swap: Optional[Callable[[], Any]] = None
        self.swaps: List[tuple] = []
        self.settled: List[tuple] = []
        self.taken: List[tuple] = []

    def current_tick(self, key):
        return self.tick

    def swap(self, key, zero_for_one, amount_in, sqrt_price_limit, sender):
        if self.fail_on == "swap":
            raise ValueError("pool rejected swap")
        if self.max_swaps is not None and len(self.swaps) >= self.max_swaps:
            raise ValueError("pool rejected swap")
        self.swaps.append((key.id, zero_for_one, amount_in, sqrt_price_limit, sender))
        if self.on_swap is not None:
            self.on_swap()

        used = amount_in if self.max_input is None else min(amount_in, self.max_input)
        out = self.fixed_out if self.fixed_out is not None else used * self.rate
        return (used, -out) if zero_for_one else (-out, used)

    def settle(self, key, currency, amount, payer):
        if self.fail_on == "settle":
            raise ValueError("pool rejected settle")
        self.settled.append((currency, amount, payer))

    def take(self, key, currency, amount, to):
        if self.fail_on == "take":
            raise ValueError("pool rejected take")
        self.bank.transfer(currency, self.custody_address, to, amount)
        self.taken.append((currency, amount, to))


@dataclass
class LedgerEnv:
    bank: TokenBank
    claims: ClaimLedger
    pool: ScriptedPool
    hook: TakeProfitHook
    key: PoolKey
    journal: Journal

    def trade_to(self, tick: int) -> None:
        """Move the scripted price to *tick* and deliver the trade-completion notification."""
        before = self.pool.tick
        self.pool.tick = tick
        self.hook.on_after_swap(HookContext(
            pool_id=self.key.id, pool_key=self.key, sender="trader",
            tick_before=before, tick_after=tick,
        ))

    def balance(self, asset: str, address: str) -> Decimal:
        return self.bank.balance_of(asset, address)


def make_env(tick: int = 0, crossing_mode: str = "single", **hook_kwargs) -> LedgerEnv:
    bank = TokenBank()
    claims = ClaimLedger()
    journal = Journal()
    journal.register(bank)

    pool = ScriptedPool(bank, tick=tick)
    key = PoolKey.create("ETH", "USDC", FeeTier.MEDIUM)   # spacing 60
    hook = TakeProfitHook(
        pool, CustodyTransfer(bank, LEDGER), claims, LEDGER,
        journal=journal, crossing_mode=crossing_mode, **hook_kwargs,
    )
    hook.register_pool(key)

    for holder in (ALICE, BOB, CAROL):
        bank.mint("ETH", holder, Decimal("1000"))
        bank.mint("USDC", holder, Decimal("1000"))
    bank.mint("ETH", pool.custody_address, Decimal("1000000"))
    bank.mint("USDC", pool.custody_address, Decimal("1000000"))

    return LedgerEnv(bank, claims, pool, hook, key, journal)


@pytest.fixture
def env() -> LedgerEnv:
    return make_env(tick=50)
