"""
Test suite for trade-completion handling and order execution.

Covers:
  - Crossing a boundary fills the whole pending input
  - Delta settlement (push + settle, take)
  - Partial fills when the pool consumes less than requested
  - Pool failures abort the notification and roll everything back
  - Re-entrant notifications from the ledger's own swaps
  - range crossing mode
"""

from decimal import Decimal

import pytest

from conftest import ALICE, BOB, LEDGER, make_env
from takeprofit.constants import MAX_SQRT_RATIO, MIN_SQRT_RATIO
from takeprofit.exceptions import PoolCallFailed
from takeprofit.exchange.hooks import HookContext
from takeprofit.ledger.events import OrderFilled
from takeprofit.ledger.execution import price_limit


class TestPriceLimit:

    def test_bounds(self):
        assert price_limit(True) == MIN_SQRT_RATIO + 1
        assert price_limit(False) == MAX_SQRT_RATIO - 1


class TestFill:

    def test_crossing_fills_pending_input(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)

        order = env.hook.get_order(env.key, 60, True)
        assert order.pending_in == Decimal("0")
        assert order.filled_out == Decimal("200")
        assert env.hook.claim_balance(ALICE, env.key, 60, True) == Decimal("100")

    def test_swap_arguments(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)

        (pool_id, zero_for_one, amount_in, limit, sender), = env.pool.swaps
        assert pool_id == env.key.id
        assert zero_for_one is True
        assert amount_in == Decimal("100")
        assert limit == MIN_SQRT_RATIO + 1
        assert sender == LEDGER

    def test_deltas_settled(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)

        assert env.pool.settled == [("ETH", Decimal("100"), LEDGER)]
        assert env.pool.taken == [("USDC", Decimal("200"), LEDGER)]
        assert env.balance("ETH", LEDGER) == Decimal("0")
        assert env.balance("USDC", LEDGER) == Decimal("200")

    def test_one_for_zero_fill(self, env):
        env.hook.place_order(BOB, env.key, 60, Decimal("40"), False)
        env.trade_to(100)

        order = env.hook.get_order(env.key, 60, False)
        assert order.pending_in == Decimal("0")
        assert order.filled_out == Decimal("80")
        assert env.pool.settled == [("USDC", Decimal("40"), LEDGER)]
        assert env.pool.taken == [("ETH", Decimal("80"), LEDGER)]
        assert env.pool.swaps[0][3] == MAX_SQRT_RATIO - 1

    def test_both_directions_at_boundary(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("10"), True)
        env.hook.place_order(BOB, env.key, 60, Decimal("20"), False)
        env.trade_to(61)

        assert env.hook.get_order(env.key, 60, True).filled_out == Decimal("20")
        assert env.hook.get_order(env.key, 60, False).filled_out == Decimal("40")
        assert [s[1] for s in env.pool.swaps] == [True, False]

    def test_no_crossing_no_swap(self, env):
        env.hook.place_order(ALICE, env.key, 120, Decimal("100"), True)
        env.trade_to(65)
        assert env.pool.swaps == []
        assert env.hook.get_order(env.key, 120, True).pending_in == Decimal("100")

    def test_skipped_boundary_stays_pending(self, env):
        # Single mode only looks at the boundary the trade ends in
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(130)
        assert env.hook.get_order(env.key, 60, True).pending_in == Decimal("100")

        env.trade_to(70)
        assert env.hook.get_order(env.key, 60, True).pending_in == Decimal("0")

    def test_second_crossing_is_noop(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)
        env.trade_to(66)
        assert len(env.pool.swaps) == 1
        assert env.hook.get_order(env.key, 60, True).filled_out == Decimal("200")

    def test_proceeds_accumulate_across_fills(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)
        env.hook.place_order(BOB, env.key, 60, Decimal("50"), True)
        env.trade_to(70)

        order = env.hook.get_order(env.key, 60, True)
        assert order.pending_in == Decimal("0")
        assert order.filled_out == Decimal("300")

    def test_filled_event(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)
        event = env.hook.events[-1]
        assert isinstance(event, OrderFilled)
        assert event.tick == 60
        assert event.amount_in == Decimal("100")
        assert event.amount_out == Decimal("200")

    def test_last_tick_tracked(self, env):
        assert env.hook.last_tick(env.key) == 50
        env.trade_to(65)
        assert env.hook.last_tick(env.key) == 65

    def test_unknown_pool_notification_ignored(self, env):
        result = env.hook.on_after_swap(HookContext(pool_id="elsewhere", tick_after=60))
        assert result.allow
        assert env.pool.swaps == []


class TestPartialFill:

    def test_unconsumed_input_stays_pending(self, env):
        env.pool.max_input = Decimal("30")
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)

        order = env.hook.get_order(env.key, 60, True)
        assert order.pending_in == Decimal("70")
        assert order.filled_out == Decimal("60")
        assert env.balance("ETH", LEDGER) == Decimal("70")


class TestExecutionFailure:

    def test_swap_failure_aborts(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.pool.fail_on = "swap"

        with pytest.raises(PoolCallFailed, match="swap"):
            env.trade_to(65)

        order = env.hook.get_order(env.key, 60, True)
        assert order.pending_in == Decimal("100")
        assert order.filled_out == Decimal("0")
        assert env.hook.last_tick(env.key) == 50

    def test_take_failure_rolls_back_payment(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.pool.fail_on = "take"

        with pytest.raises(PoolCallFailed, match="take"):
            env.trade_to(65)

        assert env.balance("ETH", LEDGER) == Decimal("100")
        assert env.balance("ETH", env.pool.custody_address) == Decimal("1000000")
        assert env.hook.get_order(env.key, 60, True).pending_in == Decimal("100")

    def test_later_failure_reverts_earlier_fills(self, env):
        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.hook.place_order(BOB, env.key, 60, Decimal("50"), False)
        env.pool.max_swaps = 1

        with pytest.raises(PoolCallFailed):
            env.trade_to(65)

        first = env.hook.get_order(env.key, 60, True)
        assert first.pending_in == Decimal("100")
        assert first.filled_out == Decimal("0")
        assert env.balance("USDC", LEDGER) == Decimal("50")
        assert [e for e in env.hook.events if isinstance(e, OrderFilled)] == []
        assert not env.hook.is_locked


class TestReentrantNotification:

    def test_own_swap_notification_ignored(self, env):
        results = []
        ctx = HookContext(pool_id=env.key.id, pool_key=env.key, tick_before=65, tick_after=65)
        env.pool.on_swap = lambda: results.append(env.hook.on_after_swap(ctx))

        env.hook.place_order(ALICE, env.key, 60, Decimal("100"), True)
        env.trade_to(65)

        assert len(results) == 1
        assert results[0].allow
        assert len(env.pool.swaps) == 1
        assert env.hook.get_order(env.key, 60, True).filled_out == Decimal("200")


class TestRangeCrossing:

    def test_fills_every_boundary_in_span(self):
        env = make_env(tick=10, crossing_mode="range")
        env.hook.place_order(ALICE, env.key, 60, Decimal("10"), True)
        env.hook.place_order(ALICE, env.key, 180, Decimal("10"), True)
        env.hook.place_order(ALICE, env.key, 300, Decimal("10"), True)
        env.trade_to(250)

        assert env.hook.get_order(env.key, 60, True).pending_in == Decimal("0")
        assert env.hook.get_order(env.key, 180, True).pending_in == Decimal("0")
        assert env.hook.get_order(env.key, 300, True).pending_in == Decimal("10")
        filled_ticks = [e.tick for e in env.hook.events if isinstance(e, OrderFilled)]
        assert filled_ticks == [60, 180]

    def test_downward_fill_order(self):
        env = make_env(tick=250, crossing_mode="range")
        env.hook.place_order(ALICE, env.key, 60, Decimal("10"), False)
        env.hook.place_order(ALICE, env.key, 180, Decimal("10"), False)
        env.trade_to(0)

        filled_ticks = [e.tick for e in env.hook.events if isinstance(e, OrderFilled)]
        assert filled_ticks == [180, 60]
