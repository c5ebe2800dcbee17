"""
Reference Exchange Collaborators

Components:
  - Pool Manager (concentrated liquidity, signed-delta swaps, settle / take)
  - Hook Registry (afterInitialize / afterSwap notifications)
  - Journal (all-or-nothing operation boundary)
  - State Manager (wires the ledger to its collaborators; import from
    takeprofit.exchange.state_manager)
"""

from .amm import (
    ConcentratedLiquidityPool,
    FeeTier,
    PoolKey,
    PoolManager,
    PoolState,
    Position,
    TickInfo,
)
from .hooks import (
    ExchangeHook,
    HookContext,
    HookFlags,
    HookRegistry,
    HookResult,
)
from .journal import Journal

__all__ = [
    # AMM
    "ConcentratedLiquidityPool", "FeeTier", "PoolKey", "PoolManager",
    "PoolState", "Position", "TickInfo",
    # Hooks
    "ExchangeHook", "HookContext", "HookFlags", "HookRegistry", "HookResult",
    # Journal
    "Journal",
]
