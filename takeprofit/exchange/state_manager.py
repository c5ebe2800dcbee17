"""
Take-Profit State Manager

Central object that wires the ledger to its reference collaborators and
gives the host one place to drive and inspect them.

Responsibilities:
  - Owns the bank, claim ledger, pool manager, hook registry, journal and
    the take-profit hook
  - Shares one Journal between all of them so every operation is
    all-or-nothing across the whole system
  - Computes a deterministic state root over pools and orders
  - Provides read-only stats for the host
"""

from __future__ import annotations

import hashlib
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from ..config import LedgerConfig
from ..ledger.hook import TakeProfitHook
from ..logger import LogManager
from ..tokens.bank import CustodyTransfer, TokenBank
from ..tokens.claims import ClaimLedger
from .amm import PoolKey, PoolManager
from .hooks import HookRegistry
from .journal import Journal

logger = logging.getLogger(__name__)


class TakeProfitStateManager:
    """
    Wires a complete, in-memory take-profit system.

    Usage:

        mgr = TakeProfitStateManager(load_config())
        key = PoolKey.create("ETH", "USDC", FeeTier.MEDIUM)
        mgr.pool_manager.initialize(key, tick_to_sqrt_price(0))
        mgr.hook.place_order(alice, key, 60, Decimal("100"), zero_for_one=True)
    """

    instance: Optional[TakeProfitStateManager] = None

    def __init__(self, config: Optional[LedgerConfig] = None) -> None:
        self.config = config or LedgerConfig()
        self.config.validate()
        LogManager().apply_settings(self.config.logging.level, self.config.logging.file_output)

        self.journal = Journal()
        self.bank = TokenBank()
        self.claims = ClaimLedger()
        self.hook_registry = HookRegistry()
        self.pool_manager = PoolManager(self.bank, self.hook_registry, self.journal)

        custody = self.config.ledger.custody_address
        self.assets = CustodyTransfer(self.bank, custody)
        self.hook = TakeProfitHook(
            self.pool_manager,
            self.assets,
            self.claims,
            custody,
            journal=self.journal,
            crossing_mode=self.config.ledger.crossing_mode,
            amount_quantum=self.config.ledger.amount_quantum,
        )
        self.hook_registry.register(self.hook)

    @classmethod
    def get_instance(cls, config: Optional[LedgerConfig] = None) -> TakeProfitStateManager:
        """Get or create the singleton instance."""
        if cls.instance is None:
            cls.instance = cls(config)
            logger.info("Take-profit state manager initialized")
        return cls.instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton (for testing)."""
        cls.instance = None

    # =====================================================================
    #  State root computation
    # =====================================================================

    def compute_state_root(self) -> str:
        """
        Deterministic hash of pool prices, reserves and the order table.

        Returns:
            64-char hex string (blake2b-256)
        """
        hasher = hashlib.blake2b(digest_size=32)

        for pool in sorted(self.pool_manager._pools.values(), key=lambda p: p.state.id):
            s = pool.state
            hasher.update(hashlib.blake2b(
                f"{s.id}:{s.sqrt_price}:{s.tick}:{s.liquidity}".encode(),
                digest_size=16,
            ).digest())

        for currency in sorted(self.pool_manager._reserves):
            hasher.update(f"{currency}:{self.pool_manager.reserve_of(currency)}".encode())

        hasher.update(self.hook.orders.state_root().encode())
        return hasher.hexdigest()

    # =====================================================================
    #  Query interface
    # =====================================================================

    def custody_balance(self, asset: str) -> Decimal:
        return self.assets.custody_balance(asset)

    def get_stats(self) -> Dict[str, Any]:
        pending = sum((o.pending_in for _, o in self.hook.orders), Decimal("0"))
        filled = sum((o.filled_out for _, o in self.hook.orders), Decimal("0"))
        return {
            "pools": self.pool_manager.pool_count,
            "orders": len(self.hook.orders),
            "pending_in": str(pending),
            "filled_out": str(filled),
            "events": len(self.hook.events),
            "crossing_mode": self.hook.detector.mode,
        }

    def pool_stats(self, key: PoolKey) -> Dict[str, Any]:
        orders = self.hook.orders_for_pool(key)
        return {
            "pool_id": key.id,
            "tick": self.pool_manager.current_tick(key),
            "last_processed_tick": self.hook.last_tick(key),
            "orders": len(orders),
        }
