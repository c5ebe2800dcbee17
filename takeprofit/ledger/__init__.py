"""
Take-Profit Order Ledger

Components:
  - Order Ledger        (order table, deposits, cancellations)
  - Crossing Detector   (post-trade tick → crossable order keys)
  - Execution Engine    (swap + settlement of crossable orders)
  - Redemption Engine   (proportional payout of filled proceeds)
  - TakeProfitHook      (public surface, reentrancy guard, atomic boundary)
"""

from .collaborators import (
    AssetTransfer,
    ClaimReceipts,
    PoolCollaborator,
)
from .crossing import CrossingDetector, tick_lower
from .events import OrderCancelled, OrderFilled, OrderPlaced, ProceedsRedeemed
from .execution import ExecutionEngine, Fill, price_limit
from .hook import TakeProfitHook
from .orders import Order, OrderKey, OrderLedger, OrderTable
from .redemption import RedemptionEngine

__all__ = [
    # Collaborator interfaces
    "AssetTransfer", "ClaimReceipts", "PoolCollaborator",
    # Components
    "Order", "OrderKey", "OrderLedger", "OrderTable",
    "CrossingDetector", "tick_lower",
    "ExecutionEngine", "Fill", "price_limit",
    "RedemptionEngine",
    "TakeProfitHook",
    # Events
    "OrderPlaced", "OrderCancelled", "OrderFilled", "ProceedsRedeemed",
]
