"""
Pool hooks.

A pool manager owns one HookRegistry and notifies it after a pool is
initialized and after every swap. Consumers such as the take-profit ledger
subscribe through HookFlags and may call back into the pool manager
(swap / settle / take) from inside a notification.

Dispatch is synchronous and in registration order:
  - the first consumer answering allow=False stops dispatch and the pool
    reverts the operation
  - an exception raised by a consumer is logged and re-raised, which also
    reverts the operation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Flag, auto
from typing import Any, Dict, List, Protocol

logger = logging.getLogger(__name__)


class HookFlags(Flag):
    """Notifications a consumer subscribes to."""
    NONE = 0
    AFTER_INITIALIZE = auto()
    AFTER_SWAP = auto()
    ALL = AFTER_INITIALIZE | AFTER_SWAP


@dataclass
class HookContext:
    """
    What happened in the pool.

    For initialization tick_before == tick_after == the starting tick and the
    swap fields keep their defaults.
    """
    pool_id: str = ""
    pool_key: Any = None
    sender: str = ""
    zero_for_one: bool = True
    amount_in: Decimal = Decimal("0")
    amount_out: Decimal = Decimal("0")
    tick_before: int = 0
    tick_after: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HookResult:
    allow: bool = True
    reason: str = ""


class ExchangeHook(Protocol):

    @property
    def flags(self) -> HookFlags: ...

    def on_after_initialize(self, ctx: HookContext) -> HookResult: ...

    def on_after_swap(self, ctx: HookContext) -> HookResult: ...


class HookRegistry:
    """Ordered list of hook consumers for one pool manager."""

    def __init__(self) -> None:
        self._consumers: List[ExchangeHook] = []

    @property
    def hook_count(self) -> int:
        return len(self._consumers)

    def register(self, hook: ExchangeHook) -> None:
        self._consumers.append(hook)
        logger.info("Registered pool hook %s for %s", type(hook).__name__, hook.flags)

    def unregister(self, hook: ExchangeHook) -> None:
        before = len(self._consumers)
        self._consumers = [c for c in self._consumers if c is not hook]
        if len(self._consumers) < before:
            logger.info("Unregistered pool hook %s", type(hook).__name__)

    def run_after_initialize(self, ctx: HookContext) -> HookResult:
        return self._dispatch(HookFlags.AFTER_INITIALIZE, ctx)

    def run_after_swap(self, ctx: HookContext) -> HookResult:
        return self._dispatch(HookFlags.AFTER_SWAP, ctx)

    def _dispatch(self, event: HookFlags, ctx: HookContext) -> HookResult:
        callback_name = "on_" + event.name.lower()
        for consumer in list(self._consumers):
            if event not in consumer.flags:
                continue
            try:
                result = getattr(consumer, callback_name)(ctx)
            except Exception:
                logger.exception(
                    "%s.%s raised on pool %s", type(consumer).__name__, callback_name, ctx.pool_id[:16],
                )
                raise
            if not result.allow:
                logger.info("%s rejected %s: %s", type(consumer).__name__, event.name, result.reason)
                return result
        return HookResult()
