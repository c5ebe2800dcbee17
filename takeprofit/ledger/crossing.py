"""
Crossing Detector

Maps the tick observed after a trade onto the order keys that became
eligible to fill.

``single`` mode checks one boundary, ``tick_lower(tick_after)``, in both
directions. A trade that moves the price across several spacing units
only reports the boundary it ends in; orders parked at the skipped
boundaries stay pending until a later trade ends at them.

``range`` mode reports every spacing-aligned tick between the pre-trade and
post-trade boundaries (both inclusive). When candidate ticks are supplied only
those inside the span are reported, ordered in the direction of travel.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from ..constants import CROSSING_MODE_SINGLE, CROSSING_MODES
from ..exceptions import ConfigurationError
from .orders import OrderKey


def tick_lower(tick: int, tick_spacing: int) -> int:
    """Spacing-aligned boundary at or below *tick* (floor, also for negatives)."""
    return (tick // tick_spacing) * tick_spacing


class CrossingDetector:

    def __init__(self, mode: str = CROSSING_MODE_SINGLE):
        if mode not in CROSSING_MODES:
            raise ConfigurationError(f"Unknown crossing mode {mode!r}")
        self.mode = mode

    def crossable_ticks(
        self,
        tick_spacing: int,
        tick_after: int,
        tick_before: Optional[int] = None,
        candidates: Optional[Iterable[int]] = None,
    ) -> List[int]:
        after = tick_lower(tick_after, tick_spacing)
        if self.mode == CROSSING_MODE_SINGLE or tick_before is None:
            return [after]

        before = tick_lower(tick_before, tick_spacing)
        lo, hi = min(before, after), max(before, after)
        if candidates is None:
            ticks = list(range(lo, hi + tick_spacing, tick_spacing))
        else:
            ticks = sorted(t for t in set(candidates) if lo <= t <= hi and t % tick_spacing == 0)
        # Travel order: upward moves fill low → high, downward moves high → low
        if after < before:
            ticks.reverse()
        return ticks

    def crossable_keys(
        self,
        pool_key: Any,
        tick_after: int,
        tick_before: Optional[int] = None,
        candidates: Optional[Iterable[int]] = None,
    ) -> List[OrderKey]:
        """Both directions' keys at every crossable tick."""
        keys = []
        for tick in self.crossable_ticks(pool_key.tick_spacing, tick_after, tick_before, candidates):
            keys.append(OrderKey(pool_key.id, tick, True))
            keys.append(OrderKey(pool_key.id, tick, False))
        return keys
