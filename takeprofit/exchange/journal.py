"""
State Journal  (all-or-nothing operation boundary)

Every participant exposes take_snapshot() / restore_snapshot(snapshot).
``atomic()`` snapshots all participants on entry; if the body raises, every
participant is restored and the exception propagates. Scopes nest: an inner
failure that an outer scope catches has already been rolled back.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol, Tuple

logger = logging.getLogger(__name__)


class Snapshottable(Protocol):
    def take_snapshot(self) -> Any: ...
    def restore_snapshot(self, snapshot: Any) -> None: ...


class Journal:
    """Snapshot / restore boundary shared by the ledger and its collaborators."""

    def __init__(self) -> None:
        self._participants: List[Snapshottable] = []
        self._depth: int = 0

    def register(self, participant: Snapshottable) -> None:
        if any(p is participant for p in self._participants):
            return
        self._participants.append(participant)

    @property
    def participant_count(self) -> int:
        return len(self._participants)

    @property
    def depth(self) -> int:
        return self._depth

    @contextmanager
    def atomic(self) -> Iterator[None]:
        snapshots: List[Tuple[Snapshottable, Any]] = [
            (p, p.take_snapshot()) for p in self._participants
        ]
        self._depth += 1
        try:
            yield
        except Exception as e:
            for participant, snapshot in reversed(snapshots):
                participant.restore_snapshot(snapshot)
            logger.warning(
                "Operation rolled back at depth %d: %s: %s",
                self._depth, type(e).__name__, e,
            )
            raise
        finally:
            self._depth -= 1
