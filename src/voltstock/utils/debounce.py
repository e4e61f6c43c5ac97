"""Coalescing of rapid quantity adjustments.

Engineers tap +/- on a van stock row several times in a row. Instead of
writing one ledger row per tap, taps are accumulated per (item, location)
and written as a single net adjustment once the buttons go quiet. The timer
lives in the Qt widget; this buffer only holds the pending deltas.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Key = tuple[int, int]  # (item_id, location_id)


class AdjustmentBuffer:
    """Accumulate signed deltas per key and flush them through ``writer``.

    ``writer(item_id, location_id, delta)`` is called once per key with a
    non-zero net delta. Keys whose taps cancel out are dropped silently.
    """

    def __init__(self, writer: Callable[[int, int, int], object]):
        self._writer = writer
        self._pending: dict[Key, int] = {}

    def add(self, item_id: int, location_id: int, delta: int) -> int:
        """Add a delta and return the running net for that key."""
        key = (item_id, location_id)
        self._pending[key] = self._pending.get(key, 0) + delta
        return self._pending[key]

    def pending(self, item_id: int, location_id: int) -> int:
        return self._pending.get((item_id, location_id), 0)

    def has_pending(self) -> bool:
        return any(self._pending.values())

    def discard(self, item_id: int, location_id: int):
        self._pending.pop((item_id, location_id), None)

    def flush(self, item_id: int = None, location_id: int = None) -> list:
        """Write pending net deltas and return the writer's results.

        With no arguments every key is flushed. A key is removed from the
        buffer before its write, so a failing write does not get retried
        on the next flush; the exception propagates to the caller.
        """
        if item_id is not None:
            keys = [(item_id, location_id)]
        else:
            keys = list(self._pending)

        results = []
        for key in keys:
            delta = self._pending.pop(key, 0)
            if delta == 0:
                continue
            logger.debug(
                "Flushing adjustment item=%s location=%s delta=%+d",
                key[0], key[1], delta,
            )
            results.append(self._writer(key[0], key[1], delta))
        return results
