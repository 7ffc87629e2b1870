"""Strictly increasing timestamps for edited review comments."""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Callable, Hashable, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_KEYS = 10_000


class MonotonicClock:
    """Hands out timestamps that strictly increase per key.

    GitHub reports ``updated_at`` with one-second resolution, so an edit that
    lands in the same second as the create comes back with
    ``updated_at == created_at``. ``stamp`` keeps the server value whenever it
    already moves forward and otherwise advances it by ``resolution`` past the
    floor, so callers never need to sleep between writes.

    At most ``max_keys`` floors are remembered; the least recently stamped
    key is dropped first.
    """

    def __init__(
        self,
        now: Optional[Callable[[], datetime]] = None,
        resolution: timedelta = timedelta(microseconds=1),
        max_keys: int = DEFAULT_MAX_KEYS,
    ):
        if max_keys < 1:
            raise ValueError(f"max_keys must be positive, got {max_keys}")
        self._now = now or (lambda: datetime.now(timezone.utc))
        self.resolution = resolution
        self.max_keys = max_keys
        self._last: "OrderedDict[Hashable, datetime]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._last)

    def stamp(
        self,
        key: Hashable,
        observed: Optional[datetime] = None,
        after: Optional[datetime] = None,
    ) -> datetime:
        """Return a timestamp later than ``after`` and every earlier stamp for ``key``."""
        candidate = observed or self._now()
        floors = [t for t in (after, self._last.get(key)) if t is not None]
        if floors:
            floor = max(floors)
            if candidate <= floor:
                logger.debug(f"Advancing stamp for {key}: {candidate.isoformat()} <= {floor.isoformat()}")
                candidate = floor + self.resolution
        self._last[key] = candidate
        self._last.move_to_end(key)
        while len(self._last) > self.max_keys:
            evicted, _ = self._last.popitem(last=False)
            logger.debug(f"Dropped stamp floor for {evicted}")
        return candidate

    def floor(self, key: Hashable) -> Optional[datetime]:
        """Latest stamp handed out for ``key``, if it is still remembered."""
        return self._last.get(key)

    def observe(self, key: Hashable, observed: datetime) -> datetime:
        """Lift a value read back from the server to the latest stamp for ``key``."""
        latest = self.floor(key)
        if latest is not None and observed < latest:
            return latest
        return observed

    def forget(self, key: Hashable) -> None:
        self._last.pop(key, None)
