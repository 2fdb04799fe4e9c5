"""Append-only, time-ordered storage of rate observations."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence

from .errors import EmptySeriesError, OutOfOrderError
from .models.rates import DAY_MS, RateObservation

logger = logging.getLogger(__name__)


class SeriesWindow(Sequence):
    """Read-only view over the tail of a series.

    The view keeps a reference to the backing list and a start offset, so
    iterating it twice walks the same observations and never copies the store.
    """

    def __init__(self, items: list[RateObservation], start: int, stop: int) -> None:
        self._items = items
        self._start = start
        self._stop = stop

    def __len__(self) -> int:
        return max(0, self._stop - self._start)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError("window index out of range")
        return self._items[self._start + index]

    def __iter__(self) -> Iterator[RateObservation]:
        for i in range(self._start, self._stop):
            yield self._items[i]

    def rates(self) -> list[float]:
        return [obs.rate for obs in self]

    def __repr__(self) -> str:
        return f"SeriesWindow(len={len(self)})"


class RateSeries:
    def __init__(self, observations: Iterable[RateObservation] | None = None) -> None:
        self._items: list[RateObservation] = []
        for obs in observations or ():
            self.append(obs)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[RateObservation]:
        return iter(list(self._items))

    def append(self, observation: RateObservation) -> bool:
        """Append an observation.

        Returns True when the observation overwrote the last entry (same
        timestamp), False otherwise. A synthetic observation never replaces
        a live entry with the same timestamp; it is dropped instead.

        Raises:
            OutOfOrderError: if the timestamp is older than the last entry.
        """
        if self._items:
            last = self._items[-1]
            if observation.timestamp < last.timestamp:
                raise OutOfOrderError(observation.timestamp, last.timestamp)
            if observation.timestamp == last.timestamp:
                if observation.is_synthetic and not last.is_synthetic:
                    logger.debug("Kept live entry over synthetic at %d", last.timestamp)
                    return False
                self._items[-1] = observation
                return True
        self._items.append(observation)
        return False

    def extend(self, observations: Iterable[RateObservation]) -> int:
        """Append observations newer than the tail, in timestamp order.

        Observations at or before the last stored timestamp are skipped, so a
        history merge never overwrites existing entries. Returns the number
        of skipped observations.
        """
        skipped = 0
        for obs in sorted(observations, key=lambda o: o.timestamp):
            if self._items and obs.timestamp <= self._items[-1].timestamp:
                skipped += 1
                continue
            self.append(obs)
        if skipped:
            logger.debug("Skipped %d out-of-order observations", skipped)
        return skipped

    def replace_synthetic(self, observations: Iterable[RateObservation]) -> int:
        """Swap synthetic entries for live ones from a recovered history.

        Synthetic entries at or after the first live timestamp in
        ``observations`` are dropped. Stored live entries win over incoming
        ones on the same timestamp. Returns the number of live observations
        added.
        """
        live = sorted(
            (obs for obs in observations if not obs.is_synthetic),
            key=lambda o: o.timestamp,
        )
        if not live:
            return 0
        cutoff = live[0].timestamp
        merged: dict[int, RateObservation] = {}
        for obs in self._items:
            if obs.is_synthetic and obs.timestamp >= cutoff:
                continue
            merged[obs.timestamp] = obs
        added = 0
        for obs in live:
            current = merged.get(obs.timestamp)
            if current is not None and not current.is_synthetic:
                continue
            merged[obs.timestamp] = obs
            added += 1
        self._items[:] = [merged[ts] for ts in sorted(merged)]
        logger.info("Replaced synthetic history with %d live observation(s)", added)
        return added

    def latest(self) -> RateObservation:
        if not self._items:
            raise EmptySeriesError("rate series is empty")
        return self._items[-1]

    def previous(self) -> RateObservation | None:
        if len(self._items) < 2:
            return None
        return self._items[-2]

    def slice(self, window_days: int) -> SeriesWindow:
        """Most recent observations covering ``window_days`` (boundary inclusive)."""
        if not self._items:
            return SeriesWindow(self._items, 0, 0)
        cutoff = self._items[-1].timestamp - int(window_days) * DAY_MS
        start = len(self._items)
        while start > 0 and self._items[start - 1].timestamp >= cutoff:
            start -= 1
        return SeriesWindow(self._items, start, len(self._items))

    def window(self) -> SeriesWindow:
        return SeriesWindow(self._items, 0, len(self._items))

    @property
    def has_synthetic(self) -> bool:
        return any(obs.is_synthetic for obs in self._items)

    def __repr__(self) -> str:
        return f"RateSeries(len={len(self._items)})"
