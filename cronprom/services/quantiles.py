from __future__ import annotations

"""Streaming quantile estimation for summaries.

TargetedQuantileStream implements the CKMS biased-quantile algorithm with one
error target per objective ("Effective Computation of Biased Quantiles over
Data Streams", Cormode, Korn, Muthukrishnan, Srivastava). Memory stays bounded
by the error targets instead of growing with the number of observations.

SlidingQuantileWindow keeps several streams staggered in time so that queries
only reflect roughly the last ``max_age`` seconds of observations.

Neither class is thread-safe; callers hold the series lock.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, List, Mapping, Tuple


DEFAULT_MAX_AGE_SECONDS = 600.0
DEFAULT_AGE_BUCKETS = 5
BUFFER_SIZE = 500


@dataclass
class _Sample:
    value: float
    width: float
    delta: float


class TargetedQuantileStream:
    def __init__(self, objectives: Mapping[float, float]) -> None:
        self._targets: Tuple[Tuple[float, float], ...] = tuple(sorted(objectives.items()))
        self._samples: List[_Sample] = []
        self._buffer: List[float] = []
        self._n = 0.0

    @property
    def count(self) -> int:
        return int(self._n) + len(self._buffer)

    def insert(self, value: float) -> None:
        self._buffer.append(value)
        if len(self._buffer) >= BUFFER_SIZE:
            self._flush()

    def query(self, q: float) -> float:
        """Return the estimated ``q`` quantile, or NaN when the stream is empty."""

        if not self._samples:
            # Not enough data for a merge yet: answer exactly from the buffer.
            if not self._buffer:
                return math.nan
            self._buffer.sort()
            index = max(math.ceil(len(self._buffer) * q) - 1, 0)
            return self._buffer[index]

        self._flush()
        t = math.ceil(q * self._n)
        t += math.ceil(self._invariant(t) / 2)
        prev = self._samples[0]
        rank = 0.0
        for cur in self._samples[1:]:
            rank += prev.width
            if rank + cur.width + cur.delta > t:
                return prev.value
            prev = cur
        return prev.value

    def reset(self) -> None:
        self._samples.clear()
        self._buffer.clear()
        self._n = 0.0

    def _invariant(self, rank: float) -> float:
        allowed = math.inf
        for quantile, epsilon in self._targets:
            if quantile * self._n <= rank:
                f = (2 * epsilon * rank) / quantile
            else:
                f = (2 * epsilon * (self._n - rank)) / (1 - quantile)
            allowed = min(allowed, f)
        return allowed

    def _flush(self) -> None:
        if not self._buffer:
            return
        self._buffer.sort()
        self._merge(self._buffer)
        self._buffer = []

    def _merge(self, values: List[float]) -> None:
        rank = 0.0
        i = 0
        for value in values:
            inserted = False
            while i < len(self._samples):
                cur = self._samples[i]
                if cur.value > value:
                    delta = max(math.floor(self._invariant(rank)) - 1, 0)
                    self._samples.insert(i, _Sample(value, 1.0, delta))
                    i += 1
                    inserted = True
                    break
                rank += cur.width
                i += 1
            if not inserted:
                self._samples.append(_Sample(value, 1.0, 0.0))
                i += 1
            self._n += 1
            rank += 1
        self._compress()

    def _compress(self) -> None:
        if len(self._samples) < 2:
            return
        x = self._samples[-1]
        xi = len(self._samples) - 1
        rank = self._n - 1 - x.width
        for i in range(len(self._samples) - 2, -1, -1):
            cur = self._samples[i]
            if cur.width + x.width + x.delta <= self._invariant(rank):
                x.width += cur.width
                del self._samples[i]
                xi -= 1
            else:
                x = cur
                xi = i
            rank -= cur.width


class SlidingQuantileWindow:
    """Ring of ``age_buckets`` streams; the oldest one answers queries.

    Every ``max_age / age_buckets`` seconds the oldest stream is cleared and
    becomes the newest, so an observation stops influencing quantiles between
    ``max_age * (1 - 1/age_buckets)`` and ``max_age`` seconds after it was made.
    """

    def __init__(
        self,
        objectives: Mapping[float, float],
        *,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        age_buckets: int = DEFAULT_AGE_BUCKETS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_age <= 0 or age_buckets < 1:
            raise ValueError("max_age must be positive and age_buckets at least 1")
        self._streams = [TargetedQuantileStream(objectives) for _ in range(age_buckets)]
        self._head = 0
        self._interval = max_age / age_buckets
        self._clock = clock
        self._next_rotation = clock() + self._interval

    def insert(self, value: float) -> None:
        self._rotate()
        for stream in self._streams:
            stream.insert(value)

    def query(self, q: float) -> float:
        self._rotate()
        return self._streams[self._head].query(q)

    def _rotate(self) -> None:
        now = self._clock()
        if now < self._next_rotation:
            return
        behind = int((now - self._next_rotation) // self._interval) + 1
        if behind >= len(self._streams):
            for stream in self._streams:
                stream.reset()
            self._head = (self._head + behind) % len(self._streams)
        else:
            for _ in range(behind):
                self._streams[self._head].reset()
                self._head = (self._head + 1) % len(self._streams)
        self._next_rotation += behind * self._interval
