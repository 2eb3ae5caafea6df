"""Metrics Registry Core.

Provides the in-process instruments read by the reporter:
- Counter, Gauge (int), GaugeFloat64
- Meter with mean and 1/5/15 minute exponentially weighted rates
- Histogram and Timer
"""

from __future__ import annotations

import math
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, Optional

Clock = Callable[[], float]

# Meter rates are ticked every 5 seconds, like the Unix load average
TICK_INTERVAL = 5.0


class MetricKind(str, Enum):
    """Kinds of instruments."""
    COUNTER = "counter"
    GAUGE = "gauge"
    GAUGE_FLOAT64 = "gauge_float64"
    METER = "meter"
    HISTOGRAM = "histogram"
    TIMER = "timer"


class Metric(ABC):
    """Abstract base class for instruments."""

    def __init__(self, description: str = ""):
        self._description = description
        self._lock = threading.Lock()

    @property
    def description(self) -> str:
        return self._description

    @property
    @abstractmethod
    def metric_kind(self) -> MetricKind:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.metric_kind.value}>"


class Counter(Metric):
    """Integer counter."""

    def __init__(self, description: str = ""):
        super().__init__(description)
        self._count = 0

    @property
    def metric_kind(self) -> MetricKind:
        return MetricKind.COUNTER

    def inc(self, value: int = 1) -> None:
        with self._lock:
            self._count += int(value)

    def dec(self, value: int = 1) -> None:
        with self._lock:
            self._count -= int(value)

    def clear(self) -> None:
        with self._lock:
            self._count = 0

    def count(self) -> int:
        with self._lock:
            return self._count


class Gauge(Metric):
    """Integer gauge holding the last value set."""

    def __init__(self, description: str = ""):
        super().__init__(description)
        self._value = 0

    @property
    def metric_kind(self) -> MetricKind:
        return MetricKind.GAUGE

    def update(self, value: int) -> None:
        with self._lock:
            self._value = int(value)

    def value(self) -> int:
        with self._lock:
            return self._value


class GaugeFloat64(Metric):
    """Floating point gauge holding the last value set."""

    def __init__(self, description: str = ""):
        super().__init__(description)
        self._value = 0.0

    @property
    def metric_kind(self) -> MetricKind:
        return MetricKind.GAUGE_FLOAT64

    def update(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def value(self) -> float:
        with self._lock:
            return self._value


class EWMA:
    """Exponentially weighted moving average of a per-second rate.

    Not thread safe on its own; callers hold the owning meter's lock.
    """

    def __init__(self, alpha: float):
        self.alpha = alpha
        self._rate = 0.0
        self._uncounted = 0
        self._initialized = False

    @classmethod
    def for_minutes(cls, minutes: float) -> "EWMA":
        return cls(1 - math.exp(-TICK_INTERVAL / 60.0 / minutes))

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self, ticks: int = 1) -> None:
        """Advance by ``ticks`` intervals; only the first sees uncounted events."""
        if ticks <= 0:
            return
        instant_rate = self._uncounted / TICK_INTERVAL
        self._uncounted = 0
        if self._initialized:
            self._rate += self.alpha * (instant_rate - self._rate)
        else:
            self._rate = instant_rate
            self._initialized = True
        if ticks > 1:
            self._rate *= (1 - self.alpha) ** (ticks - 1)

    def rate(self) -> float:
        return self._rate


@dataclass(frozen=True)
class MeterSnapshot:
    """Read-only copy of a meter taken under its lock."""
    count: int
    rate_mean: float
    rate1: float
    rate5: float
    rate15: float


class Meter(Metric):
    """Counts events and tracks their rate over several windows."""

    def __init__(self, description: str = "", clock: Optional[Clock] = None):
        super().__init__(description)
        self._clock = clock or time.monotonic
        self._count = 0
        self._start = self._clock()
        self._last_tick = self._start
        self._a1 = EWMA.for_minutes(1)
        self._a5 = EWMA.for_minutes(5)
        self._a15 = EWMA.for_minutes(15)

    @property
    def metric_kind(self) -> MetricKind:
        return MetricKind.METER

    def _tick_if_necessary(self) -> None:
        elapsed = self._clock() - self._last_tick
        if elapsed < TICK_INTERVAL:
            return
        ticks = int(elapsed // TICK_INTERVAL)
        self._last_tick += ticks * TICK_INTERVAL
        for ewma in (self._a1, self._a5, self._a15):
            ewma.tick(ticks)

    def mark(self, n: int = 1) -> None:
        """Record the occurrence of ``n`` events."""
        with self._lock:
            self._tick_if_necessary()
            self._count += n
            for ewma in (self._a1, self._a5, self._a15):
                ewma.update(n)

    def snapshot(self) -> MeterSnapshot:
        with self._lock:
            self._tick_if_necessary()
            elapsed = self._clock() - self._start
            rate_mean = self._count / elapsed if elapsed > 0 else 0.0
            return MeterSnapshot(
                count=self._count,
                rate_mean=rate_mean,
                rate1=self._a1.rate(),
                rate5=self._a5.rate(),
                rate15=self._a15.rate(),
            )

    def count(self) -> int:
        with self._lock:
            return self._count


class Histogram(Metric):
    """Histogram over a bounded sample of the most recent values.

    The statistics are for application code; the gcm reporter only reads
    ``count()``.
    """

    DEFAULT_SAMPLE_SIZE = 1028

    def __init__(self, description: str = "", sample_size: int = DEFAULT_SAMPLE_SIZE):
        super().__init__(description)
        self._samples: Deque[float] = deque(maxlen=sample_size)
        self._count = 0
        self._sum = 0.0
        self._min: Optional[float] = None
        self._max: Optional[float] = None

    @property
    def metric_kind(self) -> MetricKind:
        return MetricKind.HISTOGRAM

    def update(self, value: float) -> None:
        with self._lock:
            self._samples.append(value)
            self._count += 1
            self._sum += value
            self._min = value if self._min is None else min(self._min, value)
            self._max = value if self._max is None else max(self._max, value)

    def count(self) -> int:
        with self._lock:
            return self._count

    def sum(self) -> float:
        with self._lock:
            return self._sum

    def min(self) -> float:
        with self._lock:
            return self._min if self._min is not None else 0.0

    def max(self) -> float:
        with self._lock:
            return self._max if self._max is not None else 0.0

    def mean(self) -> float:
        with self._lock:
            return self._sum / self._count if self._count else 0.0

    def percentile(self, q: float) -> float:
        """Value at quantile ``q`` (0..1) of the retained sample."""
        with self._lock:
            samples = sorted(self._samples)
        if not samples:
            return 0.0
        idx = min(int(len(samples) * q), len(samples) - 1)
        return samples[idx]


class Timer(Metric):
    """Times events: a histogram of durations plus a meter of their rate."""

    def __init__(self, description: str = "", clock: Optional[Clock] = None):
        super().__init__(description)
        self._histogram = Histogram()
        self._meter = Meter(clock=clock)

    @property
    def metric_kind(self) -> MetricKind:
        return MetricKind.TIMER

    @property
    def histogram(self) -> Histogram:
        return self._histogram

    @property
    def meter(self) -> Meter:
        return self._meter

    def update(self, seconds: float) -> None:
        self._histogram.update(seconds)
        self._meter.mark()

    def time(self) -> "TimerContext":
        """Return a context manager timing its block."""
        return TimerContext(self)

    def count(self) -> int:
        return self._histogram.count()


class TimerContext:
    """Timer context manager."""

    def __init__(self, timer: Timer):
        self._timer = timer
        self._start: Optional[float] = None

    def __enter__(self) -> "TimerContext":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._start is not None:
            self._timer.update(time.perf_counter() - self._start)
