"""Metrics Registry.

Provides named instrument registration:
- Get-or-create helpers per instrument kind
- Copy-on-read enumeration for reporters
- Process default registry
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from src.core.metrics_registry.core import (
    Counter,
    Gauge,
    GaugeFloat64,
    Histogram,
    Meter,
    Timer,
)

logger = logging.getLogger(__name__)

M = TypeVar("M")


class DuplicateMetricError(ValueError):
    """Raised when a name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Metric {name} is already registered")


class MetricsRegistry:
    """Registry mapping dot-separated names to instruments."""

    def __init__(self):
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def register(self, name: str, metric: Any) -> None:
        """Register ``metric`` under ``name``."""
        with self._lock:
            if name in self._metrics:
                raise DuplicateMetricError(name)
            self._metrics[name] = metric

    def get_or_register(self, name: str, factory: Callable[[], M]) -> M:
        """Return the metric under ``name``, creating it with ``factory``."""
        with self._lock:
            if name in self._metrics:
                return self._metrics[name]
            metric = factory()
            self._metrics[name] = metric
            return metric

    def _typed(self, name: str, cls: Type[M]) -> M:
        metric = self.get_or_register(name, cls)
        if not isinstance(metric, cls):
            raise ValueError(f"Metric {name} is not a {cls.__name__}")
        return metric

    def counter(self, name: str) -> Counter:
        """Get or create a counter."""
        return self._typed(name, Counter)

    def gauge(self, name: str) -> Gauge:
        """Get or create an integer gauge."""
        return self._typed(name, Gauge)

    def gauge_float64(self, name: str) -> GaugeFloat64:
        """Get or create a floating point gauge."""
        return self._typed(name, GaugeFloat64)

    def meter(self, name: str) -> Meter:
        """Get or create a meter."""
        return self._typed(name, Meter)

    def histogram(self, name: str) -> Histogram:
        """Get or create a histogram."""
        return self._typed(name, Histogram)

    def timer(self, name: str) -> Timer:
        """Get or create a timer."""
        return self._typed(name, Timer)

    def get(self, name: str) -> Optional[Any]:
        with self._lock:
            return self._metrics.get(name)

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._metrics.pop(name, None) is not None

    def items(self) -> List[Tuple[str, Any]]:
        """Copy of all (name, metric) pairs, safe to iterate while others register."""
        with self._lock:
            return list(self._metrics.items())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._metrics.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)


# Default registry
_default_registry = MetricsRegistry()


def get_default_registry() -> MetricsRegistry:
    """Get default metrics registry."""
    return _default_registry


def counter(name: str) -> Counter:
    """Create counter in default registry."""
    return _default_registry.counter(name)


def gauge(name: str) -> Gauge:
    """Create gauge in default registry."""
    return _default_registry.gauge(name)


def gauge_float64(name: str) -> GaugeFloat64:
    """Create floating point gauge in default registry."""
    return _default_registry.gauge_float64(name)


def meter(name: str) -> Meter:
    """Create meter in default registry."""
    return _default_registry.meter(name)


def histogram(name: str) -> Histogram:
    """Create histogram in default registry."""
    return _default_registry.histogram(name)


def timer(name: str) -> Timer:
    """Create timer in default registry."""
    return _default_registry.timer(name)
