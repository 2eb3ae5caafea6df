"""Metrics Registry Module.

Provides the in-process instruments drained by the reporter:
- Counter, Gauge, GaugeFloat64
- Meter, Histogram, Timer
- Registry management
"""

from src.core.metrics_registry.core import (
    EWMA,
    Counter,
    Gauge,
    GaugeFloat64,
    Histogram,
    Meter,
    MeterSnapshot,
    Metric,
    MetricKind,
    Timer,
    TimerContext,
)
from src.core.metrics_registry.registry import (
    DuplicateMetricError,
    MetricsRegistry,
    counter,
    gauge,
    gauge_float64,
    get_default_registry,
    histogram,
    meter,
    timer,
)

__all__ = [
    # Core
    "MetricKind",
    "Metric",
    "Counter",
    "Gauge",
    "GaugeFloat64",
    "EWMA",
    "Meter",
    "MeterSnapshot",
    "Histogram",
    "Timer",
    "TimerContext",
    # Registry
    "DuplicateMetricError",
    "MetricsRegistry",
    "get_default_registry",
    "counter",
    "gauge",
    "gauge_float64",
    "meter",
    "histogram",
    "timer",
]
