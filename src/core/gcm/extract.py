"""Per-kind value extraction.

Turns one instrument into the numeric values exported for the current tick.
Zero values are suppressed so idle instruments neither produce points nor
create metric descriptors on the backend.
"""

from __future__ import annotations

from typing import Any, Iterator, NamedTuple, Union

from src.core.gcm import diagnostics
from src.core.metrics_registry.core import MetricKind

Number = Union[int, float]


class ExtractedValue(NamedTuple):
    suffix: str
    value: Number
    is_float: bool


# (suffix, MeterSnapshot attribute, is_float)
METER_FIELDS = (
    (".count", "count", False),
    (".mean", "rate_mean", True),
    (".1min", "rate1", True),
    (".5min", "rate5", True),
    (".15min", "rate15", True),
)


def extract_values(name: str, metric: Any) -> Iterator[ExtractedValue]:
    """Yield the (suffix, value, is_float) triples of ``metric``.

    ``name`` is only used to describe instruments of an unknown kind.
    """
    kind = getattr(metric, "metric_kind", None)

    if kind == MetricKind.COUNTER:
        count = metric.count()
        if count != 0:
            yield ExtractedValue("", int(count), False)

    elif kind == MetricKind.GAUGE:
        value = metric.value()
        if value != 0:
            yield ExtractedValue("", int(value), False)

    elif kind == MetricKind.GAUGE_FLOAT64:
        value = metric.value()
        if value != 0:
            yield ExtractedValue("", float(value), True)

    elif kind == MetricKind.METER:
        snapshot = metric.snapshot()
        for suffix, attr, is_float in METER_FIELDS:
            value = getattr(snapshot, attr)
            if value != 0:
                yield ExtractedValue(suffix, float(value) if is_float else int(value), is_float)

    elif kind == MetricKind.HISTOGRAM:
        if metric.count() > 0:
            diagnostics.warn_histograms_unsupported()

    elif kind == MetricKind.TIMER:
        if metric.count() > 0:
            diagnostics.warn_timers_unsupported()

    else:
        diagnostics.log_unknown_metric(name, metric)
