"""Time series data model and builder.

Shapes extracted values into fully addressed points: metric type, labels,
monitored resource and time interval. Pure data shaping, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from src.core.gcm.naming import DEFAULT_METRIC_PREFIX, namespaced_name

Number = Union[int, float]


def _frozen(mapping: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class MonitoredResource:
    """What entity the metric is about, e.g. ``global`` or ``gce_instance``."""
    type: str
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _frozen(self.labels))

    def __hash__(self) -> int:
        return hash((self.type, tuple(sorted(self.labels.items()))))

    @classmethod
    def global_resource(cls, project_id: str) -> "MonitoredResource":
        return cls("global", {"project_id": project_id})

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "labels": dict(self.labels)}


@dataclass(frozen=True)
class TimeInterval:
    end_time: datetime
    start_time: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
        }


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One typed sample addressed to a metric type, resource and label set."""
    metric_type: str
    labels: Mapping[str, str]
    resource: MonitoredResource
    value: Number
    is_float: bool
    interval: TimeInterval

    @property
    def value_type(self) -> str:
        return "DOUBLE" if self.is_float else "INT64"

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly rendering, shaped like the REST body of timeSeries.create."""
        if self.is_float:
            value: Dict[str, Any] = {"doubleValue": self.value}
        else:
            # int64 values travel as strings in the JSON mapping
            value = {"int64Value": str(self.value)}
        return {
            "metric": {"type": self.metric_type, "labels": dict(self.labels)},
            "resource": self.resource.to_dict(),
            "points": [{"interval": self.interval.to_dict(), "value": value}],
        }


@dataclass(frozen=True)
class TimeSeriesConfig:
    """Per-reporter addressing shared by every point."""
    project: str
    labels: Mapping[str, str] = field(default_factory=dict)
    resource: Optional[MonitoredResource] = None
    metric_prefix: str = DEFAULT_METRIC_PREFIX

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _frozen(self.labels))

    @property
    def effective_resource(self) -> MonitoredResource:
        return self.resource or MonitoredResource.global_resource(self.project)


def build_point(
    name: str,
    value: Number,
    is_float: bool,
    timestamp: datetime,
    config: TimeSeriesConfig,
) -> TimeSeriesPoint:
    """Build the point for ``name`` (registry name plus suffix) at ``timestamp``.

    Every point is an instantaneous sample: start and end are both the tick time.
    """
    return TimeSeriesPoint(
        metric_type=namespaced_name(name, config.metric_prefix),
        labels=config.labels,
        resource=config.effective_resource,
        value=value,
        is_float=is_float,
        interval=TimeInterval(end_time=timestamp, start_time=timestamp),
    )
