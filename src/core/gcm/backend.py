"""Monitoring backends.

``MonitoringBackend`` is the write surface the reporter needs;
``GoogleCloudMonitoringBackend`` implements it on top of the Cloud Monitoring
v3 client library.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from google.api import label_pb2 as ga_label
from google.api import metric_pb2 as ga_metric
from google.api_core.exceptions import GoogleAPICallError, RetryError
from google.auth.exceptions import GoogleAuthError
from google.cloud import monitoring_v3

from src.core.errors import DescriptorError, SubmissionError
from src.core.gcm.timeseries import TimeInterval, TimeSeriesPoint

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (GoogleAPICallError, RetryError, GoogleAuthError, ValueError, TypeError)


class MonitoringBackend(ABC):
    """Write surface of a monitoring backend."""

    @abstractmethod
    def write_time_series(self, project: str, points: Sequence[TimeSeriesPoint]) -> None:
        """Write all points in one request; raise SubmissionError on failure."""

    @abstractmethod
    def create_metric_descriptor(
        self,
        project: str,
        metric_type: str,
        value_type: str,
        description: str = "",
        label_keys: Sequence[str] = (),
    ) -> None:
        """Declare a gauge metric with string labels ``label_keys``.

        Raise DescriptorError on failure.
        """


def project_name(project: str) -> str:
    """Resource name of a project, e.g. ``projects/my-project``."""
    if project.startswith("projects/"):
        return project
    return f"projects/{project}"


def _timestamp(dt: datetime) -> Dict[str, int]:
    return {
        "seconds": int(dt.replace(microsecond=0).timestamp()),
        "nanos": dt.microsecond * 1000,
    }


def _interval(interval: TimeInterval) -> monitoring_v3.TimeInterval:
    return monitoring_v3.TimeInterval(
        {
            "start_time": _timestamp(interval.start_time),
            "end_time": _timestamp(interval.end_time),
        }
    )


def to_time_series(point: TimeSeriesPoint) -> monitoring_v3.TimeSeries:
    """Convert a point to its Cloud Monitoring message."""
    series = monitoring_v3.TimeSeries()
    series.metric.type = point.metric_type
    for key, value in point.labels.items():
        series.metric.labels[key] = value
    series.resource.type = point.resource.type
    for key, value in point.resource.labels.items():
        series.resource.labels[key] = value

    value_field = "double_value" if point.is_float else "int64_value"
    series.points = [
        monitoring_v3.Point(
            {
                "interval": _interval(point.interval),
                "value": {value_field: point.value},
            }
        )
    ]
    return series


class GoogleCloudMonitoringBackend(MonitoringBackend):
    """Cloud Monitoring v3 backend.

    The client is created lazily with application default credentials unless
    one is given. ``timeout`` is the per-call deadline in seconds.
    """

    def __init__(
        self,
        client: Optional[monitoring_v3.MetricServiceClient] = None,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self._timeout = timeout
        self._lock = threading.Lock()

    @property
    def client(self) -> monitoring_v3.MetricServiceClient:
        with self._lock:
            if self._client is None:
                self._client = monitoring_v3.MetricServiceClient()
                logger.info("Cloud Monitoring client initialized")
            return self._client

    def _call_kwargs(self) -> Dict[str, Any]:
        if self._timeout is None:
            return {}
        return {"timeout": self._timeout}

    def write_time_series(self, project: str, points: Sequence[TimeSeriesPoint]) -> None:
        try:
            series = [to_time_series(p) for p in points]
            self.client.create_time_series(
                name=project_name(project),
                time_series=series,
                **self._call_kwargs(),
            )
        except _BACKEND_ERRORS as e:
            raise SubmissionError(
                f"failed to write {len(points)} time series to {project}: {e}", cause=e
            ) from e

    def create_metric_descriptor(
        self,
        project: str,
        metric_type: str,
        value_type: str,
        description: str = "",
        label_keys: Sequence[str] = (),
    ) -> None:
        try:
            descriptor = ga_metric.MetricDescriptor()
            descriptor.type = metric_type
            descriptor.metric_kind = ga_metric.MetricDescriptor.MetricKind.GAUGE
            descriptor.value_type = ga_metric.MetricDescriptor.ValueType.Value(value_type)
            descriptor.description = description
            for key in label_keys:
                descriptor.labels.append(
                    ga_label.LabelDescriptor(
                        key=key, value_type=ga_label.LabelDescriptor.ValueType.STRING
                    )
                )
            self.client.create_metric_descriptor(
                name=project_name(project),
                metric_descriptor=descriptor,
                **self._call_kwargs(),
            )
        except _BACKEND_ERRORS as e:
            raise DescriptorError(f"failed to create descriptor {metric_type}: {e}", cause=e) from e
