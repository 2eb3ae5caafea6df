"""Google Cloud Monitoring reporter.

Provides periodic export of a metrics registry:
- Per-kind value extraction (counters, gauges, meters)
- Time series building and metric type naming
- Submission loop with a consecutive-error circuit breaker
"""

from src.core.gcm.backend import (
    GoogleCloudMonitoringBackend,
    MonitoringBackend,
    project_name,
    to_time_series,
)
from src.core.gcm.descriptors import DescriptorCache
from src.core.gcm.extract import ExtractedValue, extract_values
from src.core.gcm.naming import DEFAULT_METRIC_PREFIX, dot_slashes, namespaced_name
from src.core.gcm.reporter import Reporter, monitor
from src.core.gcm.timeseries import (
    MonitoredResource,
    TimeInterval,
    TimeSeriesConfig,
    TimeSeriesPoint,
    build_point,
)

__all__ = [
    # Naming
    "DEFAULT_METRIC_PREFIX",
    "dot_slashes",
    "namespaced_name",
    # Extraction and building
    "ExtractedValue",
    "extract_values",
    "MonitoredResource",
    "TimeInterval",
    "TimeSeriesConfig",
    "TimeSeriesPoint",
    "build_point",
    # Backend
    "MonitoringBackend",
    "GoogleCloudMonitoringBackend",
    "project_name",
    "to_time_series",
    "DescriptorCache",
    # Reporter
    "Reporter",
    "monitor",
]
