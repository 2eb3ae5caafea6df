"""Prometheus metrics about the reporter itself.

All metric objects are defined at import time on the default
prometheus_client registry.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

gcm_reporter_ticks_total = Counter(
    "gcm_reporter_ticks_total",
    "Reporting ticks by outcome",
    ["result"],  # success|failure|empty|build_error
)
gcm_reporter_points_written_total = Counter(
    "gcm_reporter_points_written_total",
    "Time series points accepted by Cloud Monitoring",
)
gcm_reporter_descriptors_created_total = Counter(
    "gcm_reporter_descriptors_created_total",
    "Metric descriptor declarations by outcome",
    ["result"],  # success|failure
)
gcm_reporter_consecutive_errors = Gauge(
    "gcm_reporter_consecutive_errors",
    "Consecutive failed writes of the most recently ticked reporter",
)
gcm_reporter_write_duration_seconds = Histogram(
    "gcm_reporter_write_duration_seconds",
    "Duration of create_time_series calls",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
