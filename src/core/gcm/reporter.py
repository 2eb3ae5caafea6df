"""Cloud Monitoring reporter.

Drains a ``MetricsRegistry`` on a fixed interval and writes every
measurement as a time series point, one write request per tick. After
``max_consecutive_errors`` failed writes in a row the reporter stops for
good; create a new reporter to resume.

Histograms and timers are not exported: custom metrics only carry simple
int64/double values.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, List, Mapping, Optional, Sequence

from src.core.config import Settings, get_settings
from src.core.errors import BatchBuildError, ErrorCode
from src.core.gcm.backend import GoogleCloudMonitoringBackend, MonitoringBackend
from src.core.gcm.descriptors import DESCRIPTOR_DESCRIPTION, DescriptorCache
from src.core.gcm.extract import extract_values
from src.core.gcm.naming import DEFAULT_METRIC_PREFIX, dot_slashes
from src.core.gcm.timeseries import (
    MonitoredResource,
    TimeSeriesConfig,
    TimeSeriesPoint,
    build_point,
)
from src.core.metrics_registry.registry import MetricsRegistry
from src.utils.metrics import (
    gcm_reporter_consecutive_errors,
    gcm_reporter_descriptors_created_total,
    gcm_reporter_points_written_total,
    gcm_reporter_ticks_total,
    gcm_reporter_write_duration_seconds,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONSECUTIVE_ERRORS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reporter:
    """Reports the metrics of a registry to Cloud Monitoring."""

    def __init__(
        self,
        registry: MetricsRegistry,
        backend: MonitoringBackend,
        project: str,
        interval: float = 60.0,
        labels: Optional[Mapping[str, str]] = None,
        resource: Optional[MonitoredResource] = None,
        max_consecutive_errors: int = DEFAULT_MAX_CONSECUTIVE_ERRORS,
        metric_prefix: str = DEFAULT_METRIC_PREFIX,
        source: str = "",
        declare_descriptors: bool = True,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Create a reporter.

        Args:
            registry: Metrics to report
            backend: Where to write them
            project: Cloud project id (or ``projects/<id>``)
            interval: Seconds between ticks
            labels: Labels attached to every time series
            resource: Monitored resource, defaults to ``global``
            max_consecutive_errors: Failed writes in a row before stopping
            metric_prefix: Namespace of the metric types
            source: Identifies the sending machine, added as label ``source``
            declare_descriptors: Declare a gauge descriptor per metric type
            clock: Returns the tick timestamp, timezone aware
        """
        if not project:
            raise ValueError("project is required")
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if max_consecutive_errors < 1:
            raise ValueError(
                f"max_consecutive_errors must be at least 1, got {max_consecutive_errors}"
            )

        all_labels = dict(labels or {})
        if source:
            all_labels["source"] = dot_slashes(source)

        self._registry = registry
        self._backend = backend
        self._interval = float(interval)
        self._max_consecutive_errors = max_consecutive_errors
        self._declare_descriptors = declare_descriptors
        self._clock = clock or _utcnow
        self._config = TimeSeriesConfig(
            project=project,
            labels=all_labels,
            resource=resource,
            metric_prefix=metric_prefix,
        )
        self._descriptors = DescriptorCache()
        self._consecutive_errors = 0
        self._stopped = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_settings(
        cls,
        registry: MetricsRegistry,
        settings: Optional[Settings] = None,
        backend: Optional[MonitoringBackend] = None,
    ) -> "Reporter":
        """Build a reporter from environment settings."""
        settings = settings or get_settings()
        if backend is None:
            backend = GoogleCloudMonitoringBackend(timeout=settings.GCM_WRITE_TIMEOUT_SECONDS)
        resource = None
        if settings.GCM_RESOURCE_TYPE != "global" or settings.GCM_RESOURCE_LABELS:
            resource = MonitoredResource(settings.GCM_RESOURCE_TYPE, settings.GCM_RESOURCE_LABELS)
        return cls(
            registry,
            backend,
            settings.project,
            interval=settings.GCM_INTERVAL_SECONDS,
            labels=settings.GCM_LABELS,
            resource=resource,
            max_consecutive_errors=settings.GCM_MAX_CONSECUTIVE_ERRORS,
            metric_prefix=settings.GCM_METRIC_PREFIX,
            source=settings.GCM_SOURCE,
            declare_descriptors=settings.GCM_DECLARE_DESCRIPTORS,
        )

    @property
    def config(self) -> TimeSeriesConfig:
        return self._config

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    @property
    def stopped(self) -> bool:
        """True once the error threshold was reached."""
        return self._stopped

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def build_batch(self, timestamp: datetime) -> List[TimeSeriesPoint]:
        """Build the points of every instrument in the registry."""
        points: List[TimeSeriesPoint] = []
        for name, metric in self._registry.items():
            try:
                for extracted in extract_values(name, metric):
                    points.append(
                        build_point(
                            name + extracted.suffix,
                            extracted.value,
                            extracted.is_float,
                            timestamp,
                            self._config,
                        )
                    )
            except Exception as e:
                raise BatchBuildError(f"failed to read metric {name}: {e}", cause=e) from e
        return points

    def _ensure_descriptors(self, points: Sequence[TimeSeriesPoint]) -> None:
        # A failed declaration is not remembered and is retried next tick;
        # the point is written regardless.
        for point in points:
            if point.metric_type in self._descriptors:
                continue
            try:
                self._backend.create_metric_descriptor(
                    self._config.project,
                    point.metric_type,
                    point.value_type,
                    DESCRIPTOR_DESCRIPTION,
                    label_keys=sorted(self._config.labels),
                )
            except Exception as e:
                gcm_reporter_descriptors_created_total.labels(result="failure").inc()
                logger.warning(
                    f"Failed to create metric descriptor {point.metric_type}: {e}",
                    extra={"extra_fields": {"code": ErrorCode.DESCRIPTOR_FAILED.value}},
                )
                continue
            gcm_reporter_descriptors_created_total.labels(result="success").inc()
            self._descriptors.add(point.metric_type)

    def tick(self, timestamp: Optional[datetime] = None) -> bool:
        """Run one reporting cycle. Returns False once the reporter has stopped."""
        if self._stopped:
            return False
        timestamp = timestamp or self._clock()

        try:
            points = self.build_batch(timestamp)
        except BatchBuildError as e:
            gcm_reporter_ticks_total.labels(result="build_error").inc()
            logger.error(
                f"ERROR building gcm request: {e}",
                extra={"extra_fields": {"code": e.code.value}},
            )
            return True

        if not points:
            gcm_reporter_ticks_total.labels(result="empty").inc()
            return True

        if self._declare_descriptors:
            self._ensure_descriptors(points)

        start = time.perf_counter()
        try:
            self._backend.write_time_series(self._config.project, points)
        except Exception as e:
            self._consecutive_errors += 1
            gcm_reporter_ticks_total.labels(result="failure").inc()
            gcm_reporter_consecutive_errors.set(self._consecutive_errors)
            payload = [p.to_dict() for p in points]
            logger.error(
                f"ERROR sending metrics to gcm ({self._consecutive_errors}/"
                f"{self._max_consecutive_errors}): {e}; payload: {json.dumps(payload)}",
                extra={
                    "extra_fields": {
                        "code": ErrorCode.SUBMISSION_FAILED.value,
                        "consecutive_errors": self._consecutive_errors,
                        "payload": payload,
                    }
                },
            )
            if self._consecutive_errors >= self._max_consecutive_errors:
                self._stopped = True
                logger.error(
                    f"Stopping gcm reporter after {self._consecutive_errors} consecutive errors",
                    extra={"extra_fields": {"code": ErrorCode.THRESHOLD_EXCEEDED.value}},
                )
                return False
            return True
        finally:
            gcm_reporter_write_duration_seconds.observe(time.perf_counter() - start)

        self._consecutive_errors = 0
        gcm_reporter_consecutive_errors.set(0)
        gcm_reporter_ticks_total.labels(result="success").inc()
        gcm_reporter_points_written_total.inc(len(points))
        logger.debug(f"Wrote {len(points)} time series to {self._config.project}")
        return True

    def run(self, stop_event: Optional[threading.Event] = None) -> None:
        """Tick every ``interval`` seconds until ``stop_event`` is set.

        Ticks never overlap: deadlines missed while a tick was in flight are
        skipped, not queued.
        """
        if self._stopped:
            logger.warning("gcm reporter already stopped, not running")
            return
        stop_event = stop_event or self._stop_event

        logger.info(
            f"gcm reporter started for {self._config.project} every {self._interval}s"
        )
        next_tick = time.monotonic() + self._interval
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            if not self.tick():
                break
            next_tick += self._interval
            now = time.monotonic()
            if now > next_tick:
                missed = int((now - next_tick) // self._interval) + 1
                next_tick += missed * self._interval
                logger.debug(f"gcm reporter skipped {missed} tick(s)")
        logger.info("gcm reporter stopped")

    def start(self) -> None:
        """Run the reporter on a daemon thread.

        Each run gets its own stop event, so a loop that is still finishing
        its last tick after ``stop()`` cannot be revived. Raises RuntimeError
        while such a loop is alive.
        """
        if self.running:
            if not self._stop_event.is_set():
                return
            raise RuntimeError("previous gcm reporter loop is still finishing a tick")
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self.run,
            args=(self._stop_event,),
            name="gcm-reporter",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the loop to exit and wait for the tick in flight to finish."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None


def monitor(
    registry: MetricsRegistry,
    interval: float,
    backend: MonitoringBackend,
    project: str,
    source: str = "",
    **kwargs,
) -> None:
    """Report ``registry`` forever from the calling thread."""
    Reporter(
        registry,
        backend,
        project,
        interval=interval,
        source=source,
        **kwargs,
    ).run()
