"""Diagnostics for instruments the reporter cannot export.

The histogram and timer warnings are process-wide: each is latched by a
``Once`` the first time it fires and is only reset by restarting the process,
however many reporters run concurrently.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from src.core.errors import ErrorCode

logger = logging.getLogger(__name__)

VALUE_TYPES_URL = "https://cloud.google.com/monitoring/api/v3/kinds-and-types"


class Once:
    """Runs a callable at most once, even under concurrent callers."""

    def __init__(self):
        self._done = False
        self._lock = threading.Lock()

    @property
    def fired(self) -> bool:
        return self._done

    def do(self, func: Callable[[], Any]) -> bool:
        """Call ``func`` if no call happened yet. Returns True for the call that ran it."""
        if self._done:
            return False
        with self._lock:
            if self._done:
                return False
            try:
                func()
            finally:
                self._done = True
            return True


histograms_not_implemented = Once()
timers_not_implemented = Once()


def warn_histograms_unsupported() -> bool:
    return histograms_not_implemented.do(
        lambda: logger.warning(
            f"Histograms are not available in custom metrics, see {VALUE_TYPES_URL}",
            extra={"extra_fields": {"code": ErrorCode.UNSUPPORTED_METRIC.value, "kind": "histogram"}},
        )
    )


def warn_timers_unsupported() -> bool:
    return timers_not_implemented.do(
        lambda: logger.warning(
            "Timers are not implemented yet",
            extra={"extra_fields": {"code": ErrorCode.UNSUPPORTED_METRIC.value, "kind": "timer"}},
        )
    )


def log_unknown_metric(name: str, metric: Any) -> None:
    logger.warning(
        f"unknown metric {name}: {metric!r}",
        extra={"extra_fields": {"code": ErrorCode.UNKNOWN_METRIC.value, "metric": name}},
    )
