import os
from unittest.mock import MagicMock

import pytest


# List of environment variables that may be modified by tests
_ENV_VARS_TO_ISOLATE = [
    "LOG_LEVEL",
    "LOG_JSON",
    "GCM_PROJECT",
    "GOOGLE_CLOUD_PROJECT",
    "GCM_INTERVAL_SECONDS",
    "GCM_MAX_CONSECUTIVE_ERRORS",
    "GCM_METRIC_PREFIX",
    "GCM_SOURCE",
    "GCM_LABELS",
    "GCM_RESOURCE_TYPE",
    "GCM_RESOURCE_LABELS",
    "GCM_DECLARE_DESCRIPTORS",
    "GCM_WRITE_TIMEOUT_SECONDS",
]


@pytest.fixture(autouse=True)
def env_isolation():
    """Isolate environment variables between tests."""
    backup = {k: os.environ.get(k) for k in _ENV_VARS_TO_ISOLATE}
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v


@pytest.fixture(autouse=True)
def config_cache_isolation():
    """Reset config settings cache between tests."""
    import src.core.config as cfg

    backup_cache = cfg._settings_cache
    cfg._settings_cache = None
    yield
    cfg._settings_cache = backup_cache


@pytest.fixture(autouse=True)
def once_isolation(monkeypatch):
    """Give every test fresh process-wide warning latches."""
    from src.core.gcm import diagnostics

    monkeypatch.setattr(diagnostics, "histograms_not_implemented", diagnostics.Once())
    monkeypatch.setattr(diagnostics, "timers_not_implemented", diagnostics.Once())
    yield


@pytest.fixture
def registry():
    from src.core.metrics_registry import MetricsRegistry

    return MetricsRegistry()


@pytest.fixture
def backend():
    """Backend double recording writes."""
    from src.core.gcm.backend import MonitoringBackend

    return MagicMock(spec=MonitoringBackend)


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
