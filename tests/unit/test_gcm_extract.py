"""Tests for per-kind value extraction and its diagnostics."""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from src.core.gcm import diagnostics
from src.core.gcm.extract import ExtractedValue, extract_values
from src.core.metrics_registry.core import (
    Counter,
    Gauge,
    GaugeFloat64,
    Histogram,
    MeterSnapshot,
    MetricKind,
    Timer,
)


def _meter(snapshot: MeterSnapshot) -> MagicMock:
    meter = MagicMock()
    meter.metric_kind = MetricKind.METER
    meter.snapshot.return_value = snapshot
    return meter


class TestSingleValueKinds:
    @pytest.mark.parametrize("cls", [Counter, Gauge, GaugeFloat64])
    def test_zero_is_suppressed(self, cls):
        assert list(extract_values("idle", cls())) == []

    def test_counter(self):
        c = Counter()
        c.inc(10)
        assert list(extract_values("jobs.done", c)) == [ExtractedValue("", 10, False)]

    def test_negative_counter_is_exported(self):
        c = Counter()
        c.dec(2)
        assert list(extract_values("c", c)) == [ExtractedValue("", -2, False)]

    def test_gauge(self):
        g = Gauge()
        g.update(-4)
        [value] = extract_values("g", g)
        assert value == ExtractedValue("", -4, False)
        assert isinstance(value.value, int)

    def test_gauge_float64(self):
        g = GaugeFloat64()
        g.update(0.5)
        assert list(extract_values("g", g)) == [ExtractedValue("", 0.5, True)]


class TestMeter:
    def test_zero_fields_are_suppressed_independently(self):
        meter = _meter(MeterSnapshot(count=5, rate_mean=1.2, rate1=0.0, rate5=3.4, rate15=0.0))

        values = list(extract_values("http.requests", meter))

        assert values == [
            ExtractedValue(".count", 5, False),
            ExtractedValue(".mean", 1.2, True),
            ExtractedValue(".5min", 3.4, True),
        ]

    def test_all_fields(self):
        meter = _meter(MeterSnapshot(count=1, rate_mean=0.1, rate1=0.2, rate5=0.3, rate15=0.4))
        suffixes = [v.suffix for v in extract_values("m", meter)]
        assert suffixes == [".count", ".mean", ".1min", ".5min", ".15min"]

    def test_idle_meter_emits_nothing(self):
        meter = _meter(MeterSnapshot(count=0, rate_mean=0.0, rate1=0.0, rate5=0.0, rate15=0.0))
        assert list(extract_values("m", meter)) == []

    def test_reads_through_a_single_snapshot(self):
        meter = _meter(MeterSnapshot(count=1, rate_mean=0.1, rate1=0.2, rate5=0.3, rate15=0.4))
        list(extract_values("m", meter))
        meter.snapshot.assert_called_once_with()
        meter.count.assert_not_called()


class TestUnsupportedKinds:
    def test_histogram_warns_once(self, caplog):
        h = Histogram()
        h.update(1.0)
        other = Histogram()
        other.update(2.0)

        with caplog.at_level(logging.WARNING, logger="src.core.gcm.diagnostics"):
            for _ in range(3):
                assert list(extract_values("h", h)) == []
            assert list(extract_values("other", other)) == []

        warnings = [r for r in caplog.records if "Histograms" in r.getMessage()]
        assert len(warnings) == 1
        assert diagnostics.histograms_not_implemented.fired

    def test_empty_histogram_does_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert list(extract_values("h", Histogram())) == []
        assert caplog.records == []
        assert not diagnostics.histograms_not_implemented.fired

    def test_timer_warns_once(self, caplog):
        t = Timer()
        t.update(0.1)

        with caplog.at_level(logging.WARNING, logger="src.core.gcm.diagnostics"):
            for _ in range(3):
                assert list(extract_values("t", t)) == []

        warnings = [r for r in caplog.records if "Timers" in r.getMessage()]
        assert len(warnings) == 1
        assert diagnostics.timers_not_implemented.fired
        assert not diagnostics.histograms_not_implemented.fired

    def test_unknown_kind_logged_every_time(self, caplog):
        with caplog.at_level(logging.WARNING, logger="src.core.gcm.diagnostics"):
            assert list(extract_values("weird", {"value": 3})) == []
            assert list(extract_values("weird", {"value": 3})) == []

        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["unknown metric weird: {'value': 3}"] * 2


class TestOnce:
    def test_runs_once(self):
        once = diagnostics.Once()
        calls = []
        assert once.do(lambda: calls.append(1)) is True
        assert once.do(lambda: calls.append(2)) is False
        assert calls == [1]

    def test_latched_even_if_callable_raises(self):
        once = diagnostics.Once()

        def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            once.do(boom)
        assert once.fired
        assert once.do(lambda: None) is False

    def test_concurrent_callers_fire_once(self):
        once = diagnostics.Once()
        calls = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            once.do(lambda: calls.append(1))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert calls == [1]
