"""Tests for the metrics registry."""

import threading

import pytest

from src.core.metrics_registry import (
    Counter,
    DuplicateMetricError,
    Gauge,
    GaugeFloat64,
    Histogram,
    Meter,
    MetricsRegistry,
    Timer,
    get_default_registry,
)
from src.core.metrics_registry import registry as registry_mod


class TestMetricsRegistry:
    def test_get_or_create_returns_same_instance(self, registry):
        c1 = registry.counter("jobs.done")
        c2 = registry.counter("jobs.done")
        assert c1 is c2

    @pytest.mark.parametrize(
        "factory,cls",
        [
            ("counter", Counter),
            ("gauge", Gauge),
            ("gauge_float64", GaugeFloat64),
            ("meter", Meter),
            ("histogram", Histogram),
            ("timer", Timer),
        ],
    )
    def test_typed_helpers(self, registry, factory, cls):
        assert isinstance(getattr(registry, factory)("a.b"), cls)

    def test_type_mismatch_raises(self, registry):
        registry.counter("queue.size")
        with pytest.raises(ValueError, match="is not a Gauge"):
            registry.gauge("queue.size")

    def test_register_duplicate(self, registry):
        registry.register("x", Counter())
        with pytest.raises(DuplicateMetricError, match="already registered"):
            registry.register("x", Counter())

    def test_register_accepts_any_object(self, registry):
        registry.register("odd", object())
        assert len(registry) == 1

    def test_get_and_unregister(self, registry):
        c = registry.counter("c")
        assert registry.get("c") is c
        assert registry.unregister("c") is True
        assert registry.unregister("c") is False
        assert registry.get("c") is None

    def test_items_is_a_copy(self, registry):
        registry.counter("a")
        items = registry.items()
        registry.counter("b")
        assert [name for name, _ in items] == ["a"]
        assert sorted(registry.names()) == ["a", "b"]

    def test_concurrent_registration(self, registry):
        def worker(i):
            for j in range(50):
                registry.counter(f"w{i}.c{j}").inc()

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 200


class TestDefaultRegistry:
    def test_module_helpers_use_default_registry(self, monkeypatch):
        fresh = MetricsRegistry()
        monkeypatch.setattr(registry_mod, "_default_registry", fresh)

        registry_mod.counter("a").inc()
        registry_mod.gauge("b")
        registry_mod.gauge_float64("c")
        registry_mod.meter("d")
        registry_mod.histogram("e")
        registry_mod.timer("f")

        assert registry_mod.get_default_registry() is fresh
        assert sorted(fresh.names()) == ["a", "b", "c", "d", "e", "f"]

    def test_get_default_registry(self):
        assert isinstance(get_default_registry(), MetricsRegistry)
