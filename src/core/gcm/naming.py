"""Mapping of local metric names to Cloud Monitoring metric types."""

from __future__ import annotations

DEFAULT_METRIC_PREFIX = "custom.googleapis.com"


def dot_slashes(name: str) -> str:
    """Replace every "." separator with "/"."""
    return name.replace(".", "/")


def namespaced_name(name: str, prefix: str = DEFAULT_METRIC_PREFIX) -> str:
    """Metric type for a registry name, e.g. ``custom.googleapis.com/http/requests``.

    Pure function of its arguments: the same name always maps to the same type.
    """
    return f"{prefix.rstrip('/')}/{dot_slashes(name)}"
