"""Cache of metric descriptors already declared on the backend."""

from __future__ import annotations

import threading
from typing import Set

DESCRIPTOR_DESCRIPTION = "Created by gcm-reporter"


class DescriptorCache:
    """Set of declared metric types with idempotent insert."""

    def __init__(self):
        self._declared: Set[str] = set()
        self._lock = threading.Lock()

    def add(self, metric_type: str) -> bool:
        """Remember ``metric_type``; returns False if it was already known."""
        with self._lock:
            if metric_type in self._declared:
                return False
            self._declared.add(metric_type)
            return True

    def __contains__(self, metric_type: object) -> bool:
        with self._lock:
            return metric_type in self._declared

    def __len__(self) -> int:
        with self._lock:
            return len(self._declared)
