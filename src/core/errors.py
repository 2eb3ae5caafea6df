"""Shared error codes and exceptions for the reporter.

Centralizes the error taxonomy so log lines and exceptions raised by the
backend adapter, the batch assembler and the submission loop stay consistent.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    UNSUPPORTED_METRIC = "UNSUPPORTED_METRIC"  # Histogram/Timer, warned once
    UNKNOWN_METRIC = "UNKNOWN_METRIC"  # Unrecognized instrument kind
    BATCH_BUILD_FAILED = "BATCH_BUILD_FAILED"  # Tick skipped, not counted
    SUBMISSION_FAILED = "SUBMISSION_FAILED"  # Counted towards the threshold
    DESCRIPTOR_FAILED = "DESCRIPTOR_FAILED"  # Best-effort, never blocks a point
    THRESHOLD_EXCEEDED = "THRESHOLD_EXCEEDED"  # Loop stopped for good


class ReporterError(Exception):
    """Base class for reporter errors."""

    code: ErrorCode = ErrorCode.SUBMISSION_FAILED

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class BatchBuildError(ReporterError):
    """Raised when a tick's batch could not be assembled."""

    code = ErrorCode.BATCH_BUILD_FAILED


class SubmissionError(ReporterError):
    """Raised when the backend rejects or fails a write request."""

    code = ErrorCode.SUBMISSION_FAILED


class DescriptorError(ReporterError):
    """Raised when a metric descriptor could not be declared."""

    code = ErrorCode.DESCRIPTOR_FAILED


__all__ = [
    "ErrorCode",
    "ReporterError",
    "BatchBuildError",
    "SubmissionError",
    "DescriptorError",
]
