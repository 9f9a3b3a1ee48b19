"""Custom exceptions for RigRank.

Every failure the benchmark pipeline can surface is one of these. None of
them is retried: the first error ends the run.
"""

from typing import Any, Optional


class RigRankError(Exception):
    """Base exception for all RigRank errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "internal_error",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_type = error_type
        self.details = details or {}
        super().__init__(self.message)


class ConnectivityError(RigRankError):
    """The inference backend could not be reached or rejected a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code is not None else {}
        super().__init__(
            message=message,
            error_type="connectivity_error",
            details=details,
        )
        self.status_code = status_code


class TelemetryError(RigRankError):
    """Hardware telemetry or system load could not be read."""

    def __init__(self, message: str, component: Optional[str] = None):
        details = {"component": component} if component else {}
        super().__init__(
            message=message,
            error_type="telemetry_error",
            details=details,
        )


class QuietTimeoutError(RigRankError, TimeoutError):
    """System did not stay quiet long enough before the deadline."""

    def __init__(self, message: str, last_reason: Optional[str] = None):
        super().__init__(
            message=message,
            error_type="quiet_timeout",
            details={"last_reason": last_reason},
        )
        self.last_reason = last_reason


class BenchmarkCancelled(RigRankError):
    """The user stopped the run before it finished."""

    def __init__(self, message: str = "benchmark cancelled by user", step: Optional[str] = None):
        details = {"step": step} if step else {}
        super().__init__(
            message=message,
            error_type="cancelled",
            details=details,
        )
