"""Telemetry for platforms without dedicated probes: psutil only."""

from .base import BaseTelemetry


class GenericTelemetry(BaseTelemetry):
    """CPU and RAM from psutil, GPU left empty."""
