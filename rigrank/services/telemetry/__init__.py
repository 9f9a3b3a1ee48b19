"""Host telemetry: hardware discovery and the quiet-state gate.

The provider is picked once at startup from the running OS.
"""

import platform

from .base import TelemetryProvider
from .darwin import DarwinTelemetry
from .generic import GenericTelemetry
from .linux import LinuxTelemetry
from .quiet import QuietStateConfig, SystemLoad, sample_system_load, wait_for_quiet_state

PROVIDERS: dict[str, type] = {
    "linux": LinuxTelemetry,
    "darwin": DarwinTelemetry,
}


def get_telemetry_provider(system: str | None = None) -> TelemetryProvider:
    """Telemetry provider for `system` (defaults to the running OS)"""
    system = (system or platform.system()).lower()
    return PROVIDERS.get(system, GenericTelemetry)()


__all__ = [
    "TelemetryProvider",
    "LinuxTelemetry",
    "DarwinTelemetry",
    "GenericTelemetry",
    "get_telemetry_provider",
    "QuietStateConfig",
    "SystemLoad",
    "sample_system_load",
    "wait_for_quiet_state",
]
