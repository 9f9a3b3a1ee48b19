"""Hardware telemetry shared by all platforms.

CPU core counts, frequency and total RAM come from psutil everywhere; the
platform subclasses fill in what psutil cannot see (CPU model name, GPU,
RAM type and speed).
"""

import logging
import platform
import subprocess
from typing import Protocol

import psutil

from rigrank.core.exceptions import TelemetryError
from rigrank.schemas import CPUInfo, GPUInfo, RAMInfo, SystemInfo

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class TelemetryProvider(Protocol):
    """Source of hardware information for the report"""

    def collect(self) -> SystemInfo: ...


def run_command(args: list[str], timeout: int = 10) -> str | None:
    """Run a diagnostic command, returning stdout or None when it is unavailable"""
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug(f"{args[0]} unavailable: {e}")
        return None
    if result.returncode != 0:
        logger.debug(f"{args[0]} exited with {result.returncode}: {result.stderr.strip()}")
        return None
    return result.stdout


class BaseTelemetry:
    """Collect hardware info. CPU and RAM are required, GPU is best effort."""

    def collect(self) -> SystemInfo:
        """Gather telemetry from the host.

        Raises:
            TelemetryError: CPU or RAM information could not be read
        """
        info = SystemInfo(arch=platform.machine())

        info.cpu = self._collect_cpu()
        info.ram = self._collect_ram()

        try:
            info.gpu = self._collect_gpu()
        except Exception as e:
            # Headless hosts and missing drivers are normal
            logger.warning(f"GPU detection failed: {e}")
            info.gpu = GPUInfo()

        return info

    def _collect_cpu(self) -> CPUInfo:
        try:
            cpu = CPUInfo(
                model=self._cpu_model(),
                cores_physical=psutil.cpu_count(logical=False) or 0,
                cores_logical=psutil.cpu_count(logical=True) or 0,
            )
        except (psutil.Error, OSError) as e:
            raise TelemetryError(f"failed to read CPU info: {e}", component="cpu") from e

        try:
            freq = psutil.cpu_freq()
        except (psutil.Error, OSError, NotImplementedError) as e:
            # VMs and containers often hide cpufreq
            logger.debug(f"CPU frequency unavailable: {e}")
            freq = None

        if freq:
            cpu.frequency_max_mhz = freq.max or freq.current
        return cpu

    def _collect_ram(self) -> RAMInfo:
        try:
            mem = psutil.virtual_memory()
        except (psutil.Error, OSError) as e:
            raise TelemetryError(f"failed to read memory info: {e}", component="ram") from e

        ram = RAMInfo(total_mb=mem.total // BYTES_PER_MB)
        self._enrich_ram(ram)
        return ram

    def _cpu_model(self) -> str:
        return platform.processor()

    def _enrich_ram(self, ram: RAMInfo) -> None:
        """Fill RAM type/speed where the platform exposes them"""

    def _collect_gpu(self) -> GPUInfo:
        return GPUInfo()
