"""Quiet-state gate.

Waits until CPU and RAM usage have stayed below their thresholds for a
contiguous window, so background load does not skew the benchmark. A single
noisy poll resets the window.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from rigrank.core.exceptions import QuietTimeoutError, TelemetryError

from .base import BYTES_PER_MB

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0  # seconds, also the CPU sampling window


@dataclass
class QuietStateConfig:
    """Parameters for validating the system is idle"""

    # Give up after this many seconds
    timeout: float = 60.0

    # Seconds of contiguous quiet required
    wait_duration: float = 5.0

    # Maximum CPU usage, percent
    cpu_threshold: float = 15.0

    # Minimum available RAM, MB
    ram_min_free_mb: int = 2048


@dataclass
class SystemLoad:
    """One load observation"""

    cpu_percent: float
    free_ram_mb: int


def sample_system_load(interval: float = POLL_INTERVAL) -> SystemLoad:
    """Measure CPU usage over `interval` seconds and current available RAM.

    Blocks for `interval` seconds.
    """
    try:
        cpu_percent = psutil.cpu_percent(interval=interval)
        mem = psutil.virtual_memory()
    except (psutil.Error, OSError) as e:
        raise TelemetryError(f"failed to read system load: {e}", component="load") from e
    return SystemLoad(cpu_percent=cpu_percent, free_ram_mb=mem.available // BYTES_PER_MB)


def noisy_reason(load: SystemLoad, config: QuietStateConfig) -> str | None:
    """Why the system is too busy, or None when it is quiet"""
    if load.cpu_percent > config.cpu_threshold:
        return f"CPU usage ({load.cpu_percent:.1f}%) > {config.cpu_threshold:.1f}%"
    if load.free_ram_mb < config.ram_min_free_mb:
        return f"Free RAM ({load.free_ram_mb} MB) < {config.ram_min_free_mb} MB"
    return None


async def wait_for_quiet_state(
    config: QuietStateConfig,
    on_progress: Callable[[str], None] | None = None,
    sampler: Callable[[float], SystemLoad] = sample_system_load,
    clock: Callable[[], float] = time.monotonic,
    poll_interval: float = POLL_INTERVAL,
) -> None:
    """Poll system load until it has been quiet for `config.wait_duration`.

    Args:
        config: Thresholds and durations
        on_progress: Receives a status line after every poll
        sampler: Blocking load sampler, run in a worker thread
        clock: Monotonic clock in seconds
        poll_interval: Seconds per poll, credited to the quiet window

    Raises:
        QuietTimeoutError: the deadline passed first; carries the last noisy reason
        TelemetryError: system load could not be read
    """
    deadline = clock() + config.timeout
    quiet_for = 0.0
    last_reason: str | None = None

    while clock() < deadline:
        load = await asyncio.to_thread(sampler, poll_interval)
        reason = noisy_reason(load, config)

        if reason:
            quiet_for = 0.0  # reset contiguous quiet time
            last_reason = reason
            status = f"Waiting for quiet state... Noisy: {reason}"
        else:
            quiet_for += poll_interval
            status = (
                f"Monitoring quiet state... {quiet_for:.0f}s / {config.wait_duration:.0f}s"
            )

        logger.debug(status)
        if on_progress:
            on_progress(status)

        if reason is None and quiet_for >= config.wait_duration:
            logger.info(f"System quiet for {quiet_for:.0f}s")
            return

    message = (
        f"system did not reach a quiet state within {config.timeout:.0f}s "
        f"(CPU Threshold: {config.cpu_threshold:.1f}%, "
        f"Min Free RAM: {config.ram_min_free_mb} MB)"
    )
    if last_reason:
        message += f"; last observed: {last_reason}"
    raise QuietTimeoutError(message, last_reason=last_reason)
