"""macOS telemetry via sysctl and system_profiler.

Apple Silicon GPUs share unified memory with the CPU, so no separate VRAM
figure is reported for them.
"""

import json
import logging
import re

from rigrank.schemas import GPUInfo, RAMInfo

from .base import BaseTelemetry, run_command

logger = logging.getLogger(__name__)

SPEED_PATTERN = re.compile(r"Speed: (\d+) MHz")
TYPE_PATTERN = re.compile(r"Type: (.+)")
VRAM_PATTERN = re.compile(r"(\d+)\s*(GB|MB)")


def parse_memory_type(hardware_overview: str) -> str | None:
    """Memory technology from `system_profiler SPHardwareDataType`"""
    for kind in ("LPDDR", "DDR5", "DDR4"):
        if kind in hardware_overview:
            return kind
    return None


def parse_memory_details(memory_overview: str) -> tuple[int, str | None]:
    """(speed MT/s, type) from `system_profiler SPMemoryDataType`"""
    speed = 0
    match = SPEED_PATTERN.search(memory_overview)
    if match:
        speed = int(match.group(1))

    mem_type = None
    match = TYPE_PATTERN.search(memory_overview)
    if match:
        mem_type = match.group(1).strip()
    return speed, mem_type


def parse_displays(data: dict) -> GPUInfo:
    """GPU info from `system_profiler SPDisplaysDataType -json`"""
    displays = data.get("SPDisplaysDataType", [])
    if not displays:
        return GPUInfo()

    display = displays[0]
    gpu = GPUInfo(model=display.get("sppci_model", ""))

    # Discrete GPUs on Intel Macs report dedicated VRAM, e.g. "8 GB"
    vram = display.get("spdisplays_vram") or display.get("_spdisplays_vram")
    if vram:
        match = VRAM_PATTERN.search(str(vram))
        if match:
            amount = int(match.group(1))
            gpu.vram_total_mb = amount * 1024 if match.group(2) == "GB" else amount
    return gpu


class DarwinTelemetry(BaseTelemetry):
    """Telemetry for macOS hosts."""

    def _cpu_model(self) -> str:
        output = run_command(["sysctl", "-n", "machdep.cpu.brand_string"], timeout=5)
        if output:
            return output.strip()
        return super()._cpu_model()

    def _enrich_ram(self, ram: RAMInfo) -> None:
        hardware = run_command(["system_profiler", "SPHardwareDataType"])
        if hardware:
            mem_type = parse_memory_type(hardware)
            if mem_type:
                ram.type = mem_type

        memory = run_command(["system_profiler", "SPMemoryDataType"])
        if memory:
            speed, mem_type = parse_memory_details(memory)
            ram.speed_mts = speed
            if ram.type == "Unknown" and mem_type:
                ram.type = mem_type

    def _collect_gpu(self) -> GPUInfo:
        output = run_command(["system_profiler", "SPDisplaysDataType", "-json"])
        if not output:
            logger.warning("system_profiler failed")
            return GPUInfo()
        return parse_displays(json.loads(output))
