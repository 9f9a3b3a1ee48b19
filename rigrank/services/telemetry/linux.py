"""Linux telemetry: /proc/cpuinfo for the CPU model, NVIDIA GPUs via pynvml
with an nvidia-smi fallback."""

import logging
from pathlib import Path

from rigrank.schemas import GPUInfo

from .base import BYTES_PER_MB, BaseTelemetry, run_command

logger = logging.getLogger(__name__)

CPUINFO_PATH = Path("/proc/cpuinfo")


def parse_cpuinfo_model(text: str) -> str:
    """First "model name" entry of /proc/cpuinfo"""
    for line in text.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "model name":
            return value.strip()
    return ""


NOT_AVAILABLE = ("", "N/A", "[N/A]", "Not Supported")


def _parse_nvidia_smi_value(value: str) -> int | None:
    """Integer field of nvidia-smi CSV output; None when the driver has no value"""
    value = value.strip()
    if value in NOT_AVAILABLE or value.startswith("[N/A]"):
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None


def parse_nvidia_smi(output: str) -> GPUInfo | None:
    """Parse `name, memory.total, pcie gen, pcie width` CSV; first GPU only"""
    lines = [line for line in output.strip().splitlines() if line.strip()]
    if not lines:
        return None

    parts = [p.strip() for p in lines[0].split(",")]
    if len(parts) < 4:
        logger.debug(f"nvidia-smi: unexpected output format: {lines[0]!r}")
        return None

    gpu = GPUInfo(model=parts[0])

    # memory.total is in MiB
    vram = _parse_nvidia_smi_value(parts[1])
    if vram is not None:
        gpu.vram_total_mb = vram

    gen = _parse_nvidia_smi_value(parts[2])
    if gen:
        gpu.pcie_gen = f"gen{gen}"

    lanes = _parse_nvidia_smi_value(parts[3])
    if lanes is not None:
        gpu.pcie_lanes = lanes

    return gpu


class LinuxTelemetry(BaseTelemetry):
    """Telemetry for Linux hosts."""

    def _cpu_model(self) -> str:
        try:
            return parse_cpuinfo_model(CPUINFO_PATH.read_text())
        except OSError as e:
            logger.debug(f"Cannot read {CPUINFO_PATH}: {e}")
            return super()._cpu_model()

    def _collect_gpu(self) -> GPUInfo:
        gpu = self._detect_nvidia_pynvml()
        if gpu is not None:
            return gpu

        # Fallback to nvidia-smi (Tegra/Jetson, or nvidia-ml-py without a driver match)
        output = run_command(
            [
                "nvidia-smi",
                "--query-gpu=name,memory.total,pcie.link.gen.current,pcie.link.width.current",
                "--format=csv,noheader,nounits",
            ]
        )
        if output:
            gpu = parse_nvidia_smi(output)
            if gpu is not None:
                return gpu
        return GPUInfo()

    def _detect_nvidia_pynvml(self) -> GPUInfo | None:
        """First NVIDIA GPU via NVML, or None when NVML is unusable."""
        try:
            import pynvml
        except ImportError:
            logger.debug("pynvml (nvidia-ml-py) not installed")
            return None

        try:
            pynvml.nvmlInit()
        except pynvml.NVMLError as e:
            logger.debug(f"NVML init failed: {e}")
            return None

        try:
            if pynvml.nvmlDeviceGetCount() == 0:
                return None
            handle = pynvml.nvmlDeviceGetHandleByIndex(0)

            name = pynvml.nvmlDeviceGetName(handle)
            if isinstance(name, bytes):
                name = name.decode("utf-8")

            mem_info = pynvml.nvmlDeviceGetMemoryInfo(handle)
            gpu = GPUInfo(model=name, vram_total_mb=mem_info.total // BYTES_PER_MB)

            try:
                gpu.pcie_gen = f"gen{pynvml.nvmlDeviceGetCurrPcieLinkGeneration(handle)}"
                gpu.pcie_lanes = pynvml.nvmlDeviceGetCurrPcieLinkWidth(handle)
            except pynvml.NVMLError:
                # Integrated and SoC GPUs have no PCIe link
                pass

            return gpu
        except pynvml.NVMLError as e:
            logger.debug(f"pynvml GPU detection failed: {e}")
            return None
        finally:
            pynvml.nvmlShutdown()
