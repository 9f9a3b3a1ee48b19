"""Pydantic schemas for the RigRank JSON report."""

from .report import (
    CPUInfo,
    Benchmarks,
    BenchmarkResult,
    FullReport,
    GPUInfo,
    ModelMetadata,
    ProfileStats,
    ProfileTokens,
    RAMInfo,
    Rating,
    Stats,
    StatsMetric,
    Suitability,
    SuitabilityReport,
    SystemInfo,
)

__all__ = [
    # Hardware
    "CPUInfo",
    "GPUInfo",
    "RAMInfo",
    "SystemInfo",
    # Inference results
    "StatsMetric",
    "Stats",
    "ProfileTokens",
    "ProfileStats",
    "Benchmarks",
    "ModelMetadata",
    "BenchmarkResult",
    # Suitability
    "Rating",
    "Suitability",
    "SuitabilityReport",
    # Top level
    "FullReport",
]
