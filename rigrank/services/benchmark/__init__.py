"""
Benchmark Module

Sequential benchmarking of a local Ollama model across five standard
workload profiles.

Usage:
    from rigrank.services.benchmark import BenchmarkRunner, OllamaClient

    async with OllamaClient("http://localhost:11434") as client:
        await client.check_health()
        runner = BenchmarkRunner(client, context_window=4096)
        result = await runner.run_suite("llama3")

    print(f"Initial load: {result.initial_load_ms:.0f} ms")
    print(f"Atomic TTFT mean: {result.benchmarks.atomic.stats.ttft_ms.mean:.1f} ms")
"""

from .client import GenerateRequest, GenerateResponse, InferenceBackend, OllamaClient
from .profiles import STANDARD_PROFILES, ProfileConfig, generate_filler_text
from .runner import (
    BenchmarkRunner,
    IterationSample,
    aggregate_samples,
    apply_load_split,
    new_suite_result,
    split_load_durations,
)
from .statistics import compute_stats, percentile_index

__all__ = [
    # Client
    "InferenceBackend",
    "OllamaClient",
    "GenerateRequest",
    "GenerateResponse",
    # Profiles
    "ProfileConfig",
    "STANDARD_PROFILES",
    "generate_filler_text",
    # Runner
    "BenchmarkRunner",
    "IterationSample",
    "aggregate_samples",
    "apply_load_split",
    "new_suite_result",
    "split_load_durations",
    # Statistics
    "compute_stats",
    "percentile_index",
]
