"""
Benchmark Runner

Executes workload profiles against an inference backend, strictly one
request at a time, and derives latency/throughput metrics from the timings
the backend reports.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from rigrank.schemas import (
    BenchmarkResult,
    ModelMetadata,
    ProfileStats,
    ProfileTokens,
    Stats,
)

from .client import NS_PER_SECOND, GenerateRequest, GenerateResponse, InferenceBackend
from .profiles import STANDARD_PROFILES, ProfileConfig
from .statistics import compute_stats

logger = logging.getLogger(__name__)

METRICS_VERSION = "1.0"
DEFAULT_CONTEXT_WINDOW = 4096


@dataclass
class IterationSample:
    """Metrics derived from a single generate call"""

    ttft_ms: float
    load_duration_ms: float
    total_duration_ms: float
    gen_tps: float | None = None
    prompt_tps: float | None = None

    @classmethod
    def from_response(cls, response: GenerateResponse) -> "IterationSample":
        """Derive iteration metrics from backend timings.

        TTFT is approximated as total - eval - prompt_eval: the non-streamed
        API has no first-token timestamp.
        """
        ttft = (
            response.total_duration_ms
            - response.eval_duration_ms
            - response.prompt_eval_duration_ms
        )

        gen_tps = None
        if response.eval_duration > 0:
            gen_tps = response.eval_count / (response.eval_duration / NS_PER_SECOND)

        prompt_tps = None
        if response.prompt_eval_duration > 0:
            prompt_tps = response.prompt_eval_count / (
                response.prompt_eval_duration / NS_PER_SECOND
            )

        return cls(
            ttft_ms=max(0.0, ttft),
            load_duration_ms=response.load_duration_ms,
            total_duration_ms=response.total_duration_ms,
            gen_tps=gen_tps,
            prompt_tps=prompt_tps,
        )


def aggregate_samples(config: ProfileConfig, samples: Sequence[IterationSample]) -> ProfileStats:
    """Aggregate each metric of a profile's iterations independently"""
    return ProfileStats(
        description=config.name,
        config=ProfileTokens(
            input_tokens=config.input_tokens,
            output_tokens=config.output_tokens,
        ),
        stats=Stats(
            ttft_ms=compute_stats([s.ttft_ms for s in samples]),
            gen_tps=compute_stats([s.gen_tps for s in samples if s.gen_tps is not None]),
            prompt_tps=compute_stats(
                [s.prompt_tps for s in samples if s.prompt_tps is not None]
            ),
            total_duration_ms=compute_stats([s.total_duration_ms for s in samples]),
            load_duration_ms=compute_stats([s.load_duration_ms for s in samples]),
        ),
    )


def split_load_durations(load_durations: Sequence[float]) -> tuple[float, float]:
    """Split suite load durations into (initial, steady state).

    The first element is the load of the very first call, the closest thing
    to a cold start. Steady state is the mean of everything after it, 0 when
    there is nothing after it.
    """
    if not load_durations:
        return 0.0, 0.0

    initial = load_durations[0]
    rest = load_durations[1:]
    steady = sum(rest) / len(rest) if rest else 0.0
    return initial, steady


def apply_load_split(result: BenchmarkResult, load_durations: Sequence[float]) -> None:
    """Set initial_load_ms / steady_state_load_ms on a suite result"""
    result.initial_load_ms, result.steady_state_load_ms = split_load_durations(load_durations)


def new_suite_result(model_name: str, metadata: dict[str, Any] | None = None) -> BenchmarkResult:
    """Empty suite result, optionally filled with an /api/tags entry"""
    model = ModelMetadata(name=model_name)
    if metadata:
        details = metadata.get("details") or {}
        model.quantization = details.get("quantization_level") or ""
        model.size_mb = int(metadata.get("size") or 0) // (1024 * 1024)
    return BenchmarkResult(metrics_version=METRICS_VERSION, model_metadata=model)


class BenchmarkRunner:
    """
    Runs workload profiles sequentially against one backend.

    Requests are never issued concurrently and never retried: the first
    failing call aborts the profile and the error propagates unchanged.
    """

    def __init__(
        self,
        client: InferenceBackend,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
    ):
        self.client = client
        self.context_window = context_window

    def build_request(self, model: str, config: ProfileConfig) -> GenerateRequest:
        """Generate request with fixed decode parameters"""
        return GenerateRequest(
            model=model,
            prompt=config.prompt,
            stream=False,
            options={
                "num_predict": config.output_tokens,
                "num_ctx": self.context_window,
                "temperature": 0.0,
            },
        )

    async def run_profile(
        self, model: str, config: ProfileConfig
    ) -> tuple[ProfileStats, list[float]]:
        """Run one profile.

        Returns:
            The profile stats and the load durations (ms) in call order
        """
        # No warmup: the cold start is captured at suite level
        request = self.build_request(model, config)
        samples: list[IterationSample] = []

        for i in range(config.iterations):
            response = await self.client.generate(request)
            sample = IterationSample.from_response(response)
            samples.append(sample)

            logger.debug(
                f"{config.name} iteration {i + 1}/{config.iterations}: "
                f"ttft={sample.ttft_ms:.1f}ms, load={sample.load_duration_ms:.1f}ms, "
                f"gen_tps={sample.gen_tps}, prompt_tps={sample.prompt_tps}"
            )

        stats = aggregate_samples(config, samples)
        return stats, [s.load_duration_ms for s in samples]

    async def run_suite(
        self,
        model: str,
        profiles: Sequence[ProfileConfig] = STANDARD_PROFILES,
        on_profile_start: Callable[[int, ProfileConfig], None] | None = None,
    ) -> BenchmarkResult:
        """Run every profile in order and classify model load times."""
        result = new_suite_result(model)
        all_load_durations: list[float] = []

        for index, config in enumerate(profiles):
            if on_profile_start:
                on_profile_start(index, config)
            logger.info(f"Starting {config.name} ({index + 1}/{len(profiles)})")

            stats, load_durations = await self.run_profile(model, config)
            setattr(result.benchmarks, config.key, stats)
            all_load_durations.extend(load_durations)

        apply_load_split(result, all_load_durations)
        return result
