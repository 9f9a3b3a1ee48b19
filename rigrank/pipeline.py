"""Benchmark pipeline.

A single-threaded state machine driving one run:

    TELEMETRY -> [QUIET_WAIT] -> HEALTH_CHECK -> BENCHMARK(0..n-1) -> DONE

Every step schedules exactly one unit of work as an asyncio task. A unit
never raises; it returns a completion message carrying either its result or
its error, and `update()` turns that message into the next step and the next
unit. Any error moves the machine to FAILED and nothing further is
scheduled. While a unit is in flight the loop wakes every `refresh_interval`
seconds to publish progress and to honour `cancel()`.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rigrank.core.exceptions import BenchmarkCancelled, RigRankError, TelemetryError
from rigrank.schemas import FullReport, ProfileStats, SystemInfo
from rigrank.services.benchmark import (
    STANDARD_PROFILES,
    BenchmarkRunner,
    InferenceBackend,
    ProfileConfig,
    apply_load_split,
    new_suite_result,
)
from rigrank.services.scoring import evaluate
from rigrank.services.telemetry import QuietStateConfig, TelemetryProvider, wait_for_quiet_state

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_INTERVAL = 0.1  # seconds


class PipelineStep(str, Enum):
    """Pipeline states"""

    TELEMETRY = "collecting_telemetry"
    QUIET_WAIT = "waiting_for_quiet"
    HEALTH_CHECK = "health_checking"
    BENCHMARK = "running_profile"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStep.DONE, PipelineStep.FAILED, PipelineStep.CANCELLED)


# Completion messages, one kind per unit of work


@dataclass
class TelemetryCollected:
    info: SystemInfo | None = None
    error: Exception | None = None


@dataclass
class QuietReached:
    error: Exception | None = None


@dataclass
class HealthChecked:
    model_info: dict[str, Any] | None = None
    error: Exception | None = None


@dataclass
class ProfileFinished:
    index: int
    stats: ProfileStats | None = None
    load_durations: list[float] = field(default_factory=list)
    error: Exception | None = None


Message = TelemetryCollected | QuietReached | HealthChecked | ProfileFinished
Work = Coroutine[Any, Any, Message]


class BenchmarkPipeline:
    """
    Runs telemetry, the optional quiet gate, the health check and every
    profile, one unit of work at a time.

    The pipeline owns all in-progress results. `on_update` is called with the
    pipeline after every transition and on every refresh tick.
    """

    def __init__(
        self,
        client: InferenceBackend,
        telemetry: TelemetryProvider,
        model: str,
        context_window: int = 4096,
        quiet_config: QuietStateConfig | None = None,
        tolerate_partial_telemetry: bool = False,
        profiles: Sequence[ProfileConfig] = STANDARD_PROFILES,
        on_update: Callable[["BenchmarkPipeline"], None] | None = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
    ):
        self.client = client
        self.telemetry = telemetry
        self.model = model
        self.quiet_config = quiet_config
        self.tolerate_partial_telemetry = tolerate_partial_telemetry
        self.profiles = tuple(profiles)
        self.on_update = on_update
        self.refresh_interval = refresh_interval
        self.runner = BenchmarkRunner(client, context_window=context_window)

        # State
        self.step = PipelineStep.TELEMETRY
        self.profile_index = 0
        self.ticks = 0
        self.status_message = ""
        self.error: Exception | None = None

        # Results
        self.system_info: SystemInfo | None = None
        self.backend_ready = False
        self.results = new_suite_result(model)
        self.load_durations: list[float] = []
        self.completed_profiles: list[str] = []
        self.report: FullReport | None = None

        self._cancel_requested = asyncio.Event()

    @property
    def current_profile(self) -> ProfileConfig | None:
        if self.step != PipelineStep.BENCHMARK:
            return None
        return self.profiles[self.profile_index]

    def cancel(self) -> None:
        """Stop at the next loop wake-up. In-flight work is abandoned, not awaited."""
        self._cancel_requested.set()

    async def run(self) -> FullReport:
        """Drive the machine to a terminal state.

        Returns:
            The full report when every step succeeded

        Raises:
            RigRankError: the error of the failing step (no partial report)
            BenchmarkCancelled: `cancel()` was called
        """
        cancel_wait = asyncio.ensure_future(self._cancel_requested.wait())
        work: Work | None = self.start()

        try:
            while work is not None:
                task = asyncio.create_task(work)
                message = await self._await_message(task, cancel_wait)

                if message is None:
                    task.cancel()
                    logger.info(f"Cancelled during {self.step.value}")
                    cancelled_in = self.step
                    self.step = PipelineStep.CANCELLED
                    self._notify()
                    raise BenchmarkCancelled(step=cancelled_in.value)

                try:
                    work = self.update(message)
                except Exception as e:
                    logger.debug("Pipeline transition failed", exc_info=True)
                    work = self._fail(e)
                self._notify()
        finally:
            cancel_wait.cancel()

        if self.step == PipelineStep.FAILED:
            raise self.error
        return self.report

    async def _await_message(
        self, task: asyncio.Task, cancel_wait: asyncio.Future
    ) -> Message | None:
        """Wait for the unit's message, ticking progress; None on cancel."""
        while True:
            done, _ = await asyncio.wait(
                {task, cancel_wait},
                timeout=self.refresh_interval,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if cancel_wait in done:
                return None
            if task in done:
                return task.result()

            self.ticks += 1
            self._notify()

    def start(self) -> Work:
        """First unit of work"""
        self.step = PipelineStep.TELEMETRY
        self._notify()
        return self._collect_telemetry()

    def update(self, message: Message) -> Work | None:
        """Apply a completion message; return the next unit or None when terminal."""
        if self.step.is_terminal:
            return None

        if message.error is not None and not self._tolerated(message):
            return self._fail(message.error)

        if isinstance(message, TelemetryCollected):
            self.system_info = message.info or SystemInfo()
            if self.quiet_config is not None:
                self.step = PipelineStep.QUIET_WAIT
                return self._wait_for_quiet()
            self.step = PipelineStep.HEALTH_CHECK
            return self._check_health()

        if isinstance(message, QuietReached):
            self.status_message = ""
            self.step = PipelineStep.HEALTH_CHECK
            return self._check_health()

        if isinstance(message, HealthChecked):
            self.backend_ready = True
            if message.model_info:
                self.results = new_suite_result(self.model, message.model_info)
            self.step = PipelineStep.BENCHMARK
            self.profile_index = 0
            return self._run_profile(self.profile_index)

        if isinstance(message, ProfileFinished):
            profile = self.profiles[message.index]
            setattr(self.results.benchmarks, profile.key, message.stats)
            self.load_durations.extend(message.load_durations)
            self.completed_profiles.append(profile.name)

            self.profile_index += 1
            if self.profile_index < len(self.profiles):
                return self._run_profile(self.profile_index)
            self._finish()
            return None

        raise TypeError(f"unexpected pipeline message: {message!r}")

    def _tolerated(self, message: Message) -> bool:
        if (
            isinstance(message, TelemetryCollected)
            and isinstance(message.error, TelemetryError)
            and self.tolerate_partial_telemetry
        ):
            logger.warning(f"Continuing without hardware telemetry: {message.error}")
            return True
        return False

    def _fail(self, error: Exception) -> None:
        logger.error(f"Benchmark failed during {self.step.value}: {error}")
        self.error = error
        self.step = PipelineStep.FAILED
        return None

    def _finish(self) -> None:
        apply_load_split(self.results, self.load_durations)
        self.report = FullReport(
            system_info=self.system_info or SystemInfo(),
            inference_results=self.results,
            use_case_suitability=evaluate(self.results),
        )
        self.step = PipelineStep.DONE
        logger.info("Benchmark suite complete")

    def _notify(self) -> None:
        if self.on_update:
            self.on_update(self)

    def _set_status(self, status: str) -> None:
        self.status_message = status

    # Units of work. Each catches its own failure and reports it as a message.

    async def _collect_telemetry(self) -> TelemetryCollected:
        try:
            info = await asyncio.to_thread(self.telemetry.collect)
        except RigRankError as e:
            return TelemetryCollected(error=e)
        except Exception as e:
            # Provider bugs and OS errors are telemetry failures too
            error = TelemetryError(f"telemetry collection failed: {e}")
            error.__cause__ = e
            return TelemetryCollected(error=error)
        return TelemetryCollected(info=info)

    async def _wait_for_quiet(self) -> QuietReached:
        try:
            await wait_for_quiet_state(self.quiet_config, on_progress=self._set_status)
        except Exception as e:
            return QuietReached(error=e)
        return QuietReached()

    async def _check_health(self) -> HealthChecked:
        try:
            await self.client.check_health()
            model_info = await self.client.describe_model(self.model)
        except Exception as e:
            return HealthChecked(error=e)
        return HealthChecked(model_info=model_info)

    async def _run_profile(self, index: int) -> ProfileFinished:
        profile = self.profiles[index]
        logger.info(f"Starting {profile.name} ({index + 1}/{len(self.profiles)})")
        try:
            stats, load_durations = await self.runner.run_profile(self.model, profile)
        except Exception as e:
            return ProfileFinished(index=index, error=e)
        return ProfileFinished(index=index, stats=stats, load_durations=load_durations)
