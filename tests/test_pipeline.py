"""
Tests for the benchmark pipeline state machine.
"""
import asyncio
import json

import pytest

import rigrank.pipeline as pipeline_module
from rigrank.core.exceptions import (
    BenchmarkCancelled,
    ConnectivityError,
    QuietTimeoutError,
    TelemetryError,
)
from rigrank.pipeline import (
    BenchmarkPipeline,
    HealthChecked,
    PipelineStep,
    ProfileFinished,
)
from rigrank.schemas import Rating
from rigrank.services.telemetry import QuietStateConfig
from tests.conftest import FakeBackend, FakeTelemetry, make_response


class StepRecorder:
    """on_update callback keeping the sequence of distinct steps."""

    def __init__(self):
        self.steps: list[PipelineStep] = []
        self.calls = 0

    def __call__(self, pipeline: BenchmarkPipeline) -> None:
        self.calls += 1
        if not self.steps or self.steps[-1] != pipeline.step:
            self.steps.append(pipeline.step)


def _pipeline(backend, telemetry, **kwargs) -> BenchmarkPipeline:
    kwargs.setdefault("refresh_interval", 0.01)
    return BenchmarkPipeline(client=backend, telemetry=telemetry, model="llama3", **kwargs)


class TestSuccessfulRun:
    """Test a run where every step succeeds."""

    @pytest.mark.asyncio
    async def test_full_report(self, fake_telemetry: FakeTelemetry):
        backend = FakeBackend(
            response_factory=lambda i: make_response(load_ms=2500 if i == 0 else 10)
        )
        recorder = StepRecorder()
        pipeline = _pipeline(backend, fake_telemetry, on_update=recorder)

        report = await pipeline.run()

        assert pipeline.step == PipelineStep.DONE
        assert pipeline.report is report
        assert recorder.steps == [
            PipelineStep.TELEMETRY,
            PipelineStep.HEALTH_CHECK,
            PipelineStep.BENCHMARK,
            PipelineStep.DONE,
        ]
        assert backend.health_checks == 1
        assert len(backend.requests) == 25
        assert pipeline.completed_profiles == [
            "Atomic Check",
            "Code Generation",
            "Story Generation",
            "Summarization",
            "Reasoning",
        ]

        assert report.system_info.cpu.model == "AMD Ryzen 9 7950X"
        assert report.inference_results.initial_load_ms == pytest.approx(2500.0)
        assert report.inference_results.steady_state_load_ms == pytest.approx(10.0)
        # default response: 16 tokens in 50ms -> 320 t/s, ttft 30ms
        assert report.use_case_suitability.quick_qa.rating == Rating.EXCELLENT
        assert report.use_case_suitability.coding.rating == Rating.EXCELLENT

    @pytest.mark.asyncio
    async def test_json_document_shape(self, fake_backend, fake_telemetry):
        report = await _pipeline(fake_backend, fake_telemetry).run()

        document = json.loads(report.to_json())

        assert set(document) == {"system_info", "inference_results", "use_case_suitability"}
        results = document["inference_results"]
        assert results["metrics_version"] == "1.0"
        assert results["model_metadata"]["name"] == "llama3"
        assert set(results["benchmarks"]) == {
            "atomic",
            "code_gen",
            "story_gen",
            "summarization",
            "reasoning",
        }
        atomic = results["benchmarks"]["atomic"]
        assert atomic["config"] == {"input_tokens": 32, "output_tokens": 16}
        assert set(atomic["stats"]["ttft_ms"]) == {"mean", "median", "p99"}
        assert document["use_case_suitability"]["quick_qa"]["rating"] == "EXCELLENT"

    @pytest.mark.asyncio
    async def test_absent_metrics_omitted_from_json(self, fake_telemetry):
        backend = FakeBackend(response_factory=lambda i: make_response(eval_ms=0))

        report = await _pipeline(backend, fake_telemetry).run()

        stats = json.loads(report.to_json())["inference_results"]["benchmarks"]["atomic"]["stats"]
        assert "gen_tps" not in stats
        assert "prompt_tps" in stats

    @pytest.mark.asyncio
    async def test_model_metadata_from_backend(self, fake_telemetry):
        backend = FakeBackend(
            model_info={
                "name": "llama3:latest",
                "size": 4661224676,
                "details": {"quantization_level": "Q4_0"},
            }
        )

        report = await _pipeline(backend, fake_telemetry).run()

        metadata = report.inference_results.model_metadata
        assert metadata.name == "llama3"
        assert metadata.quantization == "Q4_0"
        assert metadata.size_mb == 4445

    @pytest.mark.asyncio
    async def test_refresh_ticks_while_waiting(self, fake_telemetry):
        backend = FakeBackend()
        fast_generate = backend.generate

        async def slow_generate(request):
            await asyncio.sleep(0.005)
            return await fast_generate(request)

        backend.generate = slow_generate
        recorder = StepRecorder()
        pipeline = _pipeline(backend, fake_telemetry, on_update=recorder, refresh_interval=0.001)

        await pipeline.run()

        assert pipeline.ticks > 0
        assert recorder.calls > pipeline.ticks


class TestFailures:
    """Test that the first error ends the run."""

    @pytest.mark.asyncio
    async def test_health_check_failure(self, fake_telemetry):
        backend = FakeBackend(health_error=ConnectivityError("failed to connect to Ollama"))
        pipeline = _pipeline(backend, fake_telemetry)

        with pytest.raises(ConnectivityError):
            await pipeline.run()

        assert pipeline.step == PipelineStep.FAILED
        assert pipeline.report is None
        assert pipeline.backend_ready is False
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_profile_failure_stops_suite(self, fake_telemetry):
        backend = FakeBackend(fail_on_call=12)
        pipeline = _pipeline(backend, fake_telemetry)

        with pytest.raises(ConnectivityError) as exc_info:
            await pipeline.run()

        assert exc_info.value.status_code == 404
        assert pipeline.step == PipelineStep.FAILED
        assert pipeline.error is exc_info.value
        assert pipeline.report is None
        assert len(backend.requests) == 12
        assert pipeline.completed_profiles == ["Atomic Check", "Code Generation"]

    @pytest.mark.asyncio
    async def test_telemetry_failure_is_fatal_by_default(self, fake_backend, failing_telemetry):
        pipeline = _pipeline(fake_backend, failing_telemetry)

        with pytest.raises(TelemetryError):
            await pipeline.run()

        assert pipeline.step == PipelineStep.FAILED
        assert fake_backend.health_checks == 0

    @pytest.mark.asyncio
    async def test_telemetry_failure_tolerated(self, fake_backend, failing_telemetry):
        pipeline = _pipeline(fake_backend, failing_telemetry, tolerate_partial_telemetry=True)

        report = await pipeline.run()

        assert pipeline.step == PipelineStep.DONE
        assert report.system_info.cpu.model == ""
        assert report.system_info.ram.total_mb == 0

    @pytest.mark.asyncio
    async def test_os_error_in_telemetry_is_a_telemetry_error(self, fake_backend):
        telemetry = FakeTelemetry(error=PermissionError(13, "Permission denied"))
        pipeline = _pipeline(fake_backend, telemetry)

        with pytest.raises(TelemetryError) as exc_info:
            await pipeline.run()

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert pipeline.step == PipelineStep.FAILED

    @pytest.mark.asyncio
    async def test_os_error_in_telemetry_tolerated(self, fake_backend):
        telemetry = FakeTelemetry(error=PermissionError(13, "Permission denied"))
        pipeline = _pipeline(fake_backend, telemetry, tolerate_partial_telemetry=True)

        report = await pipeline.run()

        assert pipeline.step == PipelineStep.DONE
        assert report.system_info.cpu.model == ""

    @pytest.mark.asyncio
    async def test_null_model_size_from_backend(self, fake_telemetry):
        backend = FakeBackend(model_info={"name": "llama3:latest", "size": None})

        report = await _pipeline(backend, fake_telemetry).run()

        assert report.inference_results.model_metadata.size_mb == 0

    @pytest.mark.asyncio
    async def test_failing_transition_fails_run(self, fake_telemetry):
        """An error applying a message ends the run instead of stalling it."""
        backend = FakeBackend(model_info={"name": "llama3", "details": "Q4_0"})
        pipeline = _pipeline(backend, fake_telemetry)

        with pytest.raises(AttributeError):
            await pipeline.run()

        assert pipeline.step == PipelineStep.FAILED
        assert isinstance(pipeline.error, AttributeError)
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_update_after_terminal_is_ignored(self, fake_telemetry):
        backend = FakeBackend(health_error=ConnectivityError("down"))
        pipeline = _pipeline(backend, fake_telemetry)
        with pytest.raises(ConnectivityError):
            await pipeline.run()

        assert pipeline.update(HealthChecked()) is None
        assert pipeline.update(ProfileFinished(index=0)) is None
        assert pipeline.step == PipelineStep.FAILED


class TestQuietGate:
    """Test the optional quiet-state step."""

    @pytest.mark.asyncio
    async def test_quiet_step_runs_before_health_check(
        self, monkeypatch, fake_backend, fake_telemetry
    ):
        seen_status: list[str] = []

        async def fake_wait(config, on_progress=None):
            on_progress("Monitoring quiet state... 1s / 1s")
            seen_status.append(pipeline.status_message)

        monkeypatch.setattr(pipeline_module, "wait_for_quiet_state", fake_wait)
        recorder = StepRecorder()
        pipeline = _pipeline(
            fake_backend,
            fake_telemetry,
            quiet_config=QuietStateConfig(timeout=2, wait_duration=1),
            on_update=recorder,
        )

        await pipeline.run()

        assert recorder.steps == [
            PipelineStep.TELEMETRY,
            PipelineStep.QUIET_WAIT,
            PipelineStep.HEALTH_CHECK,
            PipelineStep.BENCHMARK,
            PipelineStep.DONE,
        ]
        assert seen_status == ["Monitoring quiet state... 1s / 1s"]
        assert pipeline.status_message == ""

    @pytest.mark.asyncio
    async def test_quiet_timeout_fails_run(self, monkeypatch, fake_backend, fake_telemetry):
        async def fake_wait(config, on_progress=None):
            raise QuietTimeoutError("not quiet", last_reason="CPU usage (90.0%) > 15.0%")

        monkeypatch.setattr(pipeline_module, "wait_for_quiet_state", fake_wait)
        pipeline = _pipeline(
            fake_backend, fake_telemetry, quiet_config=QuietStateConfig(timeout=1)
        )

        with pytest.raises(QuietTimeoutError):
            await pipeline.run()

        assert pipeline.step == PipelineStep.FAILED
        assert fake_backend.health_checks == 0


class TestCancellation:
    """Test user cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_during_generation(self, fake_telemetry):
        backend = FakeBackend(block_generate=True)

        def cancel_when_benchmarking(pipeline: BenchmarkPipeline) -> None:
            if pipeline.step == PipelineStep.BENCHMARK and backend.requests:
                pipeline.cancel()

        pipeline = _pipeline(backend, fake_telemetry, on_update=cancel_when_benchmarking)

        with pytest.raises(BenchmarkCancelled) as exc_info:
            await pipeline.run()

        assert pipeline.step == PipelineStep.CANCELLED
        assert pipeline.report is None
        assert exc_info.value.details == {"step": PipelineStep.BENCHMARK.value}
        assert len(backend.requests) == 1

    @pytest.mark.asyncio
    async def test_cancel_before_run(self, fake_backend, fake_telemetry):
        pipeline = _pipeline(fake_backend, fake_telemetry)
        pipeline.cancel()

        with pytest.raises(BenchmarkCancelled):
            await pipeline.run()

        assert fake_backend.requests == []
