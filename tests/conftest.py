"""
Test fixtures and configuration for pytest.
"""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from rigrank.core.exceptions import ConnectivityError, TelemetryError
from rigrank.schemas import CPUInfo, RAMInfo, SystemInfo
from rigrank.services.benchmark import GenerateRequest, GenerateResponse

NS_PER_MS = 1_000_000


def make_response(
    total_ms: float = 100.0,
    load_ms: float = 10.0,
    prompt_eval_count: int = 32,
    prompt_eval_ms: float = 20.0,
    eval_count: int = 16,
    eval_ms: float = 50.0,
) -> GenerateResponse:
    """GenerateResponse with durations given in milliseconds."""
    return GenerateResponse(
        model="llama3",
        response="Paris",
        done=True,
        total_duration=int(total_ms * NS_PER_MS),
        load_duration=int(load_ms * NS_PER_MS),
        prompt_eval_count=prompt_eval_count,
        prompt_eval_duration=int(prompt_eval_ms * NS_PER_MS),
        eval_count=eval_count,
        eval_duration=int(eval_ms * NS_PER_MS),
    )


class FakeBackend:
    """In-memory inference backend recording every request."""

    def __init__(
        self,
        response_factory: Callable[[int], GenerateResponse] | None = None,
        fail_on_call: int | None = None,
        health_error: Exception | None = None,
        model_info: dict[str, Any] | None = None,
        block_generate: bool = False,
    ):
        self.response_factory = response_factory or (lambda index: make_response())
        self.fail_on_call = fail_on_call
        self.health_error = health_error
        self.model_info = model_info
        self.block_generate = block_generate
        self.requests: list[GenerateRequest] = []
        self.health_checks = 0
        self.closed = False

    async def __aenter__(self) -> "FakeBackend":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def check_health(self) -> None:
        self.health_checks += 1
        if self.health_error:
            raise self.health_error

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        self.requests.append(request)
        if self.block_generate:
            await asyncio.Event().wait()
        if self.fail_on_call is not None and len(self.requests) == self.fail_on_call:
            raise ConnectivityError("generate api error: model not found", status_code=404)
        return self.response_factory(len(self.requests) - 1)

    async def describe_model(self, name: str) -> dict[str, Any] | None:
        return self.model_info


class FakeTelemetry:
    """Telemetry provider returning fixed info or failing."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = 0

    def collect(self) -> SystemInfo:
        self.calls += 1
        if self.error:
            raise self.error
        return SystemInfo(
            arch="x86_64",
            cpu=CPUInfo(model="AMD Ryzen 9 7950X", cores_physical=16, cores_logical=32),
            ram=RAMInfo(total_mb=65536, type="DDR5", speed_mts=6000),
        )


@pytest.fixture
def fake_backend() -> FakeBackend:
    """Backend answering every request with the default response."""
    return FakeBackend()


@pytest.fixture
def fake_telemetry() -> FakeTelemetry:
    """Telemetry provider that succeeds."""
    return FakeTelemetry()


@pytest.fixture
def failing_telemetry() -> FakeTelemetry:
    """Telemetry provider that fails like an unreadable /proc."""
    return FakeTelemetry(error=TelemetryError("failed to read CPU info", component="cpu"))
