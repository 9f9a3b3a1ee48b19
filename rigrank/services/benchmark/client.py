"""
Ollama Client

Async HTTP client for the Ollama native API. Only non-streamed generation is
used: Ollama reports its own server-side timings in the final response, which
is what the benchmark measures.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from rigrank.core.exceptions import ConnectivityError

logger = logging.getLogger(__name__)

OLLAMA_DEFAULT_URL = "http://localhost:11434"
DEFAULT_REQUEST_TIMEOUT = 300.0  # 5 minutes per generate call

NS_PER_MS = 1_000_000
NS_PER_SECOND = 1_000_000_000


@dataclass
class GenerateRequest:
    """Payload of POST /api/generate"""

    model: str
    prompt: str
    stream: bool = False
    options: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to request body"""
        body: dict[str, Any] = {
            "model": self.model,
            "prompt": self.prompt,
            "stream": self.stream,
        }
        if self.options:
            body["options"] = self.options
        return body


@dataclass
class GenerateResponse:
    """Non-streamed /api/generate response. Durations are nanoseconds."""

    model: str = ""
    response: str = ""
    done: bool = False
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = 0
    prompt_eval_duration: int = 0
    eval_count: int = 0
    eval_duration: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GenerateResponse":
        """Build from the decoded JSON body, ignoring unknown keys"""
        return cls(
            model=data.get("model", ""),
            response=data.get("response", ""),
            done=bool(data.get("done", False)),
            total_duration=int(data.get("total_duration") or 0),
            load_duration=int(data.get("load_duration") or 0),
            prompt_eval_count=int(data.get("prompt_eval_count") or 0),
            prompt_eval_duration=int(data.get("prompt_eval_duration") or 0),
            eval_count=int(data.get("eval_count") or 0),
            eval_duration=int(data.get("eval_duration") or 0),
        )

    @property
    def total_duration_ms(self) -> float:
        return self.total_duration / NS_PER_MS

    @property
    def load_duration_ms(self) -> float:
        return self.load_duration / NS_PER_MS

    @property
    def prompt_eval_duration_ms(self) -> float:
        return self.prompt_eval_duration / NS_PER_MS

    @property
    def eval_duration_ms(self) -> float:
        return self.eval_duration / NS_PER_MS


class InferenceBackend(Protocol):
    """What the benchmark needs from an inference server"""

    async def check_health(self) -> None: ...

    async def generate(self, request: GenerateRequest) -> GenerateResponse: ...

    async def describe_model(self, name: str) -> dict[str, Any] | None: ...


class OllamaClient:
    """Client for a local Ollama server."""

    def __init__(
        self,
        base_url: str = OLLAMA_DEFAULT_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def check_health(self) -> None:
        """Verify Ollama is reachable.

        Raises:
            ConnectivityError: connection failed or status was not 200
        """
        try:
            response = await self._client.head("/")
        except httpx.HTTPError as e:
            raise ConnectivityError(f"failed to connect to Ollama at {self.base_url}: {e}") from e

        if response.status_code != 200:
            raise ConnectivityError(
                f"ollama returned status {response.status_code}",
                status_code=response.status_code,
            )
        logger.info(f"Ollama reachable at {self.base_url}")

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Send one inference request and wait for the complete response.

        Raises:
            ConnectivityError: transport failure, timeout, error status or
                undecodable body
        """
        try:
            response = await self._client.post("/api/generate", json=request.to_dict())
        except httpx.TimeoutException as e:
            raise ConnectivityError(f"generate request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ConnectivityError(f"generate request failed: {e}") from e

        if response.is_error:
            raise ConnectivityError(
                f"generate api error: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ConnectivityError(f"generate api returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConnectivityError(
                f"generate api returned {type(data).__name__}, expected a JSON object"
            )
        try:
            return GenerateResponse.from_dict(data)
        except (ValueError, TypeError) as e:
            raise ConnectivityError(f"generate api returned malformed timings: {e}") from e

    async def describe_model(self, name: str) -> dict[str, Any] | None:
        """Look up a local model in /api/tags.

        Returns the matching entry or None. Lookup problems are logged, not
        raised: model metadata is informational only.
        """
        try:
            response = await self._client.get("/api/tags")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to list Ollama models: {e}")
            return None

        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            logger.warning("Unexpected /api/tags response, model metadata unavailable")
            return None

        # "llama3" matches "llama3:latest"
        candidates = {name, f"{name}:latest"}
        for entry in models:
            if not isinstance(entry, dict):
                continue
            if entry.get("name") in candidates or entry.get("model") in candidates:
                return entry
        logger.debug(f"Model {name} not found in /api/tags")
        return None
