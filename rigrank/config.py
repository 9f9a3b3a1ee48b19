"""Application configuration"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    debug: bool = False

    # Ollama backend
    ollama_url: str = "http://localhost:11434"
    request_timeout: float = 300.0  # seconds, bounds a single generate call

    # Benchmark defaults
    model: str = "llama3"
    context_window: int = 4096

    # Quiet-state gate
    quiet_wait: bool = False
    quiet_cpu_threshold: float = 15.0  # percent
    quiet_ram_min_free_mb: int = 2048
    quiet_timeout: int = 60  # seconds
    quiet_wait_secs: int = 5  # seconds of sustained quiet required

    # Continue with empty hardware info when telemetry fails
    tolerate_partial_telemetry: bool = False

    # Progress redraw interval while a stage is running
    refresh_interval: float = 0.1

    # JSON results path (stdout when unset)
    output: Path | None = None

    class Config:
        env_prefix = "RIGRANK_"
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
