"""RigRank command line.

Usage:
    rigrank run --model llama3
    rigrank run --model qwen2.5:7b --quiet-wait --output results.json
    python -m rigrank run --help

Progress and the report card go to stderr so stdout carries only the JSON
document.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.live import Live

from rigrank.config import Settings, get_settings
from rigrank.core.exceptions import BenchmarkCancelled, RigRankError
from rigrank.pipeline import BenchmarkPipeline
from rigrank.services.benchmark import OllamaClient
from rigrank.services.telemetry import QuietStateConfig, get_telemetry_provider
from rigrank.ui import render_error, render_progress, render_report_card

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rigrank",
        description="RigRank - Local LLM Benchmark Tool. Checks your hardware "
        "and benchmarks a model locally via Ollama.",
    )
    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser("run", help="Execute the standard benchmark suite")
    # Unset flags fall back to RIGRANK_* settings
    run.add_argument("-m", "--model", help="Ollama model name to benchmark (default: llama3)")
    run.add_argument(
        "-d", "--debug", action="store_true", default=None, help="Enable verbose debug logging"
    )
    run.add_argument("-o", "--output", type=Path, help="Path to save JSON results")
    run.add_argument(
        "-c",
        "--context-window",
        type=int,
        help="Context window size for the model (default: 4096)",
    )
    run.add_argument("--ollama-url", help="Ollama base URL (default: http://localhost:11434)")
    run.add_argument(
        "--quiet-wait",
        action="store_true",
        default=None,
        help="Wait for system to become idle before benchmarking",
    )
    run.add_argument(
        "--quiet-cpu",
        type=float,
        help="Maximum CPU usage percentage allowed during quiet wait (default: 15)",
    )
    run.add_argument(
        "--quiet-ram-mb",
        type=int,
        help="Minimum free RAM (MB) required during quiet wait (default: 2048)",
    )
    run.add_argument(
        "--quiet-timeout",
        type=int,
        help="Timeout in seconds to wait for quiet state (default: 60)",
    )
    run.add_argument(
        "--quiet-wait-secs",
        type=int,
        help="Duration in seconds of sustained quiet state required (default: 5)",
    )
    run.add_argument(
        "--tolerate-telemetry-errors",
        action="store_true",
        default=None,
        help="Continue with empty hardware info if telemetry collection fails",
    )
    return parser


def resolve_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    """Overlay explicitly given flags on the environment settings"""
    overrides = {
        "model": args.model,
        "debug": args.debug,
        "output": args.output,
        "context_window": args.context_window,
        "ollama_url": args.ollama_url,
        "quiet_wait": args.quiet_wait,
        "quiet_cpu_threshold": args.quiet_cpu,
        "quiet_ram_min_free_mb": args.quiet_ram_mb,
        "quiet_timeout": args.quiet_timeout,
        "quiet_wait_secs": args.quiet_wait_secs,
        "tolerate_partial_telemetry": args.tolerate_telemetry_errors,
    }
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def quiet_config_from(settings: Settings) -> QuietStateConfig | None:
    if not settings.quiet_wait:
        return None
    return QuietStateConfig(
        timeout=settings.quiet_timeout,
        wait_duration=settings.quiet_wait_secs,
        cpu_threshold=settings.quiet_cpu_threshold,
        ram_min_free_mb=settings.quiet_ram_min_free_mb,
    )


def _install_cancel_handler(pipeline: BenchmarkPipeline) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, pipeline.cancel)
        except (NotImplementedError, RuntimeError):
            # Windows: Ctrl-C arrives as KeyboardInterrupt instead
            pass


async def run_benchmark(settings: Settings, console: Console) -> int:
    """Run the pipeline with a live progress view. Returns the exit status."""
    telemetry = get_telemetry_provider()

    async with OllamaClient(settings.ollama_url, timeout=settings.request_timeout) as client:
        with Live(console=console, auto_refresh=False) as live:
            pipeline = BenchmarkPipeline(
                client=client,
                telemetry=telemetry,
                model=settings.model,
                context_window=settings.context_window,
                quiet_config=quiet_config_from(settings),
                tolerate_partial_telemetry=settings.tolerate_partial_telemetry,
                on_update=lambda p: live.update(render_progress(p), refresh=True),
                refresh_interval=settings.refresh_interval,
            )
            _install_cancel_handler(pipeline)

            try:
                report = await pipeline.run()
            except BenchmarkCancelled:
                console.print(render_error("benchmark cancelled"))
                return 130
            except RigRankError:
                # Already shown by the progress view
                return 1
            except Exception as e:
                logger.debug("Unexpected benchmark failure", exc_info=True)
                if pipeline.error is not e:
                    console.print(render_error(e))
                return 1

    console.print(render_report_card(report.use_case_suitability, report.inference_results))

    document = report.to_json()
    if settings.output:
        try:
            settings.output.write_text(document + "\n")
        except OSError as e:
            console.print(render_error(f"writing output file: {e}"))
            return 1
        console.print(f"Results saved to {settings.output}")
    else:
        print(document)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "run":
        parser.print_help()
        return 1

    settings = resolve_settings(args, get_settings())

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    console = Console(stderr=True)
    try:
        return asyncio.run(run_benchmark(settings, console))
    except KeyboardInterrupt:
        console.print(render_error("benchmark cancelled"))
        return 130


if __name__ == "__main__":
    sys.exit(main())
