"""Terminal rendering.

Pure functions from pipeline/report data to rich renderables. Nothing here
keeps state between calls; the spinner frame is derived from the pipeline's
tick counter.
"""

from rich import box
from rich.console import Group
from rich.table import Table
from rich.text import Text

from rigrank.pipeline import BenchmarkPipeline, PipelineStep
from rigrank.schemas import BenchmarkResult, Rating, Stats, SuitabilityReport

# Colors
COLOR_EXCELLENT = "green"
COLOR_GOOD = "yellow"
COLOR_POOR = "red"
COLOR_TITLE = "bold magenta"
COLOR_INFO = "grey50"
COLOR_BORDER = "grey42"

CHECK_MARK = Text("✓", style=COLOR_EXCELLENT)
CROSS_MARK = Text("✗", style=COLOR_POOR)

SPINNER_FRAMES = "⣾⣽⣻⢿⡿⣟⣯⣷"

# Tokens are ~1.3 per English word on average
TOKENS_PER_WORD = 1.3

# Initial load this many times above steady state reads as a cold start
COLD_START_FACTOR = 3

RATING_COLORS = {
    Rating.EXCELLENT: COLOR_EXCELLENT,
    Rating.GOOD: COLOR_GOOD,
    Rating.POOR: COLOR_POOR,
}


def tps_to_words(tps: float) -> str:
    """Tokens/sec as approximate words/sec"""
    words = tps / TOKENS_PER_WORD
    if words >= 1000:
        return f"~{words / 1000:.1f}k"
    return f"~{words:.0f}"


def format_ms(ms: float) -> str:
    return f"{ms:.0f}ms"


def spinner_frame(tick: int) -> str:
    return SPINNER_FRAMES[tick % len(SPINNER_FRAMES)]


def _line(mark: Text | str, message: str, style: str = "") -> Text:
    text = Text()
    text.append_text(mark if isinstance(mark, Text) else Text(mark, style=COLOR_TITLE))
    text.append(f" {message}", style=style)
    return text


def render_progress(pipeline: BenchmarkPipeline) -> Group:
    """Live view of a running pipeline"""
    spinner = spinner_frame(pipeline.ticks)
    lines: list[Text] = [Text("RigRank Benchmark", style=COLOR_TITLE), Text("")]

    if pipeline.error is not None:
        lines.append(render_error(pipeline.error))
        return Group(*lines)

    # 1. Telemetry
    info = pipeline.system_info
    if info is not None:
        lines.append(_line(CHECK_MARK, "System Telemetry Collected"))
        if info.cpu.model:
            lines.append(Text(f"  • CPU: {info.cpu.model}", style=COLOR_INFO))
        if info.ram.total_mb:
            lines.append(Text(f"  • RAM: {info.ram.total_mb} MB", style=COLOR_INFO))
        if info.gpu.model:
            lines.append(Text(f"  • GPU: {info.gpu.model}", style=COLOR_INFO))
    elif pipeline.step == PipelineStep.TELEMETRY:
        lines.append(_line(spinner, "Gathering Telemetry..."))

    # 2. Quiet gate
    if pipeline.step == PipelineStep.QUIET_WAIT:
        lines.append(_line(spinner, pipeline.status_message or "Waiting for quiet state..."))
    elif pipeline.quiet_config is not None and pipeline.backend_ready:
        lines.append(_line(CHECK_MARK, "System Quiet"))

    # 3. Health check
    if pipeline.backend_ready:
        lines.append(_line(CHECK_MARK, "Ollama Connected"))
    elif pipeline.step == PipelineStep.HEALTH_CHECK:
        lines.append(_line(spinner, "Connecting to Ollama..."))

    # 4. Profiles
    if pipeline.completed_profiles:
        lines.append(Text(""))
        for name in pipeline.completed_profiles:
            lines.append(_line(CHECK_MARK, name))

    profile = pipeline.current_profile
    if profile is not None:
        lines.append(Text(""))
        lines.append(
            _line(
                spinner,
                f"Running Suite ({pipeline.profile_index + 1}/{len(pipeline.profiles)}): "
                f"{profile.name}",
            )
        )

    return Group(*lines)


def render_error(error: BaseException | str) -> Text:
    return _line(CROSS_MARK, f"Error: {error}", style=COLOR_POOR)


def _load_summary(result: BenchmarkResult) -> list[Text]:
    initial = format_ms(result.initial_load_ms)
    steady = format_ms(result.steady_state_load_ms)
    values = Text(
        f"     Initial Load (1st request): {initial}  |  Steady State (avg): {steady}",
        style=COLOR_INFO,
    )

    cold_start = (
        result.steady_state_load_ms > 0
        and result.initial_load_ms > result.steady_state_load_ms * COLD_START_FACTOR
    )
    if cold_start:
        return [
            Text(
                "  ⚠️  Model Load: Initial request was slower (possible cold start).",
                style=COLOR_GOOD,
            ),
            values,
            Text("     (This is normal if the model wasn't recently used)", style=COLOR_INFO),
        ]
    return [
        Text("  ✅ Model Load: Model was warm (already loaded).", style=COLOR_EXCELLENT),
        values,
    ]


def _profile_row(name: str, stats: Stats | None) -> list[str]:
    if stats is None:
        return [name, "-", "-", "-"]
    startup = format_ms(stats.ttft_ms.mean) if stats.ttft_ms else "-"
    writing = f"{tps_to_words(stats.gen_tps.mean)} words/sec" if stats.gen_tps else "-"
    reading = f"{tps_to_words(stats.prompt_tps.mean)} words/sec" if stats.prompt_tps else "-"
    return [name, startup, writing, reading]


def render_report_card(report: SuitabilityReport, result: BenchmarkResult) -> Group:
    """Holistic report card for a finished run"""
    parts: list = [
        Text(f"\n  📊 Model Report Card: {result.model_metadata.name}\n", style=COLOR_TITLE),
        *_load_summary(result),
        Text(""),
    ]

    table = Table(box=box.ROUNDED, border_style=COLOR_BORDER, header_style=COLOR_INFO)
    table.add_column("Benchmark")
    table.add_column("Startup\n(first word)")
    table.add_column("Writing Speed\n(output)")
    table.add_column("Reading Speed\n(input)")

    benchmarks = result.benchmarks
    rows = [
        ("Atomic Check", benchmarks.atomic),
        ("Code Gen", benchmarks.code_gen),
        ("Story Gen", benchmarks.story_gen),
        ("Summarization", benchmarks.summarization),
        ("Reasoning", benchmarks.reasoning),
    ]
    for name, profile in rows:
        table.add_row(*_profile_row(name, profile.stats if profile else None))
    parts.append(table)

    ratings = Table(box=box.SIMPLE, show_header=True, header_style=COLOR_INFO)
    ratings.add_column("Use Case")
    ratings.add_column("Rating")
    ratings.add_column("Reason")
    for label, suitability in zip(
        ("Quick Q&A", "Coding", "Writing", "Summarization", "Data Analysis"),
        report.ratings(),
    ):
        ratings.add_row(
            label,
            Text(suitability.rating.value, style=RATING_COLORS[suitability.rating]),
            suitability.reason,
        )
    parts.append(ratings)

    if report.coding.rating != Rating.POOR:
        parts.append(
            Text("  ✅ Writing Speed: Excellent across all tasks.", style=COLOR_EXCELLENT)
        )
    else:
        parts.append(
            Text("  ⚠️  Writing Speed: May feel slow for long outputs.", style=COLOR_POOR)
        )

    if report.quick_qa.rating == Rating.POOR:
        parts.append(
            Text("  ⚠️  Startup: Noticeable pause before responses begin.", style=COLOR_GOOD)
        )
    else:
        parts.append(Text("  ✅ Startup: Responses begin quickly.", style=COLOR_EXCELLENT))

    parts.append(Text(f"\n  {report.overall_verdict}", style="italic"))
    return Group(*parts)
