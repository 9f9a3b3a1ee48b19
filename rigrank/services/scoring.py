"""Use-case suitability scoring.

Maps suite statistics onto EXCELLENT / GOOD / POOR ratings with a fixed
threshold table and derives an overall verdict.
"""

from rigrank.schemas import BenchmarkResult, ProfileStats, Rating, Suitability, SuitabilityReport

VERDICT_ALL_GOOD = "This model performs well on your hardware for all tested use cases."
VERDICT_MOSTLY_GOOD = (
    "This model is suitable for most tasks, but may struggle with some heavy workloads."
)
VERDICT_TOO_HEAVY = (
    "This model may be too heavy for your hardware. "
    "Consider a smaller quantization or parameter count."
)


def _mean(profile: ProfileStats | None, metric: str) -> float | None:
    if profile is None:
        return None
    stats = getattr(profile.stats, metric)
    return stats.mean if stats is not None else None


def _rated(rating: Rating, reason: str) -> Suitability:
    return Suitability(rating=rating, reason=reason)


def _not_measured(what: str) -> Suitability:
    return _rated(Rating.POOR, f"{what} was not measured.")


def rate_quick_qa(ttft_ms: float | None) -> Suitability:
    """Quick Q&A: atomic-check TTFT, lower is better"""
    if ttft_ms is None:
        return _not_measured("TTFT")
    if ttft_ms < 50:
        return _rated(Rating.EXCELLENT, f"TTFT of {ttft_ms:.1f}ms is very responsive.")
    if ttft_ms < 200:
        return _rated(Rating.GOOD, f"TTFT of {ttft_ms:.1f}ms is acceptable.")
    return _rated(Rating.POOR, f"TTFT of {ttft_ms:.1f}ms is sluggish.")


def rate_coding(tps: float | None) -> Suitability:
    """Coding: code-generation speed"""
    if tps is None:
        return _not_measured("Generation speed")
    if tps > 40:
        return _rated(Rating.EXCELLENT, f"Generation speed of {tps:.1f} t/s is fluid.")
    if tps > 20:
        return _rated(Rating.GOOD, f"Generation speed of {tps:.1f} t/s is usable.")
    return _rated(Rating.POOR, f"Generation speed of {tps:.1f} t/s is too slow.")


def rate_writing(tps: float | None) -> Suitability:
    """Writing: story-generation speed"""
    if tps is None:
        return _not_measured("Generation speed")
    if tps > 35:
        return _rated(Rating.EXCELLENT, f"Speed of {tps:.1f} t/s is great for drafting.")
    if tps > 15:
        return _rated(Rating.GOOD, f"Speed of {tps:.1f} t/s is okay.")
    return _rated(Rating.POOR, f"Speed of {tps:.1f} t/s is distracting.")


def rate_summarization(tps: float | None) -> Suitability:
    """Summarization: prompt ingestion speed on the long input"""
    if tps is None:
        return _not_measured("Ingestion speed")
    if tps > 200:
        return _rated(Rating.EXCELLENT, f"Ingestion speed of {tps:.1f} t/s is fast.")
    if tps > 100:
        return _rated(Rating.GOOD, f"Ingestion speed of {tps:.1f} t/s is decent.")
    return _rated(Rating.POOR, f"Ingestion speed of {tps:.1f} t/s is slow.")


def rate_data_analysis(tps: float | None) -> Suitability:
    """Data analysis: generation speed on the reasoning prompt"""
    if tps is None:
        return _not_measured("Complex generation speed")
    if tps > 50:
        return _rated(Rating.EXCELLENT, f"Complex gen speed of {tps:.1f} t/s is superb.")
    if tps > 25:
        return _rated(Rating.GOOD, f"Complex gen speed of {tps:.1f} t/s is good.")
    return _rated(Rating.POOR, f"Complex gen speed of {tps:.1f} t/s is low.")


def overall_verdict(ratings: list[Suitability]) -> str:
    """Verdict from the number of use cases not rated POOR"""
    usable = sum(1 for s in ratings if s.rating != Rating.POOR)
    if usable == len(ratings):
        return VERDICT_ALL_GOOD
    if usable >= 3:
        return VERDICT_MOSTLY_GOOD
    return VERDICT_TOO_HEAVY


def evaluate(result: BenchmarkResult) -> SuitabilityReport:
    """Rate each use case from a suite result"""
    benchmarks = result.benchmarks

    quick_qa = rate_quick_qa(_mean(benchmarks.atomic, "ttft_ms"))
    coding = rate_coding(_mean(benchmarks.code_gen, "gen_tps"))
    writing = rate_writing(_mean(benchmarks.story_gen, "gen_tps"))
    summarization = rate_summarization(_mean(benchmarks.summarization, "prompt_tps"))
    data_analysis = rate_data_analysis(_mean(benchmarks.reasoning, "gen_tps"))

    return SuitabilityReport(
        quick_qa=quick_qa,
        coding=coding,
        writing=writing,
        summarization=summarization,
        data_analysis=data_analysis,
        overall_verdict=overall_verdict(
            [quick_qa, coding, writing, summarization, data_analysis]
        ),
    )
