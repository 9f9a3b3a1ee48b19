"""
Benchmark Statistics

Aggregates per-iteration samples into mean / median / p99.
"""

import math
from collections.abc import Sequence

from rigrank.schemas import StatsMetric


def percentile_index(n: int, fraction: float = 0.99) -> int:
    """Index of the nearest-rank percentile in a sorted sequence of length n"""
    index = math.ceil(n * fraction) - 1
    return min(max(index, 0), n - 1)


def compute_stats(values: Sequence[float]) -> StatsMetric | None:
    """Compute mean, median and p99 of a sample set.

    Returns None for an empty sample set. The median is the element at
    ``n // 2`` of the sorted samples, i.e. the upper-middle element for an
    even count rather than the average of the two middle values.
    """
    if not values:
        return None

    sorted_values = sorted(values)
    n = len(sorted_values)

    return StatsMetric(
        mean=math.fsum(sorted_values) / n,
        median=sorted_values[n // 2],
        p99=sorted_values[percentile_index(n)],
    )
