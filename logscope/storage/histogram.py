"""Bucket width selection and bucket materialization for event histograms."""

from collections.abc import Iterable

from ..models import HistogramBucket, MethodCount

# Candidate widths in ms, ascending: 1ms .. 24h
BUCKET_WIDTH_LADDER: tuple[int, ...] = (
    1, 10, 50, 100, 250, 500,
    1_000, 2_000, 5_000, 10_000, 30_000, 60_000,
    120_000, 300_000, 600_000, 1_800_000, 3_600_000,
    7_200_000, 14_400_000, 43_200_000, 86_400_000,
)

# Width used when every event shares one timestamp
ZERO_RANGE_WIDTH_MS = 1_000


def bucket_count(range_ms: int, width_ms: int) -> int:
    """Number of buckets needed to tile ``[0, range_ms]`` with the given width."""
    return range_ms // width_ms + 1


def choose_bucket_width(range_ms: int, max_buckets: int) -> int:
    """Pick the smallest ladder width that keeps the bucket count within budget.

    Falls back to an evenly divided width when the range outgrows the ladder.
    """
    if max_buckets < 1:
        raise ValueError(f"max_buckets must be >= 1, got {max_buckets}")
    if range_ms <= 0:
        return ZERO_RANGE_WIDTH_MS

    for width in BUCKET_WIDTH_LADDER:
        if bucket_count(range_ms, width) <= max_buckets:
            return width

    # floor(range / max_buckets) alone yields max_buckets + 1 buckets
    return range_ms // max_buckets + 1


def build_buckets(
    min_ts: int,
    range_ms: int,
    width_ms: int,
    rows: Iterable[tuple[int, str, int]],
) -> list[HistogramBucket]:
    """Materialize every bucket index, then attach the grouped counts.

    ``rows`` are ``(bucket_idx, method, count)`` tuples from the aggregation
    query; indices outside the materialized span are ignored.
    """
    buckets = [
        HistogramBucket(
            start_ts_ms=min_ts + i * width_ms,
            end_ts_ms=min_ts + (i + 1) * width_ms,
        )
        for i in range(bucket_count(max(range_ms, 0), width_ms))
    ]

    for bucket_idx, method, count in rows:
        idx = int(bucket_idx)
        if 0 <= idx < len(buckets):
            buckets[idx].counts.append(MethodCount(method=method, count=int(count)))

    return buckets
