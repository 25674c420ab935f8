"""Context-based rewriting: rewrite utility and its adaptive threshold."""

from __future__ import annotations

BUCKET_COUNT = 10000
"""Utility range [0, 1] is split into this many equal buckets."""

WARM_UP_CHUNKS = 100
"""The threshold starts adapting once this many chunks have been seen."""


def rewrite_utility(record_size: int, chunk_size: int, container_capacity: int) -> float:
    """Return the utility of rewriting a chunk whose container already holds ``record_size``
    bytes of the current stream context.

    The utility is the share of the container that the context does not cover,
    or 0 once it covers the whole container.
    """
    if container_capacity <= 0:
        raise ValueError("container capacity must be positive")
    coverage = (record_size + chunk_size) / container_capacity
    return 0.0 if coverage >= 1 else 1.0 - coverage


def _bucket_index(utility: float) -> int:
    return BUCKET_COUNT - 1 if utility >= 1 else int(utility * BUCKET_COUNT)


class UtilityBuckets:
    """Histogram of rewrite utilities that keeps the rewrite rate near a limit.

    After a warm-up the threshold is raised so that only about ``limit`` of
    all chunks seen so far would have a utility at or above it.
    """

    def __init__(self, minimal_utility: float = 0.0, limit: float = 0.0) -> None:
        self.minimal_utility = minimal_utility
        self.limit = limit
        self.chunk_num = 0
        self.min_index = (
            BUCKET_COUNT - 1 if minimal_utility == 1 else int(minimal_utility * BUCKET_COUNT)
        )
        self.current_utility_threshold = minimal_utility
        self.buckets = [0] * BUCKET_COUNT

    def update(self, utility: float) -> float:
        """Record one chunk's utility; return the resulting threshold."""
        self.chunk_num += 1
        self.buckets[_bucket_index(utility)] += 1
        if self.chunk_num >= WARM_UP_CHUNKS:
            best_num = int(self.chunk_num * self.limit)
            count = 0
            index = BUCKET_COUNT - 1
            while index >= self.min_index:
                count += self.buckets[index]
                if count >= best_num:
                    break
                index -= 1
            self.current_utility_threshold = (index + 1) / BUCKET_COUNT
        return self.current_utility_threshold

    def is_out_of_order(self, utility: float) -> bool:
        """Return True if a chunk with this utility should be rewritten."""
        return not (
            utility < self.minimal_utility or utility < self.current_utility_threshold
        )