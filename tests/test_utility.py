import pytest

from dedupkit.utility import BUCKET_COUNT, UtilityBuckets, rewrite_utility


def test_empty_context_has_full_utility():
    assert rewrite_utility(0, 0, 100) == 1.0


def test_full_coverage_has_zero_utility():
    assert rewrite_utility(50, 50, 100) == 0.0
    assert rewrite_utility(100, 50, 100) == 0.0


def test_utility_decreases_with_coverage():
    values = [rewrite_utility(size, 10, 1000) for size in range(0, 900, 100)]
    assert values == sorted(values, reverse=True)
    assert all(0.0 <= v <= 1.0 for v in values)


def test_invalid_capacity():
    with pytest.raises(ValueError):
        rewrite_utility(1, 1, 0)


def test_threshold_fixed_during_warm_up():
    buckets = UtilityBuckets(minimal_utility=0.5, limit=0.05)
    for _ in range(99):
        assert buckets.update(0.9) == 0.5
    assert buckets.chunk_num == 99


def test_threshold_adapts_after_warm_up():
    buckets = UtilityBuckets(minimal_utility=0.5, limit=0.05)
    for _ in range(100):
        buckets.update(0.9)
    assert buckets.current_utility_threshold > 0.9
    assert not buckets.is_out_of_order(0.9)
    assert buckets.is_out_of_order(0.95)


def test_below_minimal_never_out_of_order():
    buckets = UtilityBuckets(minimal_utility=0.5, limit=0.05)
    assert not buckets.is_out_of_order(0.3)
    assert buckets.is_out_of_order(0.6)


def test_minimal_of_one_uses_last_bucket():
    buckets = UtilityBuckets(minimal_utility=1, limit=0.5)
    assert buckets.min_index == BUCKET_COUNT - 1


def test_utility_one_counted_in_last_bucket():
    buckets = UtilityBuckets()
    buckets.update(1.0)
    assert buckets.buckets[BUCKET_COUNT - 1] == 1
    assert sum(buckets.buckets) == 1


def test_threshold_never_below_minimal_index():
    buckets = UtilityBuckets(minimal_utility=0.2, limit=1.0)
    for _ in range(150):
        buckets.update(0.0)
    assert buckets.current_utility_threshold >= buckets.min_index / BUCKET_COUNT