# tests/test_levels.py
import threading
from concurrent.futures import ThreadPoolExecutor

from studytimer.levels import (
    LevelCurve, PointRate, account_curve, earned_points, rank_badge,
    safe_percentage, seconds_for_points, term_curve,
)


def test_term_curve_requirements():
    curve = term_curve()
    assert curve.requirement(1) == 100
    assert curve.requirement(2) == 700
    assert curve.requirement(3) == 1300


def test_account_curve_requirements():
    curve = account_curve()
    assert curve.requirement(1) == 300
    assert curve.requirement(2) == 1500


def test_requirement_strictly_increasing_and_deterministic():
    for curve in (term_curve(), account_curve()):
        previous = curve.requirement(1)
        for n in range(2, 300):
            value = curve.requirement(n)
            assert value > previous
            assert curve.requirement(n) == value
            previous = value


def test_requirement_below_one_uses_first_position():
    curve = term_curve()
    assert curve.requirement(0) == curve.requirement(1)
    assert curve.requirement(-5) == curve.requirement(1)


def test_injected_cache_is_used():
    cache = {}
    curve = LevelCurve(600, 500, cache=cache)
    curve.requirement(4)
    assert cache == {4: 1900}
    cache[4] = 1  # cached values are returned as-is
    assert curve.requirement(4) == 1


def test_shared_cache_between_instances():
    cache = {}
    first = term_curve(cache=cache)
    second = term_curve(cache=cache)
    first.requirement(10)
    assert second.cache is cache
    assert 10 in second.cache


def test_apply_exact_requirement_levels_once():
    curve = term_curve()
    result = curve.apply(1, 0, curve.requirement(2))
    assert result.levels_gained == 1
    assert result.new_level == 2
    assert result.leftover == 0


def test_apply_carries_over_multiple_levels():
    curve = term_curve()
    # 700 (to 2) + 1300 (to 3) + 50 left
    result = curve.apply(1, 0, 2050)
    assert result.new_level == 3
    assert result.levels_gained == 2
    assert result.leftover == 50


def test_apply_below_requirement_keeps_points():
    curve = term_curve()
    result = curve.apply(1, 200, 300)
    assert result.new_level == 1
    assert result.levels_gained == 0
    assert result.leftover == 500


def test_apply_renormalizes_corrupt_points():
    curve = term_curve()
    # 5000 stored points at level 1 is already past several thresholds
    result = curve.apply(1, 5000, 0)
    assert result.levels_gained > 0
    assert result.leftover < curve.requirement(result.new_level + 1)


def test_apply_negative_inputs_treated_as_zero():
    curve = term_curve()
    result = curve.apply(1, -100, -500)
    assert result.new_level == 1
    assert result.leftover == 0
    assert result.levels_gained == 0


def test_apply_leftover_invariant():
    curve = account_curve()
    for level in (0, 1, 7, 40):
        for points in (0, 299, 1500, 12345):
            for earned in (0, 180, 3600, 99999):
                result = curve.apply(level, points, earned)
                assert result.leftover >= 0
                assert result.leftover < curve.requirement(result.new_level + 1)
                assert result.new_level == max(level, 0) + result.levels_gained


def test_apply_clamps_at_ceiling():
    curve = LevelCurve(600, 500, ceiling=3)
    result = curve.apply(1, 0, 10_000)
    assert result.new_level == 3
    assert result.levels_gained == 2
    assert result.leftover == 10_000 - 700 - 1300


def test_apply_at_ceiling_gains_nothing():
    curve = LevelCurve(600, 500, ceiling=3)
    result = curve.apply(3, 0, 10_000)
    assert result.levels_gained == 0
    assert result.leftover == 10_000


def test_total_points():
    curve = term_curve()
    assert curve.total_points(3, 50) == 100 + 700 + 1300 + 50
    assert curve.total_points(0, 0) == 0


def test_earned_points_discards_partial_blocks():
    assert earned_points(10 * 60) == 360
    assert earned_points(5 * 60 - 1) == 0
    assert earned_points(14 * 60 + 59) == 360
    assert earned_points(-30) == 0


def test_earned_points_custom_rate():
    rate = PointRate(points_per_block=10, block_minutes=1)
    assert earned_points(3 * 60, rate) == 30


def test_seconds_for_points():
    assert seconds_for_points(180) == 300
    assert seconds_for_points(0) == 0
    assert seconds_for_points(-5) == 0


def test_safe_percentage():
    assert safe_percentage(50, 100) == 50
    assert safe_percentage(150, 100) == 100
    assert safe_percentage(5, 0) == 0
    assert safe_percentage(-5, 100) == 0


def test_rank_badge_bands():
    assert rank_badge(0) == "Verified"
    assert rank_badge(30) == "Black Heart"
    assert rank_badge(300) == "Crystal Heart"
    assert rank_badge(4999) == "Donut"


class CountingCache(dict):
    def __init__(self):
        super().__init__()
        self.writes = []

    def __setitem__(self, key, value):
        self.writes.append(key)
        super().__setitem__(key, value)


def test_concurrent_lookups_on_shared_cache():
    cache = CountingCache()
    curves = [term_curve(cache=cache), term_curve(cache=cache)]
    positions = list(range(1, 201)) * 10

    def lookup(i):
        n = positions[i]
        return n, curves[i % 2].requirement(n)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lookup, range(len(positions))))

    assert all(value == 600 * n - 500 for n, value in results)
    assert dict(cache) == {n: 600 * n - 500 for n in range(1, 201)}
    assert sorted(cache.writes) == list(range(1, 201))


def test_curves_sharing_a_cache_share_a_lock():
    cache = {}
    assert term_curve(cache=cache).lock is account_curve().lock
    own = threading.Lock()
    curve = LevelCurve(600, 500, cache=cache, lock=own)
    assert curve.lock is own
    assert curve.requirement(2) == 700
