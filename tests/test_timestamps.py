"""
Tests for time range parsing and timestamp patterns.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from alertsynth.timestamps import PATTERNS, TimestampPolicy, parse_time_bound
from alertsynth.utils import parse_utc

NOW = datetime(2026, 5, 6, 15, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize("value,expected", [
    ("now", NOW),
    (None, NOW),
    ("30m", NOW - timedelta(minutes=30)),
    ("24h", NOW - timedelta(hours=24)),
    ("7d", NOW - timedelta(days=7)),
    ("2w", NOW - timedelta(weeks=2)),
    ("1M", NOW - timedelta(days=30)),
    ("1y", NOW - timedelta(days=365)),
    ("2026-01-01T00:00:00Z", datetime(2026, 1, 1, tzinfo=timezone.utc)),
])
def test_parse_time_bound(value, expected):
    assert parse_time_bound(value, NOW) == expected


def test_unknown_pattern_rejected():
    with pytest.raises(ValueError):
        TimestampPolicy(NOW - timedelta(days=1), NOW, pattern="lunar")


def test_reversed_bounds_are_swapped():
    policy = TimestampPolicy(NOW, NOW - timedelta(days=1))
    assert policy.start < policy.end


@pytest.mark.parametrize("pattern", PATTERNS)
def test_every_pattern_stays_in_range(pattern):
    policy = TimestampPolicy.from_config("14d", "now", pattern, rng=random.Random(9), now=NOW)
    for _ in range(300):
        ts = policy.next_datetime()
        assert NOW - timedelta(days=14) <= ts <= NOW


def test_business_hours_favours_working_day():
    policy = TimestampPolicy.from_config("28d", "now", "business_hours", rng=random.Random(4), now=NOW)
    samples = [policy.next_datetime() for _ in range(1000)]
    working = sum(1 for ts in samples if ts.weekday() < 5 and 9 <= ts.hour < 17)
    assert working > 700


def test_attack_simulation_clusters():
    policy = TimestampPolicy.from_config("30d", "now", "attack_simulation", rng=random.Random(8), now=NOW)
    samples = sorted(policy.next_datetime() for _ in range(200))
    bursts = policy._bursts
    assert 2 <= len(bursts) <= 4
    assert all(min(abs((s - b).total_seconds()) for b in bursts) < 3 * 3600 for s in samples)


def test_next_timestamp_is_iso_zulu():
    ts = TimestampPolicy.from_config("1h", rng=random.Random(1), now=NOW).next_timestamp()
    assert ts.endswith("Z")
    assert NOW - timedelta(hours=1) <= parse_utc(ts) <= NOW
