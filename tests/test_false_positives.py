"""
Tests for false positive marking and statistics.
"""
from __future__ import annotations

import random

import pytest

from alertsynth.false_positives import (
    FALSE_POSITIVE_CATEGORIES,
    SOC_ANALYSTS,
    false_positive_stats,
    mark_false_positive,
    should_mark,
)


def record():
    return {
        "@timestamp": "2026-02-01T10:00:00.000Z",
        "kibana.alert.workflow_status": "open",
        "kibana.alert.rule.false_positives": ["existing"],
    }


def test_marking_returns_closed_copy():
    original = record()
    marked = mark_false_positive(original, random.Random(1))
    assert original["kibana.alert.workflow_status"] == "open"
    assert marked["kibana.alert.workflow_status"] == "closed"
    assert marked["kibana.alert.false_positive"] is True
    assert marked["kibana.alert.false_positive_category"] in FALSE_POSITIVE_CATEGORIES
    assert marked["kibana.alert.workflow_user"] in SOC_ANALYSTS
    assert marked["kibana.alert.workflow_reason"] in FALSE_POSITIVE_CATEGORIES[marked["kibana.alert.false_positive_category"]]
    assert 5 <= marked["kibana.alert.resolution_time_minutes"] <= 120
    assert marked["kibana.alert.rule.false_positives"][0] == "existing"
    assert len(marked["kibana.alert.rule.false_positives"]) == 2
    assert marked["event.outcome"] == "false_positive"


def test_marking_with_explicit_category():
    marked = mark_false_positive(record(), random.Random(2), category="maintenance")
    assert marked["kibana.alert.false_positive_category"] == "maintenance"


def test_marking_requires_timestamp():
    with pytest.raises(ValueError):
        mark_false_positive({"@timestamp": "not a time"}, random.Random(0))


def test_should_mark_bounds():
    rng = random.Random(0)
    assert not any(should_mark(rng, 0.0) for _ in range(500))
    assert all(should_mark(rng, 1.0) for _ in range(500))
    hits = sum(should_mark(rng, 0.3) for _ in range(5000))
    assert 1200 < hits < 1800


def test_stats():
    rng = random.Random(5)
    records = [mark_false_positive(record(), rng, "maintenance") for _ in range(3)] + [record()]
    stats = false_positive_stats(records)
    assert stats["total"] == 4
    assert stats["false_positives"] == 3
    assert stats["rate"] == pytest.approx(0.75)
    assert stats["by_category"] == {"maintenance": 3}
    assert stats["avg_resolution_minutes"] >= 5
    assert false_positive_stats([])["rate"] == 0.0
