"""
Tests for the multi-field generator.
"""
from __future__ import annotations

import random

from alertsynth.multi_field import MultiFieldConfig, MultiFieldGenerator, generate_fields
from alertsynth.templates import FIELD_CATALOG, total_field_count


def test_generates_requested_count_from_category():
    gen = MultiFieldGenerator(MultiFieldConfig(field_count=5, categories=["threat_intelligence"]), random.Random(1))
    result = gen.generate_fields()
    assert result.metadata.total_generated == 5
    assert set(result.fields) <= set(FIELD_CATALOG["threat_intelligence"])
    assert result.metadata.categories_used == ["threat_intelligence"]


def test_count_is_bounded_by_catalog():
    gen = MultiFieldGenerator(MultiFieldConfig(field_count=500), random.Random(2))
    assert len(gen.generate_fields().fields) == total_field_count()


def test_large_request_switches_to_expanded_catalog():
    gen = MultiFieldGenerator(MultiFieldConfig(field_count=1500, expanded_field_count=0), random.Random(3))
    stats = gen.catalog_statistics()
    assert stats["total_templates"] >= 1500
    assert "behavioral" in stats["by_category"]
    assert len(gen.select_templates()) == 1500


def test_expanded_categories_restrict_families():
    cfg = MultiFieldConfig(field_count=40, use_expanded_fields=True, expanded_field_count=40,
                           expanded_categories=["network"])
    gen = MultiFieldGenerator(cfg, random.Random(4))
    assert all(t.name.startswith("network.") for t in gen.select_templates())


def test_catalog_statistics_cover_every_template():
    gen = MultiFieldGenerator(MultiFieldConfig(field_count=10, performance_mode=True), random.Random(5))
    stats = gen.catalog_statistics()
    assert stats["total_templates"] == total_field_count()
    assert sum(stats["by_type"].values()) == stats["total_templates"]
    assert set(stats["by_category"]) == set(FIELD_CATALOG)
    assert stats["performance_mode"] is True


def test_disabled_correlation_applies_nothing():
    cfg = MultiFieldConfig(field_count=30, correlation_enabled=False)
    result = MultiFieldGenerator(cfg, random.Random(6)).generate_fields({"threat.technique.id": "T1059"})
    assert result.metadata.correlations_applied == 0


def test_module_helper_returns_plain_fields():
    fields = generate_fields(8, ["security_scores"], rng=random.Random(7))
    assert len(fields) == 8
    assert set(fields) <= set(FIELD_CATALOG["security_scores"])


def test_same_seed_same_fields():
    a = generate_fields(12, rng=random.Random(11))
    b = generate_fields(12, rng=random.Random(11))
    assert list(a) == list(b)
