"""
Tests for the field template catalog and value generation.
"""
from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from alertsynth.templates import (
    FIELD_CATALOG,
    FIELD_TYPES,
    FieldTemplate,
    catalog_for,
    combine_catalogs,
    field_categories,
    fields_in_category,
    generate_value,
    get_template,
    make_template,
    total_field_count,
)
from alertsynth.utils import parse_utc

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def test_catalog_names_are_unique_across_categories():
    names = [n for fields in FIELD_CATALOG.values() for n in fields]
    assert len(names) == len(set(names))
    assert total_field_count() == len(names)


def test_catalog_templates_are_well_formed():
    for category in field_categories():
        for name in fields_in_category(category):
            t = FIELD_CATALOG[category][name]
            assert t.name == name
            assert t.type in FIELD_TYPES
            assert t.weight > 0


def test_lookup_helpers():
    t = get_template("system.performance.cpu_usage")
    assert t is not None and t.type == "float"
    assert get_template("no.such.field") is None
    assert fields_in_category("no_such_category") == []


def test_template_rejects_bad_definitions():
    with pytest.raises(ValueError):
        FieldTemplate(name="a.b", type="ip", generator="int_range", params=(0, 1))
    with pytest.raises(ValueError):
        FieldTemplate(name="a.b", type="integer", generator="int_range", params=(0, 1), weight=0)
    with pytest.raises(ValueError):
        FieldTemplate(name="a.b", type="integer", generator="closure")


def test_template_is_immutable():
    t = make_template("a.b", "integer", ("int_range", (0, 5)))
    with pytest.raises(Exception):
        t.weight = 9  # type: ignore[misc]
    assert t.weight == 5.0


def test_generated_values_respect_their_variant():
    rng = random.Random(7)
    for _ in range(200):
        cpu = generate_value(get_template("system.performance.cpu_usage"), rng, NOW)
        assert 0 <= cpu <= 100
        conf = generate_value(get_template("threat.intelligence.confidence"), rng, NOW)
        assert isinstance(conf, int) and 0 <= conf <= 100
        sev = generate_value(get_template("threat.intelligence.severity"), rng, NOW)
        assert sev in ("low", "medium", "high", "critical")
        tags = generate_value(get_template("threat.indicator.tags"), rng, NOW)
        assert 1 <= len(tags) <= 3 and len(set(tags)) == len(tags)
        flag = generate_value(get_template("audit.log.tampering_detected"), rng, NOW)
        assert isinstance(flag, bool)


def test_timestamps_fall_in_the_past_window():
    rng = random.Random(3)
    t = get_template("threat.enrichment.last_seen")
    for _ in range(50):
        ts = parse_utc(generate_value(t, rng, NOW))
        assert (NOW - ts).total_seconds() >= 0
        assert (NOW - ts).days <= 30


def test_generation_is_reproducible_with_a_seed():
    t = get_template("security.score.overall_risk")
    a = [generate_value(t, random.Random(11), NOW) for _ in range(3)]
    b = [generate_value(t, random.Random(11), NOW) for _ in range(3)]
    assert a == b


def test_combine_keeps_first_definition():
    first = {"x.y": make_template("x.y", "integer", ("int_range", (0, 1)), weight=2)}
    second = {
        "x.y": make_template("x.y", "float", ("float_range", (0, 1, 2)), weight=9),
        "x.z": make_template("x.z", "string", ("token", (4,))),
    }
    combined = combine_catalogs(first, second)
    assert list(combined) == ["x.y", "x.z"]
    assert combined["x.y"].type == "integer"


def test_catalog_for_restricts_and_skips_unknown():
    cat = catalog_for(["network_analytics", "bogus"])
    assert set(cat) == set(fields_in_category("network_analytics"))
    assert len(catalog_for()) == total_field_count()
