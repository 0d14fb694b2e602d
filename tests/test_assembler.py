"""
Tests for alert assembly from a hand-built data pool.
"""
from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

import pytest

from alertsynth.assembler import AlertAssembler, AssemblyOptions, cast_value
from alertsynth.errors import AssemblyError
from alertsynth.pools import (
    DataPool,
    ExtendedField,
    ExtendedPool,
    PoolMetadata,
    StandardPool,
    TechniquePool,
    ThemePool,
)
from alertsynth.timestamps import TimestampPolicy
from alertsynth.utils import parse_utc
from alertsynth.vocab import TECHNIQUES

NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


def make_pool(alert_names=("A", "B", "C"), theme=None, technique=None, extended=None, threat_names=("Emotet",)):
    standard = StandardPool(
        alert_names=list(alert_names),
        alert_descriptions=["desc"],
        threat_names=list(threat_names),
        process_names=["cmd.exe"],
        file_names=["payload.exe"],
        domains=["bad.example"],
        ip_addresses=["203.0.113.7"],
        registry_keys=["HKLM\\Software\\Run"],
        urls=["https://bad.example/gate.php"],
        event_descriptions=["Something odd happened"],
    )
    metadata = PoolMetadata(generated_at="2026-03-04T12:00:00Z", record_count=0, field_count=0,
                            categories=[], theme=None, technique_enabled=technique is not None)
    return DataPool(standard=standard, metadata=metadata, extended=extended, technique=technique, theme=theme)


def assembler(seed: int = 0) -> AlertAssembler:
    return AlertAssembler(random.Random(seed), now=NOW)


def test_standard_values_cycle_on_record_index():
    results = assembler().assemble_many(make_pool(), 7)
    assert [r.record["kibana.alert.rule.name"] for r in results] == ["A", "B", "C", "A", "B", "C", "A"]


def test_theme_identities_cycle_without_false_positives():
    theme = ThemePool(theme="t", usernames=["X", "Y"], hostnames=["h1", "h2"])
    results = assembler().assemble_many(make_pool(theme=theme), 4, AssemblyOptions(false_positive_rate=0.0))
    assert [r.record["user.name"] for r in results] == ["X", "Y", "X", "Y"]
    for r in results:
        assert "kibana.alert.false_positive" not in r.record
        assert r.record["kibana.alert.workflow_status"] == "open"


def test_entity_index_cycles_at_one_hundred():
    users = [f"u{i}" for i in range(150)]
    theme = ThemePool(theme="t", usernames=users, hostnames=["h"])
    results = assembler().assemble_many(make_pool(theme=theme), 150)
    assert results[99].record["user.name"] == "u99"
    assert results[100].record["user.name"] == "u0"


def test_every_record_closed_at_full_false_positive_rate():
    results = assembler().assemble_many(make_pool(), 20, AssemblyOptions(false_positive_rate=1.0))
    for r in results:
        rec = r.record
        assert rec["kibana.alert.workflow_status"] == "closed"
        assert rec["kibana.alert.false_positive"] is True
        delay = parse_utc(rec["kibana.alert.workflow_updated_at"]) - parse_utc(rec["@timestamp"])
        assert timedelta(minutes=5) <= delay <= timedelta(hours=2)


def test_zero_rate_marks_nothing():
    results = assembler().assemble_many(make_pool(), 200, AssemblyOptions(false_positive_rate=0.0))
    assert not any(r.record.get("kibana.alert.false_positive") for r in results)


def test_timestamps_come_from_policy_range():
    policy = TimestampPolicy(NOW - timedelta(days=1), NOW, rng=random.Random(3))
    results = assembler().assemble_many(make_pool(), 25, AssemblyOptions(timestamps=policy))
    for r in results:
        ts = parse_utc(r.record["@timestamp"])
        assert NOW - timedelta(days=1) <= ts <= NOW
        assert r.record["kibana.alert.start"] == r.record["@timestamp"]


def test_uuids_are_unique():
    results = assembler().assemble_many(make_pool(), 50)
    assert len({r.record["kibana.alert.uuid"] for r in results}) == 50


def test_alert_rules_correlate_record():
    pool = make_pool(threat_names=["PowerShell Empire"])
    result = assembler().assemble_one(pool, 0, 0)
    rec = result.record
    assert rec["process.name"] == "powershell.exe"
    assert rec["kibana.alert.risk_score"] == 21
    assert result.correlations_applied >= 3


def test_correlation_can_be_disabled():
    result = assembler().assemble_one(make_pool(), 0, 0, AssemblyOptions(correlation_enabled=False))
    assert result.correlations_applied == 0


def test_technique_overlay_and_attack_boost():
    technique = TechniquePool(techniques=[TECHNIQUES["T1059.001"]], tactics=["Execution"])
    extended = ExtendedPool(fields=[ExtendedField("endpoint.process.suspicious_level", "float", ["10"], "endpoint")])
    result = assembler().assemble_one(make_pool(technique=technique, extended=extended), 0, 0)
    rec = result.record
    assert rec["threat.technique.id"] == "T1059.001"
    assert rec["threat.tactic.name"] == "Execution"
    assert rec["threat.technique.reference"].startswith("https://attack.mitre.org/techniques/T1059/001")
    assert 30.0 <= rec["endpoint"]["process"]["suspicious_level"] <= 50.0


def test_tactic_only_pool_sets_tactic_name():
    technique = TechniquePool(techniques=[], tactics=["Persistence"])
    rec = assembler().assemble_one(make_pool(technique=technique), 0, 0).record
    assert rec["threat.tactic.name"] == "Persistence"
    assert "threat.technique.id" not in rec


def test_extended_values_are_cast_and_nested():
    extended = ExtendedPool(fields=[
        ExtendedField("perf.cpu.count", "integer", ["7"], "perf"),
        ExtendedField("perf.cpu.busy", "boolean", ["true"], "perf"),
        ExtendedField("perf.cpu.tags", "array", ['["a", "b"]'], "perf"),
        ExtendedField("perf.cpu.bad_count", "integer", ["seven"], "perf"),
        ExtendedField("perf.cpu.seen", "timestamp", ["garbage"], "perf"),
    ])
    result = assembler().assemble_one(make_pool(extended=extended), 0, 0, AssemblyOptions(correlation_enabled=False))
    cpu = result.record["perf"]["cpu"]
    assert cpu["count"] == 7
    assert cpu["busy"] is True
    assert cpu["tags"] == ["a", "b"]
    assert cpu["bad_count"] == 0
    assert cpu["seen"] == result.record["@timestamp"]
    assert any("could not be cast" in w for w in result.warnings)
    assert len(result.fields_used["extended"]) == 5


def test_cast_value_placeholders():
    assert cast_value("float", "x") == (0.0, False)
    assert cast_value("boolean", "maybe") == (False, False)
    assert cast_value("string", 5) == ("5", True)
    assert cast_value("array", "plain") == (["plain"], True)
    assert cast_value("timestamp", "2026-01-01T00:00:00Z")[1] is True
    assert cast_value("integer", "inf") == (0, False)


def test_broken_overlay_becomes_warning():
    pool = make_pool()
    pool.theme = ThemePool(theme="t", usernames=["X"], hostnames=["h"], organization_names=[42])
    result = assembler().assemble_one(pool, 0, 0)
    assert any("theme overlay failed" in w for w in result.warnings)
    assert result.record["kibana.alert.rule.name"] == "A"


def test_overflowing_cast_keeps_remaining_extended_fields():
    extended = ExtendedPool(fields=[
        ExtendedField("a.first", "integer", ["inf"], "a"),
        ExtendedField("a.second", "float", ["1.5"], "a"),
    ])
    result = assembler().assemble_one(make_pool(extended=extended), 0, 0, AssemblyOptions(correlation_enabled=False))
    assert result.record["a"] == {"first": 0, "second": 1.5}
    assert not any("overlay failed" in w for w in result.warnings)
    assert any("could not be cast" in w for w in result.warnings)


def test_out_of_range_false_positive_rate_rejected():
    with pytest.raises(AssemblyError) as exc:
        assembler().assemble_many(make_pool(), 3, AssemblyOptions(false_positive_rate=1.5))
    assert exc.value.details["false_positive_rate"] == 1.5
