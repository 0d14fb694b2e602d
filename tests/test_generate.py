"""
End-to-end tests for alert generation and the CLI entry point.
"""
from __future__ import annotations

import random
from datetime import datetime, timezone

import yaml

from alertsynth.config import settings_from_dict
from alertsynth.generate import fill_entities, generate_alerts, main
from alertsynth.storage import ParquetDocumentSink, read_documents

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def small_settings(**overrides):
    cfg = {
        "generation": {"seed": 7, "alert_count": 25, "false_positive_rate": 0.2, "host_count": 3, "user_count": 4},
        "time_range": {"start": "2d", "end": "now", "pattern": "uniform"},
        "multi_field": {"field_count": 10},
        "technique_taxonomy": {"enabled": True},
    }
    cfg.update(overrides)
    return settings_from_dict(cfg)


def test_generate_alerts_in_memory():
    out = generate_alerts(small_settings(), rng=random.Random(7), now=NOW)
    records = out["records"]
    summary = out["summary"]
    assert len(records) == summary.alerts == 25
    assert summary.errors == []
    assert summary.pool.provider_calls_used == 0
    for r in records:
        assert r["kibana.alert.reason"].endswith(f" on {r['host.name']} by {r['user.name']}")
        assert r["threat.technique.id"]
    assert summary.false_positives == sum(1 for r in records if r.get("kibana.alert.false_positive"))


def test_theme_identities_win_over_fallback_entities():
    out = generate_alerts(small_settings(theme="nba"), rng=random.Random(1), now=NOW)
    assert out["records"][0]["user.name"] == "lebron.james"


def test_fill_entities_keeps_existing_values():
    rec = {"user.name": "kept", "kibana.alert.reason": "Odd login."}
    fill_entities(rec, ["u"], ["h"], 0)
    assert rec["user.name"] == "kept"
    assert rec["host.name"] == "h"
    assert rec["kibana.alert.reason"] == "Odd login on h by kept"


def test_generate_alerts_to_sink(tmp_path):
    sink = ParquetDocumentSink(tmp_path / "alerts.parquet", batch_size=10)
    out = generate_alerts(small_settings(), rng=random.Random(2), sink=sink, now=NOW)
    assert out["summary"].batches_written == 3
    docs = read_documents(tmp_path / "alerts.parquet")
    assert len(docs) == 25


def test_main_writes_outputs(tmp_path, capsys):
    cfg = tmp_path / "run.yaml"
    cfg.write_text(yaml.safe_dump({
        "generation": {"seed": 3, "alert_count": 12, "output_dir": str(tmp_path / "unused")},
        "provider": {"enabled": True, "model": "llama3.1:8b"},
    }), encoding="utf-8")
    out_dir = tmp_path / "out"
    rc = main(["--config", str(cfg), "--out", str(out_dir), "--no-provider", "--theme", "marvel", "--fp-rate", "0.5"])
    assert rc == 0
    assert len(read_documents(out_dir / "alerts.parquet")) == 12
    meta = (out_dir / "_generation_meta.txt").read_text(encoding="utf-8")
    assert "alerts=12" in meta
    assert "provider_calls=0" in meta
    assert "[gen] wrote alerts to:" in capsys.readouterr().out


def test_main_config_errors(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "missing.yaml")]) == 2
    cfg = tmp_path / "run.yaml"
    cfg.write_text("generation:\n  alert_count: 5\n", encoding="utf-8")
    assert main(["--config", str(cfg), "--fp-rate", "2"]) == 2
    assert "[gen] config error" in capsys.readouterr().out
