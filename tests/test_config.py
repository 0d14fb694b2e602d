"""
Tests for YAML settings loading and provider construction.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from alertsynth.config import (
    ProviderSettings,
    Settings,
    build_provider,
    load_settings,
    settings_from_dict,
)
from alertsynth.errors import ConfigurationError
from alertsynth.provider import OllamaProvider

DEFAULT_CONFIG = Path(__file__).parents[1] / "configs" / "default.yaml"


def test_default_config_loads():
    s = load_settings(DEFAULT_CONFIG)
    assert s.generation.seed == 42
    assert s.generation.alert_count == 500
    assert s.generation.false_positive_rate == pytest.approx(0.05)
    assert s.time_range.pattern == "business_hours"
    assert s.multi_field.field_count == 50
    assert s.technique_enabled is True
    assert s.theme is None
    assert s.provider.enabled is False


def test_missing_sections_take_defaults():
    s = settings_from_dict({})
    assert s == Settings()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml")


def test_non_mapping_yaml(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(p)


@pytest.mark.parametrize("cfg", [
    {"generation": {"alert_count": 0}},
    {"generation": {"false_positive_rate": 1.5}},
    {"generation": {"batch_size": -1}},
    {"time_range": {"pattern": "lunar"}},
    {"multi_field": {"categories": ["not_a_category"]}},
    {"provider": {"timeout_seconds": 0}},
    {"generation": "oops"},
])
def test_invalid_settings_rejected(cfg):
    with pytest.raises(ValueError):
        settings_from_dict(cfg).validate()


def test_categories_accept_catalog_and_families():
    settings_from_dict({"multi_field": {"categories": ["threat_intelligence", "network"]}}).validate()


def test_build_provider():
    assert build_provider(ProviderSettings(enabled=False)) is None
    provider = build_provider(ProviderSettings(enabled=True, model="llama3.1:8b", host="http://localhost:11434"))
    assert isinstance(provider, OllamaProvider)
    assert provider.model == "llama3.1:8b"
    with pytest.raises(ConfigurationError):
        build_provider(ProviderSettings(enabled=True, model="  "))
