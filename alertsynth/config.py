"""
YAML run configuration.

See configs/default.yaml for the full set of keys. Every key is optional;
missing keys take the defaults below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .expansion import PATTERN_FAMILIES
from .provider import GenerationProvider, OllamaProvider
from .templates import FIELD_CATALOG
from .timestamps import PATTERNS


@dataclass
class GenerationSettings:
    seed: Optional[int] = None
    alert_count: int = 100
    space: str = "default"
    namespace: str = "default"
    false_positive_rate: float = 0.0
    output_dir: str = "datasets/output"
    batch_size: int = 1000
    host_count: int = 10
    user_count: int = 10


@dataclass
class TimeRangeSettings:
    start: str = "24h"
    end: str = "now"
    pattern: str = "uniform"


@dataclass
class MultiFieldSettings:
    field_count: int = 0
    categories: List[str] = field(default_factory=list)
    performance_mode: bool = False
    correlation_enabled: bool = True
    context_weighting: bool = True


@dataclass
class ProviderSettings:
    enabled: bool = False
    model: Optional[str] = None
    host: Optional[str] = None
    temperature: float = 0.7
    timeout_seconds: float = 30.0
    max_retries: int = 2
    retry_delay_seconds: float = 1.0


@dataclass
class CacheSettings:
    enabled: bool = True
    ttl_seconds: float = 3600.0
    max_entries: int = 100


@dataclass
class Settings:
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    time_range: TimeRangeSettings = field(default_factory=TimeRangeSettings)
    multi_field: MultiFieldSettings = field(default_factory=MultiFieldSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    technique_enabled: bool = False
    theme: Optional[str] = None

    def validate(self) -> None:
        g = self.generation
        if g.alert_count <= 0:
            raise ValueError(f"generation.alert_count must be > 0, got {g.alert_count}")
        if not 0.0 <= g.false_positive_rate <= 1.0:
            raise ValueError(f"generation.false_positive_rate must be within [0, 1], got {g.false_positive_rate}")
        if g.batch_size <= 0:
            raise ValueError(f"generation.batch_size must be > 0, got {g.batch_size}")
        if self.multi_field.field_count < 0:
            raise ValueError(f"multi_field.field_count must be >= 0, got {self.multi_field.field_count}")
        if self.time_range.pattern not in PATTERNS:
            raise ValueError(f"time_range.pattern must be one of {PATTERNS}, got {self.time_range.pattern!r}")
        known = set(FIELD_CATALOG) | set(PATTERN_FAMILIES)
        unknown = [c for c in self.multi_field.categories if c not in known]
        if unknown:
            raise ValueError(f"multi_field.categories has unknown entries: {unknown}")
        if self.provider.timeout_seconds <= 0:
            raise ValueError(f"provider.timeout_seconds must be > 0, got {self.provider.timeout_seconds}")


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"config section {name!r} must be a mapping")
    return value


def settings_from_dict(cfg: Dict[str, Any]) -> Settings:
    gen = _section(cfg, "generation")
    tr = _section(cfg, "time_range")
    mf = _section(cfg, "multi_field")
    prov = _section(cfg, "provider")
    cache = _section(cfg, "cache")
    tech = _section(cfg, "technique_taxonomy")

    d = GenerationSettings()
    seed = gen.get("seed", d.seed)
    settings = Settings(
        generation=GenerationSettings(
            seed=None if seed is None else int(seed),
            alert_count=int(gen.get("alert_count", d.alert_count)),
            space=str(gen.get("space", d.space)),
            namespace=str(gen.get("namespace", d.namespace)),
            false_positive_rate=float(gen.get("false_positive_rate", d.false_positive_rate)),
            output_dir=str(gen.get("output_dir", d.output_dir)),
            batch_size=int(gen.get("batch_size", d.batch_size)),
            host_count=int(gen.get("host_count", d.host_count)),
            user_count=int(gen.get("user_count", d.user_count)),
        ),
        time_range=TimeRangeSettings(
            start=str(tr.get("start", "24h")),
            end=str(tr.get("end", "now")),
            pattern=str(tr.get("pattern", "uniform")),
        ),
        multi_field=MultiFieldSettings(
            field_count=int(mf.get("field_count", 0)),
            categories=[str(c) for c in (mf.get("categories") or [])],
            performance_mode=bool(mf.get("performance_mode", False)),
            correlation_enabled=bool(mf.get("correlation_enabled", True)),
            context_weighting=bool(mf.get("context_weighting", True)),
        ),
        provider=ProviderSettings(
            enabled=bool(prov.get("enabled", False)),
            model=prov.get("model"),
            host=prov.get("host"),
            temperature=float(prov.get("temperature", 0.7)),
            timeout_seconds=float(prov.get("timeout_seconds", 30.0)),
            max_retries=int(prov.get("max_retries", 2)),
            retry_delay_seconds=float(prov.get("retry_delay_seconds", 1.0)),
        ),
        cache=CacheSettings(
            enabled=bool(cache.get("enabled", True)),
            ttl_seconds=float(cache.get("ttl_seconds", 3600.0)),
            max_entries=int(cache.get("max_entries", 100)),
        ),
        technique_enabled=bool(tech.get("enabled", False)),
        theme=cfg.get("theme") or None,
    )
    return settings


def load_settings(path: Path) -> Settings:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing config: {path}")
    cfg = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"config {path} must be a YAML mapping")
    settings = settings_from_dict(cfg)
    settings.validate()
    return settings


def build_provider(settings: ProviderSettings) -> Optional[GenerationProvider]:
    if not settings.enabled:
        return None
    model = settings.model
    if model is not None and not str(model).strip():
        raise ConfigurationError("provider.enabled is true but provider.model is empty")
    return OllamaProvider(model=model, host=settings.host, temperature=settings.temperature)
