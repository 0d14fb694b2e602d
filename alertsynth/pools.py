"""
Data pool generation.

A pool is built once per request and reused cyclically by the assembler.
Each sub-pool walks a provider -> algorithmic -> static chain; only values
that actually came back from the provider count toward provider calls and
tokens. Finished pools are cached by fingerprint.
"""

from __future__ import annotations

import json
import logging
import random
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from . import vocab
from .cache import CacheStore, pool_fingerprint
from .context import LogContext
from .errors import ConfigurationError, ProviderError, ValidationError
from .expansion import PATTERN_FAMILIES
from .multi_field import MultiFieldConfig, MultiFieldGenerator, template_category
from .provider import GenerationProvider, call_with_timeout, with_retry
from .templates import FIELD_CATALOG, generate_value
from .utils import chunked, utcnow_iso

logger = logging.getLogger(__name__)

MAX_STANDARD_POOL = 100
EXTENDED_VALUES_PER_FIELD = 10
EXTENDED_PROVIDER_THRESHOLD = 500
EXTENDED_BATCH_SIZE = 100
CUSTOM_FIELD_RE = re.compile(r"^[a-z][a-z0-9_]*(\.[a-z][a-z0-9_]*)+$")
TECHNIQUE_ID_RE = re.compile(r"^T\d{4}(\.\d{3})?$")

# Selection context for extended fields when the caller supplies none.
DEFAULT_POOL_CONTEXT = LogContext(log_type="security", severity="medium", is_attack=False)

MAPPING_TYPES = {
    "float": "double",
    "integer": "long",
    "boolean": "boolean",
    "timestamp": "date",
}


# ----------------------------
# Pool types
# ----------------------------

@dataclass
class StandardPool:
    alert_names: List[str] = field(default_factory=list)
    alert_descriptions: List[str] = field(default_factory=list)
    threat_names: List[str] = field(default_factory=list)
    process_names: List[str] = field(default_factory=list)
    file_names: List[str] = field(default_factory=list)
    domains: List[str] = field(default_factory=list)
    ip_addresses: List[str] = field(default_factory=list)
    registry_keys: List[str] = field(default_factory=list)
    urls: List[str] = field(default_factory=list)
    event_descriptions: List[str] = field(default_factory=list)

    def size(self) -> int:
        return sum(len(getattr(self, kind)) for kind in vocab.STANDARD_KINDS)


@dataclass
class ExtendedField:
    field_name: str
    field_type: str
    values: List[str]
    category: str
    description: str = ""


@dataclass
class ExtendedPool:
    fields: List[ExtendedField] = field(default_factory=list)
    category_breakdown: Dict[str, int] = field(default_factory=dict)
    mappings: Dict[str, Any] = field(default_factory=dict)
    batches_processed: int = 0

    @property
    def total_fields(self) -> int:
        return len(self.fields)


@dataclass
class TechniquePool:
    techniques: List[vocab.Technique] = field(default_factory=list)
    tactics: List[str] = field(default_factory=list)


@dataclass
class ThemePool:
    theme: str
    usernames: List[str] = field(default_factory=list)
    hostnames: List[str] = field(default_factory=list)
    organization_names: List[str] = field(default_factory=list)
    application_names: List[str] = field(default_factory=list)


@dataclass
class PoolMetadata:
    generated_at: str
    record_count: int
    field_count: int
    categories: List[str]
    theme: Optional[str]
    technique_enabled: bool
    generation_time_ms: float = 0.0
    tokens_used: int = 0
    provider_calls: int = 0
    counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class DataPool:
    standard: StandardPool
    metadata: PoolMetadata
    extended: Optional[ExtendedPool] = None
    technique: Optional[TechniquePool] = None
    theme: Optional[ThemePool] = None


@dataclass
class PoolConfig:
    record_count: int
    field_count: int = 0
    categories: Optional[List[str]] = None
    theme: Optional[str] = None
    technique_enabled: bool = False
    performance_mode: bool = False
    context_weighting: bool = True
    context: Optional[LogContext] = None
    cache_enabled: bool = True

    def fingerprint(self) -> str:
        return pool_fingerprint(self.record_count, self.field_count, self.theme, self.technique_enabled)


@dataclass
class PoolPerformance:
    total_time_ms: float = 0.0
    provider_calls_used: int = 0
    tokens_used: int = 0
    cache_hits: int = 0
    batches_processed: int = 0


@dataclass
class PoolResult:
    pool: DataPool
    performance: PoolPerformance
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def build_mappings(fields: List[ExtendedField]) -> Dict[str, Any]:
    """Nested index mapping for dotted field names."""
    properties: Dict[str, Any] = {}
    for f in fields:
        parts = f.field_name.split(".")
        node = properties
        for part in parts[:-1]:
            entry = node.setdefault(part, {"properties": {}})
            if "properties" not in entry:
                # a leaf already sits here; the deeper field cannot be mapped
                break
            node = entry["properties"]
        else:
            node.setdefault(parts[-1], {"type": MAPPING_TYPES.get(f.field_type, "keyword")})
    return {"properties": properties}


# ----------------------------
# Generator
# ----------------------------

class _Build:
    """Per-request counters and messages."""

    def __init__(self) -> None:
        self.provider_calls = 0
        self.tokens = 0
        self.batches = 0
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.provider_disabled = False


class DataPoolGenerator:
    def __init__(
        self,
        provider: Optional[GenerationProvider] = None,
        cache: Optional[CacheStore] = None,
        rng: Optional[random.Random] = None,
        provider_timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        now: Optional[datetime] = None,
    ) -> None:
        self.provider = provider
        self.cache = cache if cache is not None else CacheStore()
        self.rng = rng or random.Random()
        self.provider_timeout = float(provider_timeout)
        self.max_retries = int(max_retries)
        self.retry_delay = float(retry_delay)
        self.sleep = sleep
        self.now = now

    def generate(self, config: PoolConfig) -> PoolResult:
        start = time.perf_counter()
        fingerprint = config.fingerprint()

        if config.cache_enabled:
            cached = self.cache.get(fingerprint)
            if cached is not None:
                logger.debug("pool cache hit for %s", fingerprint)
                return PoolResult(
                    pool=cached,
                    performance=PoolPerformance(total_time_ms=(time.perf_counter() - start) * 1000.0, cache_hits=1),
                    warnings=["Used cached data pool"],
                )

        build = _Build()
        try:
            pool = self._build_pool(config, build)
        except Exception as e:
            logger.error("data pool generation failed, using fallback pool: %s", e)
            build.errors.append(f"Data pool generation failed: {e}")
            pool = self._fallback_pool(config)
        else:
            if config.cache_enabled:
                self.cache.put(fingerprint, pool)

        elapsed = (time.perf_counter() - start) * 1000.0
        pool.metadata.generation_time_ms = elapsed
        return PoolResult(
            pool=pool,
            performance=PoolPerformance(
                total_time_ms=elapsed,
                provider_calls_used=build.provider_calls,
                tokens_used=build.tokens,
                cache_hits=0,
                batches_processed=build.batches,
            ),
            errors=build.errors,
            warnings=build.warnings,
        )

    def _build_pool(self, config: PoolConfig, build: _Build) -> DataPool:
        standard = self._standard_pool(config, build)
        extended = self._extended_pool(config, build) if config.field_count > 0 else None
        technique = self._technique_pool(config, build) if config.technique_enabled else None
        theme = self._theme_pool(config, build) if config.theme else None

        counts = {"standard": standard.size()}
        if extended is not None:
            counts["extended"] = extended.total_fields
        if technique is not None:
            counts["technique"] = len(technique.techniques)
        if theme is not None:
            counts["theme"] = len(theme.usernames) + len(theme.hostnames)

        metadata = PoolMetadata(
            generated_at=utcnow_iso(),
            record_count=config.record_count,
            field_count=config.field_count,
            categories=list(extended.category_breakdown) if extended else [],
            theme=config.theme,
            technique_enabled=config.technique_enabled,
            tokens_used=build.tokens,
            provider_calls=build.provider_calls,
            counts=counts,
        )
        return DataPool(standard=standard, metadata=metadata, extended=extended, technique=technique, theme=theme)

    def _fallback_pool(self, config: PoolConfig) -> DataPool:
        n = max(1, min(config.record_count * 2, MAX_STANDARD_POOL))
        standard = StandardPool()
        for kind in vocab.STANDARD_KINDS:
            try:
                values = vocab.LOCAL_GENERATORS[kind](self.rng, n)
            except Exception as e:
                logger.warning("%s: local generation failed in fallback pool: %s", kind, e)
                values = []
            setattr(standard, kind, values or list(vocab.STATIC_VALUES[kind]))
        metadata = PoolMetadata(
            generated_at=utcnow_iso(),
            record_count=config.record_count,
            field_count=0,
            categories=[],
            theme=config.theme,
            technique_enabled=False,
            counts={"standard": standard.size()},
        )
        return DataPool(standard=standard, metadata=metadata)

    # ---- tiers ----

    def _from_provider(self, kind: str, count: int, theme: Optional[str], build: _Build) -> Optional[List[str]]:
        """Values from the provider, or None when the tier fails or is unavailable."""
        if self.provider is None or build.provider_disabled:
            return None
        provider = self.provider

        def attempt() -> List[str]:
            values = call_with_timeout(lambda: provider.generate(kind, count, theme), self.provider_timeout)
            build.provider_calls += 1
            build.tokens += int(getattr(provider, "last_token_count", 0) or 0)
            return values

        try:
            values = with_retry(attempt, self.max_retries, self.retry_delay, context=f"provider {kind}", sleep=self.sleep)
        except ConfigurationError as e:
            build.provider_disabled = True
            build.errors.append(f"Provider configuration error: {e}")
            logger.error("provider disabled for this build: %s", e)
            return None
        except (ProviderError, ValidationError) as e:
            build.warnings.append(f"{kind}: provider unavailable, using local values ({e})")
            logger.warning("%s: falling back to local generation: %s", kind, e)
            return None

        if not isinstance(values, list) or not all(isinstance(v, str) and v for v in values) or not values:
            build.warnings.append(f"{kind}: provider returned unusable values, using local values")
            return None
        return values

    def _tiered(self, kind: str, count: int, theme: Optional[str], build: _Build,
                local: Callable[[], List[str]], static: List[str]) -> List[str]:
        values = self._from_provider(kind, count, theme, build)
        if values:
            return values
        try:
            values = local()
        except Exception as e:
            build.warnings.append(f"{kind}: local generation failed, using static values ({e})")
            logger.warning("%s: local generation failed: %s", kind, e)
            values = []
        return values or list(static)

    # ---- sub-pools ----

    def _standard_pool(self, config: PoolConfig, build: _Build) -> StandardPool:
        n = max(1, min(config.record_count * 2, MAX_STANDARD_POOL))
        pool = StandardPool()
        for kind in vocab.STANDARD_KINDS:
            generator = vocab.LOCAL_GENERATORS[kind]
            values = self._tiered(kind, n, config.theme, build,
                                  lambda g=generator: g(self.rng, n), vocab.STATIC_VALUES[kind])
            setattr(pool, kind, values)
        return pool

    def _extended_pool(self, config: PoolConfig, build: _Build) -> ExtendedPool:
        cats = config.categories or []
        mf_config = MultiFieldConfig(
            field_count=config.field_count,
            categories=[c for c in cats if c in FIELD_CATALOG] or None,
            performance_mode=config.performance_mode,
            context_weighting=config.context_weighting,
            use_expanded_fields=any(c in PATTERN_FAMILIES for c in cats),
            expanded_field_count=config.field_count,
            expanded_categories=[c for c in cats if c in PATTERN_FAMILIES] or None,
        )
        generator = MultiFieldGenerator(mf_config, self.rng, now=self.now)
        context = generator.analyzer.analyze(None, config.context or DEFAULT_POOL_CONTEXT)
        build.warnings.extend(generator.warnings)
        n_values = max(1, min(config.record_count, EXTENDED_VALUES_PER_FIELD))

        pool = ExtendedPool()
        for template in generator.select_templates(context):
            values = [encode_value(generate_value(template, self.rng)) for _ in range(n_values)]
            pool.fields.append(ExtendedField(
                field_name=template.name,
                field_type=template.type,
                values=values,
                category=template_category(template),
                description=template.description,
            ))

        if config.field_count > EXTENDED_PROVIDER_THRESHOLD:
            self._add_custom_fields(config, pool, build, n_values)

        for f in pool.fields:
            pool.category_breakdown[f.category] = pool.category_breakdown.get(f.category, 0) + 1
        pool.mappings = build_mappings(pool.fields)
        return pool

    def _add_custom_fields(self, config: PoolConfig, pool: ExtendedPool, build: _Build, n_values: int) -> None:
        wanted = min(config.field_count // 10, EXTENDED_PROVIDER_THRESHOLD)
        known = {f.field_name for f in pool.fields}
        for batch in chunked(list(range(wanted)), EXTENDED_BATCH_SIZE):
            names = self._from_provider("extended_field_names", len(batch), config.theme, build)
            if not names:
                break
            build.batches += 1
            pool.batches_processed += 1
            for name in names:
                name = name.strip().lower()
                if not CUSTOM_FIELD_RE.match(name) or name in known:
                    continue
                known.add(name)
                pool.fields.append(ExtendedField(
                    field_name=name,
                    field_type="float",
                    values=[encode_value(round(self.rng.uniform(0, 100), 2)) for _ in range(n_values)],
                    category="custom",
                    description="Provider-suggested field",
                ))

    def _technique_pool(self, config: PoolConfig, build: _Build) -> TechniquePool:
        n = max(1, min(config.record_count, len(vocab.TECHNIQUES)))
        techniques: List[vocab.Technique] = []

        suggested = self._from_provider("technique_ids", n, config.theme, build)
        if suggested:
            seen = set()
            for raw in suggested:
                tid = raw.strip().upper()
                if TECHNIQUE_ID_RE.match(tid) and tid in vocab.TECHNIQUES and tid not in seen:
                    seen.add(tid)
                    techniques.append(vocab.TECHNIQUES[tid])
            if not techniques:
                build.warnings.append("technique_ids: provider ids not in bundled taxonomy, using local selection")

        if not techniques:
            techniques = vocab.select_techniques(self.rng, n)

        if not techniques:
            return TechniquePool(techniques=[], tactics=list(vocab.STATIC_TACTIC_NAMES))

        tactics: List[str] = []
        for t in techniques:
            for tactic_id in t.tactic_ids:
                name = vocab.TACTICS[tactic_id].name
                if name not in tactics:
                    tactics.append(name)
        return TechniquePool(techniques=techniques, tactics=tactics)

    def _theme_pool(self, config: PoolConfig, build: _Build) -> ThemePool:
        theme = str(config.theme)
        n = max(1, min(config.record_count, MAX_STANDARD_POOL))
        pool = ThemePool(theme=theme)
        for kind in vocab.THEME_KINDS:
            values = self._tiered(kind, n, theme, build,
                                  lambda k=kind: vocab.theme_values(self.rng, theme, k, n), [])
            setattr(pool, kind, values)
        return pool


def summarize_pool(pool: DataPool) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "generated_at": pool.metadata.generated_at,
        "standard": pool.standard.size(),
    }
    if pool.extended is not None:
        out["extended_fields"] = pool.extended.total_fields
        out["categories"] = dict(pool.extended.category_breakdown)
    if pool.technique is not None:
        out["techniques"] = [t.id for t in pool.technique.techniques]
    if pool.theme is not None:
        out["theme"] = pool.theme.theme
    return out
