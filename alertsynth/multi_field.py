from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .context import ContextAnalyzer, LogContext
from .correlation import CorrelationEngine
from .expansion import FieldExpansionEngine
from .selection import WeightedFieldSelector
from .templates import FieldTemplate, catalog_for, category_of, generate_value

logger = logging.getLogger(__name__)

EXPANDED_THRESHOLD = 1000


@dataclass
class MultiFieldConfig:
    field_count: int = 200
    categories: Optional[List[str]] = None
    context_weighting: bool = True
    correlation_enabled: bool = True
    performance_mode: bool = False
    use_expanded_fields: bool = False
    expanded_field_count: int = 10000
    expanded_categories: Optional[List[str]] = None


@dataclass
class GenerationMetadata:
    total_generated: int
    categories_used: List[str]
    time_ms: float
    correlations_applied: int


@dataclass
class GenerationResult:
    fields: Dict[str, Any]
    metadata: GenerationMetadata


def template_category(template: FieldTemplate) -> str:
    return category_of(template.name) or template.name.split(".", 1)[0]


class MultiFieldGenerator:
    """Select context-weighted field templates, fill them and correlate the values."""

    def __init__(self, config: Optional[MultiFieldConfig] = None, rng: Optional[random.Random] = None,
                 now: Optional[datetime] = None) -> None:
        self.config = config or MultiFieldConfig()
        self.rng = rng or random.Random()
        self.now = now
        self.analyzer = ContextAnalyzer(now=now)
        self.selector = WeightedFieldSelector(
            self.rng,
            performance_mode=self.config.performance_mode,
            context_weighting=self.config.context_weighting,
        )
        self.correlation = CorrelationEngine(rng=self.rng)
        self.warnings: List[str] = []
        self.catalog = self._build_catalog()

    def _build_catalog(self) -> Dict[str, FieldTemplate]:
        cfg = self.config
        if cfg.use_expanded_fields or cfg.field_count > EXPANDED_THRESHOLD:
            target = max(cfg.expanded_field_count, cfg.field_count)
            result = FieldExpansionEngine(self.rng).expand(target, cfg.expanded_categories)
            self.warnings.extend(result.warnings)
            return result.fields
        return catalog_for(cfg.categories)

    def select_templates(self, context: Optional[LogContext] = None, count: Optional[int] = None) -> List[FieldTemplate]:
        n = self.config.field_count if count is None else count
        names = self.selector.select(self.catalog, context, n)
        return [self.catalog[name] for name in names]

    def generate_fields(self, base_record: Optional[Dict[str, Any]] = None,
                        context: Optional[LogContext] = None) -> GenerationResult:
        start = time.perf_counter()
        ctx = self.analyzer.analyze(base_record, context)
        templates = self.select_templates(ctx)

        fields: Dict[str, Any] = {}
        categories: List[str] = []
        for template in templates:
            fields[template.name] = generate_value(template, self.rng, self.now)
            cat = template_category(template)
            if cat not in categories:
                categories.append(cat)

        applied = 0
        if self.config.correlation_enabled:
            applied = self.correlation.apply_correlations(fields, ctx)

        return GenerationResult(
            fields=fields,
            metadata=GenerationMetadata(
                total_generated=len(fields),
                categories_used=categories,
                time_ms=(time.perf_counter() - start) * 1000.0,
                correlations_applied=applied,
            ),
        )

    def catalog_statistics(self) -> Dict[str, Any]:
        by_category: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        for template in self.catalog.values():
            cat = template_category(template)
            by_category[cat] = by_category.get(cat, 0) + 1
            by_type[template.type] = by_type.get(template.type, 0) + 1
        return {
            "total_templates": len(self.catalog),
            "by_category": by_category,
            "by_type": by_type,
            "field_count": self.config.field_count,
            "performance_mode": self.config.performance_mode,
        }


def generate_fields(field_count: int, categories: Optional[Sequence[str]] = None,
                    base_record: Optional[Dict[str, Any]] = None, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    cfg = MultiFieldConfig(field_count=field_count, categories=list(categories) if categories else None)
    return MultiFieldGenerator(cfg, rng).generate_fields(base_record).fields
