"""
Context-weighted field selection.

Default mode is weighted sampling without replacement. Small catalogs use a
linear scan over the remaining weights; large catalogs keep a cumulative
weight array and binary-search it, zeroing the weight of each pick so it
cannot be drawn again.
"""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .context import LogContext
from .templates import FieldTemplate

LARGE_CATALOG_THRESHOLD = 2000


def adjust_weight(name: str, base: float, context: Optional[LogContext]) -> float:
    if context is None:
        return base
    w = base
    if context.is_attack:
        if "threat." in name or "security." in name or "risk." in name:
            w *= 1.5
        if "anomaly" in name or "suspicious" in name:
            w *= 1.3
    if context.host_performance in ("high", "low"):
        if "performance." in name or "usage" in name:
            w *= 1.2
    if context.time_of_day in ("off_hours", "weekend"):
        if "behavior." in name or "off_hours" in name:
            w *= 1.2
    if context.log_type == "network" and ("network." in name or "connection" in name):
        w *= 1.2
    if context.log_type == "endpoint" and ("endpoint." in name or "process" in name):
        w *= 1.2
    return w


def _pick_linear(rng: random.Random, weights: List[float], total: float) -> int:
    x = rng.random() * total
    c = 0.0
    for i, w in enumerate(weights):
        c += w
        if x < c:
            return i
    return len(weights) - 1


class WeightedFieldSelector:
    def __init__(
        self,
        rng: Optional[random.Random] = None,
        performance_mode: bool = False,
        context_weighting: bool = True,
        large_catalog_threshold: int = LARGE_CATALOG_THRESHOLD,
    ) -> None:
        self.rng = rng or random.Random()
        self.performance_mode = performance_mode
        self.context_weighting = context_weighting
        self.large_catalog_threshold = int(large_catalog_threshold)

    def weighted_candidates(self, catalog: Dict[str, FieldTemplate], context: Optional[LogContext]) -> List[Tuple[str, float]]:
        ctx = context if self.context_weighting else None
        return [(name, adjust_weight(name, t.weight, ctx)) for name, t in catalog.items()]

    def select(self, catalog: Dict[str, FieldTemplate], context: Optional[LogContext], count: int) -> List[str]:
        count = int(count)
        candidates = self.weighted_candidates(catalog, context)
        if count <= 0 or not candidates:
            return []
        if count >= len(candidates) and not self.performance_mode:
            count = len(candidates)

        if self.performance_mode:
            # sorted() is stable, so equal weights keep catalog order
            ranked = sorted(candidates, key=lambda kv: kv[1], reverse=True)
            return [name for name, _ in ranked[:count]]

        if len(candidates) >= self.large_catalog_threshold:
            return self._sample_cumulative(candidates, count)
        return self._sample_linear(candidates, count)

    def _sample_linear(self, candidates: Sequence[Tuple[str, float]], count: int) -> List[str]:
        names = [n for n, _ in candidates]
        weights = [w for _, w in candidates]
        total = sum(weights)
        chosen: List[str] = []
        while len(chosen) < count and names:
            i = _pick_linear(self.rng, weights, total)
            chosen.append(names.pop(i))
            total -= weights.pop(i)
            if total <= 0:
                total = sum(weights)
        return chosen

    def _sample_cumulative(self, candidates: Sequence[Tuple[str, float]], count: int) -> List[str]:
        names = [n for n, _ in candidates]
        weights = np.array([w for _, w in candidates], dtype=np.float64)
        chosen: List[str] = []
        cumulative = np.cumsum(weights)
        rebuild_every = max(1, len(names) // 50)
        while len(chosen) < count:
            total = cumulative[-1]
            if total <= 0:
                break
            x = self.rng.random() * total
            i = int(np.searchsorted(cumulative, x, side="right"))
            i = min(i, len(names) - 1)
            # guard against landing on an already-zeroed slot through float error
            while weights[i] <= 0 and i > 0:
                i -= 1
            if weights[i] <= 0:
                i = int(np.flatnonzero(weights > 0)[0])
            chosen.append(names[i])
            cumulative[i:] -= weights[i]
            weights[i] = 0.0
            if len(chosen) % rebuild_every == 0:
                cumulative = np.cumsum(weights)
        return chosen
