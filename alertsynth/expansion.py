"""
Combinatorial field-catalog expansion.

Each pattern family enumerates the cross product of its vocabularies in a
fixed order, so the combinatorial phase is deterministic. When the requested
count exceeds the combined space, an overflow phase draws random vocabulary
combinations and appends a numeric suffix, stopping with a warning once the
attempt ceiling is reached.
"""

from __future__ import annotations

import itertools
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .templates import FieldTemplate, make_template

logger = logging.getLogger(__name__)

OVERFLOW_CEILING = 100


@dataclass(frozen=True)
class PatternFamily:
    name: str
    dimensions: Tuple[Tuple[str, ...], ...]
    build: Callable[[Tuple[str, ...]], List[FieldTemplate]]
    variants: int = 1

    def size(self) -> int:
        n = self.variants
        for vocab in self.dimensions:
            n *= len(vocab)
        return n

    def base_name(self, combo: Tuple[str, ...]) -> str:
        return ".".join((self.name,) + combo)

    def enumerate(self) -> Iterator[FieldTemplate]:
        for combo in itertools.product(*self.dimensions):
            yield from self.build(combo)


def _performance(combo: Tuple[str, ...]) -> List[FieldTemplate]:
    system, metric, timeframe = combo
    name = f"performance.{system}.{metric}.{timeframe}"
    desc = f"{system.upper()} {metric} over {timeframe}"
    if metric in ("usage", "utilization"):
        return [make_template(name, "float", ("float_range", (0, 100, 2)), desc, 6)]
    return [make_template(name, "integer", ("int_range", (0, 10000)), desc, 6)]


def _security(combo: Tuple[str, ...]) -> List[FieldTemplate]:
    aspect, scope, algorithm = combo
    base = f"security.{aspect}.{scope}.{algorithm}"
    return [
        make_template(f"{base}_score", "float", ("float_range", (0, 100, 2)),
                      f"{aspect} score for {scope} from {algorithm} analysis", 8),
        make_template(f"{base}_confidence", "float", ("float_range", (0, 1, 3)),
                      f"Confidence of the {algorithm} {aspect} assessment for {scope}", 7),
    ]


def _behavioral(combo: Tuple[str, ...]) -> List[FieldTemplate]:
    entity, behavior, pattern, analysis = combo
    name = f"behavioral.{entity}.{behavior}.{pattern}.{analysis}"
    desc = f"{entity} {behavior} {pattern} {analysis}"
    if pattern in ("frequency", "volume"):
        return [make_template(name, "integer", ("int_range", (0, 1000)), desc, 7)]
    return [make_template(name, "float", ("float_range", (0, 100, 2)), desc, 7)]


def _network(combo: Tuple[str, ...]) -> List[FieldTemplate]:
    protocol, metric, analysis = combo
    name = f"network.{protocol}.{metric}.{analysis}"
    desc = f"{protocol.upper()} {metric} {analysis}"
    if analysis in ("bandwidth", "errors", "anomalies"):
        return [make_template(name, "integer", ("int_range", (0, 100000)), desc, 7)]
    return [make_template(name, "float", ("float_range", (0, 100, 2)), desc, 7)]


def _endpoint(combo: Tuple[str, ...]) -> List[FieldTemplate]:
    component, activity, detection = combo
    base = f"endpoint.{component}.{activity}.{detection}"
    return [
        make_template(f"{base}_count", "integer", ("int_range", (0, 100)),
                      f"{detection} {component} {activity} events", 8),
        make_template(f"{base}_score", "float", ("float_range", (0, 100, 2)),
                      f"{detection} {component} {activity} score", 8),
    ]


PATTERN_FAMILIES: Dict[str, PatternFamily] = {
    "performance": PatternFamily(
        name="performance",
        dimensions=(
            ("cpu", "memory", "disk", "network", "gpu", "storage", "cache", "bandwidth"),
            ("usage", "latency", "throughput", "errors", "timeouts", "utilization", "load", "pressure"),
            ("1m", "5m", "15m", "1h", "24h", "peak", "avg", "min"),
        ),
        build=_performance,
    ),
    "security": PatternFamily(
        name="security",
        dimensions=(
            ("vulnerability", "threat", "risk", "compliance", "anomaly", "behavior", "reputation", "confidence"),
            ("user", "host", "network", "application", "endpoint", "process", "service", "entity"),
            ("ml", "rule_based", "statistical", "heuristic", "signature", "behavioral"),
        ),
        build=_security,
        variants=2,
    ),
    "behavioral": PatternFamily(
        name="behavioral",
        dimensions=(
            ("user", "host", "process", "service", "application", "network", "device"),
            ("login", "access", "execution", "communication", "modification", "creation", "deletion"),
            ("frequency", "timing", "location", "sequence", "volume", "velocity", "variety"),
            ("baseline", "deviation", "anomaly", "clustering", "correlation", "trend"),
        ),
        build=_behavioral,
    ),
    "network": PatternFamily(
        name="network",
        dimensions=(
            ("http", "https", "dns", "tcp", "udp", "smtp", "ftp", "ssh", "rdp", "smb"),
            ("connections", "bytes", "packets", "sessions", "flows", "requests", "responses"),
            ("bandwidth", "latency", "errors", "anomalies", "patterns", "geography", "reputation"),
        ),
        build=_network,
    ),
    "endpoint": PatternFamily(
        name="endpoint",
        dimensions=(
            ("process", "file", "registry", "service", "driver", "module", "library"),
            ("creation", "modification", "deletion", "execution", "injection", "persistence"),
            ("malware", "suspicious", "unauthorized", "anomalous", "policy_violation"),
        ),
        build=_endpoint,
        variants=2,
    ),
}


def max_combinatorial(categories: Optional[Sequence[str]] = None) -> int:
    return sum(f.size() for f in _families(categories))


def _families(categories: Optional[Sequence[str]]) -> List[PatternFamily]:
    if not categories:
        return list(PATTERN_FAMILIES.values())
    out: List[PatternFamily] = []
    for name in categories:
        if name not in PATTERN_FAMILIES:
            raise ValueError(f"unknown expansion category {name!r}; expected one of {sorted(PATTERN_FAMILIES)}")
        if PATTERN_FAMILIES[name] not in out:
            out.append(PATTERN_FAMILIES[name])
    return out


def _quotas(target: int, families: List[PatternFamily]) -> List[int]:
    """Even split of `target`, with quota left by small families handed to the rest in order."""
    n = len(families)
    sizes = [f.size() for f in families]
    quotas = [min(target // n + (1 if i < target % n else 0), sizes[i]) for i in range(n)]
    leftover = target - sum(quotas)
    for i in range(n):
        if leftover <= 0:
            break
        extra = min(leftover, sizes[i] - quotas[i])
        quotas[i] += extra
        leftover -= extra
    return quotas


@dataclass
class ExpansionResult:
    fields: Dict[str, FieldTemplate] = field(default_factory=dict)
    combinatorial_count: int = 0
    overflow_count: int = 0
    warnings: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.fields)


class FieldExpansionEngine:
    def __init__(self, rng: Optional[random.Random] = None, overflow_ceiling: int = OVERFLOW_CEILING) -> None:
        self.rng = rng or random.Random()
        self.overflow_ceiling = int(overflow_ceiling)

    def expand(self, target_count: int, categories: Optional[Sequence[str]] = None) -> ExpansionResult:
        result = ExpansionResult()
        target = int(target_count)
        if target <= 0:
            return result

        families = _families(categories)
        for family, quota in zip(families, _quotas(target, families)):
            if quota <= 0:
                continue
            for template in itertools.islice(family.enumerate(), quota):
                result.fields[template.name] = template
        result.combinatorial_count = len(result.fields)

        if len(result.fields) < target:
            self._overflow(result, families, target)

        logger.debug(
            "expanded %d fields (%d combinatorial, %d overflow)",
            len(result.fields), result.combinatorial_count, result.overflow_count,
        )
        return result

    def _overflow(self, result: ExpansionResult, families: List[PatternFamily], target: int) -> None:
        next_suffix: Dict[str, int] = {}
        failures = 0
        while len(result.fields) < target:
            family = self.rng.choice(families)
            combo = tuple(self.rng.choice(vocab) for vocab in family.dimensions)
            base = family.base_name(combo)
            suffix = next_suffix.get(base, 1)
            name = f"{base}_{suffix}"
            if suffix > self.overflow_ceiling or name in result.fields:
                failures += 1
                if failures >= self.overflow_ceiling:
                    shortfall = target - len(result.fields)
                    msg = (
                        f"field expansion stopped {shortfall} short of {target}: "
                        f"overflow ceiling of {self.overflow_ceiling} reached"
                    )
                    result.warnings.append(msg)
                    logger.warning(msg)
                    return
                next_suffix[base] = suffix + 1
                continue
            failures = 0
            next_suffix[base] = suffix + 1
            result.fields[name] = make_template(
                name, "float", ("float_range", (0, 100, 2)),
                f"Dynamic {family.name} metric {' '.join(combo)} #{suffix}",
            )
            result.overflow_count += 1


def generate_expanded_templates(
    target_count: int,
    categories: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, FieldTemplate]:
    return FieldExpansionEngine(rng).expand(target_count, categories).fields
