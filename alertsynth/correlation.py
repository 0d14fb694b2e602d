"""
Cross-field correlation rules.

Every rule is a (predicate, transform) pair over a record. The predicate
decides whether the rule fires; the transform mutates the record in place
and returns how many adjustments it made. Rules run in list order.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .context import LogContext
from .utils import clamp, get_path, has_path, is_number, iter_slots, set_path

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Predicate = Callable[[Record, LogContext], bool]
Transform = Callable[[Record, LogContext, random.Random], int]


@dataclass(frozen=True)
class CorrelationRule:
    name: str
    predicate: Predicate
    transform: Transform
    description: str = ""


def _num(record: Record, path: str) -> Optional[float]:
    value = get_path(record, path)
    return float(value) if is_number(value) else None


def _both(a: str, b: str) -> Callable[[Record], bool]:
    return lambda r: has_path(r, a) and has_path(r, b)


CPU = "system.performance.cpu_usage"
MEMORY = "system.performance.memory_usage"
TI_CONFIDENCE = "threat.intelligence.confidence"
OVERALL_RISK = "security.score.overall_risk"
USER_ANOMALY = "user_behavior.anomaly_score"
USER_RISK = "user_behavior.risk_score"
MALICIOUS_IPS = "network.analytics.malicious_ip_connections"
SUSPICIOUS_DOMAINS = "network.analytics.suspicious_domain_count"


# ----------------------------
# Field rules
# ----------------------------

def _cpu_memory_applies(r: Record, ctx: LogContext) -> bool:
    cpu = _num(r, CPU)
    return _both(CPU, MEMORY)(r) and cpu is not None and cpu > 80


def _cpu_memory(r: Record, ctx: LogContext, rng: random.Random) -> int:
    cpu = _num(r, CPU) or 0.0
    set_path(r, MEMORY, round(clamp(cpu + rng.uniform(-10, 15), 0.0, 100.0), 2))
    return 1


def _threat_risk_applies(r: Record, ctx: LogContext) -> bool:
    conf = _num(r, TI_CONFIDENCE)
    return _both(TI_CONFIDENCE, OVERALL_RISK)(r) and conf is not None and conf > 70


def _threat_risk(r: Record, ctx: LogContext, rng: random.Random) -> int:
    conf = _num(r, TI_CONFIDENCE) or 0.0
    set_path(r, OVERALL_RISK, round(min(100.0, conf + rng.uniform(0, 20)), 2))
    return 1


def _anomaly_risk_applies(r: Record, ctx: LogContext) -> bool:
    return _both(USER_ANOMALY, USER_RISK)(r) and _num(r, USER_ANOMALY) is not None


def _anomaly_risk(r: Record, ctx: LogContext, rng: random.Random) -> int:
    anomaly = _num(r, USER_ANOMALY) or 0.0
    set_path(r, USER_RISK, round(anomaly + rng.uniform(-15, 10), 2))
    return 1


def _malicious_domains_applies(r: Record, ctx: LogContext) -> bool:
    mal = _num(r, MALICIOUS_IPS)
    return _both(MALICIOUS_IPS, SUSPICIOUS_DOMAINS)(r) and mal is not None and mal > 0


def _malicious_domains(r: Record, ctx: LogContext, rng: random.Random) -> int:
    mal = int(_num(r, MALICIOUS_IPS) or 0)
    current = _num(r, SUSPICIOUS_DOMAINS) or 0
    set_path(r, SUSPICIOUS_DOMAINS, int(max(current, mal + rng.randint(0, 5))))
    return 1


def _attack_boost_applies(r: Record, ctx: LogContext) -> bool:
    return bool(ctx.is_attack)


def _attack_boost(r: Record, ctx: LogContext, rng: random.Random) -> int:
    boosted = 0
    for path, owner, key in iter_slots(r):
        if "anomaly" not in path and "suspicious" not in path:
            continue
        value = owner[key]
        if not is_number(value) or value >= 70:
            continue
        bumped = min(100.0, float(value) + rng.uniform(20, 40))
        owner[key] = int(bumped) if isinstance(value, int) else round(bumped, 2)
        boosted += 1
    return boosted


FIELD_RULES: List[CorrelationRule] = [
    CorrelationRule("cpu_memory", _cpu_memory_applies, _cpu_memory,
                    "High CPU pulls memory usage up with it"),
    CorrelationRule("threat_confidence_risk", _threat_risk_applies, _threat_risk,
                    "Confident threat intel raises overall risk"),
    CorrelationRule("anomaly_risk", _anomaly_risk_applies, _anomaly_risk,
                    "User risk tracks the user anomaly score"),
    CorrelationRule("malicious_ip_domains", _malicious_domains_applies, _malicious_domains,
                    "Malicious IP contacts imply suspicious domains"),
    CorrelationRule("attack_anomaly_boost", _attack_boost_applies, _attack_boost,
                    "Attack records carry elevated anomaly and suspicion values"),
]


# ----------------------------
# Alert rules
# ----------------------------

SEVERITY_RISK = {"low": 21, "medium": 47, "high": 73, "critical": 99}


def _severity_risk_applies(r: Record, ctx: LogContext) -> bool:
    return str(get_path(r, "kibana.alert.severity") or "") in SEVERITY_RISK


def _severity_risk(r: Record, ctx: LogContext, rng: random.Random) -> int:
    set_path(r, "kibana.alert.risk_score", SEVERITY_RISK[str(get_path(r, "kibana.alert.severity"))])
    return 1


def _threat_process_applies(r: Record, ctx: LogContext) -> bool:
    if not _both("threat.indicator.name", "process.name")(r):
        return False
    name = str(get_path(r, "threat.indicator.name") or "").lower()
    return "powershell" in name or "cmd" in name


def _threat_process(r: Record, ctx: LogContext, rng: random.Random) -> int:
    name = str(get_path(r, "threat.indicator.name")).lower()
    set_path(r, "process.name", "powershell.exe" if "powershell" in name else "cmd.exe")
    return 1


def _domain_ip_applies(r: Record, ctx: LogContext) -> bool:
    return _both("destination.domain", "destination.ip")(r)


def _domain_ip_noop(r: Record, ctx: LogContext, rng: random.Random) -> int:
    # Counts co-presence only. Nothing in the record is changed.
    return 1


ALERT_RULES: List[CorrelationRule] = [
    CorrelationRule("severity_risk", _severity_risk_applies, _severity_risk,
                    "Risk score follows alert severity"),
    CorrelationRule("threat_process", _threat_process_applies, _threat_process,
                    "Shell-named threats run under the matching process"),
    CorrelationRule("domain_ip_presence", _domain_ip_applies, _domain_ip_noop,
                    "Destination domain and IP co-presence (counted, no mutation)"),
]


class CorrelationEngine:
    def __init__(self, rules: Optional[Sequence[CorrelationRule]] = None, rng: Optional[random.Random] = None) -> None:
        self.rules: List[CorrelationRule] = list(FIELD_RULES if rules is None else rules)
        self.rng = rng or random.Random()

    def apply_correlations(self, fields: Record, context: Optional[LogContext] = None) -> int:
        ctx = context or LogContext()
        applied = 0
        for rule in self.rules:
            if not rule.predicate(fields, ctx):
                continue
            n = rule.transform(fields, ctx, self.rng)
            if n:
                logger.debug("correlation %s applied %d time(s)", rule.name, n)
            applied += n
        return applied
