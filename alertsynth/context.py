from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .utils import get_path, parse_utc, safe_float

ATTACK_ACTIONS = (
    "process_injection",
    "lateral_movement",
    "privilege_escalation",
    "defense_evasion",
    "persistence",
    "data_exfiltration",
)

_SEVERITY_WORDS = {
    "critical": "high",
    "error": "high",
    "high": "high",
    "warning": "medium",
    "warn": "medium",
    "medium": "medium",
    "info": "low",
    "debug": "low",
    "low": "low",
}


@dataclass
class LogContext:
    log_type: Optional[str] = None
    severity: Optional[str] = None
    is_attack: Optional[bool] = None
    host_performance: Optional[str] = None
    time_of_day: Optional[str] = None
    technique_id: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "log_type": self.log_type,
            "severity": self.severity,
            "is_attack": self.is_attack,
            "host_performance": self.host_performance,
            "time_of_day": self.time_of_day,
            "technique_id": self.technique_id,
        }


class ContextAnalyzer:
    """Infer situational tags from a partially built record.

    Anything already set on `partial` is kept; the rest is read off the
    record's dataset/category, threat and action fields, severity or log
    level, timestamp and CPU metrics.
    """

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now

    def analyze(self, base_record: Optional[Dict[str, Any]] = None, partial: Optional[LogContext] = None) -> LogContext:
        record = base_record or {}
        ctx = replace(partial) if partial is not None else LogContext()

        if ctx.log_type is None:
            ctx.log_type = self.detect_log_type(record)
        if ctx.technique_id is None:
            technique = get_path(record, "threat.technique.id")
            ctx.technique_id = str(technique) if technique else None
        if ctx.is_attack is None:
            ctx.is_attack = self.detect_attack(record)
        if ctx.severity is None:
            ctx.severity = self.detect_severity(record, ctx)
        if ctx.time_of_day is None:
            ctx.time_of_day = self.detect_time_of_day(record)
        if ctx.host_performance is None:
            ctx.host_performance = self.detect_host_performance(record)
        return ctx

    @staticmethod
    def detect_log_type(record: Dict[str, Any]) -> str:
        dataset = str(get_path(record, "data_stream.dataset") or "").lower()
        if dataset:
            for marker, log_type in (("system", "system"), ("auth", "auth"), ("network", "network"), ("endpoint", "endpoint")):
                if marker in dataset:
                    return log_type

        category = get_path(record, "event.category")
        categories = category if isinstance(category, list) else [category]
        for value in categories:
            value = str(value or "").lower()
            if value == "authentication":
                return "auth"
            if value == "network":
                return "network"
            if value == "process":
                return "endpoint"
            if value == "system":
                return "system"
        return "generic"

    @staticmethod
    def detect_attack(record: Dict[str, Any]) -> bool:
        if get_path(record, "threat.technique.id") or get_path(record, "threat.tactic.id"):
            return True
        action = str(get_path(record, "event.action") or "").lower()
        return any(keyword in action for keyword in ATTACK_ACTIONS)

    @staticmethod
    def detect_severity(record: Dict[str, Any], ctx: LogContext) -> str:
        for key in ("event.severity", "log.level"):
            raw = get_path(record, key)
            if raw is None:
                continue
            mapped = _SEVERITY_WORDS.get(str(raw).strip().lower())
            if mapped:
                return mapped
        if ctx.log_type == "endpoint" and ctx.is_attack:
            return "high"
        return "medium"

    def detect_time_of_day(self, record: Dict[str, Any]) -> str:
        raw = get_path(record, "@timestamp")
        ts = None
        if raw:
            try:
                ts = parse_utc(str(raw))
            except ValueError:
                ts = None
        if ts is None:
            ts = self.now or datetime.now(timezone.utc)
        if ts.weekday() >= 5:
            return "weekend"
        if 9 <= ts.hour <= 17:
            return "business_hours"
        return "off_hours"

    @staticmethod
    def detect_host_performance(record: Dict[str, Any]) -> str:
        cpu = safe_float(get_path(record, "system.cpu.usage.percentage"))
        if cpu is None:
            cpu = safe_float(get_path(record, "host.cpu.usage"))
        if cpu is None:
            return "normal"
        if cpu > 80:
            return "high"
        if cpu < 20:
            return "low"
        return "normal"
