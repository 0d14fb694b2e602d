"""
Alert assembly.

Records are built from a skeleton and then overlaid from the data pool:
standard values cycle on the record index, theme identities cycle on a
separate entity index, extended fields are cast to their declared type and
nested by dotted path. Overlay failures become warnings, never exceptions;
only invalid options raise AssemblyError.
"""

from __future__ import annotations

import json
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from .context import ContextAnalyzer
from .correlation import ALERT_RULES, FIELD_RULES, CorrelationEngine
from .errors import AssemblyError
from .false_positives import mark_false_positive, should_mark
from .pools import DataPool
from .timestamps import TimestampPolicy
from .utils import parse_utc, rand_ipv4, set_path, to_iso
from .vocab import TACTICS

logger = logging.getLogger(__name__)

MAX_ENTITIES = 100

EVENT_SHAPES: List[Tuple[str, List[str], List[str]]] = [
    ("process_started", ["process"], ["start"]),
    ("network_connection", ["network"], ["connection"]),
    ("file_create", ["file"], ["creation"]),
    ("authentication_failure", ["authentication"], ["start"]),
    ("registry_modification", ["registry"], ["change"]),
]

PLACEHOLDERS: Dict[str, Any] = {
    "integer": 0,
    "float": 0.0,
    "boolean": False,
    "string": "",
    "array": [],
    "timestamp": None,
}

_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


def cast_value(field_type: str, raw: Any) -> Tuple[Any, bool]:
    """Cast a pooled string to `field_type`. Returns (value, ok); on failure the placeholder."""
    try:
        if field_type == "integer":
            return int(float(raw)), True
        if field_type == "float":
            return float(raw), True
        if field_type == "boolean":
            s = str(raw).strip().lower()
            if s in _TRUE:
                return True, True
            if s in _FALSE:
                return False, True
            return PLACEHOLDERS["boolean"], False
        if field_type == "array":
            if isinstance(raw, list):
                return raw, True
            try:
                parsed = json.loads(raw)
            except ValueError:
                return [raw], True
            return (parsed, True) if isinstance(parsed, list) else ([parsed], True)
        if field_type == "timestamp":
            return to_iso(parse_utc(str(raw))), True
        return str(raw), True
    except (TypeError, ValueError, OverflowError):
        return PLACEHOLDERS.get(field_type), False


def _cyclic(values: Sequence[Any], index: int) -> Any:
    return values[index % len(values)] if values else None


@dataclass
class AssemblyOptions:
    space: str = "default"
    namespace: str = "default"
    timestamps: Optional[TimestampPolicy] = None
    false_positive_rate: float = 0.0
    correlation_enabled: bool = True


@dataclass
class AssemblyResult:
    record: Dict[str, Any]
    fields_used: Dict[str, List[str]] = field(default_factory=dict)
    correlations_applied: int = 0
    time_ms: float = 0.0
    warnings: List[str] = field(default_factory=list)


class AlertAssembler:
    def __init__(self, rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> None:
        self.rng = rng or random.Random()
        self.now = now
        self.analyzer = ContextAnalyzer(now=now)
        self.correlation = CorrelationEngine(list(ALERT_RULES) + list(FIELD_RULES), rng=self.rng)

    def _uuid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def base_alert(self, options: AssemblyOptions) -> Dict[str, Any]:
        if options.timestamps is not None:
            ts = options.timestamps.next_timestamp()
        else:
            ts = to_iso(self.now or datetime.now(timezone.utc))
        rule_uuid = self._uuid()
        return {
            "@timestamp": ts,
            "kibana.alert.start": ts,
            "kibana.alert.last_detected": ts,
            "kibana.alert.original_time": ts,
            "kibana.alert.uuid": self._uuid(),
            "kibana.alert.status": "active",
            "kibana.alert.workflow_status": "open",
            "kibana.alert.severity": "low",
            "kibana.alert.risk_score": 21,
            "kibana.alert.reason": "Synthetic security alert",
            "kibana.alert.rule.name": "Synthetic Security Alert",
            "kibana.alert.rule.uuid": rule_uuid,
            "kibana.alert.rule.rule_id": rule_uuid,
            "kibana.alert.rule.category": "Custom Query Rule",
            "kibana.alert.rule.consumer": "siem",
            "kibana.alert.rule.producer": "siem",
            "kibana.alert.rule.rule_type_id": "siem.queryRule",
            "kibana.alert.rule.enabled": True,
            "kibana.alert.rule.false_positives": [],
            "kibana.alert.rule.parameters": {
                "description": "Synthetic detection rule",
                "risk_score": 21,
                "severity": "low",
                "type": "query",
                "language": "kuery",
                "index": ["logs-*"],
                "query": "*:*",
            },
            "kibana.space_ids": [options.space],
            "event.kind": "signal",
            "data_stream.namespace": options.namespace,
        }

    # ---- overlays ----

    def _overlay_standard(self, record: Dict[str, Any], pool: DataPool, index: int) -> List[str]:
        std = pool.standard
        used: List[str] = []

        def put(path: str, value: Any) -> None:
            if value is not None:
                record[path] = value
                used.append(path)

        put("kibana.alert.rule.name", _cyclic(std.alert_names, index))
        put("kibana.alert.rule.description", _cyclic(std.alert_descriptions, index))
        put("kibana.alert.reason", _cyclic(std.event_descriptions, index))

        threat = _cyclic(std.threat_names, index)
        put("threat.indicator.name", threat)
        if threat is not None:
            put("threat.indicator.type", "malware")

        process = _cyclic(std.process_names, index)
        put("process.name", process)
        if process is not None:
            exe = f"C:\\Windows\\System32\\{process}" if process.lower().endswith(".exe") else f"/usr/bin/{process}"
            put("process.executable", exe)

        fname = _cyclic(std.file_names, index)
        put("file.name", fname)
        if fname is not None:
            put("file.path", f"C:\\Users\\Public\\{fname}")

        domain = _cyclic(std.domains, index)
        put("destination.domain", domain)
        put("url.domain", domain)

        put("destination.ip", _cyclic(std.ip_addresses, index))
        put("source.ip", rand_ipv4(self.rng, private=True))
        put("registry.key", _cyclic(std.registry_keys, index))

        raw_url = _cyclic(std.urls, index)
        if raw_url is not None:
            parsed = urlparse(raw_url)
            if parsed.scheme in ("http", "https") and parsed.netloc:
                put("url.full", raw_url)
                put("url.path", parsed.path or "/")
            else:
                put("url.full", f"https://{domain or 'example.com'}/")
                put("url.path", "/")

        action, category, etype = EVENT_SHAPES[index % len(EVENT_SHAPES)]
        put("event.action", action)
        put("event.category", list(category))
        put("event.type", list(etype))
        return used

    def _overlay_theme(self, record: Dict[str, Any], pool: DataPool, entity_index: int) -> List[str]:
        theme = pool.theme
        if theme is None:
            return []
        used: List[str] = []
        user = _cyclic(theme.usernames, entity_index)
        host = _cyclic(theme.hostnames, entity_index)
        org = _cyclic(theme.organization_names, entity_index)
        app = _cyclic(theme.application_names, entity_index)
        for path, value in (
            ("user.name", user),
            ("user.domain", org.lower().replace(" ", "-") if org else None),
            ("host.name", host),
            ("host.hostname", host),
            ("organization.name", org),
            ("service.name", app),
        ):
            if value is not None:
                record[path] = value
                used.append(path)
        return used

    def _overlay_technique(self, record: Dict[str, Any], pool: DataPool, index: int) -> List[str]:
        tp = pool.technique
        if tp is None:
            return []
        technique = _cyclic(tp.techniques, index)
        if technique is None:
            name = _cyclic(tp.tactics, index)
            if name is None:
                return []
            record["threat.tactic.name"] = name
            record["threat.framework"] = "MITRE ATT&CK"
            return ["threat.tactic.name", "threat.framework"]
        tactic = TACTICS[technique.tactic_ids[0]]
        values = {
            "threat.framework": "MITRE ATT&CK",
            "threat.technique.id": technique.id,
            "threat.technique.name": technique.name,
            "threat.technique.reference": technique.reference,
            "threat.tactic.id": tactic.id,
            "threat.tactic.name": tactic.name,
            "threat.tactic.reference": tactic.reference,
        }
        record.update(values)
        return list(values)

    def _overlay_extended(self, record: Dict[str, Any], pool: DataPool, index: int, warnings: List[str]) -> List[str]:
        ext = pool.extended
        if ext is None:
            return []
        used: List[str] = []
        failed = 0
        for f in ext.fields:
            raw = _cyclic(f.values, index)
            value, ok = cast_value(f.field_type, raw)
            if not ok:
                failed += 1
                if f.field_type == "timestamp":
                    value = record.get("@timestamp")
            set_path(record, f.field_name, value)
            used.append(f.field_name)
        if failed:
            warnings.append(f"{failed} extended field value(s) could not be cast; placeholders used")
        return used

    def _stage(self, name: str, fn: Callable[[], List[str]], used: Dict[str, List[str]], warnings: List[str]) -> None:
        try:
            used[name] = fn()
        except Exception as e:
            logger.warning("%s overlay failed: %s", name, e)
            warnings.append(f"{name} overlay failed: {e}")
            used[name] = []

    # ---- public ----

    def assemble_one(self, pool: DataPool, index: int, entity_index: int,
                     options: Optional[AssemblyOptions] = None) -> AssemblyResult:
        opts = options or AssemblyOptions()
        if not 0.0 <= opts.false_positive_rate <= 1.0:
            raise AssemblyError(
                f"false_positive_rate must be within [0, 1], got {opts.false_positive_rate}",
                {"false_positive_rate": opts.false_positive_rate},
            )
        start = time.perf_counter()
        warnings: List[str] = []
        used: Dict[str, List[str]] = {}

        record = self.base_alert(opts)
        self._stage("standard", lambda: self._overlay_standard(record, pool, index), used, warnings)
        self._stage("theme", lambda: self._overlay_theme(record, pool, entity_index), used, warnings)
        self._stage("technique", lambda: self._overlay_technique(record, pool, index), used, warnings)
        self._stage("extended", lambda: self._overlay_extended(record, pool, index, warnings), used, warnings)

        applied = 0
        if opts.correlation_enabled:
            try:
                applied = self.correlation.apply_correlations(record, self.analyzer.analyze(record))
            except Exception as e:
                logger.warning("correlation failed for record %d: %s", index, e)
                warnings.append(f"correlation failed: {e}")

        if should_mark(self.rng, opts.false_positive_rate):
            try:
                record = mark_false_positive(record, self.rng)
            except (TypeError, ValueError) as e:
                warnings.append(f"false positive marking failed: {e}")

        return AssemblyResult(
            record=record,
            fields_used=used,
            correlations_applied=applied,
            time_ms=(time.perf_counter() - start) * 1000.0,
            warnings=warnings,
        )

    def assemble_many(self, pool: DataPool, count: int, options: Optional[AssemblyOptions] = None) -> List[AssemblyResult]:
        count = max(0, int(count))
        entity_cycle = max(1, min(count, MAX_ENTITIES))
        return [self.assemble_one(pool, i, i % entity_cycle, options) for i in range(count)]
