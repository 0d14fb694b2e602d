"""
Field templates and the built-in field catalog.

A template is plain data: a semantic type plus a tagged generation variant
(`generator` names the variant, `params` holds its arguments). Values are
produced by the pure function `generate_value(template, rng)`, so catalogs
can be built, compared and serialized without carrying closures around.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .utils import rand_token, to_iso

logger = logging.getLogger(__name__)

FIELD_TYPES = ("integer", "float", "boolean", "string", "timestamp", "array")
DEFAULT_WEIGHT = 5.0

GenSpec = Tuple[str, Tuple[Any, ...]]


@dataclass(frozen=True)
class FieldTemplate:
    name: str
    type: str
    generator: str
    params: Tuple[Any, ...] = ()
    description: str = ""
    weight: float = DEFAULT_WEIGHT

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("field template needs a name")
        if self.type not in FIELD_TYPES:
            raise ValueError(f"{self.name}: unknown field type {self.type!r}")
        if self.generator not in GENERATORS:
            raise ValueError(f"{self.name}: unknown generator {self.generator!r}")
        if not self.weight > 0:
            raise ValueError(f"{self.name}: weight must be positive, got {self.weight}")


# ----------------------------
# Generation variants
# ----------------------------

def _gen_float_range(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> float:
    lo, hi, digits = params
    return round(rng.uniform(float(lo), float(hi)), int(digits))


def _gen_int_range(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> int:
    lo, hi = int(params[0]), int(params[1])
    if hi < lo:
        lo, hi = hi, lo
    return rng.randint(lo, hi)


def _gen_choice(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> Any:
    return rng.choice(params)


def _gen_bernoulli(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> bool:
    return rng.random() < float(params[0])


def _gen_past_timestamp(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> str:
    seconds = rng.uniform(0, float(params[0]) * 86400.0)
    return to_iso(now - timedelta(seconds=seconds))


def _gen_array_sample(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> List[Any]:
    options, max_len = params
    k = rng.randint(1, max(1, min(int(max_len), len(options))))
    return rng.sample(list(options), k)


def _gen_token(rng: random.Random, params: Tuple[Any, ...], now: datetime) -> str:
    return rand_token(rng, int(params[0]) if params else 10)


GENERATORS: Dict[str, Callable[[random.Random, Tuple[Any, ...], datetime], Any]] = {
    "float_range": _gen_float_range,
    "int_range": _gen_int_range,
    "choice": _gen_choice,
    "bernoulli": _gen_bernoulli,
    "past_timestamp": _gen_past_timestamp,
    "array_sample": _gen_array_sample,
    "token": _gen_token,
}


def generate_value(template: FieldTemplate, rng: random.Random, now: Optional[datetime] = None) -> Any:
    return GENERATORS[template.generator](rng, template.params, now or datetime.now(timezone.utc))


# Shorthands for the common numeric shapes.
def score(lo: float = 0, hi: float = 100) -> GenSpec:
    return ("float_range", (lo, hi, 2))


def count(lo: int = 0, hi: int = 10000) -> GenSpec:
    return ("int_range", (lo, hi))


def latency() -> GenSpec:
    return ("float_range", (0.1, 500.0, 2))


def byte_count() -> GenSpec:
    return ("int_range", (0, 1073741824))


def percentage() -> GenSpec:
    return ("float_range", (0, 100, 1))


def choice(*options: Any) -> GenSpec:
    return ("choice", tuple(options))


def flag(p: float = 0.5) -> GenSpec:
    return ("bernoulli", (p,))


def past_days(days: int) -> GenSpec:
    return ("past_timestamp", (days,))


def make_template(name: str, ftype: str, spec: GenSpec, description: str = "", weight: float = DEFAULT_WEIGHT) -> FieldTemplate:
    return FieldTemplate(name=name, type=ftype, generator=spec[0], params=spec[1], description=description, weight=weight)


# ----------------------------
# Built-in catalog
# ----------------------------

_SEVERITIES = ("low", "medium", "high", "critical")

_CATALOG_ROWS: Dict[str, List[Tuple[str, str, GenSpec, str, float]]] = {
    "behavioral_analytics": [
        ("user_behavior.login_frequency_score", "float", score(0, 1), "Normalized login frequency against baseline", 8),
        ("user_behavior.anomaly_score", "float", score(), "User behavior anomaly score", 9),
        ("user_behavior.risk_score", "float", score(), "Composite user risk score", 9),
        ("user_behavior.baseline_deviation", "float", ("float_range", (-3, 3, 2)), "Standard deviations from the user baseline", 7),
        ("user_behavior.session_duration_avg", "integer", count(300, 28800), "Average session duration in seconds", 6),
        ("user_behavior.failed_login_count_24h", "integer", count(0, 50), "Failed logins in the last 24 hours", 8),
        ("user_behavior.unique_hosts_accessed_24h", "integer", count(1, 20), "Distinct hosts accessed in the last 24 hours", 7),
        ("user_behavior.off_hours_activity_score", "float", score(), "Share of activity outside business hours", 8),
        ("host_behavior.cpu_usage_baseline", "float", percentage(), "Baseline CPU usage", 6),
        ("host_behavior.memory_usage_baseline", "float", percentage(), "Baseline memory usage", 6),
        ("host_behavior.network_traffic_baseline", "integer", byte_count(), "Baseline network traffic in bytes", 6),
        ("host_behavior.process_creation_rate", "float", ("float_range", (0.1, 50.0, 2)), "Processes created per minute", 7),
        ("host_behavior.anomaly_score", "float", score(), "Host behavior anomaly score", 9),
        ("entity_behavior.communication_pattern_score", "float", score(), "Entity communication pattern score", 7),
        ("entity_behavior.access_pattern_score", "float", score(), "Entity access pattern score", 7),
    ],
    "threat_intelligence": [
        ("threat.intelligence.confidence", "integer", count(0, 100), "Threat intelligence confidence", 9),
        ("threat.intelligence.severity", "string", choice(*_SEVERITIES), "Threat intelligence severity", 9),
        ("threat.enrichment.reputation_score", "integer", count(-100, 100), "Indicator reputation", 8),
        ("threat.enrichment.malware_family", "string", choice("Emotet", "Trickbot", "Ryuk", "Cobalt Strike", "Mimikatz", "Unknown"), "Associated malware family", 8),
        ("threat.enrichment.ioc_matches", "integer", count(0, 25), "Matched indicators of compromise", 9),
        ("threat.enrichment.first_seen", "timestamp", past_days(730), "First sighting of the indicator", 6),
        ("threat.enrichment.last_seen", "timestamp", past_days(30), "Most recent sighting of the indicator", 6),
        ("threat.actor.motivation", "string", choice("financial", "espionage", "disruption", "unknown"), "Assessed actor motivation", 7),
        ("threat.actor.sophistication", "string", choice("low", "medium", "high", "expert"), "Assessed actor sophistication", 7),
        ("threat.campaign.name", "string", choice("APT1", "Lazarus Group", "FIN7", "Carbanak", "Unknown Campaign"), "Attributed campaign", 6),
        ("threat.ttp.prevalence", "float", score(), "Prevalence of the observed technique", 7),
        ("threat.indicator.weight", "float", score(), "Indicator weight in scoring", 8),
        ("threat.indicator.tags", "array", ("array_sample", (("c2", "phishing", "botnet", "tor", "scanner", "ransomware"), 3)), "Indicator feed tags", 6),
    ],
    "performance_metrics": [
        ("system.performance.cpu_usage", "float", percentage(), "CPU usage", 8),
        ("system.performance.memory_usage", "float", percentage(), "Memory usage", 8),
        ("system.performance.disk_usage", "float", percentage(), "Disk usage", 7),
        ("system.performance.disk_io_read", "integer", byte_count(), "Disk bytes read", 6),
        ("system.performance.disk_io_write", "integer", byte_count(), "Disk bytes written", 6),
        ("system.performance.network_bytes_in", "integer", byte_count(), "Network bytes received", 7),
        ("system.performance.network_bytes_out", "integer", byte_count(), "Network bytes sent", 7),
        ("system.performance.process_count", "integer", count(50, 500), "Running processes", 6),
        ("system.performance.thread_count", "integer", count(200, 2000), "Running threads", 5),
        ("system.performance.handle_count", "integer", count(1000, 50000), "Open handles", 5),
        ("network.performance.latency_avg", "float", latency(), "Average network latency in ms", 7),
        ("network.performance.packet_loss", "float", ("float_range", (0, 10, 2)), "Packet loss percentage", 7),
        ("network.performance.bandwidth_utilization", "float", percentage(), "Bandwidth utilization", 7),
        ("network.performance.connection_count", "integer", count(10, 1000), "Open connections", 6),
        ("application.performance.response_time", "float", latency(), "Application response time in ms", 7),
    ],
    "security_scores": [
        ("security.score.overall_risk", "float", score(), "Overall security risk", 10),
        ("security.score.vulnerability_score", "float", score(), "Vulnerability exposure", 9),
        ("security.score.compliance_score", "float", score(), "Compliance posture", 8),
        ("security.score.patch_level", "float", score(), "Patch currency", 7),
        ("security.score.configuration_score", "float", score(), "Configuration hardening", 7),
        ("risk.assessment.likelihood", "float", score(0, 1), "Likelihood of compromise", 8),
        ("risk.assessment.impact", "float", score(0, 1), "Impact if compromised", 8),
        ("risk.assessment.exploitability", "float", score(), "Exploitability", 7),
        ("risk.mitigation.effectiveness", "float", score(), "Mitigation effectiveness", 6),
        ("security.maturity.level", "integer", count(1, 5), "Security maturity level", 6),
        ("security.controls.count", "integer", count(5, 50), "Deployed security controls", 6),
        ("security.controls.effectiveness", "float", score(), "Control effectiveness", 7),
    ],
    "audit_compliance": [
        ("audit.activity.count_24h", "integer", count(0, 1000), "Audit events in the last 24 hours", 7),
        ("audit.activity.privileged_access_count", "integer", count(0, 50), "Privileged access events", 8),
        ("audit.activity.failed_access_count", "integer", count(0, 100), "Failed access events", 8),
        ("compliance.check.status", "string", choice("pass", "fail", "warning", "not_applicable"), "Compliance check result", 7),
        ("compliance.check.score", "float", score(), "Compliance check score", 7),
        ("compliance.framework.name", "string", choice("SOX", "PCI-DSS", "HIPAA", "GDPR", "ISO27001", "NIST"), "Compliance framework", 6),
        ("compliance.violation.severity", "string", choice(*_SEVERITIES), "Violation severity", 8),
        ("compliance.violation.count", "integer", count(0, 25), "Open violations", 8),
        ("audit.trail.integrity_score", "float", score(), "Audit trail integrity", 7),
        ("audit.retention.days_remaining", "integer", count(0, 2555), "Days of retention remaining", 5),
        ("audit.log.tampering_detected", "boolean", flag(0.05), "Log tampering indicator", 6),
    ],
    "network_analytics": [
        ("network.analytics.connection_count_external", "integer", count(0, 100), "External connections", 8),
        ("network.analytics.connection_count_internal", "integer", count(10, 500), "Internal connections", 7),
        ("network.analytics.dns_query_count", "integer", count(0, 1000), "DNS queries", 6),
        ("network.analytics.suspicious_domain_count", "integer", count(0, 20), "Suspicious domains contacted", 9),
        ("network.analytics.malicious_ip_connections", "integer", count(0, 10), "Connections to known malicious IPs", 10),
        ("network.analytics.port_scan_score", "float", score(), "Port scan likelihood", 8),
        ("network.analytics.data_exfiltration_score", "float", score(), "Data exfiltration likelihood", 9),
        ("network.analytics.protocol_anomaly_score", "float", score(), "Protocol anomaly score", 7),
        ("network.analytics.beaconing_score", "float", score(), "C2 beaconing likelihood", 8),
        ("network.analytics.tunnel_detection_score", "float", score(), "Tunneling likelihood", 7),
    ],
    "endpoint_analytics": [
        ("endpoint.analytics.process_injection_score", "float", score(), "Process injection likelihood", 9),
        ("endpoint.analytics.persistence_score", "float", score(), "Persistence mechanism likelihood", 9),
        ("endpoint.analytics.lateral_movement_score", "float", score(), "Lateral movement likelihood", 9),
        ("endpoint.analytics.privilege_escalation_score", "float", score(), "Privilege escalation likelihood", 9),
        ("endpoint.analytics.file_modification_count", "integer", count(0, 1000), "Files modified", 7),
        ("endpoint.analytics.registry_modification_count", "integer", count(0, 100), "Registry keys modified", 7),
        ("endpoint.analytics.suspicious_process_count", "integer", count(0, 25), "Suspicious processes", 8),
        ("endpoint.analytics.memory_scan_score", "float", score(), "Memory scan findings", 7),
        ("endpoint.analytics.behavioral_score", "float", score(), "Endpoint behavioral score", 8),
        ("endpoint.analytics.antivirus_detection_count", "integer", count(0, 10), "Antivirus detections", 8),
    ],
    "cloud_security": [
        ("cloud.security.misconfiguration_count", "integer", count(0, 40), "Open cloud misconfigurations", 8),
        ("cloud.security.public_exposure_score", "float", score(), "Public exposure of cloud assets", 8),
        ("cloud.security.iam_risk_score", "float", score(), "IAM permission risk", 9),
        ("cloud.security.unused_credentials_count", "integer", count(0, 30), "Unused credentials", 6),
        ("cloud.security.mfa_enabled", "boolean", flag(0.8), "MFA enforced for the principal", 6),
        ("cloud.security.provider", "string", choice("aws", "azure", "gcp"), "Cloud provider", 5),
        ("cloud.audit.api_call_count_1h", "integer", count(0, 5000), "API calls in the last hour", 6),
        ("cloud.audit.anomalous_api_score", "float", score(), "Anomalous API usage score", 8),
    ],
    "forensics_analysis": [
        ("forensics.artifact.count", "integer", count(0, 200), "Collected artifacts", 6),
        ("forensics.timeline.event_count", "integer", count(0, 5000), "Timeline events", 5),
        ("forensics.evidence.integrity_verified", "boolean", flag(0.9), "Evidence hash verified", 5),
        ("forensics.memory.suspicious_region_count", "integer", count(0, 15), "Suspicious memory regions", 8),
        ("forensics.disk.deleted_file_count", "integer", count(0, 300), "Recovered deleted files", 6),
        ("forensics.analysis.confidence", "float", score(), "Analyst confidence", 7),
        ("forensics.analysis.last_collected", "timestamp", past_days(7), "Last collection time", 5),
        ("forensics.case.reference", "string", ("token", (12,)), "Case reference", 4),
    ],
}


def _build_catalog() -> Dict[str, Dict[str, FieldTemplate]]:
    catalog: Dict[str, Dict[str, FieldTemplate]] = {}
    for category, rows in _CATALOG_ROWS.items():
        catalog[category] = {
            name: make_template(name, ftype, spec, description, weight)
            for name, ftype, spec, description, weight in rows
        }
    return catalog


FIELD_CATALOG: Dict[str, Dict[str, FieldTemplate]] = _build_catalog()


def field_categories() -> List[str]:
    return list(FIELD_CATALOG.keys())


def fields_in_category(category: str) -> List[str]:
    return list(FIELD_CATALOG.get(category, {}).keys())


def total_field_count() -> int:
    return sum(len(fields) for fields in FIELD_CATALOG.values())


def get_template(name: str) -> Optional[FieldTemplate]:
    for fields in FIELD_CATALOG.values():
        if name in fields:
            return fields[name]
    return None


def category_of(name: str) -> Optional[str]:
    for category, fields in FIELD_CATALOG.items():
        if name in fields:
            return category
    return None


def combine_catalogs(*catalogs: Dict[str, FieldTemplate]) -> Dict[str, FieldTemplate]:
    """Merge catalogs into one name-unique map. The first definition of a name wins."""
    combined: Dict[str, FieldTemplate] = {}
    for catalog in catalogs:
        for name, template in catalog.items():
            if name in combined:
                logger.debug("duplicate field template %s ignored", name)
                continue
            combined[name] = template
    return combined


def catalog_for(categories: Optional[Iterable[str]] = None) -> Dict[str, FieldTemplate]:
    """Flatten the built-in catalog, restricted to `categories` when given."""
    wanted = list(categories) if categories else field_categories()
    parts: List[Dict[str, FieldTemplate]] = []
    for category in wanted:
        if category not in FIELD_CATALOG:
            logger.warning("unknown field category %s skipped", category)
            continue
        parts.append(FIELD_CATALOG[category])
    return combine_catalogs(*parts)
