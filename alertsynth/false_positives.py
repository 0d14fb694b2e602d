from __future__ import annotations

import random
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from .utils import get_path, parse_utc, to_iso

FALSE_POSITIVE_CATEGORIES: Dict[str, List[str]] = {
    "maintenance": [
        "Scheduled system maintenance",
        "Planned software update",
        "Backup process execution",
        "System patching activity",
        "Database maintenance window",
    ],
    "authorized_tools": [
        "Authorized penetration testing",
        "Approved vulnerability scanner",
        "IT administrative tool usage",
        "Security tool false trigger",
        "Legitimate remote access software",
    ],
    "normal_business": [
        "Normal user behavior pattern",
        "Expected business process",
        "Routine data transfer",
        "Standard application behavior",
        "Regular user login activity",
    ],
    "configuration_change": [
        "Approved configuration change",
        "Network infrastructure update",
        "Security policy modification",
        "System configuration adjustment",
        "Firewall rule update",
    ],
    "false_detection": [
        "Signature false positive",
        "Heuristic misclassification",
        "Benign file flagged",
        "Legitimate process misidentified",
        "Known good hash flagged",
    ],
}

SOC_ANALYSTS = [
    "analyst.smith", "analyst.jones", "analyst.garcia", "analyst.chen", "analyst.patel",
    "analyst.okafor", "analyst.novak", "analyst.silva", "analyst.kim", "analyst.murphy",
]

MIN_RESOLUTION_SECONDS = 5 * 60
MAX_RESOLUTION_SECONDS = 2 * 60 * 60


def should_mark(rng: random.Random, rate: float) -> bool:
    return rate > 0 and rng.random() < rate


def mark_false_positive(record: Dict[str, Any], rng: random.Random, category: Optional[str] = None) -> Dict[str, Any]:
    """Return a copy of `record` closed out as a false positive."""
    out = dict(record)
    category = category or rng.choice(list(FALSE_POSITIVE_CATEGORIES))
    reason = rng.choice(FALSE_POSITIVE_CATEGORIES[category])
    analyst = rng.choice(SOC_ANALYSTS)

    original = parse_utc(str(get_path(record, "@timestamp")))
    delay = rng.randint(MIN_RESOLUTION_SECONDS, MAX_RESOLUTION_SECONDS)
    resolved = original + timedelta(seconds=delay)

    out["kibana.alert.status"] = "closed"
    out["kibana.alert.workflow_status"] = "closed"
    out["kibana.alert.workflow_reason"] = reason
    out["kibana.alert.workflow_user"] = analyst
    out["kibana.alert.workflow_updated_at"] = to_iso(resolved)
    out["kibana.alert.false_positive"] = True
    out["kibana.alert.false_positive_category"] = category
    out["kibana.alert.resolution_time_minutes"] = delay // 60
    out["kibana.alert.rule.false_positives"] = list(record.get("kibana.alert.rule.false_positives") or []) + [f"{category}: {reason}"]
    out["event.outcome"] = "false_positive"
    return out


def false_positive_stats(records: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    total = 0
    marked = 0
    by_category: Dict[str, int] = {}
    minutes: List[int] = []
    for r in records:
        total += 1
        if not r.get("kibana.alert.false_positive"):
            continue
        marked += 1
        cat = str(r.get("kibana.alert.false_positive_category", "unknown"))
        by_category[cat] = by_category.get(cat, 0) + 1
        minutes.append(int(r.get("kibana.alert.resolution_time_minutes", 0)))
    return {
        "total": total,
        "false_positives": marked,
        "rate": (marked / total) if total else 0.0,
        "by_category": by_category,
        "avg_resolution_minutes": (sum(minutes) / len(minutes)) if minutes else 0.0,
    }
