from __future__ import annotations

import random
import string
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

_MISSING = object()


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def parse_utc(ts: str) -> datetime:
    # Expect ISO like 2025-12-01T00:00:00Z
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, x))


def safe_float(v: Any) -> Optional[float]:
    try:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return float(v)
        s = str(v).strip()
        if s == "":
            return None
        return float(s)
    except (TypeError, ValueError):
        return None


def is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def rand_token(rng: random.Random, n: int = 10) -> str:
    return "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(n))


def rand_ipv4(rng: random.Random, private: bool = False) -> str:
    if private:
        return f"10.{rng.randint(0, 255)}.{rng.randint(0, 255)}.{rng.randint(1, 254)}"
    first = rng.choice([23, 31, 45, 52, 64, 77, 89, 91, 103, 141, 172, 185, 193, 203])
    return f"{first}.{rng.randint(0, 255)}.{rng.randint(0, 255)}.{rng.randint(1, 254)}"


# ----------------------------
# Dotted paths
# ----------------------------
#
# Records mix flat dotted keys ("kibana.alert.uuid") with nested dicts built
# from dotted paths. Lookups try the flat key first, then walk the nesting.

def get_path(record: Dict[str, Any], path: str, default: Any = None) -> Any:
    if path in record:
        return record[path]
    node: Any = record
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def has_path(record: Dict[str, Any], path: str) -> bool:
    return get_path(record, path, _MISSING) is not _MISSING


def set_path(record: Dict[str, Any], path: str, value: Any) -> None:
    """Write to an existing flat key if there is one, otherwise nest by dots."""
    if path in record:
        record[path] = value
        return
    parts = path.split(".")
    node = record
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def iter_slots(record: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, Dict[str, Any], str]]:
    """Yield (dotted path, owning dict, key) for every leaf, for in-place edits."""
    for key in list(record.keys()):
        value = record[key]
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value:
            yield from iter_slots(value, path)
        else:
            yield path, record, key


def chunked(items: List[Any], size: int) -> Iterator[List[Any]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]
