from __future__ import annotations

import random
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .utils import parse_utc, to_iso

PATTERNS = ("uniform", "business_hours", "attack_simulation", "weekend_heavy", "random")

_RELATIVE_RE = re.compile(r"^(\d+)\s*([mhdwMy])$")
_UNIT_SECONDS = {
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 7 * 86400,
    "M": 30 * 86400,
    "y": 365 * 86400,
}


def parse_time_bound(value: Optional[str], now: datetime) -> datetime:
    """Accept "now", a relative offset into the past such as "7d", or an ISO timestamp."""
    if value is None or str(value).strip().lower() in ("", "now"):
        return now
    s = str(value).strip()
    m = _RELATIVE_RE.match(s)
    if m:
        return now - timedelta(seconds=int(m.group(1)) * _UNIT_SECONDS[m.group(2)])
    return parse_utc(s)


class TimestampPolicy:
    """Draws record timestamps inside [start, end] following a named pattern."""

    def __init__(self, start: datetime, end: datetime, pattern: str = "uniform",
                 rng: Optional[random.Random] = None) -> None:
        if pattern not in PATTERNS:
            raise ValueError(f"unknown timestamp pattern {pattern!r}; expected one of {PATTERNS}")
        if end < start:
            start, end = end, start
        self.start = start
        self.end = end
        self.pattern = pattern
        self.rng = rng or random.Random()
        self._bursts: List[datetime] = []

    @classmethod
    def from_config(cls, start: Optional[str] = "24h", end: Optional[str] = "now", pattern: str = "uniform",
                    rng: Optional[random.Random] = None, now: Optional[datetime] = None) -> "TimestampPolicy":
        now = now or datetime.now(timezone.utc)
        return cls(parse_time_bound(start, now), parse_time_bound(end, now), pattern, rng)

    def _uniform(self) -> datetime:
        span = (self.end - self.start).total_seconds()
        return self.start + timedelta(seconds=self.rng.uniform(0, span))

    def _inside(self, ts: datetime) -> bool:
        return self.start <= ts <= self.end

    def _business_hours(self) -> datetime:
        ts = self._uniform()
        if self.rng.random() >= 0.8:
            return ts
        if ts.weekday() >= 5:
            ts -= timedelta(days=ts.weekday() - 4)
        moved = ts.replace(hour=self.rng.randint(9, 16), minute=self.rng.randint(0, 59), second=self.rng.randint(0, 59))
        return moved if self._inside(moved) else ts

    def _attack_simulation(self) -> datetime:
        if not self._bursts:
            self._bursts = sorted(self._uniform() for _ in range(self.rng.randint(2, 4)))
        center = self.rng.choice(self._bursts)
        ts = center + timedelta(seconds=self.rng.gauss(0, 600))
        return ts if self._inside(ts) else center

    def _weekend_heavy(self) -> datetime:
        ts = self._uniform()
        if ts.weekday() >= 5 or self.rng.random() >= 0.6:
            return ts
        moved = ts + timedelta(days=5 - ts.weekday())
        if self._inside(moved):
            return moved
        moved = ts - timedelta(days=ts.weekday() + 1)
        return moved if self._inside(moved) else ts

    def next_datetime(self) -> datetime:
        if self.pattern == "business_hours":
            return self._business_hours()
        if self.pattern == "attack_simulation":
            return self._attack_simulation()
        if self.pattern == "weekend_heavy":
            return self._weekend_heavy()
        return self._uniform()

    def next_timestamp(self) -> str:
        return to_iso(self.next_datetime())
