#!/usr/bin/env python3
"""
Generate synthetic security alerts using a YAML config.

Writes into generation.output_dir (or --out):
- alerts.parquet (document_id, collection, body JSON)
- _generation_meta.txt

The data pool is built through the provider tier when one is configured and
falls back to local generation otherwise, so the command works offline.
"""

from __future__ import annotations

import argparse
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .assembler import AlertAssembler, AssemblyOptions
from .cache import CacheStore
from .config import Settings, build_provider, load_settings
from .errors import ConfigurationError
from .false_positives import false_positive_stats
from .pools import DataPoolGenerator, PoolConfig, PoolPerformance, summarize_pool
from .provider import GenerationProvider
from .storage import ParquetDocumentSink, alerts_collection, ensure_dir
from .timestamps import TimestampPolicy
from .utils import utcnow_iso
from .vocab import entity_hostnames, entity_usernames

logger = logging.getLogger(__name__)


@dataclass
class GenerationSummary:
    alerts: int
    false_positives: int
    correlations_applied: int
    pool: PoolPerformance
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    batches_written: int = 0
    output_path: Optional[Path] = None


def fill_entities(record: Dict[str, Any], usernames: List[str], hostnames: List[str], index: int) -> None:
    """Give records without theme identities a fallback user and host, and name them in the reason."""
    user = record.get("user.name") or usernames[index % len(usernames)]
    host = record.get("host.name") or hostnames[index % len(hostnames)]
    record.setdefault("user.name", user)
    record.setdefault("host.name", host)
    record.setdefault("host.hostname", host)
    reason = record.get("kibana.alert.reason") or "Security alert"
    record["kibana.alert.reason"] = f"{reason.rstrip('.')} on {host} by {user}"


def generate_alerts(
    settings: Settings,
    provider: Optional[GenerationProvider] = None,
    cache: Optional[CacheStore] = None,
    rng: Optional[random.Random] = None,
    sink: Optional[ParquetDocumentSink] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Build a pool, assemble `alert_count` alerts and hand them to `sink` when given.

    Returns {"records": [...], "summary": GenerationSummary}.
    """
    g = settings.generation
    rng = rng or random.Random(g.seed)
    cache = cache if cache is not None else CacheStore(settings.cache.ttl_seconds, settings.cache.max_entries)

    pools = DataPoolGenerator(
        provider=provider,
        cache=cache,
        rng=rng,
        provider_timeout=settings.provider.timeout_seconds,
        max_retries=settings.provider.max_retries,
        retry_delay=settings.provider.retry_delay_seconds,
        now=now,
    )
    pool_result = pools.generate(PoolConfig(
        record_count=g.alert_count,
        field_count=settings.multi_field.field_count,
        categories=settings.multi_field.categories or None,
        theme=settings.theme,
        technique_enabled=settings.technique_enabled,
        performance_mode=settings.multi_field.performance_mode,
        context_weighting=settings.multi_field.context_weighting,
        cache_enabled=settings.cache.enabled,
    ))
    logger.info("pool ready: %s", summarize_pool(pool_result.pool))

    timestamps = TimestampPolicy.from_config(
        settings.time_range.start, settings.time_range.end, settings.time_range.pattern, rng=rng, now=now,
    )
    options = AssemblyOptions(
        space=g.space,
        namespace=g.namespace,
        timestamps=timestamps,
        false_positive_rate=g.false_positive_rate,
        correlation_enabled=settings.multi_field.correlation_enabled,
    )
    results = AlertAssembler(rng, now=now).assemble_many(pool_result.pool, g.alert_count, options)

    usernames = entity_usernames(rng, max(1, g.user_count))
    hostnames = entity_hostnames(rng, max(1, g.host_count))
    records: List[Dict[str, Any]] = []
    warnings = list(pool_result.warnings)
    correlations = 0
    for i, res in enumerate(results):
        fill_entities(res.record, usernames, hostnames, i)
        records.append(res.record)
        correlations += res.correlations_applied
        warnings.extend(res.warnings)

    summary = GenerationSummary(
        alerts=len(records),
        false_positives=false_positive_stats(records)["false_positives"],
        correlations_applied=correlations,
        pool=pool_result.performance,
        errors=list(pool_result.errors),
        warnings=warnings,
    )

    if sink is not None:
        collection = alerts_collection(g.space)
        sink.submit((r["kibana.alert.uuid"], r, collection) for r in records)
        summary.batches_written = sink.batches_written
        summary.output_path = sink.path

    return {"records": records, "summary": summary}


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Generate synthetic security alerts")
    ap.add_argument("--config", required=True, help="Path to YAML config (e.g., configs/default.yaml)")
    ap.add_argument("--out", default=None, help="Output dir override (default from config generation.output_dir)")
    ap.add_argument("--alerts", type=int, default=None, help="Alert count override (default generation.alert_count)")
    ap.add_argument("--fields", type=int, default=None, help="Extended field count override (default multi_field.field_count)")
    ap.add_argument("--theme", default=None, help="Theme override for user/host/org names")
    ap.add_argument("--seed", type=int, default=None, help="Seed override")
    ap.add_argument("--fp-rate", type=float, default=None, help="False positive rate override in [0, 1]")
    ap.add_argument("--no-provider", action="store_true", help="Skip the generation provider and build pools locally")
    ap.add_argument("--verbose", action="store_true", help="Log pool and tier decisions")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    cfg_path = Path(args.config).resolve()
    try:
        settings = load_settings(cfg_path)
        if args.alerts is not None:
            settings.generation.alert_count = args.alerts
        if args.fields is not None:
            settings.multi_field.field_count = args.fields
        if args.theme is not None:
            settings.theme = args.theme or None
        if args.seed is not None:
            settings.generation.seed = args.seed
        if args.fp_rate is not None:
            settings.generation.false_positive_rate = args.fp_rate
        if args.no_provider:
            settings.provider.enabled = False
        settings.validate()
        provider = build_provider(settings.provider)
    except (FileNotFoundError, ValueError, ConfigurationError) as e:
        print(f"[gen] config error: {e}")
        return 2

    out_dir = Path(args.out or settings.generation.output_dir).resolve()
    ensure_dir(out_dir)
    sink = ParquetDocumentSink(out_dir / "alerts.parquet", batch_size=settings.generation.batch_size)

    result = generate_alerts(settings, provider=provider, sink=sink)
    summary: GenerationSummary = result["summary"]

    meta_path = out_dir / "_generation_meta.txt"
    meta_path.write_text(
        f"generated_at_utc={utcnow_iso()}\n"
        f"alerts={summary.alerts}\n"
        f"false_positives={summary.false_positives}\n"
        f"correlations_applied={summary.correlations_applied}\n"
        f"provider_calls={summary.pool.provider_calls_used}\n"
        f"tokens_used={summary.pool.tokens_used}\n"
        f"batches_written={summary.batches_written}\n"
        f"config={cfg_path.as_posix()}\n",
        encoding="utf-8",
    )

    for err in summary.errors:
        print(f"[gen] error: {err}")
    if summary.warnings:
        print(f"[gen] {len(summary.warnings)} warning(s); first: {summary.warnings[0]}")
    print(f"[gen] wrote alerts to: {summary.output_path}")
    print(f"[gen] alerts: {summary.alerts} (false positives: {summary.false_positives})")
    print(f"[gen] meta: {meta_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
