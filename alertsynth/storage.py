"""
Chunked document sink.

Documents are submitted as (document_id, body, collection) and written to a
parquet file one record batch per chunk, so peak memory is bounded by the
batch size rather than the run size.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import pyarrow as pa
import pyarrow.parquet as pq

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000

DOCUMENT_SCHEMA = pa.schema([
    ("document_id", pa.string()),
    ("collection", pa.string()),
    ("body", pa.string()),
])

Document = Tuple[Optional[str], Dict[str, Any], str]


def alerts_collection(space: str = "default") -> str:
    return f".alerts-security.alerts-{space}"


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def write_parquet_batches(path: Path, schema: pa.Schema, batches: Iterable[pa.RecordBatch], compression: str = "zstd") -> None:
    ensure_dir(path.parent)
    with pq.ParquetWriter(path, schema=schema, compression=compression) as writer:
        for batch in batches:
            writer.write_batch(batch)


def document_batches(documents: Iterable[Document], batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[pa.RecordBatch]:
    ids: List[Optional[str]] = []
    collections: List[str] = []
    bodies: List[str] = []
    for doc_id, body, collection in documents:
        ids.append(doc_id)
        collections.append(collection)
        bodies.append(json.dumps(body, default=str, sort_keys=True))
        if len(bodies) >= batch_size:
            yield _batch(ids, collections, bodies)
            ids, collections, bodies = [], [], []
    if bodies:
        yield _batch(ids, collections, bodies)


def _batch(ids: List[Optional[str]], collections: List[str], bodies: List[str]) -> pa.RecordBatch:
    return pa.record_batch(
        [
            pa.array(ids, type=pa.string()),
            pa.array(collections, type=pa.string()),
            pa.array(bodies, type=pa.string()),
        ],
        schema=DOCUMENT_SCHEMA,
    )


class ParquetDocumentSink:
    """Bulk submission target backed by a single parquet file."""

    def __init__(self, path: Path, batch_size: int = DEFAULT_BATCH_SIZE, compression: str = "zstd") -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {batch_size}")
        self.path = Path(path)
        self.batch_size = int(batch_size)
        self.compression = compression
        self.batches_written = 0
        self.documents_written = 0

    def submit(self, documents: Iterable[Document]) -> int:
        def counted() -> Iterator[pa.RecordBatch]:
            for batch in document_batches(documents, self.batch_size):
                self.batches_written += 1
                self.documents_written += batch.num_rows
                logger.debug("writing batch %d (%d docs)", self.batches_written, batch.num_rows)
                yield batch

        before = self.documents_written
        write_parquet_batches(self.path, DOCUMENT_SCHEMA, counted(), self.compression)
        return self.documents_written - before


def read_documents(path: Path) -> List[Dict[str, Any]]:
    table = pq.read_table(path)
    return [json.loads(b) for b in table.column("body").to_pylist()]
