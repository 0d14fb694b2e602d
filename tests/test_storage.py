"""
Tests for the chunked parquet document sink.
"""
from __future__ import annotations

import pyarrow.parquet as pq
import pytest

from alertsynth.storage import (
    DOCUMENT_SCHEMA,
    ParquetDocumentSink,
    alerts_collection,
    document_batches,
    read_documents,
)


def docs(n):
    return ((f"id-{i}", {"n": i, "kibana.alert.uuid": f"id-{i}"}, alerts_collection()) for i in range(n))


def test_sink_writes_in_batches(tmp_path):
    path = tmp_path / "out" / "alerts.parquet"
    sink = ParquetDocumentSink(path, batch_size=1000)
    assert sink.submit(docs(2500)) == 2500
    assert sink.batches_written == 3
    assert sink.documents_written == 2500

    table = pq.read_table(path)
    assert table.schema.equals(DOCUMENT_SCHEMA)
    assert table.num_rows == 2500
    assert table.column("collection")[0].as_py() == ".alerts-security.alerts-default"
    bodies = read_documents(path)
    assert [b["n"] for b in bodies[:3]] == [0, 1, 2]


def test_batches_split_exactly():
    sizes = [b.num_rows for b in document_batches(docs(5), batch_size=2)]
    assert sizes == [2, 2, 1]
    assert list(document_batches(docs(0), batch_size=2)) == []


def test_batch_size_must_be_positive(tmp_path):
    with pytest.raises(ValueError):
        ParquetDocumentSink(tmp_path / "x.parquet", batch_size=0)


def test_collection_name_uses_space():
    assert alerts_collection("soc") == ".alerts-security.alerts-soc"
