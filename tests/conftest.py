"""Shared fixtures for lakecleaner tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import duckdb
import pytest

from lakecleaner.config import CleanerConfig, FileConfig, LakeFsConfig
from lakecleaner.engine.duckdb_session import DuckDBSession
from lakecleaner.models import ObjectItem, ObjectListing
from lakecleaner.utils.lakefs import LakeFsClient


def write_parquet(path: Path, rows: int, start: int = 0) -> Path:
    """Write a small parquet file with ``id`` and ``name`` columns."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = duckdb.connect()
    try:
        conn.execute(
            f"COPY (SELECT range AS id, 'row_' || range::VARCHAR AS name FROM range({start}, {start + rows})) "
            f"TO '{path}' (FORMAT 'PARQUET')"
        )
    finally:
        conn.close()
    return path


def make_items(*paths: str) -> list[ObjectItem]:
    return [ObjectItem(path=p, size_bytes=1024) for p in paths]


@pytest.fixture
def lakefs_config():
    return LakeFsConfig(
        endpoint="http://lakefs.local:8000",
        access_key="AKIAEXAMPLE",
        secret_key="secret/EXAMPLE",
        api_version="v1",
    )


@pytest.fixture
def file_config():
    """File selection matching the documented end-to-end scenario."""
    return FileConfig(count=2, branch="main", repo="r", table_name="working")


@pytest.fixture
def config(lakefs_config, file_config):
    """Default lakecleaner configuration for tests."""
    return CleanerConfig(
        lakefs=lakefs_config,
        file=file_config,
        db_path=":memory:",
        log_level="WARNING",
    )


@pytest.fixture
def mock_engine():
    """Mock tabular engine session."""
    return MagicMock(spec=DuckDBSession)


@pytest.fixture
def mock_lakefs_client():
    """Mock lakeFS client returning a stable listing of three objects."""
    client = MagicMock(spec=LakeFsClient)
    items = make_items("a.parquet", "b.parquet", "c.parquet")
    client.list.side_effect = lambda repo, branch, amount: items[:amount]
    client.list_objects.return_value = ObjectListing(results=items)
    return client


@pytest.fixture
def session():
    """In-memory DuckDB session without S3 bootstrap."""
    with DuckDBSession() as s:
        yield s


@pytest.fixture
def local_repo(tmp_path):
    """A repository laid out on local disk like the lakeFS S3 gateway sees it.

    Each object is written both at ``<repo>/<path>`` (seed addressing) and at
    ``<repo>/main/<path>`` (batch addressing). Row counts: a=3, b=5, c=7.
    """
    repo = tmp_path / "repo"
    for start, (name, rows) in enumerate((("a.parquet", 3), ("b.parquet", 5), ("c.parquet", 7))):
        write_parquet(repo / name, rows, start=start * 100)
        write_parquet(repo / "main" / name, rows, start=start * 100)
    return repo
