"""Tests for lakecleaner.engine.duckdb_session module."""

from __future__ import annotations

import threading
from unittest.mock import patch

import duckdb
import pytest

from lakecleaner.engine.duckdb_session import DuckDBSession
from lakecleaner.errors import EngineError, InitError


def _write(path, rows, start=0, extra_column=False):
    path.parent.mkdir(parents=True, exist_ok=True)
    extra = ", 1.5 AS score" if extra_column else ""
    conn = duckdb.connect()
    try:
        conn.execute(
            f"COPY (SELECT range AS id, 'row_' || range::VARCHAR AS name{extra} FROM range({start}, {start + rows})) "
            f"TO '{path}' (FORMAT 'PARQUET')"
        )
    finally:
        conn.close()
    return str(path)


def _describe(path):
    conn = duckdb.connect()
    try:
        return conn.execute(f"DESCRIBE SELECT * FROM read_parquet('{path}')").fetchall()
    finally:
        conn.close()


class TestDuckDBSession:
    def test_create_table_row_count_matches_file(self, session, tmp_path):
        src = _write(tmp_path / "a.parquet", 42)

        session.create_table_from_remote_file("working", src)

        assert session.table_exists("working")
        assert session.row_count("working") == 42

    def test_create_existing_table_fails(self, session, tmp_path):
        src = _write(tmp_path / "a.parquet", 3)
        session.create_table_from_remote_file("working", src)

        with pytest.raises(EngineError):
            session.create_table_from_remote_file("working", src)

    def test_create_from_missing_file_fails(self, session, tmp_path):
        with pytest.raises(EngineError):
            session.create_table_from_remote_file("working", str(tmp_path / "missing.parquet"))
        assert not session.table_exists("working")

    def test_append_sums_rows(self, session, tmp_path):
        session.create_table_from_remote_file("working", _write(tmp_path / "a.parquet", 3))
        session.append_remote_file("working", _write(tmp_path / "b.parquet", 5, start=10))
        session.append_remote_file("working", _write(tmp_path / "c.parquet", 7, start=20))

        assert session.row_count("working") == 15

    def test_append_schema_mismatch_fails(self, session, tmp_path):
        session.create_table_from_remote_file("working", _write(tmp_path / "a.parquet", 3))

        with pytest.raises(EngineError):
            session.append_remote_file("working", _write(tmp_path / "wide.parquet", 3, extra_column=True))

        assert session.row_count("working") == 3

    def test_append_after_drop_fails(self, session, tmp_path):
        src = _write(tmp_path / "a.parquet", 3)
        session.create_table_from_remote_file("working", src)
        session.export_table("working", str(tmp_path / "out.parquet"))
        session.drop_table("working")

        assert not session.table_exists("working")
        with pytest.raises(EngineError):
            session.append_remote_file("working", src)

    def test_export_twice_is_identical(self, session, tmp_path):
        session.create_table_from_remote_file("working", _write(tmp_path / "a.parquet", 11))
        first = str(tmp_path / "first.parquet")
        second = str(tmp_path / "second.parquet")

        session.export_table("working", first)
        session.export_table("working", second)

        conn = duckdb.connect()
        try:
            counts = [conn.execute(f"SELECT count(*) FROM read_parquet('{p}')").fetchone()[0] for p in (first, second)]
        finally:
            conn.close()
        assert counts == [11, 11]
        assert _describe(first) == _describe(second)

    def test_export_empty_table_fails(self, session, tmp_path):
        session.create_table_from_remote_file("working", _write(tmp_path / "empty.parquet", 0))

        with pytest.raises(EngineError, match="empty"):
            session.export_table("working", str(tmp_path / "out.parquet"))

        assert not (tmp_path / "out.parquet").exists()

    def test_export_unwritable_destination_fails(self, session, tmp_path):
        session.create_table_from_remote_file("working", _write(tmp_path / "a.parquet", 3))

        with pytest.raises(EngineError):
            session.export_table("working", str(tmp_path / "no" / "such" / "dir" / "out.parquet"))

    def test_drop_missing_table_fails(self, session):
        with pytest.raises(EngineError):
            session.drop_table("working")

    def test_lock_released_after_failure(self, session, tmp_path):
        with pytest.raises(EngineError):
            session.drop_table("working")

        assert not session._lock.locked()
        session.create_table_from_remote_file("working", _write(tmp_path / "a.parquet", 2))
        assert session.row_count("working") == 2

    def test_quoted_table_names(self, session, tmp_path):
        session.create_table_from_remote_file("my-repo", _write(tmp_path / "a.parquet", 4))

        assert session.table_exists("my-repo")
        session.drop_table("my-repo")
        assert not session.table_exists("my-repo")

    def test_concurrent_appends_are_serialized(self, session, tmp_path):
        session.create_table_from_remote_file("working", _write(tmp_path / "seed.parquet", 1))
        sources = [_write(tmp_path / f"part_{i}.parquet", 10, start=i * 10) for i in range(8)]
        errors = []

        def worker(path):
            try:
                session.append_remote_file("working", path)
            except EngineError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(p,)) for p in sources]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert session.row_count("working") == 81

    def test_file_database(self, tmp_path):
        db_path = tmp_path / "data" / "lakefs.db"

        with DuckDBSession(str(db_path)) as s:
            assert s.db_path == str(db_path)

        assert db_path.exists()

    def test_bootstrap_failure_raises_init_error(self, lakefs_config):
        with (
            patch("lakecleaner.engine.duckdb_session.bootstrap_s3", side_effect=InitError("httpfs unavailable")),
            pytest.raises(InitError, match="httpfs"),
        ):
            DuckDBSession(lakefs=lakefs_config)

    def test_from_config(self, config):
        with patch("lakecleaner.engine.duckdb_session.bootstrap_s3") as mock_bootstrap:
            session = DuckDBSession.from_config(config)
            try:
                assert session.db_path == ":memory:"
                mock_bootstrap.assert_called_once()
                assert mock_bootstrap.call_args.args[1] == config.lakefs
            finally:
                session.close()

    @pytest.mark.parametrize(
        "method",
        ["create_table_from_remote_file", "append_remote_file", "export_table", "drop_table", "table_exists", "row_count"],
    )
    def test_engine_operations_documented(self, method):
        assert getattr(DuckDBSession, method).__doc__
