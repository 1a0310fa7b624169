"""DuckDB-backed tabular engine session."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

import duckdb

from lakecleaner.engine.base import TabularEngine
from lakecleaner.errors import EngineError
from lakecleaner.utils.duckdb import (
    MEMORY_DB,
    bootstrap_s3,
    open_duckdb_connection,
    quote_identifier,
    quote_literal,
)

if TYPE_CHECKING:
    from lakecleaner.config import CleanerConfig, LakeFsConfig

logger = logging.getLogger(__name__)


class DuckDBSession(TabularEngine):
    """A single DuckDB connection shared by reference and guarded by a lock.

    Every statement holds the lock for its whole duration, so statements from
    different compactors or administrative callers never interleave.
    """

    def __init__(self, db_path: str = MEMORY_DB, lakefs: LakeFsConfig | None = None) -> None:
        """Open the database and run the S3 bootstrap.

        Args:
            db_path: DuckDB database file, or ``:memory:``.
            lakefs: lakeFS settings for the S3 gateway. When None, httpfs is
                not configured and only local paths can be read or written.

        Raises:
            InitError: If the database cannot be opened or bootstrapped.
        """
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = open_duckdb_connection(db_path)
        if lakefs is not None:
            try:
                bootstrap_s3(self._conn, lakefs)
            except Exception:
                self._conn.close()
                raise

    @classmethod
    def from_config(cls, config: CleanerConfig) -> DuckDBSession:
        """Create a session from the database path and lakeFS settings in a config."""
        return cls(config.db_path, config.lakefs)

    @property
    def db_path(self) -> str:
        return self._db_path

    def _execute(self, query: str) -> None:
        logger.debug("Executing: %s", query)
        with self._lock:
            try:
                self._conn.execute(query)
            except duckdb.Error as e:
                raise EngineError(str(e)) from e

    def _fetch_one(self, query: str, params: list[Any] | None = None) -> tuple | None:
        with self._lock:
            try:
                return self._conn.execute(query, params or []).fetchone()
            except duckdb.Error as e:
                raise EngineError(str(e)) from e

    def create_table_from_remote_file(self, table_name: str, remote_path: str) -> None:
        """Create the table from every row of a parquet file."""
        logger.info("Creating table %s from %s", table_name, remote_path)
        self._execute(
            f"CREATE TABLE {quote_identifier(table_name)} AS SELECT * FROM read_parquet({quote_literal(remote_path)});"
        )

    def append_remote_file(self, table_name: str, remote_path: str) -> None:
        """Insert every row of a parquet file into an existing table."""
        logger.info("Appending %s into %s", remote_path, table_name)
        self._execute(
            f"INSERT INTO {quote_identifier(table_name)} SELECT * FROM read_parquet({quote_literal(remote_path)});"
        )

    def export_table(self, table_name: str, output_path: str) -> None:
        """Write a table to parquet; an empty table is refused.

        The emptiness check and the COPY run under one lock acquisition.
        """
        table = quote_identifier(table_name)
        with self._lock:
            try:
                (rows,) = self._conn.execute(f"SELECT count(*) FROM {table};").fetchone()
                if rows == 0:
                    msg = f"Table {table_name} is empty, nothing to export"
                    raise EngineError(msg)
                logger.info("Exporting %d row(s) from %s to %s", rows, table_name, output_path)
                self._conn.execute(f"COPY {table} TO {quote_literal(output_path)} (FORMAT 'PARQUET');")
            except duckdb.Error as e:
                raise EngineError(str(e)) from e

    def drop_table(self, table_name: str) -> None:
        """Drop the table; a missing table raises EngineError."""
        logger.info("Dropping table %s", table_name)
        self._execute(f"DROP TABLE {quote_identifier(table_name)};")

    def table_exists(self, table_name: str) -> bool:
        """Return True if a table of this name exists in the main schema."""
        row = self._fetch_one(
            "SELECT count(*) FROM information_schema.tables WHERE table_schema = 'main' AND table_name = ?",
            [table_name],
        )
        return bool(row and row[0])

    def row_count(self, table_name: str) -> int:
        """Return the number of rows in a table."""
        row = self._fetch_one(f"SELECT count(*) FROM {quote_identifier(table_name)};")
        return int(row[0]) if row else 0

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info("DuckDB session closed: %s", self._db_path)

    def __enter__(self) -> DuckDBSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
