"""DuckDB connection helper utilities."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

from lakecleaner.errors import InitError

if TYPE_CHECKING:
    from lakecleaner.config import LakeFsConfig

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"
S3_REGION = "us-east-1"

_SECRET_RE = re.compile(r"(s3_secret_access_key=)'[^']*'")


def quote_literal(value: str) -> str:
    """Quote a value as a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def quote_identifier(name: str) -> str:
    """Quote a value as a SQL identifier."""
    return '"' + name.replace('"', '""') + '"'


def build_s3_setup_statements(lakefs: LakeFsConfig) -> list[str]:
    """Build the statements that point httpfs at the lakeFS S3 gateway.

    Region, SSL and URL style are fixed; only the endpoint and the
    credentials come from configuration.

    Args:
        lakefs: lakeFS connection settings.

    Returns:
        DuckDB statements in execution order.
    """
    return [
        "INSTALL httpfs;",
        "LOAD httpfs;",
        f"SET s3_endpoint={quote_literal(lakefs.s3_endpoint)};",
        f"SET s3_region={quote_literal(S3_REGION)};",
        "SET s3_use_ssl=false;",
        "SET s3_url_style='path';",
        f"SET s3_access_key_id={quote_literal(lakefs.access_key)};",
        f"SET s3_secret_access_key={quote_literal(lakefs.secret_key)};",
    ]


def build_s3_setup_query(lakefs: LakeFsConfig) -> str:
    """Return the setup statements as one newline-separated batch."""
    return "\n".join(build_s3_setup_statements(lakefs))


def mask_secrets(query: str) -> str:
    """Hide the secret access key in a setup query before logging it."""
    return _SECRET_RE.sub(r"\1'***'", query)


def open_duckdb_connection(db_path: str = MEMORY_DB) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB database, creating its parent directory if needed.

    Args:
        db_path: Database file path, or ``:memory:``.

    Returns:
        An open DuckDB connection.

    Raises:
        InitError: If the database cannot be opened.
    """
    try:
        if db_path != MEMORY_DB:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(db_path)
    except (duckdb.Error, OSError) as e:
        msg = f"Could not open DuckDB database {db_path}: {e}"
        raise InitError(msg) from e

    logger.info("DuckDB database opened: %s", db_path)
    return conn


def bootstrap_s3(conn: duckdb.DuckDBPyConnection, lakefs: LakeFsConfig) -> None:
    """Load httpfs and configure S3 access on a connection.

    Raises:
        InitError: If any setup statement fails.
    """
    logger.info("setup query: %s", mask_secrets(build_s3_setup_query(lakefs)))
    try:
        for statement in build_s3_setup_statements(lakefs):
            conn.execute(statement)
    except duckdb.Error as e:
        msg = f"DuckDB S3 setup failed: {e}"
        raise InitError(msg) from e
