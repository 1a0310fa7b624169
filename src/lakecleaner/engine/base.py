"""Abstract base class for tabular engine sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TabularEngine(ABC):
    """Statements the compaction loop issues against an analytical engine.

    Implementations must serialize these statements against each other: no
    two may run concurrently on the same session.
    """

    @abstractmethod
    def create_table_from_remote_file(self, table_name: str, remote_path: str) -> None:
        """Create a table holding every row of a remote file.

        Args:
            table_name: Name of the table to create.
            remote_path: URI of the source parquet file.

        Raises:
            EngineError: If the table exists or the file cannot be read.
        """

    @abstractmethod
    def append_remote_file(self, table_name: str, remote_path: str) -> None:
        """Insert every row of a remote file into an existing table.

        Args:
            table_name: Name of the target table.
            remote_path: URI of the source parquet file.

        Raises:
            EngineError: If the table is missing, the file cannot be read or
                its schema does not match the table.
        """

    @abstractmethod
    def export_table(self, table_name: str, output_path: str) -> None:
        """Write the full contents of a table to a parquet file.

        Args:
            table_name: Name of the table to export.
            output_path: Destination path or URI.

        Raises:
            EngineError: If the table is empty or the destination is not writable.
        """

    @abstractmethod
    def drop_table(self, table_name: str) -> None:
        """Remove a table.

        Args:
            table_name: Name of the table to drop.

        Raises:
            EngineError: If the table does not exist.
        """
