"""lakecleaner - batch compaction of small parquet files on lakeFS branches."""

__version__ = "0.1.0"
