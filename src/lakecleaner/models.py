"""Data models for lakecleaner."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CompactorState(Enum):
    """Lifecycle states of a single compaction run."""

    UNINITIALIZED = "uninitialized"
    SEEDED = "seeded"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ObjectItem:
    """One object stored on a lakeFS branch."""

    path: str
    path_type: str = "object"
    physical_address: str | None = None
    checksum: str | None = None
    size_bytes: int | None = None
    mtime: int | None = None
    content_type: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ObjectItem:
        """Build an ObjectItem from a lakeFS ObjectStats payload."""
        return cls(
            path=data["path"],
            path_type=data.get("path_type", "object"),
            physical_address=data.get("physical_address"),
            checksum=data.get("checksum"),
            size_bytes=data.get("size_bytes"),
            mtime=data.get("mtime"),
            content_type=data.get("content_type"),
        )


@dataclass
class ObjectListing:
    """One page of a lakeFS object listing."""

    results: list[ObjectItem] = field(default_factory=list)
    has_more: bool = False
    next_offset: str = ""

    @property
    def paths(self) -> list[str]:
        return [item.path for item in self.results]


@dataclass
class BatchReport:
    """Outcome of one Accumulate -> Flush cycle."""

    index: int
    progress: int = 0
    files_ingested: int = 0
    mirrored_files: int = 0
    output_path: str | None = None
    duration_seconds: float = 0.0

    @property
    def total_files(self) -> int:
        """Files appended to the working table in this batch, both passes included."""
        return self.files_ingested + self.mirrored_files


@dataclass
class RunReport:
    """Outcome of a full compaction run."""

    repo: str
    branch: str
    table_name: str
    state: CompactorState = CompactorState.UNINITIALIZED
    progress: int = 0
    seed_path: str | None = None
    batches: list[BatchReport] = field(default_factory=list)
    error: str | None = None
    duration_seconds: float = 0.0

    @property
    def files_written(self) -> list[str]:
        return [b.output_path for b in self.batches if b.output_path]

    @property
    def total_files_ingested(self) -> int:
        return sum(b.total_files for b in self.batches)
