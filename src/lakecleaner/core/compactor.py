"""Batch compaction loop - the main workflow engine."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from lakecleaner.core.paths import object_uri, output_uri
from lakecleaner.errors import NoFilesAvailable
from lakecleaner.models import BatchReport, CompactorState, RunReport

if TYPE_CHECKING:
    from lakecleaner.config import FileConfig
    from lakecleaner.engine.base import TabularEngine
    from lakecleaner.models import ObjectItem
    from lakecleaner.utils.lakefs import LakeFsClient

logger = logging.getLogger(__name__)


class BatchCompactor:
    """Compacts small files on a lakeFS branch into larger parquet files.

    One instance drives one run: seed a working table from the first file,
    append listed files into it, export it, drop it, and repeat until
    ``file_conf.count`` files have been consumed.
    """

    def __init__(self, engine: TabularEngine, client: LakeFsClient, file_conf: FileConfig) -> None:
        """Initialize the compactor.

        Args:
            engine: Engine session shared by reference.
            client: lakeFS listing client.
            file_conf: Source repository, branch and loop settings.

        Raises:
            ValidationError: If ``file_conf`` cannot drive a run.
        """
        file_conf.validate()
        self._engine = engine
        self._client = client
        self._conf = file_conf
        self._table = file_conf.working_table
        self._state = CompactorState.UNINITIALIZED
        self._progress = 0
        self._cursor = ""
        self._seen: set[str] = set()

    @property
    def state(self) -> CompactorState:
        return self._state

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def table_name(self) -> str:
        return self._table

    def run(self) -> RunReport:
        """Run batches until the configured file count has been consumed.

        Returns:
            RunReport describing every flushed batch.

        Raises:
            CleanerError: Any listing or engine failure, after the report has
                been marked FAILED. Nothing is retried or rolled back.
        """
        start_time = time.time()
        conf = self._conf
        report = RunReport(repo=conf.repo, branch=conf.branch, table_name=self._table)
        logger.info(
            "Starting compaction of %s/%s into table %s (count=%d)",
            conf.repo,
            conf.branch,
            self._table,
            conf.count,
        )

        try:
            report.seed_path = self.seed()
            batch_index = 0
            while self._progress < conf.count:
                if batch_index > 0 and conf.reseed_after_flush:
                    try:
                        self.seed()
                    except NoFilesAvailable:
                        logger.warning("No files left to re-seed from at progress %d, stopping", self._progress)
                        break

                batch = self.accumulate(batch_index)
                batch.output_path = self.flush()
                report.batches.append(batch)
                report.progress = self._progress
                batch_index += 1

                if batch.files_ingested == 0:
                    logger.warning(
                        "Listing of %s/%s returned no new files at progress %d, stopping",
                        conf.repo,
                        conf.branch,
                        self._progress,
                    )
                    break

            self._state = CompactorState.DONE
            report.state = CompactorState.DONE
            logger.info("Compaction finished: %d file(s) consumed, %d batch(es)", self._progress, batch_index)

        except Exception as e:
            self._state = CompactorState.FAILED
            report.state = CompactorState.FAILED
            report.error = str(e)
            logger.exception("Compaction failed for %s/%s at progress %d", conf.repo, conf.branch, self._progress)
            raise

        finally:
            report.progress = self._progress
            report.duration_seconds = time.time() - start_time

        return report

    def seed(self) -> str:
        """Create the working table from the first available file.

        Returns:
            URI of the seed file.

        Raises:
            NoFilesAvailable: If the branch lists no files.
        """
        files = self._list_files(1)
        if not files:
            msg = f"No files in lakefs {self._conf.repo}/{self._conf.branch}"
            raise NoFilesAvailable(msg)

        seed_path = object_uri(self._conf.repo, files[0].path, scheme=self._conf.scheme)
        self._engine.create_table_from_remote_file(self._table, seed_path)
        self._state = CompactorState.SEEDED
        logger.info("Seeded table %s from %s", self._table, seed_path)
        return seed_path

    def accumulate(self, index: int = 0) -> BatchReport:
        """Ingest one batch into the working table.

        The primary pass advances progress by the number of files it ingested.
        When ``mirror_pass`` is enabled a second listing of the same size is
        ingested as well without touching progress.
        """
        start_time = time.time()
        self._state = CompactorState.ACCUMULATING
        batch = BatchReport(index=index)

        files = self._ingest_pass()
        self._progress += len(files)
        batch.files_ingested = len(files)
        batch.progress = self._progress

        # TODO: confirm with product owners whether the mirrored pass is intended; it doubles ingestion per batch.
        if self._conf.mirror_pass:
            mirrored = self._ingest_pass()
            batch.mirrored_files = len(mirrored)

        batch.duration_seconds = time.time() - start_time
        logger.info(
            "Batch %d: %d file(s) ingested, %d mirrored, progress %d/%d",
            index,
            batch.files_ingested,
            batch.mirrored_files,
            self._progress,
            self._conf.count,
        )
        return batch

    def flush(self) -> str:
        """Export the working table, then drop it.

        Returns:
            The output path the table was written to.
        """
        self._state = CompactorState.FLUSHING
        out = output_uri(self._progress, self._conf.repo, self._conf.to_branch, scheme=self._conf.scheme)
        self._engine.export_table(self._table, out)
        self._engine.drop_table(self._table)
        self._state = CompactorState.ACCUMULATING
        logger.info("Flushed table %s to %s", self._table, out)
        return out

    def _ingest_pass(self) -> list[ObjectItem]:
        files = self._list_files(self._conf.count)
        for item in files:
            path = object_uri(self._conf.repo, item.path, branch=self._conf.branch, scheme=self._conf.scheme)
            self._engine.append_remote_file(self._table, path)
        return files

    def _list_files(self, amount: int) -> list[ObjectItem]:
        conf = self._conf
        if not conf.dedupe:
            return self._client.list(conf.repo, conf.branch, amount)

        listing = self._client.list_objects(conf.repo, conf.branch, amount, after=self._cursor)
        if listing.results:
            self._cursor = listing.results[-1].path
        files = [item for item in listing.results if item.path not in self._seen]
        self._seen.update(item.path for item in files)
        return files
