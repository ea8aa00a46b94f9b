"""
Merged patient export job.

One run: search records, extract merge pairs, build the CSV, upload it.
Every failure is caught and logged here; the caller (the scheduler) never
sees an exception.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loguru import logger

from fhir_link.connectors.base import RecordSource
from fhir_link.exporter import CsvExporter
from fhir_link.extractor import LinkExtractor
from fhir_link.sinks.base import BlobSink


def blob_name_for(
    now: datetime,
    prefix: str = "merged_patients",
    unique_suffix: bool = False,
) -> str:
    """``merged_patients_<yyyyMMdd_HHmmss>.csv`` for the UTC time ``now``."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    name = f"{prefix}_{now.strftime('%Y%m%d_%H%M%S')}"
    if unique_suffix:
        name = f"{name}_{uuid.uuid4().hex[:8]}"
    return f"{name}.csv"


@dataclass
class RunResult:
    """Result of one export run."""
    success: bool = False
    blob_name: str | None = None
    records_fetched: int = 0
    pairs_exported: int = 0
    bytes_written: int = 0
    errors: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class MergedPatientJob:
    """
    Builds the merged patient CSV and hands it to a sink.

    Collaborators are created once by the caller and reused across runs.
    """

    def __init__(
        self,
        source: RecordSource,
        sink: BlobSink,
        container: str,
        exporter: CsvExporter | None = None,
        filename_prefix: str = "merged_patients",
        unique_suffix: bool = False,
        clock=None,
    ):
        self.source = source
        self.sink = sink
        self.container = container
        self.exporter = exporter or CsvExporter()
        self.filename_prefix = filename_prefix
        self.unique_suffix = unique_suffix
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self) -> RunResult:
        """Run the export once. Never raises."""
        result = RunResult(started_at=self.clock())
        logger.info(f"Run started at {result.started_at.isoformat()}")

        try:
            logger.info("Querying records with links")
            extractor = LinkExtractor()
            pairs = extractor.extract(self.source.search_records())
            result.records_fetched = extractor.stats.records_seen

            logger.info("Building CSV of merged patients")
            content = self.exporter.export(pairs)

            # Content is complete before anything touches the sink
            self.sink.ensure_container(self.container)
            result.blob_name = blob_name_for(
                self.clock(), self.filename_prefix, self.unique_suffix
            )

            logger.info(f"Uploading {result.blob_name} to {self.container}")
            with self.sink.open_writer(self.container, result.blob_name) as writer:
                writer.write(content)

            result.pairs_exported = len(pairs)
            result.bytes_written = len(content)
            result.success = True

        except Exception as e:
            logger.exception(f"Run failed: {e}")
            result.errors.append(str(e))

        finally:
            result.completed_at = self.clock()
            status = "completed" if result.success else "failed"
            logger.info(
                f"Run {status} at {result.completed_at.isoformat()}: "
                f"{result.pairs_exported} pairs, {result.duration_seconds:.1f}s"
            )

        return result
