"""
Base connector class for record sources.

A record source exposes one capability: search records that carry links,
returning a lazily paginated iterator of Record.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from fhir_link.connectors.types import Record


class RecordSource(ABC):
    """
    Abstract base class for record sources.

    Subclasses must implement:
    - search_records(): Yield every record that has at least one link
    """

    source_name: str = None  # e.g., "Azure API for FHIR"

    @abstractmethod
    def search_records(self) -> Iterator[Record]:
        """
        Search for records with links present.

        The returned iterator may fetch pages lazily; consume it once.

        Yields:
            Record objects

        Raises:
            TransientFetchError: When a page cannot be fetched
        """
        pass


class StaticRecordSource(RecordSource):
    """Record source over an in-memory sequence (fixtures, replays)."""

    source_name = "static"

    def __init__(self, records):
        self.records = list(records)

    def search_records(self) -> Iterator[Record]:
        yield from self.records
