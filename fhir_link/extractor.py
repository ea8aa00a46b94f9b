"""
Merge-link extraction.

Turns a stream of records into the deduplicated set of directed
"replaced-by" pairs. Malformed references are tolerated: an empty or
slash-terminated reference yields an empty target id instead of an error.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from loguru import logger

from fhir_link.connectors.types import LinkType, MergePair, Record


class MergePairSet:
    """
    Set of MergePair keyed by (source_id, target_id).

    Iterates in first-seen order; use ``sorted()`` for key order.
    """

    def __init__(self, pairs: Iterable[MergePair] = ()):
        self._pairs: dict[MergePair, None] = {}
        for pair in pairs:
            self.add(pair)

    def add(self, pair: MergePair) -> bool:
        """Insert ``pair`` if absent. Returns False when it was already present."""
        if pair in self._pairs:
            return False
        self._pairs[pair] = None
        return True

    def sorted(self) -> list[MergePair]:
        return sorted(self._pairs)

    def __contains__(self, pair) -> bool:
        return pair in self._pairs

    def __iter__(self) -> Iterator[MergePair]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other) -> bool:
        if isinstance(other, MergePairSet):
            return self._pairs.keys() == other._pairs.keys()
        if isinstance(other, (set, frozenset)):
            return self._pairs.keys() == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"MergePairSet({self.sorted()!r})"


@dataclass
class ExtractionStats:
    """Counters for one extraction pass."""
    records_seen: int = 0
    links_seen: int = 0
    replaced_by_links: int = 0
    duplicates: int = 0
    empty_targets: int = 0


class LinkExtractor:
    """Extracts merge pairs from the ``replaced-by`` links of records."""

    link_type = LinkType.REPLACED_BY

    def __init__(self):
        self.stats = ExtractionStats()

    def extract(self, records: Iterable[Record]) -> MergePairSet:
        """
        Consume ``records`` once and collect every unique merge pair.

        Only failures raised by the iterable itself propagate.
        """
        self.stats = ExtractionStats()
        pairs = MergePairSet()

        for record in records:
            self.stats.records_seen += 1

            for link in record.links:
                self.stats.links_seen += 1
                if link.type != self.link_type:
                    continue

                self.stats.replaced_by_links += 1
                target_id = link.target_id
                if not target_id:
                    self.stats.empty_targets += 1
                    logger.warning(
                        f"Record {record.id!r} has a replaced-by link with no target id "
                        f"(reference={link.target_reference!r})"
                    )

                if not pairs.add(MergePair(record.id, target_id)):
                    self.stats.duplicates += 1
                    logger.debug(f"Duplicate merge pair {record.id!r} -> {target_id!r}")

        logger.info(
            f"Extracted {len(pairs)} merge pairs from {self.stats.records_seen} records "
            f"({self.stats.replaced_by_links} replaced-by links, "
            f"{self.stats.duplicates} duplicates collapsed)"
        )
        return pairs
