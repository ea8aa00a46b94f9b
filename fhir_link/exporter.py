"""
CSV exporter for merged patient pairs.

Output format (one header line, then one line per pair, ``\\n`` terminated):

    Entity1,Entity1Key,Entity2,Entity2Key
    AzureAPIforFHIR_Patient,<source_id>,AzureAPIforFHIR_Patient,<target_id>

Pairs are written sorted by (source_id, target_id) so repeated runs over the
same data produce byte-identical files.
"""

import csv
import io
from collections.abc import Iterable

from loguru import logger

from fhir_link.connectors.types import MergePair


HEADER = ("Entity1", "Entity1Key", "Entity2", "Entity2Key")
DEFAULT_SYSTEM_LABEL = "AzureAPIforFHIR_Patient"


class EncodingError(ValueError):
    """An identifier cannot be represented in the output encoding."""

    def __init__(self, message: str, pair: MergePair | None = None):
        super().__init__(message)
        self.pair = pair


class CsvExporter:
    """Serializes merge pairs to CSV bytes."""

    def __init__(self, system_label: str = DEFAULT_SYSTEM_LABEL, encoding: str = "utf-8"):
        self.system_label = system_label
        self.encoding = encoding

    def row(self, pair: MergePair) -> tuple[str, str, str, str]:
        return (self.system_label, pair.source_id, self.system_label, pair.target_id)

    def export(self, pairs: Iterable[MergePair]) -> bytes:
        """
        Build the complete CSV document in memory.

        Raises:
            EncodingError: If a label or identifier cannot be encoded
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        chunks = []

        def flush(pair: MergePair | None) -> None:
            line = buffer.getvalue()
            buffer.seek(0)
            buffer.truncate()
            try:
                chunks.append(line.encode(self.encoding))
            except UnicodeEncodeError as e:
                where = f"pair {pair.source_id!r} -> {pair.target_id!r}" if pair else "header"
                raise EncodingError(
                    f"Cannot encode {where} as {self.encoding}: {e.reason}",
                    pair=pair,
                ) from e

        writer.writerow(HEADER)
        flush(None)

        count = 0
        for pair in sorted(pairs):
            writer.writerow(self.row(pair))
            flush(pair)
            count += 1

        content = b"".join(chunks)
        logger.info(f"Built CSV with {count} rows ({len(content):,} bytes)")
        return content
