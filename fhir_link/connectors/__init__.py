"""
Connectors Module - record sources for the merge export.

- RecordSource: Abstract base class for record sources
- FhirConnector: FHIR REST Patient search with Bundle paging
- types: Record, Link, LinkType and MergePair
"""

from fhir_link.connectors.base import RecordSource, StaticRecordSource
from fhir_link.connectors.fhir import FhirConnector
from fhir_link.connectors.types import Link, LinkType, MergePair, Record

__all__ = [
    "FhirConnector",
    "Link",
    "LinkType",
    "MergePair",
    "Record",
    "RecordSource",
    "StaticRecordSource",
]
