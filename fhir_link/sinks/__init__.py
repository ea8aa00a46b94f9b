"""
Sinks Module - blob storage destinations for exported files.

- BlobSink / BlobWriter: Abstract sink and buffered, atomically committed writer
- AzureBlobSink: Azure Blob Storage via the REST API (SAS auth)
- LocalDirectorySink: Local filesystem, for development and tests
"""

from fhir_link.config import StorageSettings
from fhir_link.sinks.azure_blob import AzureBlobSink
from fhir_link.sinks.base import BlobExistsError, BlobSink, BlobWriter
from fhir_link.sinks.local import LocalDirectorySink


def create_sink(storage_settings: StorageSettings, http_client=None) -> BlobSink:
    """Build the sink selected by ``storage_settings.backend``."""
    if storage_settings.backend == "local":
        return LocalDirectorySink(storage_settings.local_dir)
    return AzureBlobSink(storage_settings, http_client=http_client)


__all__ = [
    "AzureBlobSink",
    "BlobExistsError",
    "BlobSink",
    "BlobWriter",
    "LocalDirectorySink",
    "create_sink",
]
