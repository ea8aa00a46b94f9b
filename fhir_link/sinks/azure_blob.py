"""
Azure Blob Storage sink over the Blob service REST API.

Authenticates with a SAS token. Each commit is a single Put Blob request
with ``If-None-Match: *``, so the blob appears whole or not at all and an
existing blob is never overwritten.
"""

import httpx
from loguru import logger

from fhir_link.config import ConfigurationError, StorageSettings
from fhir_link.sinks.base import BlobExistsError, BlobSink, BlobWriter
from fhir_link.utils.http import fetch_with_retry


class AzureBlobWriter(BlobWriter):
    def __init__(self, sink: "AzureBlobSink", container: str, blob_name: str):
        super().__init__(container, blob_name)
        self.sink = sink

    def _commit(self, content: bytes) -> None:
        response = fetch_with_retry(
            self.sink.http_client,
            self.sink.blob_url(self.container, self.blob_name),
            method="PUT",
            headers={
                **self.sink.default_headers,
                "x-ms-blob-type": "BlockBlob",
                "Content-Type": "text/csv",
                "If-None-Match": "*",
            },
            params=self.sink.sas_params,
            content=content,
            allowed_statuses=(409, 412),
        )
        if response.status_code in (409, 412):
            raise BlobExistsError(f"Blob {self.container}/{self.blob_name} already exists")


class AzureBlobSink(BlobSink):
    """Blob sink for an Azure storage account."""

    sink_name = "azure"

    def __init__(self, storage_settings: StorageSettings, http_client: httpx.Client | None = None):
        """
        Initialize the sink.

        Args:
            storage_settings: Storage account settings
            http_client: Optional shared HTTP client
        """
        if not storage_settings.account_url:
            raise ConfigurationError("Storage account URL is not configured (set STORAGE_ACCOUNT_URL)")

        self.account_url = storage_settings.account_url.rstrip("/")
        self.api_version = storage_settings.api_version
        self.sas_params = httpx.QueryParams(storage_settings.sas_token.lstrip("?"))
        self._http_client = http_client
        self._owns_client = http_client is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    @property
    def http_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.Client(timeout=60.0)
            self._owns_client = True
        return self._http_client

    @property
    def default_headers(self) -> dict[str, str]:
        return {"x-ms-version": self.api_version}

    def container_url(self, container: str) -> str:
        return f"{self.account_url}/{container}"

    def blob_url(self, container: str, blob_name: str) -> str:
        return f"{self.account_url}/{container}/{blob_name}"

    def ensure_container(self, container: str) -> bool:
        response = fetch_with_retry(
            self.http_client,
            self.container_url(container),
            method="PUT",
            headers=self.default_headers,
            params=self.sas_params.set("restype", "container"),
            allowed_statuses=(409,),
        )
        if response.status_code == 409:
            logger.debug(f"Container {container} already exists")
            return False

        logger.info(f"Created container {container}")
        return True

    def open_writer(self, container: str, blob_name: str) -> AzureBlobWriter:
        return AzureBlobWriter(self, container, blob_name)
