"""
FHIR REST connector.

Searches Patient resources that carry links and pages through the search
Bundle by following its ``next`` link. Authenticates with either a static
bearer token or OAuth2 client credentials.
"""

import time
from collections.abc import Iterator
from typing import Any

import httpx
from loguru import logger

from fhir_link.config import ConfigurationError, FhirSettings
from fhir_link.connectors.base import RecordSource
from fhir_link.connectors.types import Record
from fhir_link.utils.http import TransientFetchError, fetch_with_retry


class FhirConnector(RecordSource):
    """Record source backed by a FHIR server's Patient search."""

    source_name = "FHIR"
    resource_type = "Patient"

    # Refresh tokens this many seconds before the server says they expire
    token_refresh_margin = 60

    def __init__(self, fhir_settings: FhirSettings, http_client: httpx.Client | None = None):
        """
        Initialize the connector.

        Args:
            fhir_settings: FHIR server settings
            http_client: Optional shared HTTP client
        """
        if not fhir_settings.base_url:
            raise ConfigurationError("FHIR base URL is not configured (set FHIR_BASE_URL)")

        self.settings = fhir_settings
        self.base_url = fhir_settings.base_url
        self._http_client = http_client
        self._owns_client = http_client is None

        self._token: str | None = fhir_settings.access_token
        self._token_expires_at: float | None = None

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
            self._http_client = httpx.Client(
                timeout=self.settings.timeout,
                follow_redirects=True,
            )
            self._owns_client = True
        return self._http_client

    # =========================================================================
    # Authentication
    # =========================================================================

    def _token_expired(self) -> bool:
        if self._token is None:
            return True
        if self._token_expires_at is None:
            return False
        return time.monotonic() >= self._token_expires_at

    def _acquire_token(self) -> None:
        """Fetch an access token with the client-credentials grant."""
        s = self.settings
        token_url = f"{s.authority.rstrip('/')}/{s.tenant_id}/oauth2/token"

        logger.debug(f"Requesting FHIR access token for client {s.client_id}")

        response = fetch_with_retry(
            self.http_client,
            token_url,
            method="POST",
            data={
                "grant_type": "client_credentials",
                "client_id": s.client_id,
                "client_secret": s.client_secret,
                "resource": s.resource or self.base_url,
            },
        )
        payload = response.json()

        token = payload.get("access_token")
        if not token:
            raise TransientFetchError("Token endpoint returned no access_token")

        self._token = token
        expires_in = float(payload.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + max(expires_in - self.token_refresh_margin, 0)

    def get_auth_headers(self) -> dict[str, str]:
        """Get authentication headers for requests."""
        if self.settings.access_token:
            return {"Authorization": f"Bearer {self.settings.access_token}"}

        if self.settings.uses_client_credentials:
            if self._token_expired():
                self._acquire_token()
            return {"Authorization": f"Bearer {self._token}"}

        return {}

    # =========================================================================
    # Search
    # =========================================================================

    def search_params(self) -> dict[str, Any]:
        """Query parameters for the first search page."""
        return {
            "link:missing": "false",
            "_elements": "id,link",
            "_count": self.settings.page_size,
        }

    def get_page(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Fetch one search Bundle."""
        headers = {
            "Accept": "application/fhir+json",
            **self.get_auth_headers(),
        }
        response = fetch_with_retry(self.http_client, url, headers=headers, params=params)

        try:
            bundle = response.json()
        except ValueError as e:
            raise TransientFetchError(f"Invalid JSON from {url}: {e}") from e

        if not isinstance(bundle, dict) or bundle.get("resourceType") != "Bundle":
            raise TransientFetchError(f"Expected a Bundle from {url}")

        return bundle

    @staticmethod
    def next_url(bundle: dict[str, Any]) -> str | None:
        for link in bundle.get("link") or []:
            if link.get("relation") == "next":
                return link.get("url")
        return None

    def search_records(self) -> Iterator[Record]:
        """
        Yield Patient records that carry links, one page at a time.

        Non-Patient entries (e.g. OperationOutcome) are skipped.
        """
        url = f"{self.base_url}/{self.resource_type}"
        params = self.search_params()
        page = 0

        while url:
            page += 1
            bundle = self.get_page(url, params)
            entries = bundle.get("entry") or []
            logger.debug(f"Page {page}: {len(entries)} entries")

            for entry in entries:
                resource = entry.get("resource") if isinstance(entry, dict) else None
                if not isinstance(resource, dict) or resource.get("resourceType") != self.resource_type:
                    kind = resource.get("resourceType") if isinstance(resource, dict) else None
                    logger.debug(f"Skipping {kind} entry")
                    continue
                yield Record.from_fhir(resource)

            # next links already carry the full query
            url = self.next_url(bundle)
            params = None

        logger.info(f"Fetched {page} page(s) from {self.base_url}")
