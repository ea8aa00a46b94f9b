"""
HTTP utilities for fhir-link.

Provides request helpers with retry logic on transient transport failures
and a small error taxonomy shared by the FHIR connector and blob sinks.
"""

from typing import Optional

import httpx
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fhir_link.config import settings


DEFAULT_HEADERS = {
    "User-Agent": "fhir-link/1.0 (merged patient export)",
}


class TransientFetchError(Exception):
    """Network or service failure while talking to a remote collaborator."""

    def __init__(self, message: str, status_code: int = None, response: httpx.Response = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class RateLimitError(TransientFetchError):
    """Raised when rate limited by a remote service."""
    pass


@retry(
    stop=stop_after_attempt(settings.http.max_retries),
    wait=wait_exponential(multiplier=settings.http.retry_delay, min=0, max=30),
    retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
    reraise=True,
)
def _send(client: httpx.Client, request: httpx.Request) -> httpx.Response:
    return client.send(request)


def fetch_with_retry(
    client: httpx.Client,
    url: str,
    method: str = "GET",
    headers: Optional[dict] = None,
    params: Optional[dict] = None,
    content: Optional[bytes] = None,
    data: Optional[dict] = None,
    allowed_statuses: tuple[int, ...] = (),
) -> httpx.Response:
    """
    Send a request with automatic retry on timeouts and network errors.

    Args:
        client: Shared HTTP client
        url: URL to fetch
        method: HTTP method (GET, PUT, POST)
        headers: Additional headers to include
        params: Query parameters
        content: Raw request body
        data: Form data (application/x-www-form-urlencoded)
        allowed_statuses: Error statuses the caller handles itself

    Returns:
        httpx.Response object

    Raises:
        RateLimitError: When rate limited (429)
        TransientFetchError: For other 4xx/5xx responses, or transport
            failures that outlived the retries
    """
    request_headers = {**DEFAULT_HEADERS, **(headers or {})}
    request = client.build_request(
        method,
        url,
        headers=request_headers,
        params=params,
        content=content,
        data=data,
    )

    # Credentials travel in params/headers, never in ``url``
    logger.debug(f"{method} {url}")

    try:
        response = _send(client, request)
    except httpx.TransportError as e:
        raise TransientFetchError(f"{method} {url} failed: {e}") from e

    if response.status_code in allowed_statuses:
        return response

    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After", "60")
        raise RateLimitError(
            f"Rate limited by {url}. Retry after {retry_after}s",
            status_code=429,
            response=response,
        )

    if response.status_code >= 400:
        raise TransientFetchError(
            f"HTTP {response.status_code} for {method} {url}: {response.text[:200]}",
            status_code=response.status_code,
            response=response,
        )

    return response
