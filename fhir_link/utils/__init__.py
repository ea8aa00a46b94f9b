"""Utility modules for fhir-link."""

from fhir_link.utils.http import RateLimitError, TransientFetchError, fetch_with_retry
from fhir_link.utils.logging import setup_logging

__all__ = [
    # HTTP utilities
    "fetch_with_retry",
    "TransientFetchError",
    "RateLimitError",
    # Logging
    "setup_logging",
]
