"""fhir-link: merged patient export from a FHIR server to blob storage."""

__version__ = "1.0.0"
