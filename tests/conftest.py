# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for fhir-link tests."""

import os

import pytest

# Set test environment variables before importing the package
os.environ.setdefault("DISABLE_LOGGING", "1")
os.environ.setdefault("HTTP_RETRY_DELAY", "0")
os.environ.setdefault("HTTP_MAX_RETRIES", "2")


FHIR_BASE = "https://fhir.example.test"


def patient(patient_id, *links):
    """FHIR Patient resource with (type, reference) links."""
    resource = {"resourceType": "Patient", "id": patient_id}
    if links:
        resource["link"] = [
            {"type": link_type, "other": {"reference": reference}}
            for link_type, reference in links
        ]
    return resource


def bundle(resources, next_url=None):
    """searchset Bundle wrapping ``resources``."""
    data = {
        "resourceType": "Bundle",
        "type": "searchset",
        "link": [{"relation": "self", "url": f"{FHIR_BASE}/Patient"}],
        "entry": [{"resource": r, "search": {"mode": "match"}} for r in resources],
    }
    if next_url:
        data["link"].append({"relation": "next", "url": next_url})
    return data


@pytest.fixture
def fhir_base() -> str:
    return FHIR_BASE


@pytest.fixture
def sample_patients() -> list:
    """The inconsistent link data seen on the test FHIR server."""
    return [
        patient("D000000001", ("replaces", "Patient/WDT0000000016")),
        patient("D000000001-1", ("replaced-by", "Patient/D000000001")),
        patient(
            "4be15074-a29b-45b0-a0f9-ebd8157266a9",
            ("replaced-by", "Patient/a75e08fd-cf79-4396-934c-4b427e71156c"),
        ),
        patient("2fab9a03-c932-4a05-a2ab-343193f72d9c", ("replaced-by", "Patient/12345")),
        patient("WDT0000000016", ("replaced-by", "Patient/WDT000000001")),
    ]


@pytest.fixture
def make_patient():
    return patient


@pytest.fixture
def make_bundle():
    return bundle
