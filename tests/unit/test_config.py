# SPDX-License-Identifier: MIT
"""Tests for configuration."""

import pytest
from pydantic import ValidationError

from fhir_link.config import (
    ExportSettings,
    FhirSettings,
    ScheduleSettings,
    Settings,
    StorageSettings,
)


class TestDefaults:
    """Test default values."""

    def test_export_defaults(self):
        export = ExportSettings()
        assert export.system_label == "AzureAPIforFHIR_Patient"
        assert export.filename_prefix == "merged_patients"
        assert export.unique_suffix is False

    def test_schedule_defaults(self):
        schedule = ScheduleSettings()
        assert schedule.cron == "0 0 */4 * * *"
        assert schedule.run_on_startup is True

    def test_settings_combine_groups(self):
        settings = Settings()
        assert isinstance(settings.fhir, FhirSettings)
        assert isinstance(settings.storage, StorageSettings)


class TestEnvironment:
    """Test environment variable loading."""

    def test_fhir_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("FHIR_BASE_URL", "https://fhir.example.test/")
        monkeypatch.setenv("FHIR_PAGE_SIZE", "250")
        fhir = FhirSettings()
        assert fhir.base_url == "https://fhir.example.test"
        assert fhir.page_size == 250

    def test_storage_backend_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_BACKEND", "local")
        monkeypatch.setenv("STORAGE_LOCAL_DIR", str(tmp_path))
        storage = StorageSettings()
        assert storage.backend == "local"
        assert storage.local_dir == tmp_path

    def test_client_credentials_detection(self):
        assert not FhirSettings().uses_client_credentials
        assert FhirSettings(tenant_id="t", client_id="c", client_secret="s").uses_client_credentials


class TestValidation:
    """Test invalid values."""

    def test_cron_requires_six_fields(self):
        with pytest.raises(ValidationError):
            ScheduleSettings(cron="0 */4 * * *")

    def test_unknown_encoding(self):
        with pytest.raises(ValidationError):
            ExportSettings(encoding="no-such-codec")

    def test_unknown_storage_backend(self):
        with pytest.raises(ValidationError):
            StorageSettings(backend="s3")
