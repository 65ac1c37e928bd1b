"""Tests for provider singletons and settings-driven wiring."""

import pytest
from pydantic import ValidationError

from compliance_guard.core.config import Settings, get_settings
from compliance_guard.infrastructure.persistence.in_memory_stores import CachedUsageCounterStore
from compliance_guard.infrastructure.providers import (
    get_admission_controller,
    get_document_storage,
    get_permission_checker,
    get_upload_security_validator,
    get_upload_service,
    get_usage_counter_store,
    get_usage_limit_guard,
    get_usage_service,
    reset_all_providers,
)


class TestSettings:
    def test_unknown_environment_falls_back_to_local(self):
        assert Settings(ENVIRONMENT="qa").ENVIRONMENT == "local"

    def test_threshold_bounds(self):
        with pytest.raises(ValidationError):
            Settings(APPROACHING_LIMIT_THRESHOLD=0)

    def test_sizes_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(MAX_FILE_SIZE=0)

    def test_cors_origins(self):
        assert Settings(CORS_ORIGINS="https://a.test, https://b.test").get_cors_origins() == [
            "https://a.test",
            "https://b.test",
        ]


class TestProviders:
    async def test_services_share_one_admission_controller(self, isolated_settings):
        upload_service = await get_upload_service()
        usage_service = await get_usage_service()

        assert upload_service.deps.admission is usage_service.deps.admission
        assert upload_service.deps.admission is await get_admission_controller()

    async def test_counter_store_is_cached(self, isolated_settings):
        assert isinstance(await get_usage_counter_store(), CachedUsageCounterStore)

    async def test_settings_flow_into_services(self, isolated_settings, monkeypatch):
        monkeypatch.setenv("MAX_FILE_SIZE", str(2 * 1024 * 1024))
        monkeypatch.setenv("APPROACHING_LIMIT_THRESHOLD", "90")
        get_settings.cache_clear()

        assert get_upload_security_validator().max_file_size_bytes == 2 * 1024 * 1024
        assert get_usage_limit_guard().approaching_threshold == 90

    async def test_storage_uses_configured_path(self, isolated_settings, tmp_path):
        storage = await get_document_storage()

        assert storage.base_path == (tmp_path / "storage").resolve()

    async def test_reset_creates_fresh_instances(self, isolated_settings):
        first = await get_permission_checker()

        await reset_all_providers()

        assert await get_permission_checker() is not first
