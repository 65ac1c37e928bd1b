"""Pytest fixtures for provider-based architecture."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from compliance_guard.core.config import get_settings
from compliance_guard.infrastructure.providers import reset_all_providers


@pytest.fixture(autouse=True)
async def reset_provider_state() -> AsyncIterator[None]:
    """Ensure each test starts with clean provider singletons."""
    await reset_all_providers()
    yield
    await reset_all_providers()


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    """Point storage at a temporary directory and reload settings."""
    monkeypatch.setenv("LOCAL_STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://files.test")
    monkeypatch.setenv("ENVIRONMENT", "test")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
