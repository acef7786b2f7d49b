"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest

from core_backend.config import engine_settings


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def in_memory_channel_layer(settings):
    """
    Route channel-layer traffic through the in-memory backend.

    Tests must never depend on a running Redis, even when REDIS_URL is set
    in the developer's environment.
    """
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
    yield


@pytest.fixture(autouse=True)
def reset_engine_settings():
    """
    Drop cached POS_ENGINE values after each test.

    Tests that override POS_ENGINE through the settings fixture would
    otherwise leak their values into the next test.
    """
    yield
    engine_settings.reload()


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *
