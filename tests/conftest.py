"""Pytest configuration and fixtures shared across all test modules.

This file is loaded by pytest before any test module, so required settings
are in the environment before ``tokengate.core.config`` is first imported.
"""

import os
from unittest.mock import Mock

import pytest

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("TOKEN_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("TOKEN_TTL_SECONDS", "3600")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS", "5")
os.environ.setdefault("APP_RATE_LIMIT_WINDOW_SECONDS", "60")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture
def clock() -> Mock:
    """Frozen clock at t=1000; advance with ``clock.return_value = ...``."""
    return Mock(return_value=1000.0)
