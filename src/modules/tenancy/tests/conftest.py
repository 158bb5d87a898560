"""Shared fixtures for tenancy unit tests."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config import Settings
from src.modules.tenancy.tests.factories import make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def scoped_session() -> AsyncMock:
    session = AsyncMock()
    session.add = MagicMock()
    return session
