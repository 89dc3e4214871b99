"""
Pytest fixtures for coderaid tests.
"""

import os
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test config is set before importing coderaid modules.
os.environ.setdefault("CODERAID_ALLOW_INSECURE_DEV", "true")
os.environ.setdefault("CODERAID_ENV", "development")
os.environ.setdefault("CODERAID_DATA_PATH", "")

from coderaid.engine import CodeSpaceEngine, PersistenceFailure, pin_codes
from coderaid.models import RegistrySnapshot
from coderaid.observability.metrics import metrics
from coderaid.persistence import MemorySnapshotStore, SnapshotStore
from coderaid.registry import InstanceRegistry

pytest_plugins = ("pytest_asyncio",)

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FlakySnapshotStore(SnapshotStore):
    """In-memory store whose saves can be switched to fail."""

    def __init__(self) -> None:
        self.inner = MemorySnapshotStore()
        self.fail_saves = False
        self.saves = 0

    def load(self):
        return self.inner.load()

    def save(self, snapshot: RegistrySnapshot) -> None:
        if self.fail_saves:
            raise PersistenceFailure("disk full")
        self.saves += 1
        self.inner.save(snapshot)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield


@pytest.fixture
def codes():
    return pin_codes()


@pytest.fixture
def raid(codes):
    return CodeSpaceEngine(codes)


@pytest.fixture
def store():
    return FlakySnapshotStore()


@pytest.fixture
def registry(store, codes):
    return InstanceRegistry(store, codes)


@pytest.fixture
async def client(registry):
    """Async test client with overridden dependencies."""
    from coderaid.api.deps import get_registry, verify_api_key
    from coderaid.main import app

    async def override_verify_api_key():
        return "insecure_dev"

    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[verify_api_key] = override_verify_api_key

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
