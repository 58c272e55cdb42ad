"""Service test fixtures — fake ledger, wallet and an in-memory json:// registry.

Invariants:
    - Every test gets a fresh ledger with one deployed index contract
    - Off-chain documents live in a per-test InMemoryStorage
"""

import pytest

from wtlibs.infrastructure.adapter_registry import AdapterRegistration, AdapterRegistry
from wtlibs.infrastructure.in_memory_adapter import InMemoryAdapter, InMemoryStorage

from tests.services.fake_ledger import INDEX_ADDRESS, FakeLedger, FakeWallet


@pytest.fixture
def ledger():
    ledger = FakeLedger()
    ledger.deploy_index(INDEX_ADDRESS)
    return ledger


@pytest.fixture
def wallet(ledger):
    return FakeWallet(ledger)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def registry(storage):
    return AdapterRegistry({
        "json": AdapterRegistration(
            create=InMemoryAdapter.create, options={"storage": storage},
        ),
    })


@pytest.fixture
async def hotel_documents(registry):
    """Description + data index documents; returns the data index uri."""
    adapter = registry.get_adapter("json")
    description_uri = await adapter.upload({
        "name": "Inn",
        "description": "Cosy inn",
        "currency": "EUR",
        "updatedAt": "2026-01-01T00:00:00Z",
    })
    return await adapter.upload({"descriptionUri": description_uri})
