"""WTLibs Facade — single entry point wiring settings, ledger client and off-chain adapters.

Invariants:
    - One AdapterRegistry per WTLibs instance, handed by reference to every index and pointer
    - Resources created here (HTTP client, database engine) are released by aclose()

Design Decisions:
    - from_settings() registers the default adapters; the constructor accepts any registry
      so tests and embedders pick exactly the schemes they need
"""

import logging
from typing import Iterable

import httpx

from wtlibs.config import Settings, get_settings
from wtlibs.core.boundary_protocols import LedgerClient, OffChainDataAdapter
from wtlibs.core.domain_types import Address
from wtlibs.dataset.storage_pointer import FieldSpec, StoragePointer
from wtlibs.infrastructure import http_adapter, in_memory_adapter, document_store
from wtlibs.infrastructure.adapter_registry import AdapterRegistration, AdapterRegistry
from wtlibs.infrastructure.document_store import DocumentStoreAdapter, DocumentStoreManager
from wtlibs.infrastructure.http_adapter import HttpAdapter
from wtlibs.infrastructure.in_memory_adapter import InMemoryAdapter, InMemoryStorage
from wtlibs.infrastructure.observability import setup_logging
from wtlibs.schemas.hotel import HotelDataIndex, HotelDescription
from wtlibs.services.wt_index import WTIndex

logger = logging.getLogger(__name__)


class WTLibs:
    """Library facade."""

    def __init__(
        self,
        ledger: LedgerClient,
        registry: AdapterRegistry,
        settings: Settings | None = None,
    ):
        self.ledger = ledger
        self.registry = registry
        self.settings = settings or get_settings()
        self._http_client: httpx.AsyncClient | None = None
        self.document_store: DocumentStoreManager | None = None

    @classmethod
    def from_settings(
        cls,
        ledger: LedgerClient,
        settings: Settings | None = None,
        configure_logging: bool = False,
    ) -> "WTLibs":
        """Facade with json (in-memory), http/https and db adapters registered.

        configure_logging=True installs the `wtlibs` log handler from
        settings.log_level and settings.log_format.
        """
        settings = settings or get_settings()
        if configure_logging:
            setup_logging(settings.log_level, settings.log_format)
        libs = cls(ledger, AdapterRegistry(), settings)
        libs._http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        libs.document_store = DocumentStoreManager(settings.database_url)

        http_registration = AdapterRegistration(
            create=HttpAdapter.create,
            options={
                "client": libs._http_client,
                "upload_url": settings.http_upload_url,
                "max_retries": settings.http_max_retries,
                "base_delay_ms": settings.http_base_delay_ms,
                "max_delay_ms": settings.http_max_delay_ms,
            },
        )
        registrations = {
            in_memory_adapter.SCHEME: AdapterRegistration(
                create=InMemoryAdapter.create,
                options={"storage": InMemoryStorage()},
            ),
            document_store.SCHEME: AdapterRegistration(
                create=DocumentStoreAdapter.create,
                options={"manager": libs.document_store},
            ),
        }
        for scheme in http_adapter.SCHEMES:
            registrations[scheme] = http_registration
        libs.registry.setup(registrations)
        return libs

    async def get_wt_index(self, address: Address) -> WTIndex:
        return WTIndex(address, self.ledger, self.registry)

    def get_off_chain_data_adapter(self, scheme: str) -> OffChainDataAdapter:
        return self.registry.get_adapter(scheme)

    def create_storage_pointer(
        self, ref: str, fields: Iterable[FieldSpec],
    ) -> StoragePointer:
        return StoragePointer.create(ref, fields, self.registry)

    async def upload_hotel_documents(
        self, description: HotelDescription, scheme: str | None = None,
    ) -> str:
        """Store a description and its data index; returns the data_uri for the ledger."""
        adapter = self.get_off_chain_data_adapter(
            scheme or self.settings.default_data_storage,
        )
        description_uri = await adapter.upload(
            description.model_dump(by_alias=True, exclude_none=True),
        )
        index = HotelDataIndex(description_uri=description_uri)
        data_uri = await adapter.upload(index.model_dump(by_alias=True))
        logger.info(f"Hotel documents stored at {data_uri}", extra={"ref": data_uri})
        return data_uri

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
        if self.document_store is not None:
            await self.document_store.dispose()
