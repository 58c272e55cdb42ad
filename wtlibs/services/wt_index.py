"""WT Index — hotel directory backed by the index contract on the ledger.

Invariants:
    - add_hotel requires manager and data_uri before any ledger call
    - get_hotel fails with HotelNotFoundError for addresses the index does not know
    - get_all_hotels skips zero addresses and hotels that cannot be loaded
    - wtlibs errors propagate unchanged; anything else from collaborators becomes LedgerError

Design Decisions:
    - Index contract handle resolved lazily and memoized per WTIndex instance
    - Returns as soon as transactions are sent; callers track them by hash
"""

import asyncio
import logging

from wtlibs.core.boundary_protocols import IndexContract, LedgerClient, Wallet
from wtlibs.core.domain_types import Address, TxHash, is_zero_address
from wtlibs.core.errors import (
    HotelNotFoundError, InputDataError, LedgerError, WTLibsError,
)
from wtlibs.infrastructure.adapter_registry import AdapterRegistry
from wtlibs.schemas.hotel import (
    AddHotelResponse, HotelOnChainData, TransactionOptions,
)
from wtlibs.services.on_chain_hotel import OnChainHotel

logger = logging.getLogger(__name__)


class WTIndex:
    """Hotel directory: add, get, list, update and remove hotels."""

    def __init__(
        self, address: Address, ledger: LedgerClient, registry: AdapterRegistry,
    ):
        self.address = address
        self.ledger = ledger
        self.registry = registry
        self._index_contract: IndexContract | None = None

    async def _get_index_contract(self) -> IndexContract:
        if self._index_contract is None:
            try:
                self._index_contract = await self.ledger.get_index_contract(
                    self.address,
                )
            except Exception as e:
                raise LedgerError(str(e), "load index contract") from e
        return self._index_contract

    async def _create_hotel_instance(
        self, address: Address | None = None,
    ) -> OnChainHotel:
        return OnChainHotel(
            self.ledger, await self._get_index_contract(), self.registry, address,
        )

    async def add_hotel(
        self, wallet: Wallet, hotel_data: HotelOnChainData,
    ) -> AddHotelResponse:
        """Register a new hotel; returns its projected address and transaction ids."""
        if not hotel_data.data_uri:
            raise InputDataError("Cannot add hotel: Missing data_uri", "data_uri")
        if not hotel_data.manager:
            raise InputDataError("Cannot add hotel: Missing manager", "manager")
        hotel = await self._create_hotel_instance()
        hotel.set_local_data(hotel_data)
        options = TransactionOptions(from_=hotel_data.manager)
        transaction_ids = await hotel.create_on_chain_data(wallet, options.to_dict())
        return AddHotelResponse(
            address=hotel.address, transaction_ids=transaction_ids,
        )

    async def update_hotel(
        self, wallet: Wallet, hotel: OnChainHotel,
    ) -> list[TxHash]:
        manager = await hotel.manager
        if not manager:
            raise InputDataError("Cannot update hotel without manager", "manager")
        options = TransactionOptions(from_=manager)
        return await hotel.update_on_chain_data(wallet, options.to_dict())

    async def remove_hotel(
        self, wallet: Wallet, hotel: OnChainHotel,
    ) -> list[TxHash]:
        manager = await hotel.manager
        if not manager:
            raise InputDataError("Cannot remove hotel without manager", "manager")
        options = TransactionOptions(from_=manager)
        return await hotel.remove_on_chain_data(wallet, options.to_dict())

    async def get_hotel(self, address: Address) -> OnChainHotel:
        index = await self._get_index_contract()
        try:
            position = int(await index.hotels_index(address))
        except Exception as e:
            raise LedgerError(str(e), f"find hotel at {address}") from e
        # Position zero is reserved as empty in the index
        if not position:
            raise HotelNotFoundError(address)
        return await self._create_hotel_instance(address)

    async def get_all_hotels(self) -> list[OnChainHotel]:
        """Every accessible hotel. Inaccessible ones are logged and skipped."""
        index = await self._get_index_contract()
        try:
            addresses = await index.get_hotels()
        except Exception as e:
            raise LedgerError(str(e), "list hotels") from e
        candidates = [a for a in addresses if not is_zero_address(a)]
        results = await asyncio.gather(
            *(self.get_hotel(a) for a in candidates), return_exceptions=True,
        )
        hotels: list[OnChainHotel] = []
        for address, result in zip(candidates, results):
            if isinstance(result, WTLibsError):
                logger.warning(
                    f"Skipping inaccessible hotel {address}: {result.message}",
                    extra={"address": address, "error_code": result.code},
                )
                continue
            if isinstance(result, BaseException):
                raise result
            hotels.append(result)
        return hotels
