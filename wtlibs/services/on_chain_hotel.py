"""On-Chain Hotel — hotel entity backed by a ledger contract holding a `data_uri` pointer.

Invariants:
    - `data_uri` and `manager` live in a RemotelyBackedDataset; only `data_uri` is writable remotely
    - Manager can only be set locally while the hotel has no address
    - The dataset is deployed when built with an address, or once the creation receipt arrives
    - The dataset turns obsolete once the removal receipt arrives
    - data_index() is memoized per data_uri; a new data_uri yields a new StoragePointer

Design Decisions:
    - Raw dataset reads (local_value) inside create_on_chain_data: a fresh hotel has no
      remote identity to sync from
    - Transaction payloads built by the index contract; this entity only sequences calls
"""

import logging

from wtlibs.core.boundary_protocols import IndexContract, LedgerClient, Wallet
from wtlibs.core.domain_types import (
    Address, DESCRIPTION_URI_FIELD, HOTEL_DESCRIPTION_FIELDS, TxHash,
)
from wtlibs.core.errors import InputDataError, LedgerError, NotDeployedError
from wtlibs.dataset.remotely_backed import (
    RemoteField, RemotelyBackedDataset, WriteContext, dataset_property,
)
from wtlibs.dataset.storage_pointer import FieldDef, StoragePointer
from wtlibs.infrastructure.adapter_registry import AdapterRegistry
from wtlibs.schemas.hotel import HotelDescription, HotelOnChainData

logger = logging.getLogger(__name__)

DATA_INDEX_FIELDS = (
    FieldDef(
        name=DESCRIPTION_URI_FIELD,
        is_pointer=True,
        fields=tuple(FieldDef(name=n) for n in HOTEL_DESCRIPTION_FIELDS),
    ),
)


class OnChainHotel:
    """Hotel whose identity and data pointer live on the ledger."""

    data_uri = dataset_property("on_chain_dataset")
    manager = dataset_property("on_chain_dataset")

    def __init__(
        self,
        ledger: LedgerClient,
        index_contract: IndexContract,
        registry: AdapterRegistry,
        address: Address | None = None,
    ):
        self.ledger = ledger
        self.index_contract = index_contract
        self.registry = registry
        self.address = address
        self._contract = None
        self._data_index: StoragePointer | None = None

        self.on_chain_dataset = RemotelyBackedDataset(name=f"hotel:{address or 'new'}")
        self.on_chain_dataset.bind_properties({
            "data_uri": RemoteField(
                remote_getter=self._fetch_data_uri,
                remote_setter=self._edit_info_on_chain,
            ),
            "manager": RemoteField(remote_getter=self._fetch_manager),
        }, self)
        if address:
            self.on_chain_dataset.mark_deployed()

    # ─── Remote accessors ───────────────────────────────────────

    async def _get_contract(self):
        if not self.address:
            raise NotDeployedError("get hotel contract")
        if self._contract is None:
            self._contract = await self.ledger.get_hotel_contract(self.address)
        return self._contract

    async def _fetch_data_uri(self) -> str | None:
        return await (await self._get_contract()).data_uri()

    async def _fetch_manager(self) -> Address | None:
        return await (await self._get_contract()).manager()

    async def _edit_info_on_chain(self, context: WriteContext) -> TxHash:
        """Remote setter for `data_uri`."""
        transaction = await self.index_contract.build_edit_info(
            self.address, await self.data_uri, context.transaction_options,
        )
        return await self._send(context.wallet, transaction, "update hotel")

    async def _send(
        self, wallet: Wallet, transaction: dict, operation: str, on_receipt=None,
    ) -> TxHash:
        try:
            return await wallet.sign_and_send_transaction(transaction, on_receipt)
        except Exception as e:
            raise LedgerError(str(e), operation) from e

    # ─── Off-chain data ─────────────────────────────────────────

    async def data_index(self) -> StoragePointer:
        """StoragePointer to the document at `data_uri`."""
        data_uri = await self.data_uri
        if self._data_index is None or self._data_index.ref != data_uri:
            self._data_index = StoragePointer.create(
                data_uri, DATA_INDEX_FIELDS, self.registry,
            )
        return self._data_index

    async def get_description(self) -> HotelDescription:
        """Resolve descriptionUri and validate the description document."""
        index = await self.data_index()
        description = await index.get(DESCRIPTION_URI_FIELD)
        return HotelDescription.model_validate(await description.to_plain_dict())

    # ─── Local data ─────────────────────────────────────────────

    def set_local_data(self, new_data: HotelOnChainData) -> None:
        """Neither manager nor data_uri can be nulled this way."""
        if new_data.manager and not self.address:
            self.manager = new_data.manager
        if new_data.data_uri:
            self.data_uri = new_data.data_uri

    async def to_plain_dict(self) -> dict:
        return {
            "address": self.address,
            "manager": await self.manager,
            "data_uri": await self.data_uri,
        }

    # ─── Ledger operations ──────────────────────────────────────

    async def create_on_chain_data(
        self, wallet: Wallet, transaction_options: dict,
    ) -> list[TxHash]:
        """Register the hotel. The address is known before the transaction is mined."""
        data_uri = self.on_chain_dataset.local_value("data_uri")
        if not data_uri:
            raise InputDataError("Cannot create hotel without data_uri", "data_uri")
        try:
            self.address = await self.ledger.predict_hotel_address(
                self.index_contract.address,
            )
            transaction = await self.index_contract.build_register_hotel(
                data_uri, dict(transaction_options),
            )
        except Exception as e:
            raise LedgerError(str(e), "create hotel") from e
        self.on_chain_dataset.name = f"hotel:{self.address}"
        tx_hash = await self._send(
            wallet, transaction, "create hotel",
            on_receipt=lambda receipt: self.on_chain_dataset.mark_deployed(),
        )
        logger.info(
            f"Hotel registration sent: {tx_hash}", extra={"address": self.address},
        )
        return [tx_hash]

    async def update_on_chain_data(
        self, wallet: Wallet, transaction_options: dict,
    ) -> list[TxHash]:
        """Flush every dirty field through its (deduplicated) remote setter."""
        await self._get_contract()
        if not await self.data_uri:
            raise InputDataError(
                "Cannot set data_uri when it is not provided", "data_uri",
            )
        return await self.on_chain_dataset.flush_writes(
            WriteContext(wallet, dict(transaction_options)),
        )

    async def remove_on_chain_data(
        self, wallet: Wallet, transaction_options: dict,
    ) -> list[TxHash]:
        if not self.on_chain_dataset.is_deployed():
            raise NotDeployedError("remove hotel")
        try:
            transaction = await self.index_contract.build_delete_hotel(
                self.address, dict(transaction_options),
            )
        except Exception as e:
            raise LedgerError(str(e), "remove hotel") from e
        tx_hash = await self._send(
            wallet, transaction, "remove hotel",
            on_receipt=lambda receipt: self.on_chain_dataset.mark_obsolete(),
        )
        return [tx_hash]
