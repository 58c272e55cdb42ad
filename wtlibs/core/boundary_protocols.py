"""Boundary Protocols — contracts between the dataset core and its remote collaborators.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Remote getters take no arguments; closures capture the remote identity they need
    - Remote setters take exactly one write context and return a write receipt
    - Ledger, wallet and off-chain storage are reached only through these Protocols

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Transaction payloads are opaque dicts: building and broadcasting them
      belongs to the ledger client, not to this library
"""

from typing import Any, Awaitable, Callable, Protocol

from wtlibs.core.domain_types import Address, TxHash


RemoteGetter = Callable[[], Awaitable[Any]]
RemoteSetter = Callable[[Any], Awaitable[Any]]
ReceiptCallback = Callable[[dict], None]


class OffChainDataAdapter(Protocol):
    """Contract for off-chain document storage — selected by URI scheme."""
    async def download(self, uri: str) -> dict | None: ...
    async def upload(self, data: dict) -> str: ...
    async def update(self, uri: str, data: dict) -> str: ...


class HotelContract(Protocol):
    """Read side of a deployed hotel contract."""
    address: Address
    async def data_uri(self) -> str | None: ...
    async def manager(self) -> Address | None: ...


class IndexContract(Protocol):
    """Hotel index contract — registers, edits and deletes hotels."""
    address: Address
    async def hotels_index(self, hotel_address: Address) -> int: ...
    async def get_hotels(self) -> list[Address]: ...
    async def build_register_hotel(
        self, data_uri: str, transaction_options: dict,
    ) -> dict: ...
    async def build_edit_info(
        self, hotel_address: Address, data_uri: str, transaction_options: dict,
    ) -> dict: ...
    async def build_delete_hotel(
        self, hotel_address: Address, transaction_options: dict,
    ) -> dict: ...


class LedgerClient(Protocol):
    """Entry point to the ledger — contract handles and address prediction."""
    async def get_index_contract(self, address: Address) -> IndexContract: ...
    async def get_hotel_contract(self, address: Address) -> HotelContract: ...
    async def predict_hotel_address(self, index_address: Address) -> Address: ...


class Wallet(Protocol):
    """Signs and broadcasts transactions.

    Resolves with the transaction hash as soon as it is known; `on_receipt`
    runs later, once the ledger confirms the transaction.
    """
    async def sign_and_send_transaction(
        self, transaction: dict, on_receipt: ReceiptCallback | None = None,
    ) -> TxHash: ...
