"""WT Index — add, get, list, update and remove hotels against the fake ledger.

Invariants:
    - add_hotel validates input before touching the ledger
    - get_hotel raises HotelNotFoundError for unknown addresses
    - get_all_hotels skips the zero address and hotels that fail to load
"""

import pytest

from wtlibs.core.errors import (
    HotelNotFoundError, InputDataError, LedgerError,
)
from wtlibs.schemas.hotel import HotelOnChainData
from wtlibs.services.on_chain_hotel import OnChainHotel
from wtlibs.services.wt_index import WTIndex

from tests.services.fake_ledger import INDEX_ADDRESS, MANAGER


@pytest.fixture
def wt_index(ledger, registry):
    return WTIndex(INDEX_ADDRESS, ledger, registry)


# ==============================================================================
# Add
# ==============================================================================


async def test_add_hotel_registers_and_returns_address(
    wt_index, ledger, wallet, hotel_documents,
):
    response = await wt_index.add_hotel(
        wallet, HotelOnChainData(manager=MANAGER, data_uri=hotel_documents),
    )

    assert response.address in ledger.hotel_contracts
    assert len(response.transaction_ids) == 1
    assert wallet.sent[0]["options"] == {"from": MANAGER}

    hotel = await wt_index.get_hotel(response.address)
    assert await hotel.manager == MANAGER
    assert (await hotel.get_description()).name == "Inn"


async def test_add_hotel_requires_data_uri(wt_index, wallet):
    with pytest.raises(InputDataError) as exc_info:
        await wt_index.add_hotel(wallet, HotelOnChainData(manager=MANAGER))
    assert exc_info.value.field == "data_uri"
    assert wallet.sent == []


async def test_add_hotel_requires_manager(wt_index, wallet, hotel_documents):
    with pytest.raises(InputDataError) as exc_info:
        await wt_index.add_hotel(wallet, HotelOnChainData(data_uri=hotel_documents))
    assert exc_info.value.field == "manager"
    assert wallet.sent == []


# ==============================================================================
# Get
# ==============================================================================


async def test_get_hotel_returns_deployed_hotel(wt_index, ledger, hotel_documents):
    address = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)
    hotel = await wt_index.get_hotel(address)
    assert isinstance(hotel, OnChainHotel)
    assert hotel.address == address
    assert hotel.on_chain_dataset.is_deployed()


async def test_get_unknown_hotel_raises(wt_index):
    with pytest.raises(HotelNotFoundError):
        await wt_index.get_hotel("0x" + "c" * 40)


async def test_unknown_index_raises_ledger_error(ledger, registry):
    wt_index = WTIndex("0x" + "d" * 40, ledger, registry)
    with pytest.raises(LedgerError):
        await wt_index.get_hotel("0x" + "c" * 40)


async def test_get_all_hotels_skips_zero_address(wt_index, ledger, hotel_documents):
    first = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)
    second = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)

    hotels = await wt_index.get_all_hotels()
    assert [h.address for h in hotels] == [first, second]


async def test_get_all_hotels_skips_inaccessible_hotels(
    wt_index, ledger, hotel_documents, monkeypatch,
):
    good = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)
    bad = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)
    index = ledger.indexes[INDEX_ADDRESS]
    original = index.hotels_index

    async def flaky_hotels_index(address):
        if address == bad:
            raise ConnectionError("node unavailable")
        return await original(address)

    monkeypatch.setattr(index, "hotels_index", flaky_hotels_index)

    hotels = await wt_index.get_all_hotels()
    assert [h.address for h in hotels] == [good]


async def test_get_all_hotels_on_empty_index(wt_index):
    assert await wt_index.get_all_hotels() == []


# ==============================================================================
# Update / Remove
# ==============================================================================


async def test_update_hotel_sends_edit_from_manager(
    wt_index, ledger, wallet, hotel_documents,
):
    address = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)
    hotel = await wt_index.get_hotel(address)
    hotel.data_uri = "json://0xnew"

    transaction_ids = await wt_index.update_hotel(wallet, hotel)

    assert len(transaction_ids) == 1
    assert wallet.sent[0]["options"] == {"from": MANAGER}
    assert ledger.hotel_contracts[address]._data_uri == "json://0xnew"


async def test_remove_hotel(wt_index, ledger, wallet, hotel_documents):
    address = ledger.seed_hotel(INDEX_ADDRESS, MANAGER, hotel_documents)
    hotel = await wt_index.get_hotel(address)

    await wt_index.remove_hotel(wallet, hotel)

    assert hotel.on_chain_dataset.is_obsolete()
    with pytest.raises(HotelNotFoundError):
        await wt_index.get_hotel(address)
    assert await wt_index.get_all_hotels() == []
