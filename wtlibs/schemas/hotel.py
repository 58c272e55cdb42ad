"""Hotel Schemas — Pydantic models for hotel input data and off-chain hotel documents.

Invariants:
    - data_uri must look like `<scheme>://<payload>`
    - manager, when present, is a non-empty stripped string
    - Off-chain documents keep their camelCase keys (aliases); Python code uses snake_case

Design Decisions:
    - populate_by_name on document models: accepts both raw documents and Python kwargs
    - Every description field optional: documents are authored elsewhere and may be partial
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


_URI_PATTERN = r"^[^:/]+://.+$"


class TransactionOptions(BaseModel):
    """Options passed to the ledger for every transaction of one operation."""
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from", min_length=1)
    to: str | None = None

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class HotelOnChainData(BaseModel):
    """On-chain hotel data — what the index contract stores."""
    model_config = ConfigDict(populate_by_name=True)

    manager: str | None = None
    data_uri: str | None = Field(None, alias="dataUri", pattern=_URI_PATTERN)

    @field_validator("manager")
    @classmethod
    def strip_manager(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("manager cannot be empty or whitespace")
        return v


class AddHotelResponse(BaseModel):
    """Result of add_hotel: projected address and the transactions sent."""
    address: str
    transaction_ids: list[str]


# --- Off-chain documents -----------------------------------------------------

class HotelDataIndex(BaseModel):
    """Root document the ledger points at."""
    model_config = ConfigDict(populate_by_name=True)

    description_uri: str = Field(alias="descriptionUri", pattern=_URI_PATTERN)


class Location(BaseModel):
    latitude: float | None = None
    longitude: float | None = None


class AdditionalContact(BaseModel):
    title: str
    value: str


class Contact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    phone: str | None = None
    url: str | None = None
    ethereum: str | None = None
    additional_contacts: list[AdditionalContact] | None = Field(
        None, alias="additionalContacts",
    )


class Contacts(BaseModel):
    general: Contact


class Address(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    line1: str | None = None
    line2: str | None = None
    postal_code: str | None = Field(None, alias="postalCode")
    city: str | None = None
    state: str | None = None
    country: str | None = None


class HotelDescription(BaseModel):
    """Descriptive hotel data stored behind `descriptionUri`."""
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    description: str | None = None
    contacts: Contacts | None = None
    address: Address | None = None
    location: Location | None = None
    timezone: str | None = None
    currency: str | None = None
    images: list[str] | None = None
    amenities: list[str] | None = None
    updated_at: str | None = Field(None, alias="updatedAt")
