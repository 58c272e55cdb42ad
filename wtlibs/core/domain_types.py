"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Every field of a dataset is in exactly one FieldState at any time
    - DatasetState only moves forward: fresh -> deployed -> obsolete
    - A URI is `<scheme>://<payload>`; the payload is opaque to this layer

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

import re
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

Address = NewType("Address", str)
TxHash = NewType("TxHash", str)

ZERO_ADDRESS = Address("0x" + "0" * 40)


# ─── Enums ───────────────────────────────────────────────────────

class FieldState(str, Enum):
    """Per-field synchronization state."""
    UNSYNCED = "unsynced"
    SYNCED = "synced"
    DIRTY = "dirty"


class DatasetState(str, Enum):
    """Dataset-wide lifecycle. OBSOLETE is terminal."""
    FRESH = "fresh"
    DEPLOYED = "deployed"
    OBSOLETE = "obsolete"


# ─── Hotel Document Layout ───────────────────────────────────────

# Kept in line with schemas.hotel.HotelDescription
HOTEL_DESCRIPTION_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "contacts",
    "address",
    "location",
    "timezone",
    "currency",
    "images",
    "amenities",
    "updatedAt",
)

DESCRIPTION_URI_FIELD = "descriptionUri"


# ─── URI Helpers ─────────────────────────────────────────────────

_URI_PATTERN = re.compile(r"^([^:/]+)://(.+)$", re.DOTALL)


def detect_scheme(uri: str | None) -> str | None:
    """Return the scheme of `json://abc` style URIs, or None."""
    if not uri:
        return None
    match = _URI_PATTERN.match(uri)
    return match.group(1) if match else None


def strip_scheme(uri: str) -> str | None:
    """Return the opaque payload after `scheme://`, or None."""
    match = _URI_PATTERN.match(uri)
    return match.group(2) if match else None


def is_zero_address(address: str | None) -> bool:
    if not address:
        return True
    return address.lower() == ZERO_ADDRESS
