"""In-Memory JSON Adapter — `json://<hash>` documents held in a process-local key-value store.

Invariants:
    - Keys are `0x` + SHA3-256 of "<ns timestamp>:<json>" (timestamp prevents collisions)
    - download() of an unknown key returns None (treated as an empty document upstream)
    - Stored documents are deep-copied in and out: callers never alias storage state

Design Decisions:
    - Storage instance injected through registration options, not a module singleton,
      so every test (or library instance) can own an isolated store
    - Useful as a stand-in for a distributed document host in development and tests
"""

import copy
import hashlib
import json
import time

from wtlibs.core.domain_types import strip_scheme
from wtlibs.core.errors import ErrorContext, OffChainStorageError

SCHEME = "json"


class InMemoryStorage:
    """Hash-keyed document store."""

    def __init__(self):
        self._storage: dict[str, dict] = {}

    def _compute_hash(self, data: dict) -> str:
        text = f"{time.time_ns()}:{json.dumps(data, sort_keys=True, default=str)}"
        return "0x" + hashlib.sha3_256(text.encode("utf-8")).hexdigest()

    def create(self, data: dict) -> str:
        key = self._compute_hash(data)
        self._storage[key] = copy.deepcopy(data)
        return key

    def update(self, key: str, data: dict) -> None:
        self._storage[key] = copy.deepcopy(data)

    def get(self, key: str) -> dict | None:
        data = self._storage.get(key)
        return copy.deepcopy(data) if data is not None else None

    def __len__(self) -> int:
        return len(self._storage)


class InMemoryAdapter:
    """OffChainDataAdapter over an InMemoryStorage."""

    def __init__(self, storage: InMemoryStorage):
        self.storage = storage

    @classmethod
    def create(cls, options: dict) -> "InMemoryAdapter":
        return cls(options["storage"])

    def _key(self, uri: str, operation: str) -> str:
        key = strip_scheme(uri)
        if not key:
            raise OffChainStorageError(
                f"no schema detected in {uri}", operation, ErrorContext(ref=uri),
            )
        return key

    async def download(self, uri: str) -> dict | None:
        return self.storage.get(self._key(uri, "download"))

    async def upload(self, data: dict) -> str:
        return f"{SCHEME}://{self.storage.create(data)}"

    async def update(self, uri: str, data: dict) -> str:
        self.storage.update(self._key(uri, "update"), data)
        return uri
