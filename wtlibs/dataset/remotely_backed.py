"""Remotely Backed Dataset — local field cache proxying a latency-heavy transactional store.

Invariants:
    - Obsolete datasets refuse every get/set/sync/flush with ObsoleteAccessError
    - Only deployed datasets read remotely; fresh ones allow local-only mutation
    - A `get` on an unsynced field syncs every unsynced field at once (one round of remote calls)
    - Concurrent syncs are single-flight: callers share one in-flight task per dataset
    - Sync merges all-or-nothing and never clobbers a dirty field (local wins over remote)
    - Flush calls each setter group once, in declaration order, all groups concurrently
    - Flushes of one dataset never overlap: each dirty value is sent once
    - A failed flush leaves completed groups `synced` and failed ones `dirty` (no rollback)

Design Decisions:
    - Explicit `dataset_property` descriptors on the owner class instead of runtime
      attribute injection: accessors are declared, greppable and type-checkable
    - Setter deduplication keyed by an explicit `write_group`, falling back to the
      setter callable itself (bound methods compare equal per function + instance)
    - asyncio.shield around the shared sync task: cancelling one waiter must not
      cancel the sync other waiters depend on
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Mapping

from wtlibs.core.boundary_protocols import RemoteGetter, RemoteSetter
from wtlibs.core.domain_types import DatasetState, FieldState
from wtlibs.core.errors import (
    ErrorContext,
    NotDeployedError,
    ObsoleteAccessError,
    RemoteSyncError,
    UnknownFieldError,
    WriteFailureError,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _same_value(current: Any, new_value: Any) -> bool:
    """Strict equality: `1`, `1.0` and `True` are different values."""
    return type(current) is type(new_value) and current == new_value


@dataclass(frozen=True)
class RemoteField:
    """Remote accessors of a single field. Both are optional."""
    remote_getter: RemoteGetter | None = None
    remote_setter: RemoteSetter | None = None
    # Fields sharing a write_group are persisted by one setter call
    write_group: str | None = None

    @property
    def setter_key(self) -> Hashable | None:
        if self.remote_setter is None:
            return None
        return self.write_group or self.remote_setter


@dataclass
class WriteContext:
    """Write context handed to remote setters.

    Every setter receives its own deep copy; the wallet is shared, the
    transaction options are copied so a setter may modify them freely.
    """
    wallet: Any
    transaction_options: dict = field(default_factory=dict)

    def __deepcopy__(self, memo: dict) -> "WriteContext":
        return WriteContext(
            self.wallet, copy.deepcopy(self.transaction_options, memo),
        )


class dataset_property:
    """Declares a dataset-backed field on an owner class.

    `await owner.field` reads through the dataset, `owner.field = v` writes
    locally and marks the field dirty.
    """

    def __init__(self, dataset_attr: str):
        self.dataset_attr = dataset_attr
        self.name: str = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None):
        if instance is None:
            return self
        return getattr(instance, self.dataset_attr).get(self.name)

    def __set__(self, instance: Any, value: Any) -> None:
        getattr(instance, self.dataset_attr).set(self.name, value)


class RemotelyBackedDataset:
    """Binds named fields to remote getters/setters and tracks their sync state."""

    def __init__(self, name: str = "dataset"):
        self.name = name
        self._fields: dict[str, RemoteField] = {}
        self._field_states: dict[str, FieldState] = {}
        self._local_data: dict[str, Any] = {}
        self._remote_data: dict[str, Any] = {}
        self._deployed = False
        self._obsolete = False
        self._sync_task: asyncio.Task | None = None
        self._flush_lock = asyncio.Lock()

    # ─── Binding ────────────────────────────────────────────────

    def bind_properties(
        self, fields: Mapping[str, RemoteField], owner: Any = None,
    ) -> None:
        """Register fields (all start unsynced) and verify the owner's accessors.

        The owner class must declare a `dataset_property` for every field,
        pointing at the attribute that holds this dataset.
        """
        if owner is not None:
            self._check_owner_accessors(fields, owner)
        for field_name, remote_field in fields.items():
            self._fields[field_name] = remote_field
            self._field_states[field_name] = FieldState.UNSYNCED

    def _check_owner_accessors(
        self, fields: Mapping[str, RemoteField], owner: Any,
    ) -> None:
        owner_type = type(owner)
        for field_name in fields:
            accessor = owner_type.__dict__.get(field_name)
            if accessor is None:
                accessor = getattr(owner_type, field_name, None)
            if not isinstance(accessor, dataset_property):
                raise TypeError(
                    f"{owner_type.__name__} declares no dataset_property "
                    f"for field '{field_name}'",
                )
            if getattr(owner, accessor.dataset_attr, None) is not self:
                raise TypeError(
                    f"{owner_type.__name__}.{field_name} is bound to "
                    f"'{accessor.dataset_attr}', which is not this dataset",
                )

    @property
    def field_names(self) -> list[str]:
        return list(self._fields)

    def field_state(self, field_name: str) -> FieldState:
        return self._state_of(field_name)

    def local_value(self, field_name: str) -> Any:
        """Cached value without any remote traffic."""
        self._state_of(field_name)
        return self._local_data.get(field_name)

    # ─── Lifecycle ──────────────────────────────────────────────

    @property
    def state(self) -> DatasetState:
        if self._obsolete:
            return DatasetState.OBSOLETE
        if self._deployed:
            return DatasetState.DEPLOYED
        return DatasetState.FRESH

    def is_deployed(self) -> bool:
        return self._deployed

    def is_obsolete(self) -> bool:
        return self._obsolete

    def mark_deployed(self) -> None:
        """Remote identity exists from now on. One-way."""
        self._ensure_usable("mark deployed")
        self._deployed = True

    def mark_obsolete(self) -> None:
        """Remote identity was destroyed. Terminal."""
        self._obsolete = True

    # ─── Field Access ───────────────────────────────────────────

    async def get(self, field_name: str) -> Any:
        """Current value; syncs the whole dataset first if this field is unsynced."""
        self._ensure_usable("get")
        state = self._state_of(field_name)
        if self._deployed and state is FieldState.UNSYNCED:
            await self.sync_all()
        return self._local_data.get(field_name)

    def set(self, field_name: str, new_value: Any) -> None:
        """Set locally. Unchanged values (same type and equal) on a synced field are absorbed."""
        self._ensure_usable("set")
        state = self._state_of(field_name)
        current = self._local_data.get(field_name, _MISSING)
        if state is FieldState.UNSYNCED or not _same_value(current, new_value):
            self._local_data[field_name] = new_value
            self._field_states[field_name] = FieldState.DIRTY

    # ─── Sync ───────────────────────────────────────────────────

    async def sync_all(self) -> None:
        """Fetch every unsynced field with a remote getter, concurrently.

        Concurrent callers share the in-flight sync.
        """
        self._ensure_usable("sync")
        if not self._deployed:
            raise NotDeployedError("fetch remote data", self._context("sync"))
        if self._sync_task is None or self._sync_task.done():
            self._sync_task = asyncio.get_running_loop().create_task(
                self._sync_remote_data(),
            )
        await asyncio.shield(self._sync_task)

    async def _sync_remote_data(self) -> None:
        pending = [
            name for name, remote_field in self._fields.items()
            if remote_field.remote_getter is not None
            and self._field_states[name] is FieldState.UNSYNCED
        ]
        if not pending:
            return
        logger.debug(
            f"Syncing {len(pending)} field(s) of {self.name}",
            extra={"dataset": self.name, "fields": pending, "operation": "sync"},
        )
        try:
            values = await asyncio.gather(
                *(self._fields[name].remote_getter() for name in pending),
            )
        except Exception as e:
            raise RemoteSyncError(
                str(e), self._context("sync", pending),
            ) from e

        for name, value in zip(pending, values):
            self._remote_data[name] = value
            # A field set while the sync was in flight keeps its local value
            if self._field_states[name] is not FieldState.DIRTY:
                self._local_data[name] = value
                self._field_states[name] = FieldState.SYNCED

    # ─── Flush ──────────────────────────────────────────────────

    async def flush_writes(self, write_context: Any = None) -> list[Any]:
        """Persist dirty fields through their deduplicated remote setters.

        Returns write receipts in the order the setter groups were scheduled.
        Raises WriteFailureError if any setter failed; completed groups stay synced.
        Overlapping flushes run one after another, so a queued flush finds the
        fields the first one wrote already synced.
        """
        self._ensure_usable("flush writes")
        async with self._flush_lock:
            self._ensure_usable("flush writes")
            return await self._flush_dirty_fields(write_context)

    async def _flush_dirty_fields(self, write_context: Any) -> list[Any]:
        await self.sync_all()

        groups: dict[Hashable, list[str]] = {}
        setters: dict[Hashable, RemoteSetter] = {}
        for name, remote_field in self._fields.items():
            if remote_field.remote_setter is None:
                continue
            if self._field_states[name] is not FieldState.DIRTY:
                continue
            key = remote_field.setter_key
            if key not in groups:
                groups[key] = []
                setters[key] = remote_field.remote_setter
            groups[key].append(name)
        if not groups:
            return []

        keys = list(groups)
        written = {
            name: self._local_data.get(name)
            for names in groups.values() for name in names
        }
        logger.debug(
            f"Flushing {len(keys)} write(s) of {self.name}",
            extra={
                "dataset": self.name, "fields": list(written),
                "operation": "flush",
            },
        )
        results = await asyncio.gather(
            *(self._call_setter(setters[key], write_context) for key in keys),
            return_exceptions=True,
        )

        receipts: list[Any] = []
        completed: list[str] = []
        failed: list[str] = []
        errors: list[BaseException] = []
        for key, result in zip(keys, results):
            if isinstance(result, BaseException):
                failed.extend(groups[key])
                errors.append(result)
                continue
            receipts.append(result)
            completed.extend(groups[key])
            for name in groups[key]:
                # Re-set during the write: the newer value is still dirty
                if _same_value(self._local_data.get(name), written[name]):
                    self._remote_data[name] = written[name]
                    self._field_states[name] = FieldState.SYNCED

        if errors:
            raise WriteFailureError(
                str(errors[0]), failed, completed, receipts,
                self._context("flush", failed),
            ) from errors[0]
        return receipts

    async def _call_setter(self, setter: RemoteSetter, write_context: Any) -> Any:
        return await setter(copy.deepcopy(write_context))

    # ─── Helpers ────────────────────────────────────────────────

    def _ensure_usable(self, operation: str) -> None:
        if self._obsolete:
            raise ObsoleteAccessError(operation, self._context(operation))

    def _state_of(self, field_name: str) -> FieldState:
        try:
            return self._field_states[field_name]
        except KeyError:
            raise UnknownFieldError(
                field_name, ErrorContext(dataset=self.name),
            ) from None

    def _context(
        self, operation: str, field_names: list[str] | None = None,
    ) -> ErrorContext:
        return ErrorContext(
            dataset=self.name, operation=operation, field_names=field_names,
        )
