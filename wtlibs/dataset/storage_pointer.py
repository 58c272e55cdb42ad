"""Storage Pointer — lazy, schema-addressed accessor for an off-chain JSON document.

Invariants:
    - Construction does no IO; the document is downloaded on the first field access
    - The document is downloaded at most once per instance (memoized at document level)
    - Pointer fields are validated when the document is parsed, before any field is returned
    - Child pointers are built from the parent document and returned unresolved
    - Nothing is cached on failure: `downloaded` turns true only after a complete parse

Design Decisions:
    - Document-level memoization: one fetch yields every top-level field already
    - Fail fast on malformed pointer values, as close to their source as possible
    - asyncio.Lock around the download: concurrent first accesses share one fetch
    - Adapter looked up per download, not cached: registry setup()/reset() reaches
      pointers that have not downloaded yet
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from wtlibs.core.domain_types import detect_scheme
from wtlibs.core.errors import (
    DownloadError,
    ErrorContext,
    InvalidPointerError,
    UnknownFieldError,
)
from wtlibs.infrastructure.adapter_registry import AdapterRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDef:
    """Top-level field of an off-chain document. Pointer fields may nest."""
    name: str
    is_pointer: bool = False
    fields: tuple["FieldDef", ...] = ()


FieldSpec = Union[str, FieldDef, Mapping[str, Any]]


def normalize_field_defs(fields: Iterable[FieldSpec] | None) -> tuple[FieldDef, ...]:
    """Accept names, FieldDefs or mappings; reject duplicate names."""
    normalized: list[FieldDef] = []
    for spec in fields or ():
        if isinstance(spec, str):
            field_def = FieldDef(name=spec)
        elif isinstance(spec, FieldDef):
            field_def = spec
        elif isinstance(spec, Mapping):
            field_def = FieldDef(
                name=spec["name"],
                is_pointer=bool(
                    spec.get("is_pointer", spec.get("isPointer", False)),
                ),
                fields=normalize_field_defs(spec.get("fields")),
            )
        else:
            raise TypeError(f"Unsupported field definition: {spec!r}")
        normalized.append(field_def)

    names = [f.name for f in normalized]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate field definitions: {', '.join(duplicates)}")
    return tuple(normalized)


class StoragePointer:
    """Read-only view of the document at `ref`, e.g.

        pointer = StoragePointer.create("json://abc", [
            "name",
            {"name": "desc", "is_pointer": True, "fields": ["body"]},
        ], registry)
        await pointer.get("name")
        desc = await pointer.get("desc")   # StoragePointer, not yet downloaded
        await desc.get("body")
    """

    def __init__(
        self, ref: str, fields: tuple[FieldDef, ...], registry: AdapterRegistry,
    ):
        self.ref = ref
        self.fields = fields
        self._registry = registry
        self._field_index = {f.name: f for f in fields}
        self._document: dict[str, Any] | None = None
        self._children: dict[str, "StoragePointer"] = {}
        self._downloaded = False
        self._lock = asyncio.Lock()

    @classmethod
    def create(
        cls,
        ref: str | None,
        fields: Iterable[FieldSpec] | None,
        registry: AdapterRegistry,
    ) -> "StoragePointer":
        if not ref:
            raise InvalidPointerError(
                "Cannot instantiate StoragePointer without url",
            )
        return cls(ref, normalize_field_defs(fields), registry)

    @property
    def downloaded(self) -> bool:
        return self._downloaded

    @property
    def scheme(self) -> str | None:
        return detect_scheme(self.ref)

    async def get(self, field_name: str) -> Any:
        """Value of a declared field; a child StoragePointer for pointer fields."""
        if field_name not in self._field_index:
            raise UnknownFieldError(field_name, ErrorContext(ref=self.ref))
        if not self._downloaded:
            await self._resolve()
        if field_name in self._children:
            return self._children[field_name]
        return self._document.get(field_name)

    async def to_plain_dict(self, resolve_pointers: bool = False) -> dict[str, Any]:
        """Declared fields as a dict. Nested pointers become dicts if resolve_pointers."""
        plain: dict[str, Any] = {}
        for field_def in self.fields:
            value = await self.get(field_def.name)
            if isinstance(value, StoragePointer):
                value = (
                    await value.to_plain_dict(resolve_pointers=True)
                    if resolve_pointers else value.ref
                )
            plain[field_def.name] = value
        return plain

    async def _resolve(self) -> None:
        async with self._lock:
            if self._downloaded:
                return
            document = await self._download()
            children = self._build_children(document)
            self._document = document
            self._children = children
            self._downloaded = True

    async def _download(self) -> dict[str, Any]:
        adapter = self._registry.get_adapter(self.scheme)
        logger.debug(
            f"Downloading {self.ref}",
            extra={"ref": self.ref, "scheme": self.scheme, "operation": "download"},
        )
        try:
            result = await adapter.download(self.ref)
        except Exception as e:
            raise DownloadError(
                self.ref, str(e), ErrorContext(scheme=self.scheme),
            ) from e
        if result is None:
            return {}
        if not isinstance(result, Mapping):
            raise DownloadError(
                self.ref,
                f"document is {type(result).__name__}, not a JSON object",
                ErrorContext(scheme=self.scheme),
            )
        return dict(result)

    def _build_children(self, document: dict[str, Any]) -> dict[str, "StoragePointer"]:
        children: dict[str, StoragePointer] = {}
        for field_def in self.fields:
            if not field_def.is_pointer:
                continue
            value = document.get(field_def.name)
            if not value or not isinstance(value, str):
                raise InvalidPointerError(
                    f"Cannot access {field_def.name} under value {value!r} "
                    f"which does not appear to be a valid reference.",
                    ErrorContext(ref=self.ref, field_names=[field_def.name]),
                )
            children[field_def.name] = StoragePointer(
                value, field_def.fields, self._registry,
            )
        return children

    def __repr__(self) -> str:
        return f"StoragePointer({self.ref!r}, downloaded={self._downloaded})"
