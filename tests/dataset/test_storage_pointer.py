"""Storage Pointer — lazy download, pointer validation and recursive resolution.

Invariants:
    - No IO before the first field access; one download per pointer instance
    - Pointer fields are returned as unresolved child StoragePointers
    - Malformed pointer values fail with InvalidPointerError at parse time
    - Failures cache nothing: a later access downloads again
    - The adapter is looked up per download, so registry changes reach pending pointers
"""

import asyncio

import pytest

from wtlibs.core.errors import (
    DownloadError, InvalidPointerError, UnknownFieldError, UnsupportedSchemeError,
)
from wtlibs.dataset.storage_pointer import (
    FieldDef, StoragePointer, normalize_field_defs,
)
from wtlibs.infrastructure.adapter_registry import AdapterRegistration, AdapterRegistry


# -- Helpers -------------------------------------------------------------------

class CountingAdapter:
    """Serves documents from a dict and counts downloads per uri."""

    def __init__(self, documents: dict, downloads: list, failures: dict):
        self.documents = documents
        self.downloads = downloads
        self.failures = failures

    @classmethod
    def create(cls, options: dict) -> "CountingAdapter":
        return cls(options["documents"], options["downloads"], options["failures"])

    async def download(self, uri: str):
        self.downloads.append(uri)
        await asyncio.sleep(0)
        if self.failures.get(uri):
            self.failures[uri] -= 1
            raise ConnectionError("host unreachable")
        return self.documents.get(uri)

    async def upload(self, data: dict) -> str:
        raise NotImplementedError

    async def update(self, uri: str, data: dict) -> str:
        raise NotImplementedError


@pytest.fixture
def documents():
    return {}


@pytest.fixture
def downloads():
    return []


@pytest.fixture
def failures():
    return {}


@pytest.fixture
def registry(documents, downloads, failures):
    return AdapterRegistry({
        "json": AdapterRegistration(
            create=CountingAdapter.create,
            options={
                "documents": documents,
                "downloads": downloads,
                "failures": failures,
            },
        ),
    })


NESTED_FIELDS = [
    "name",
    {"name": "desc", "isPointer": True, "fields": ["body"]},
]


# ==============================================================================
# Field definitions
# ==============================================================================


def test_normalize_accepts_names_defs_and_mappings():
    defs = normalize_field_defs([
        "name",
        FieldDef(name="img"),
        {"name": "desc", "is_pointer": True, "fields": ["body"]},
    ])
    assert [d.name for d in defs] == ["name", "img", "desc"]
    assert defs[2].is_pointer
    assert defs[2].fields == (FieldDef(name="body"),)


def test_normalize_rejects_duplicates():
    with pytest.raises(ValueError):
        normalize_field_defs(["name", {"name": "name"}])


def test_normalize_rejects_unsupported_spec():
    with pytest.raises(TypeError):
        normalize_field_defs([42])


def test_create_requires_ref(registry):
    with pytest.raises(InvalidPointerError):
        StoragePointer.create("", ["name"], registry)
    with pytest.raises(InvalidPointerError):
        StoragePointer.create(None, ["name"], registry)


# ==============================================================================
# Resolution
# ==============================================================================


async def test_nested_pointer_resolves_lazily(registry, documents, downloads):
    documents["json://abc"] = {"name": "A", "desc": "json://def"}
    documents["json://def"] = {"body": "hello"}
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)
    assert downloads == []

    assert await pointer.get("name") == "A"
    desc = await pointer.get("desc")
    assert isinstance(desc, StoragePointer)
    assert desc.ref == "json://def"
    assert not desc.downloaded
    assert downloads == ["json://abc"]

    assert await desc.get("body") == "hello"
    assert downloads == ["json://abc", "json://def"]


async def test_document_downloaded_once(registry, documents, downloads):
    documents["json://abc"] = {"name": "A", "desc": "json://def"}
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)

    await asyncio.gather(pointer.get("name"), pointer.get("name"), pointer.get("desc"))
    assert await pointer.get("desc") is await pointer.get("desc")
    assert downloads == ["json://abc"]
    assert pointer.downloaded


async def test_non_string_pointer_value_is_invalid(registry, documents):
    documents["json://abc"] = {"name": "A", "desc": 42}
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)

    with pytest.raises(InvalidPointerError) as exc_info:
        await pointer.get("name")
    assert "desc" in exc_info.value.message
    assert not pointer.downloaded


async def test_missing_pointer_value_is_invalid(registry, documents):
    documents["json://abc"] = {"name": "A"}
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)
    with pytest.raises(InvalidPointerError):
        await pointer.get("desc")


async def test_unsupported_scheme(registry):
    pointer = StoragePointer.create("ipfs://Qm123", ["name"], registry)
    with pytest.raises(UnsupportedSchemeError) as exc_info:
        await pointer.get("name")
    assert exc_info.value.message == "Unsupported data storage type: ipfs"


async def test_ref_without_scheme_is_unsupported(registry):
    pointer = StoragePointer.create("not-a-uri", ["name"], registry)
    with pytest.raises(UnsupportedSchemeError):
        await pointer.get("name")


async def test_scheme_with_punctuation_is_supported(documents, downloads, failures):
    options = {"documents": documents, "downloads": downloads, "failures": failures}
    registry = AdapterRegistry({
        "bzz-raw": AdapterRegistration(create=CountingAdapter.create, options=options),
        "git+ssh": AdapterRegistration(create=CountingAdapter.create, options=options),
    })
    documents["bzz-raw://abc"] = {"name": "Swarm Inn"}
    documents["git+ssh://repo/hotel.json"] = {"name": "Git Inn"}

    assert await StoragePointer.create(
        "bzz-raw://abc", ["name"], registry,
    ).get("name") == "Swarm Inn"
    assert await StoragePointer.create(
        "git+ssh://repo/hotel.json", ["name"], registry,
    ).get("name") == "Git Inn"


async def test_registry_changes_reach_pointers_not_yet_downloaded(
    registry, documents, failures,
):
    documents["json://abc"] = {"name": "A"}
    failures["json://abc"] = 1
    pointer = StoragePointer.create("json://abc", ["name"], registry)
    with pytest.raises(DownloadError):
        await pointer.get("name")

    registry.reset()
    with pytest.raises(UnsupportedSchemeError):
        await pointer.get("name")

    replacement = {"json://abc": {"name": "B"}}
    registry.setup({
        "json": AdapterRegistration(
            create=CountingAdapter.create,
            options={"documents": replacement, "downloads": [], "failures": {}},
        ),
    })
    assert await pointer.get("name") == "B"


async def test_download_error_is_wrapped_and_retried(
    registry, documents, downloads, failures,
):
    documents["json://abc"] = {"name": "A", "desc": "json://def"}
    failures["json://abc"] = 1
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)

    with pytest.raises(DownloadError) as exc_info:
        await pointer.get("name")
    assert exc_info.value.context.ref == "json://abc"
    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert not pointer.downloaded

    assert await pointer.get("name") == "A"
    assert downloads == ["json://abc", "json://abc"]


async def test_absent_document_reads_as_empty(registry):
    pointer = StoragePointer.create("json://missing", ["name"], registry)
    assert await pointer.get("name") is None
    assert pointer.downloaded


async def test_non_object_document_is_a_download_error(registry, documents):
    documents["json://list"] = ["not", "an", "object"]
    pointer = StoragePointer.create("json://list", ["name"], registry)
    with pytest.raises(DownloadError):
        await pointer.get("name")


async def test_undeclared_field_is_rejected_without_io(registry, downloads):
    pointer = StoragePointer.create("json://abc", ["name"], registry)
    with pytest.raises(UnknownFieldError):
        await pointer.get("rating")
    assert downloads == []


async def test_undeclared_document_keys_are_ignored(registry, documents):
    documents["json://abc"] = {"name": "A", "secret": "x"}
    pointer = StoragePointer.create("json://abc", ["name"], registry)
    assert await pointer.to_plain_dict() == {"name": "A"}


# ==============================================================================
# Plain dict export
# ==============================================================================


async def test_to_plain_dict_keeps_pointer_refs(registry, documents, downloads):
    documents["json://abc"] = {"name": "A", "desc": "json://def"}
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)
    assert await pointer.to_plain_dict() == {"name": "A", "desc": "json://def"}
    assert downloads == ["json://abc"]


async def test_to_plain_dict_resolves_pointers(registry, documents):
    documents["json://abc"] = {"name": "A", "desc": "json://def"}
    documents["json://def"] = {"body": "hello"}
    pointer = StoragePointer.create("json://abc", NESTED_FIELDS, registry)
    assert await pointer.to_plain_dict(resolve_pointers=True) == {
        "name": "A", "desc": {"body": "hello"},
    }


def test_repr_shows_ref(registry):
    pointer = StoragePointer.create("json://abc", ["name"], registry)
    assert repr(pointer) == "StoragePointer('json://abc', downloaded=False)"
