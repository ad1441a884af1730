"""Shared fixtures for the filesystem tests."""

import pytest

from blobstore.memory import MemoryBlobBackend, MemoryDocumentStore
from filesystem.fs_operations import FSOperations
from filesystem.index_store import IndexStore


@pytest.fixture()
def blobs() -> MemoryBlobBackend:
    return MemoryBlobBackend()


@pytest.fixture()
def documents() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture()
def index(documents: MemoryDocumentStore) -> IndexStore:
    return IndexStore(documents)


@pytest.fixture()
def ops(blobs: MemoryBlobBackend, index: IndexStore) -> FSOperations:
    return FSOperations(blobs, index)
