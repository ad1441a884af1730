"""
In-process stores, used in development mode and by the tests.
"""
import asyncio
import itertools
import time
from typing import Iterable, Optional

from namespace.errors import NotFound
from namespace.nodes import Handle

from .base import BlobBackend, BlobStat, DocumentStore


class MemoryBlobBackend(BlobBackend):
    blobs: dict[Handle, bytes]
    modified: dict[Handle, int]

    def __init__(self):
        self.blobs = {}
        self.modified = {}
        self._ids = itertools.count(1)
        self.lock = asyncio.Lock()

    async def create_blob(self, data: bytes) -> Handle:
        async with self.lock:
            handle = next(self._ids)
            self.blobs[handle] = bytes(data)
            self.modified[handle] = int(time.time())
            return handle

    async def read_blob(self, handle: Handle) -> bytes:
        if handle not in self.blobs:
            raise NotFound(f"Unknown blob: {handle}")
        return self.blobs[handle]

    async def replace_blob(self, handle: Handle, data: bytes) -> None:
        async with self.lock:
            if handle not in self.blobs:
                raise NotFound(f"Unknown blob: {handle}")
            self.blobs[handle] = bytes(data)
            self.modified[handle] = int(time.time())

    async def delete_blobs(self, handles: Iterable[Handle]) -> None:
        async with self.lock:
            for handle in handles:
                self.blobs.pop(handle, None)
                self.modified.pop(handle, None)

    async def stat_blob(self, handle: Handle) -> BlobStat:
        if handle not in self.blobs:
            raise NotFound(f"Unknown blob: {handle}")
        return BlobStat(len(self.blobs[handle]), self.modified[handle])


class MemoryDocumentStore(DocumentStore):
    text: Optional[str]

    def __init__(self, text: Optional[str] = None):
        self.text = text

    async def read_document(self) -> Optional[str]:
        return self.text

    async def write_document(self, text: str) -> None:
        self.text = text
