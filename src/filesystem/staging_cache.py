"""
Write-back staging of file contents.

Blobs can only be replaced as a whole, so a file opened for writing is held
in memory in full, patched by offset writes and truncates, and flushed once
on release.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from namespace.errors import InvalidArgument
from namespace.nodes import split_path

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[Optional[bytes]]]
Flusher = Callable[[str, bytes], Awaitable[None]]


def normalize(path: str) -> str:
    return '/' + '/'.join(split_path(path))


class StagingCache:
    """
    Staged buffers keyed by normalized path.

    fetch(path) returns the current content of a file (None if it has none
    yet) and flush(path, data) stores a complete new content. Both run
    outside the per-path locks. A path's lock lives only while the path is
    staged or some task holds or awaits it.
    """
    buffers: dict[str, bytearray]
    locks: dict[str, asyncio.Lock]
    users: dict[str, int]

    def __init__(self, fetch: Fetcher, flush: Flusher):
        self.fetch = fetch
        self.flush = flush
        self.buffers = {}
        self.locks = {}
        self.users = {}

    @asynccontextmanager
    async def _locked(self, path: str) -> AsyncIterator[None]:
        if path not in self.locks:
            self.locks[path] = asyncio.Lock()
        self.users[path] = self.users.get(path, 0) + 1
        try:
            async with self.locks[path]:
                yield
        finally:
            self.users[path] -= 1
            if not self.users[path]:
                del self.users[path]
                if path not in self.buffers:
                    del self.locks[path]

    def is_open(self, path: str) -> bool:
        return normalize(path) in self.buffers

    async def open(self, path: str) -> None:
        path = normalize(path)
        if path in self.buffers:
            return
        content = await self.fetch(path)
        async with self._locked(path):
            if path not in self.buffers:
                logger.debug("Staging %s (%d bytes)", path, len(content or b""))
                self.buffers[path] = bytearray(content or b"")

    async def write(self, path: str, data: bytes, offset: int) -> int:
        if offset < 0:
            raise InvalidArgument(f"Negative offset {offset} for {path}")
        path = normalize(path)
        while True:
            await self.open(path)
            async with self._locked(path):
                buf = self.buffers.get(path)
                if buf is None:
                    # released between open and lock
                    continue
                end = offset + len(data)
                if end > len(buf):
                    buf.extend(bytes(end - len(buf)))
                buf[offset:end] = data
                return len(data)

    async def truncate(self, path: str, size: int) -> bool:
        """Resize a staged buffer. Returns False when nothing is staged for path."""
        if size < 0:
            raise InvalidArgument(f"Negative size {size} for {path}")
        path = normalize(path)
        if path not in self.buffers:
            return False
        async with self._locked(path):
            buf = self.buffers.get(path)
            if buf is None:
                return False
            if size < len(buf):
                del buf[size:]
            else:
                buf.extend(bytes(size - len(buf)))
            return True

    async def release(self, path: str) -> None:
        """
        Flush the staged buffer and evict it. A failed flush puts the buffer
        back so the release can be retried.
        """
        path = normalize(path)
        if path not in self.buffers:
            return
        async with self._locked(path):
            buf = self.buffers.pop(path, None)
        if buf is None:
            return
        data = bytes(buf)
        try:
            await self.flush(path, data)
        except Exception:
            async with self._locked(path):
                self.buffers.setdefault(path, buf)
            raise
        logger.info("Released %s (%d bytes)", path, len(data))

    async def snapshot(self, path: str) -> Optional[bytes]:
        path = normalize(path)
        if path not in self.buffers:
            return None
        async with self._locked(path):
            buf = self.buffers.get(path)
            return bytes(buf) if buf is not None else None

    async def move(self, old_path: str, new_path: str) -> None:
        """Carry staged buffers at or below old_path over to new_path."""
        old_path, new_path = normalize(old_path), normalize(new_path)
        for path in self._under(old_path):
            target = new_path + path[len(old_path):]
            async with self._locked(path):
                buf = self.buffers.pop(path, None)
            if buf is not None:
                async with self._locked(target):
                    self.buffers[target] = buf

    async def discard(self, path: str) -> None:
        """Drop staged buffers at or below path without flushing."""
        for staged in self._under(normalize(path)):
            async with self._locked(staged):
                self.buffers.pop(staged, None)

    def _under(self, path: str) -> list[str]:
        if path == '/':
            return list(self.buffers)
        return [p for p in self.buffers if p == path or p.startswith(path + '/')]
