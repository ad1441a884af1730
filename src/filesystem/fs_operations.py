"""
Implementation of high-level filesystem operations.
This module ties together the index document, the blob backend and the staging cache.
"""
import logging
import time
from typing import Optional

from blobstore.base import BlobBackend
from namespace.errors import AlreadyExists, InvalidArgument, NotADirectory, NotFound
from namespace.nodes import FileNode, Handle, split_path
from namespace.tree import Moved

from .index_store import IndexStore
from .models import NodeAttributes
from .staging_cache import StagingCache

logger = logging.getLogger(__name__)


class FSOperations:
    """
    High-level filesystem operations that coordinate between the different stores.
    This provides the interface the HTTP layer uses.
    """
    def __init__(self, blobs: BlobBackend, index: IndexStore):
        self.blobs = blobs
        self.index = index
        self.staging = StagingCache(self._fetch, self._flush)

    async def _handle(self, path: str) -> Optional[Handle]:
        """Content handle of a file, or None if the path is not in the index."""
        tree = (await self.index.load_namespace()).tree
        try:
            info = tree.stat(path)
        except NotFound:
            return None
        if info.is_directory:
            raise InvalidArgument(f"Is a directory: {path}")
        return info.handle

    async def _fetch(self, path: str) -> Optional[bytes]:
        handle = await self._handle(path)
        if handle is None:
            return None
        try:
            return await self.blobs.read_blob(handle)
        except NotFound:
            logger.warning("Blob %s behind %s is missing, staging an empty file", handle, path)
            return None

    async def _flush(self, path: str, data: bytes) -> None:
        handle = await self._handle(path)
        if handle is not None:
            await self.blobs.replace_blob(handle, data)
            return
        handle = await self.blobs.create_blob(data)
        try:
            await self.index.mutate(lambda tree: tree.add_file(path, handle))
        except AlreadyExists:
            # Registered concurrently; write into the existing blob instead
            await self.blobs.delete_blobs([handle])
            existing = await self._handle(path)
            if existing is None:
                raise
            await self.blobs.replace_blob(existing, data)

    async def stat(self, path: str) -> NodeAttributes:
        """
        Get attributes of a file or directory.

        Raises:
            NotFound: the path is neither in the index nor staged.
        """
        staged = await self.staging.snapshot(path)
        tree = (await self.index.load_namespace()).tree
        try:
            info = tree.stat(path)
        except NotFound:
            if staged is None:
                raise
            return NodeAttributes(False, len(staged), int(time.time()))

        if info.is_directory:
            return NodeAttributes(True)
        blob = await self.blobs.stat_blob(info.handle)
        size = len(staged) if staged is not None else blob.size
        return NodeAttributes(False, size, blob.modified)

    async def list_directory(self, path: str) -> list[str]:
        tree = (await self.index.load_namespace()).tree
        return tree.list_directory(path)

    async def read_file(self, path: str) -> bytes:
        staged = await self.staging.snapshot(path)
        if staged is not None:
            return staged
        tree = (await self.index.load_namespace()).tree
        node = tree.lookup(path)
        if not isinstance(node, FileNode):
            raise InvalidArgument(f"Is a directory: {path}")
        return await self.blobs.read_blob(node.handle)

    async def create_directory(self, path: str) -> None:
        logger.info("Creating dir: %s", path)
        await self.index.mutate(lambda tree: tree.mkdir(path))

    async def upload_file(self, path: str, data: bytes) -> None:
        handle = await self.blobs.create_blob(data)
        try:
            await self.index.mutate(lambda tree: tree.add_file(path, handle))
        except Exception:
            await self.blobs.delete_blobs([handle])
            raise
        logger.info("Uploaded %s (%d bytes) as %s", path, len(data), handle)

    async def open_for_write(self, path: str) -> None:
        await self.staging.open(path)

    async def write_at(self, path: str, data: bytes, offset: int) -> int:
        return await self.staging.write(path, data, offset)

    async def truncate(self, path: str, size: int) -> None:
        """
        Resize a file. Without a staged buffer the file must already exist and
        the new content is flushed straight away.
        """
        if await self.staging.truncate(path, size):
            return
        if await self._handle(path) is None:
            raise NotFound(f"Path not found: {path}")
        await self.staging.open(path)
        await self.staging.truncate(path, size)
        try:
            await self.staging.release(path)
        except Exception:
            await self.staging.discard(path)
            raise

    async def release_write(self, path: str) -> None:
        await self.staging.release(path)

    async def rename(self, old_path: str, new_path: str, replace: bool = True) -> None:
        moved: Moved = await self.index.mutate(lambda tree: tree.rename(old_path, new_path, replace))
        await self.staging.move(old_path, moved.destination)
        if isinstance(moved.displaced, FileNode):
            logger.info("Rename over %s dropped blob %s", moved.destination, moved.displaced.handle)
            await self.blobs.delete_blobs([moved.displaced.handle])

    async def delete(self, path: str) -> None:
        """Delete a file or a directory with everything below it."""
        if not split_path(path):
            raise InvalidArgument("You can't delete filesystem root directory.")
        tree = (await self.index.load_namespace()).tree
        await self.blobs.delete_blobs(tree.handles(path))
        await self.index.mutate(lambda t: t.delete(path))
        await self.staging.discard(path)

    async def delete_directory(self, path: str) -> None:
        tree = (await self.index.load_namespace()).tree
        if not tree.stat(path).is_directory:
            raise NotADirectory(f"Not a directory: {path}")
        await self.delete(path)

    async def delete_all(self) -> None:
        tree = (await self.index.load_namespace()).tree
        await self.blobs.delete_blobs(tree.handles("/"))
        await self.index.mutate(lambda t: t.clear())
        await self.staging.discard("/")
