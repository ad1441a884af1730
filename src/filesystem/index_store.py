"""
Loading and committing the namespace tree held in the index document.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from blobstore.base import DocumentStore
from namespace.codec import decode, encode
from namespace.errors import BackendUnavailable, Corrupt, DecodeError, IndexConflict
from namespace.nodes import DirectoryNode
from namespace.tree import NamespaceTree

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class IndexSnapshot:
    """A decoded copy of the index document and the version it was read at."""
    tree: NamespaceTree
    version: int


class IndexStore:
    """
    Read-mutate-write access to the index document.

    Each commit re-reads the stored version and refuses to overwrite a document
    that changed since it was loaded. Mutations within this process are
    serialized by a lock; other writers are detected through the version.
    """
    documents: DocumentStore
    lock: asyncio.Lock
    max_attempts: int

    def __init__(self, documents: DocumentStore, max_attempts: int = 5):
        self.documents = documents
        self.lock = asyncio.Lock()
        self.max_attempts = max_attempts

    @staticmethod
    def _decode_stored(text: str) -> Optional[tuple[DirectoryNode, int]]:
        """
        Decode stored document text. Blank text has never been written and
        yields None; anything else that fails to decode is Corrupt.
        """
        if not text.strip():
            return None
        try:
            return decode(text)
        except DecodeError as e:
            logger.error("Index document is unreadable: %s", e)
            raise Corrupt(f"Index document is corrupt: {e}") from e

    async def load_namespace(self) -> IndexSnapshot:
        text = await self.documents.read_document()
        if text is None:
            logger.warning("Index document is missing, bootstrapping an empty root")
            snapshot = IndexSnapshot(NamespaceTree(), 0)
            await self.documents.write_document(encode(snapshot.tree.root, snapshot.version))
            return snapshot

        decoded = self._decode_stored(text)
        if decoded is None:
            logger.warning("Index document is blank, using an empty root")
            return IndexSnapshot(NamespaceTree(), 0)
        root, version = decoded
        return IndexSnapshot(NamespaceTree(root), version)

    async def _stored_version(self) -> Optional[int]:
        text = await self.documents.read_document()
        if text is None:
            return None
        decoded = self._decode_stored(text)
        return decoded[1] if decoded is not None else None

    async def commit_namespace(self, snapshot: IndexSnapshot) -> None:
        """
        Write the snapshot back as version + 1.

        Raises:
            IndexConflict: the stored document moved past the snapshot's version.
            Corrupt: the stored document is unreadable and is left untouched.
            BackendUnavailable: the write failed; the snapshot is left intact
                so the commit can be retried.
        """
        stored = await self._stored_version()
        if stored is not None and stored != snapshot.version:
            raise IndexConflict(
                f"Index document moved from version {snapshot.version} to {stored}")
        await self.documents.write_document(encode(snapshot.tree.root, snapshot.version + 1))
        snapshot.version += 1

    async def mutate(self, fn: Callable[[NamespaceTree], T]) -> T:
        """
        Apply fn to a freshly loaded tree and commit the result.
        A conflicting commit reloads and re-applies fn.
        """
        async with self.lock:
            for attempt in range(1, self.max_attempts + 1):
                snapshot = await self.load_namespace()
                result = fn(snapshot.tree)
                try:
                    await self.commit_namespace(snapshot)
                    return result
                except IndexConflict as e:
                    logger.warning("Index commit conflict (attempt %d/%d): %s",
                                   attempt, self.max_attempts, e)
            raise BackendUnavailable(
                f"Index document kept changing, gave up after {self.max_attempts} attempts")
