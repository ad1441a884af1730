"""
Interfaces of the external stores the filesystem is built on.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from namespace.nodes import Handle


@dataclass
class BlobStat:
    size: int
    modified: int  # seconds since the epoch


class BlobBackend(ABC):
    """
    Messaging-style object store: blobs are addressed by opaque handles and
    can only be replaced as a whole.
    """

    @abstractmethod
    async def create_blob(self, data: bytes) -> Handle:
        ...

    @abstractmethod
    async def read_blob(self, handle: Handle) -> bytes:
        """Raises NotFound for an unknown handle."""

    @abstractmethod
    async def replace_blob(self, handle: Handle, data: bytes) -> None:
        """Raises NotFound for an unknown handle."""

    @abstractmethod
    async def delete_blobs(self, handles: Iterable[Handle]) -> None:
        """Best effort; unknown handles are ignored."""

    @abstractmethod
    async def stat_blob(self, handle: Handle) -> BlobStat:
        """Raises NotFound for an unknown handle."""


class DocumentStore(ABC):
    """The single shared document holding the serialized namespace."""

    @abstractmethod
    async def read_document(self) -> Optional[str]:
        """Returns None when the document does not exist yet."""

    @abstractmethod
    async def write_document(self, text: str) -> None:
        ...
