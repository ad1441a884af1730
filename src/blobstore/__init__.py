"""
Backends holding file contents and the index document.
"""

from .base import BlobBackend, BlobStat, DocumentStore
from .memory import MemoryBlobBackend, MemoryDocumentStore
from .service import MessageServiceClient, PinnedDocumentStore, ServiceBlobBackend

__all__ = ['BlobBackend', 'BlobStat', 'DocumentStore', 'MemoryBlobBackend',
           'MemoryDocumentStore', 'MessageServiceClient', 'PinnedDocumentStore',
           'ServiceBlobBackend']
