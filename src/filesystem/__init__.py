"""
Filesystem service built on a blob backend and a single index document.
This module provides the index store, the write-back staging cache and the
high-level operations used by the HTTP layer.
"""

from .index_store import IndexSnapshot, IndexStore
from .staging_cache import StagingCache
from .fs_operations import FSOperations
from .models import NodeAttributes, Privileges

__all__ = ['IndexSnapshot', 'IndexStore', 'StagingCache', 'FSOperations',
           'NodeAttributes', 'Privileges']
