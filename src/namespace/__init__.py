"""
Namespace layer: the directory tree kept in a single index document.
This module provides the node types, the document codec and the tree algorithms.
"""

from .errors import (AlreadyExists, BackendUnavailable, Corrupt, DecodeError, FsError,
                     IndexConflict, InvalidArgument, NotADirectory, NotFound)
from .nodes import DirectoryNode, FileNode, Handle, Node
from .codec import decode, encode
from .tree import Moved, NamespaceTree, NodeInfo

__all__ = ['AlreadyExists', 'BackendUnavailable', 'Corrupt', 'DecodeError', 'FsError',
           'IndexConflict', 'InvalidArgument', 'NotADirectory', 'NotFound',
           'DirectoryNode', 'FileNode', 'Handle', 'Node',
           'decode', 'encode', 'Moved', 'NamespaceTree', 'NodeInfo']
