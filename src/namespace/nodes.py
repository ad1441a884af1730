"""
Node types of the namespace tree.
A directory maps child names to nodes; a file holds an opaque content handle.
"""
from dataclasses import dataclass, field
from typing import Union

from sortedcontainers import SortedDict

Handle = Union[int, str]


@dataclass
class FileNode:
    handle: Handle


@dataclass
class DirectoryNode:
    children: SortedDict = field(default_factory=SortedDict)

    def names(self) -> list[str]:
        return list(self.children.keys())


Node = Union[DirectoryNode, FileNode]


def split_path(path: str) -> list[str]:
    """Split a '/'-delimited path into its non-empty segments."""
    return [p for p in path.split('/') if p]


def join_path(parts: list[str]) -> str:
    return '/' + '/'.join(parts)
