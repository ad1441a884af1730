"""
Path resolution and mutation over a decoded namespace tree.

Every mutating operation resolves and validates first and only then touches
the tree, so a failed operation leaves the tree unchanged.
"""
from dataclasses import dataclass
from typing import Optional

from sortedcontainers import SortedDict

from .errors import AlreadyExists, InvalidArgument, NotADirectory, NotFound
from .nodes import DirectoryNode, FileNode, Handle, Node, join_path, split_path


@dataclass
class NodeInfo:
    path: str
    is_directory: bool
    handle: Optional[Handle] = None


@dataclass
class Moved:
    destination: str
    displaced: Optional[Node] = None


class NamespaceTree:
    """
    In-memory view of the index document.
    Directories and files are addressed by '/'-delimited paths relative to
    the root; the root itself is the empty path or '/'.
    """
    def __init__(self, root: Optional[DirectoryNode] = None):
        self.root = root if root is not None else DirectoryNode()

    def resolve(self, path: str) -> tuple[DirectoryNode, str]:
        """
        Find the directory that contains (or would contain) the last segment.

        Returns:
            (parent directory, leaf name); the leaf is "" for the root path.

        Raises:
            NotFound: an intermediate segment does not exist.
            NotADirectory: an intermediate segment is a file.
        """
        parts = split_path(path)
        if not parts:
            return self.root, ""

        current = self.root
        for depth, part in enumerate(parts[:-1]):
            child = current.children.get(part)
            if child is None:
                raise NotFound(f"No such path while traversing: {path}")
            if not isinstance(child, DirectoryNode):
                raise NotADirectory(f"Not a directory: {join_path(parts[:depth + 1])}")
            current = child
        return current, parts[-1]

    def lookup(self, path: str) -> Node:
        parent, leaf = self.resolve(path)
        if not leaf:
            return parent
        node = parent.children.get(leaf)
        if node is None:
            raise NotFound(f"Path not found: {path}")
        return node

    def stat(self, path: str) -> NodeInfo:
        node = self.lookup(path)
        if isinstance(node, DirectoryNode):
            return NodeInfo(path, True)
        return NodeInfo(path, False, node.handle)

    def list_directory(self, path: str) -> list[str]:
        node = self.lookup(path)
        if not isinstance(node, DirectoryNode):
            raise NotADirectory(f"Can not list regular file: {path}")
        return node.names()

    def create(self, path: str, node: Node) -> None:
        parent, leaf = self.resolve(path)
        if not leaf or leaf in parent.children:
            raise AlreadyExists(f"Path already exists: {path}")
        parent.children[leaf] = node

    def mkdir(self, path: str) -> None:
        self.create(path, DirectoryNode())

    def add_file(self, path: str, handle: Handle) -> None:
        self.create(path, FileNode(handle))

    def delete(self, path: str) -> Node:
        """Remove a file or a whole directory subtree; returns the removed node."""
        parent, leaf = self.resolve(path)
        if not leaf:
            raise InvalidArgument("You can't delete filesystem root directory.")
        if leaf not in parent.children:
            raise NotFound(f"Path not found: {path}")
        return parent.children.pop(leaf)

    def clear(self) -> None:
        self.root.children.clear()

    def handles(self, path: str) -> list[Handle]:
        """All content handles stored at or below path."""
        found: list[Handle] = []
        self._collect(self.lookup(path), found)
        return found

    def _collect(self, node: Node, found: list[Handle]) -> None:
        if isinstance(node, FileNode):
            found.append(node.handle)
            return
        for child in node.children.values():
            self._collect(child, found)

    def rename(self, old_path: str, new_path: str, replace: bool = True) -> Moved:
        """
        Move a file or directory.

        A file may replace an existing file (when replace is set) but never a
        directory. A directory moved onto an existing directory is nested
        inside it under its own name.

        Returns:
            Where the node ended up and the node it displaced, if any.
        """
        old_parts = split_path(old_path)
        if not old_parts:
            raise InvalidArgument("You can't move filesystem root directory.")
        old_info = self.stat(old_path)
        try:
            new_info: Optional[NodeInfo] = self.stat(new_path)
        except NotFound:
            new_info = None

        if not old_info.is_directory:
            return self._rename_file(old_parts, split_path(new_path), new_info, replace)
        return self._rename_directory(old_parts, split_path(new_path), new_info)

    def _rename_file(self, old_parts: list[str], new_parts: list[str],
                     new_info: Optional[NodeInfo], replace: bool) -> Moved:
        destination = join_path(new_parts)
        if old_parts == new_parts:
            return Moved(destination)
        if new_info is not None:
            if new_info.is_directory:
                raise AlreadyExists(f"Couldn't move to: {destination}")
            if not replace:
                raise AlreadyExists(f"Path already exists: {destination}")

        old_parent, old_leaf = self.resolve(join_path(old_parts))
        new_parent, new_leaf = self.resolve(destination)
        displaced = new_parent.children.pop(new_leaf, None)
        new_parent.children[new_leaf] = old_parent.children.pop(old_leaf)
        return Moved(destination, displaced)

    def _rename_directory(self, old_parts: list[str], new_parts: list[str],
                          new_info: Optional[NodeInfo]) -> Moved:
        if new_info is not None and not new_info.is_directory:
            raise AlreadyExists(f"Couldn't move to: {join_path(new_parts)}")

        self_rename = new_parts == old_parts
        if new_info is not None:
            new_parts = new_parts + [old_parts[-1]]
        destination = join_path(new_parts)
        if new_parts == old_parts:
            return Moved(destination)
        if new_parts[:len(old_parts)] == old_parts and not self_rename:
            raise InvalidArgument(
                f"Can't move {join_path(old_parts)} inside itself: {destination}")

        old_parent, old_leaf = self.resolve(join_path(old_parts))
        if self_rename:
            # The destination is the directory itself: wrap it in a fresh one.
            moved = old_parent.children[old_leaf]
            old_parent.children[old_leaf] = DirectoryNode(SortedDict({old_leaf: moved}))
            return Moved(destination)

        new_parent, new_leaf = self.resolve(destination)
        if new_leaf in new_parent.children:
            raise AlreadyExists(f"Path already exists: {destination}")
        new_parent.children[new_leaf] = old_parent.children.pop(old_leaf)
        return Moved(destination)
