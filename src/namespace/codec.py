"""
Serialization of the namespace tree to and from the single index document.

The document is JSON. Directories are objects, files are scalar handles:

    {"/version": 3, "/root": {"a": {"b": 10}}}

A bare tree object without the envelope (for example "{}") is accepted as
version 0. Envelope keys contain '/' and therefore never clash with names.
"""
import json
from typing import Any

from serde import SerdeError, field, from_dict, serde
from serde.json import to_json

from .errors import DecodeError
from .nodes import DirectoryNode, FileNode, Node

VERSION_KEY = "/version"
ROOT_KEY = "/root"


@serde
class IndexEnvelope:
    version: int = field(rename=VERSION_KEY)
    root: dict[str, Any] = field(rename=ROOT_KEY)


def encode(root: DirectoryNode, version: int = 0) -> str:
    return to_json(IndexEnvelope(version, _to_plain(root)))


def decode(text: str) -> tuple[DirectoryNode, int]:
    """
    Decode an index document.

    Returns:
        The root directory and the document version.

    Raises:
        DecodeError: if the text is not a well-formed tree document.
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"index document is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise DecodeError("index document must be a JSON object")

    if VERSION_KEY in raw or ROOT_KEY in raw:
        if set(raw) != {VERSION_KEY, ROOT_KEY}:
            raise DecodeError(f"unexpected envelope keys: {sorted(raw)}")
        if not isinstance(raw[VERSION_KEY], int) or isinstance(raw[VERSION_KEY], bool):
            raise DecodeError("index version must be an integer")
        if not isinstance(raw[ROOT_KEY], dict):
            raise DecodeError("index root must be an object")
        try:
            envelope = from_dict(IndexEnvelope, raw)
        except SerdeError as e:
            raise DecodeError(f"malformed index envelope: {e}") from e
        return _from_plain(envelope.root), envelope.version

    return _from_plain(raw), 0


def _to_plain(node: DirectoryNode) -> dict[str, Any]:
    plain: dict[str, Any] = {}
    for name, child in node.children.items():
        if isinstance(child, DirectoryNode):
            plain[name] = _to_plain(child)
        else:
            plain[name] = child.handle
    return plain


def _from_plain(obj: dict[str, Any]) -> DirectoryNode:
    directory = DirectoryNode()
    for name, value in obj.items():
        if not isinstance(name, str) or not name or '/' in name:
            raise DecodeError(f"invalid entry name: {name!r}")
        directory.children[name] = _node_from_plain(name, value)
    return directory


def _node_from_plain(name: str, value: Any) -> Node:
    if isinstance(value, dict):
        return _from_plain(value)
    # bool is an int subclass; handles are never booleans
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise DecodeError(f"unsupported value for {name!r}: {value!r}")
    return FileNode(value)
