"""
Attribute and request records exchanged with the API layer.
"""
import base64
import binascii

from serde import field, serde

from namespace.errors import InvalidArgument


@serde(rename_all="camelcase")
class Privileges:
    can_read: bool
    can_write: bool
    can_execute: bool

    @staticmethod
    def rw() -> "Privileges":
        return Privileges(True, True, False)


@serde(rename_all="camelcase")
class NodeAttributes:
    """File or directory attributes reported by stat."""
    is_directory: bool
    size: int = 0
    modification_time: int = 0
    owner_privileges: Privileges = field(default_factory=Privileges.rw)
    group_privileges: Privileges = field(default_factory=Privileges.rw)
    others_privileges: Privileges = field(default_factory=Privileges.rw)


@serde
class FileUpdate:
    path: str
    data: str = field(rename="bytes")  # base64, as produced for byte arrays
    offset: int = 0

    def payload(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except binascii.Error as e:
            raise InvalidArgument(f"Invalid base64 payload for {self.path}: {e}") from e


@serde
class TruncateRequest:
    path: str
    size: int


@serde(rename_all="camelcase")
class RenameRequest:
    old_path: str
    new_path: str
    replace: bool = True
