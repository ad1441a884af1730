"""
Error taxonomy shared by the namespace, the backends and the API layer.
"""


class FsError(Exception):
    """Base class for every filesystem error surfaced to callers."""
    status_code = 500


class NotFound(FsError):
    status_code = 404


class AlreadyExists(FsError):
    status_code = 409


class NotADirectory(FsError):
    status_code = 400


class InvalidArgument(FsError):
    status_code = 400


class BackendUnavailable(FsError):
    status_code = 503


class Corrupt(FsError):
    status_code = 500


class IndexConflict(FsError):
    """The stored index document changed between load and commit."""
    status_code = 409


class DecodeError(ValueError):
    """Raised by the codec when a document is not a well-formed tree."""
