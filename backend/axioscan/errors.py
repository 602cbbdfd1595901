# backend/axioscan/errors.py


class AxioscanError(Exception):
    """Base class for failures surfaced to callers with a human-readable message"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(AxioscanError):
    """Caller contract violation: bad geometry, bad selection, unknown reference"""


class InsufficientInputError(InvalidArgument):
    """A merge was requested with fewer than two documents"""


class EmptySelectionError(InvalidArgument):
    """A composition was committed with no pages"""


class ImageCodecError(AxioscanError):
    """A single image could not be decoded or encoded"""


class NoExportableContentError(AxioscanError):
    """No page of the document could be decoded for export"""


class NotFoundError(AxioscanError):
    """A record or blob does not exist for the requesting owner"""


class RemoteIOError(AxioscanError):
    """The blob store or the record store failed"""


class ConsistencyViolation(AxioscanError):
    """A stored invariant was found broken, e.g. page count mismatch"""
