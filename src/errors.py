"""
Exception types for Signal Dispatch.

Every failure the system distinguishes has its own class so that callers
can decide locally whether to recover (previews), report to a submitter
(validation), or abort the send cycle (storage, dispatch).
"""


class DigestError(Exception):
    """Base class for all Signal Dispatch errors."""


class ValidationError(DigestError):
    """
    A submission was rejected.

    Attributes:
        message: Machine-readable reason returned to the HTTP caller.
        status_code: HTTP status to answer with.
    """

    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class DuplicateEntryError(ValidationError):
    """The submitted URL is already stored."""

    status_code = 409

    def __init__(self, url: str = ""):
        super().__init__("URL already submitted")
        self.url = url


class StorageError(DigestError):
    """A storage backend read or write failed."""


class PreviewError(DigestError):
    """A link preview could not be fetched or parsed."""


class DispatchError(DigestError):
    """The email provider rejected the digest or could not be reached."""
