"""Custom exceptions."""
from typing import Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Resource not found exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Resource not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """Rejected payload exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Invalid request payload"
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PayloadTooLargeError(HTTPException):
    """Request body above the configured limit."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Request body too large"
        super().__init__(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=detail)


class StorageError(Exception):
    """A storage backend could not read or write a document."""


class RemoteNotFoundError(StorageError):
    """The requested file does not exist in the storage backend."""


class RevisionConflictError(StorageError):
    """The stored document changed since the revision token was captured."""

    def __init__(self, path: str, expected: Optional[str], detail: Optional[str] = None):
        self.path = path
        self.expected = expected
        message = detail or f"Revision conflict on {path}: expected revision {expected!r} is stale"
        super().__init__(message)


class DocumentRejectedError(ValueError):
    """A project document failed the write-time checks of the persistence service."""
