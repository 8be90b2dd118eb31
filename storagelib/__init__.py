"""Convenience wrapper around the Azure Blob and Queue Storage SDKs"""

from .storage import (
    AuthenticationError,
    BlobContainer,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    StorageQueue,
    ValidationError,
)

__version__ = "0.2.0"

__all__ = [
    "BlobContainer",
    "StorageQueue",
    "StorageError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
]
