"""Azure storage facades"""

from .blob_container import BlobContainer
from .credentials import SasTokenCredential, SharedKeyCredential, resolve_credential
from .exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from .sas import SasTokenRequest, SasValidityWindow, compose_sas_url, compute_validity_window
from .storage_queue import SendMessageResult, StorageQueue

__all__ = [
    # Facades
    "BlobContainer",
    "StorageQueue",
    "SendMessageResult",

    # Credentials
    "SharedKeyCredential",
    "SasTokenCredential",
    "resolve_credential",

    # Errors
    "StorageError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",

    # SAS
    "SasTokenRequest",
    "SasValidityWindow",
    "compute_validity_window",
    "compose_sas_url",
]
