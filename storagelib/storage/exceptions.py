"""
Storage exceptions and Azure error translation.
"""

from typing import Optional

from azure.core.exceptions import (
    ClientAuthenticationError,
    ResourceExistsError,
    ResourceNotFoundError,
)


class StorageError(Exception):
    """Base exception for storage operations, carrying an HTTP-style status code."""

    default_code = 500

    def __init__(self, code: Optional[int] = None, message: str = "", original_error: Optional[Exception] = None):
        super().__init__(message)
        self.code = code if code is not None else self.default_code
        self.message = message
        self.original_error = original_error

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(StorageError):
    """Raised when a request is rejected before or by the service as invalid"""
    default_code = 400


class AuthenticationError(StorageError):
    """Raised when credentials are missing or unusable for the operation"""
    default_code = 401


class ForbiddenError(StorageError):
    """Raised when the credential is not authorized for the resource"""
    default_code = 403


class NotFoundError(StorageError):
    """Raised when a container, blob or queue does not exist"""
    default_code = 404


class ConflictError(StorageError):
    """Raised when a resource already exists or is being deleted"""
    default_code = 409


_ERRORS_BY_CODE = {
    400: ValidationError,
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
}

# Used when an SDK error carries no HTTP response
_STATUS_BY_AZURE_ERROR = (
    (ResourceNotFoundError, 404),
    (ResourceExistsError, 409),
    (ClientAuthenticationError, 401),
)


def _status_code_of(error: Exception) -> int:
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    for error_type, code in _STATUS_BY_AZURE_ERROR:
        if isinstance(error, error_type):
            return code
    return 500


def handle_azure_error(error: Exception) -> StorageError:
    """Convert an SDK (or any other) exception to a storage error.

    The status code is taken from the failure when it has one, otherwise 500.
    Storage errors are returned unchanged.
    """
    if isinstance(error, StorageError):
        return error

    status_code = _status_code_of(error)
    message = getattr(error, "message", None) or str(error)
    error_class = _ERRORS_BY_CODE.get(status_code, StorageError)
    return error_class(status_code, message, error)
