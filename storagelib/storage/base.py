"""
Common plumbing for the blob container and storage queue facades.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, Optional, TypeVar

from storagelib.monitoring.logging_config import get_logger

from .credentials import (
    DEFAULT_ENDPOINT_SUFFIX,
    Credential,
    build_account_url,
    resolve_credential,
)
from .exceptions import handle_azure_error

F = TypeVar("F", bound=Callable[..., Any])


@contextmanager
def storage_error_boundary(logger: logging.Logger, operation: str, **context: Any) -> Iterator[None]:
    """
    Re-raise any failure inside the block as a ``StorageError``.

    The failure is logged once with the operation name, status code and the
    given context as structured fields.
    """
    try:
        yield
    except Exception as e:
        error = handle_azure_error(e)
        logger.error(
            f"{operation} failed: {error.message}",
            extra={"operation": operation, "status_code": error.code, **context}
        )
        if error is e:
            raise
        raise error from e


def storage_operation(operation_name: str) -> Callable[[F], F]:
    """Decorator running a facade coroutine method inside the error boundary."""
    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            with storage_error_boundary(self.logger, operation_name):
                return await func(self, *args, **kwargs)
        return wrapper  # type: ignore
    return decorator


class StorageFacade(ABC):
    """Base class binding one authenticated SDK service client to a facade."""

    service: str = ""

    def __init__(
        self,
        account_name: Optional[str] = None,
        account_key: Optional[str] = None,
        sas_token: Optional[str] = None,
        *,
        credential: Optional[Credential] = None,
        endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX,
        logger: Optional[logging.Logger] = None
    ):
        """
        Create the facade and its service client.

        Use either shared key authentication (account_name + account_key) or
        a SAS token (account_name + sas_token), or pass a resolved credential.

        Args:
            account_name: Storage account name
            account_key: Storage account key
            sas_token: Shared access signature token
            credential: Already resolved credential, overrides the three above
            endpoint_suffix: DNS suffix of the storage endpoints
            logger: Logger for this facade, defaults to a ``storagelib.storage`` logger

        Raises:
            AuthenticationError: If no usable credential was supplied
            StorageError: If the SDK client cannot be created
        """
        self.logger = logger or get_logger(f"storage.{self.service}")

        with storage_error_boundary(self.logger, "connect", service=self.service):
            self.credential = credential or resolve_credential(account_name, account_key, sas_token)
            self.account_url = build_account_url(self.credential, self.service, endpoint_suffix)
            self.client = self._create_client(self.account_url, self.credential.to_sdk_credential())

    @classmethod
    def from_settings(cls, settings: Any, logger: Optional[logging.Logger] = None):
        """Create a facade from a ``StorageSettings`` instance."""
        return cls(
            account_name=settings.storage_account_name,
            account_key=settings.storage_account_key,
            sas_token=settings.storage_sas_token,
            endpoint_suffix=settings.storage_endpoint_suffix,
            logger=logger
        )

    @abstractmethod
    def _create_client(self, account_url: str, sdk_credential: Any) -> Any:
        """Build the SDK service client for this facade."""

    @property
    def account_name(self) -> str:
        return self.credential.account_name

    async def close(self) -> None:
        """Close the underlying HTTP session of the SDK client."""
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
