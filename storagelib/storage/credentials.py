"""
Credential resolution for storage account clients.

A facade authenticates with exactly one of:

- a shared key (account name + account key), which also allows signing SAS tokens
- a SAS token appended to the account endpoint, which does not
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from azure.core.credentials import AzureNamedKeyCredential

from .exceptions import AuthenticationError

DEFAULT_ENDPOINT_SUFFIX = "core.windows.net"


@dataclass(frozen=True)
class SharedKeyCredential:
    """Account name plus shared account key."""

    account_name: str
    account_key: str = field(repr=False)

    @property
    def can_sign(self) -> bool:
        return True

    def to_sdk_credential(self) -> AzureNamedKeyCredential:
        return AzureNamedKeyCredential(self.account_name, self.account_key)


@dataclass(frozen=True)
class SasTokenCredential:
    """Account name plus a pre-issued SAS token."""

    account_name: str
    sas_token: str = field(repr=False)

    @property
    def can_sign(self) -> bool:
        return False

    def to_sdk_credential(self) -> None:
        # The token travels in the endpoint query string
        return None


Credential = Union[SharedKeyCredential, SasTokenCredential]


def resolve_credential(
    account_name: Optional[str],
    account_key: Optional[str] = None,
    sas_token: Optional[str] = None
) -> Credential:
    """
    Pick the credential mode from the supplied values.

    A shared key takes precedence when both a key and a token are given.

    Raises:
        AuthenticationError: If the account name or both secrets are missing
    """
    if account_name and account_key:
        return SharedKeyCredential(account_name, account_key)
    if account_name and sas_token:
        return SasTokenCredential(account_name, sas_token.lstrip("?"))
    raise AuthenticationError(401, "Missing authentication")


def build_account_url(
    credential: Credential,
    service: str,
    endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX
) -> str:
    """Return the ``https://{account}.{service}.{suffix}`` endpoint, with the SAS token when present."""
    url = f"https://{credential.account_name}.{service}.{endpoint_suffix}"
    if isinstance(credential, SasTokenCredential):
        url = f"{url}?{credential.sas_token}"
    return url
