"""
Shared access signature (SAS) token generation.

A generated token is a query string such as::

    sp=r&st=2020-04-01T17:43:39Z&se=2020-05-01T01:43:39Z&sv=2019-02-02&sr=b&sig=...

where ``sp`` holds the granted permissions, ``st``/``se`` the UTC start and
expiry, ``sv`` the service version, ``sr`` the resource type (``b`` blob,
``c`` container, ``q`` queue), ``spr``/``sip`` optional protocol and IP
restrictions and ``sig`` the HMAC-SHA256 signature made with the account key.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

from azure.storage.blob import (
    BlobSasPermissions,
    ContainerSasPermissions,
    generate_blob_sas,
    generate_container_sas,
)
from azure.storage.queue import QueueSasPermissions, generate_queue_sas

from .credentials import Credential, SharedKeyCredential
from .exceptions import AuthenticationError, ValidationError

DEFAULT_PERMISSIONS = "r"
DEFAULT_EXPIRE_MINUTES = 60
DEFAULT_CLOCK_SKEW_MARGIN_MINUTES = 5


@dataclass
class SasTokenRequest:
    """Parameters for a SAS token scoped to a container, blob or queue."""

    resource_name: str
    sub_resource_name: Optional[str] = None
    permissions: Optional[str] = None
    expire_minutes: float = DEFAULT_EXPIRE_MINUTES
    clock_skew_margin_minutes: float = DEFAULT_CLOCK_SKEW_MARGIN_MINUTES
    ip: Optional[str] = None
    protocol: Optional[str] = None

    @property
    def effective_permissions(self) -> str:
        return self.permissions or DEFAULT_PERMISSIONS


class SasValidityWindow(NamedTuple):
    start: datetime
    expiry: datetime


def compute_validity_window(
    expire_minutes: float = DEFAULT_EXPIRE_MINUTES,
    clock_skew_margin_minutes: float = DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
    now: Optional[datetime] = None
) -> SasValidityWindow:
    """
    Compute the start and expiry of a token relative to ``now`` (UTC).

    The start is moved back by the clock skew margin so that servers with a
    slightly late clock accept the token immediately.

    Raises:
        ValidationError: If expire_minutes is not positive or the margin is negative
    """
    if expire_minutes <= 0:
        raise ValidationError(400, f"expire_minutes must be positive, got {expire_minutes}")
    if clock_skew_margin_minutes < 0:
        raise ValidationError(400, f"clock_skew_margin_minutes must not be negative, got {clock_skew_margin_minutes}")

    if now is None:
        now = datetime.now(timezone.utc)
    return SasValidityWindow(
        start=now - timedelta(minutes=clock_skew_margin_minutes),
        expiry=now + timedelta(minutes=expire_minutes)
    )


def require_signing_key(credential: Credential) -> SharedKeyCredential:
    """Return the shared key credential, or fail when the facade was built from a SAS token."""
    if not credential.can_sign:
        raise AuthenticationError(
            401, "A shared key credential is required to generate a SAS token"
        )
    return credential


def parse_permissions(permission_class, permissions: str):
    """
    Parse permission letters with the SDK parser for the resource type.

    The SDK ignores letters it does not know, so any letter missing from the
    parsed result is rejected.

    Raises:
        ValidationError: On the first letter the resource type does not support
    """
    parsed = permission_class.from_string(permissions)
    granted = set(str(parsed))
    for letter in permissions:
        if letter not in granted:
            raise ValidationError(400, f"Invalid permission: {letter}")
    return parsed


def generate_container_sas_token(
    credential: Credential,
    request: SasTokenRequest,
    now: Optional[datetime] = None
) -> str:
    """Sign a token for a whole container, or for one blob when ``sub_resource_name`` is set."""
    key = require_signing_key(credential)
    window = compute_validity_window(request.expire_minutes, request.clock_skew_margin_minutes, now)

    if request.sub_resource_name:
        return generate_blob_sas(
            account_name=key.account_name,
            container_name=request.resource_name,
            blob_name=request.sub_resource_name,
            account_key=key.account_key,
            permission=parse_permissions(BlobSasPermissions, request.effective_permissions),
            start=window.start,
            expiry=window.expiry,
            ip=request.ip,
            protocol=request.protocol
        )

    return generate_container_sas(
        account_name=key.account_name,
        container_name=request.resource_name,
        account_key=key.account_key,
        permission=parse_permissions(ContainerSasPermissions, request.effective_permissions),
        start=window.start,
        expiry=window.expiry,
        ip=request.ip,
        protocol=request.protocol
    )


def generate_queue_sas_token(
    credential: Credential,
    request: SasTokenRequest,
    now: Optional[datetime] = None
) -> str:
    """Sign a token for a queue."""
    key = require_signing_key(credential)
    window = compute_validity_window(request.expire_minutes, request.clock_skew_margin_minutes, now)

    return generate_queue_sas(
        account_name=key.account_name,
        queue_name=request.resource_name,
        account_key=key.account_key,
        permission=parse_permissions(QueueSasPermissions, request.effective_permissions),
        start=window.start,
        expiry=window.expiry,
        ip=request.ip,
        protocol=request.protocol
    )


def compose_sas_url(resource_url: str, sas_token: str) -> str:
    """Append a SAS token to a resource URL."""
    separator = "&" if "?" in resource_url else "?"
    return f"{resource_url}{separator}{sas_token.lstrip('?')}"
