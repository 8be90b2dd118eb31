"""
Azure Blob Storage facade.
Handles container and blob CRUD, listing and SAS token generation.
"""

from typing import Any, AsyncIterator, List, Optional, Union

from azure.storage.blob import BlobProperties
from azure.storage.blob.aio import BlobServiceClient

from .base import StorageFacade, storage_error_boundary, storage_operation
from .responses import RequestIdRecorder
from .sas import (
    DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
    DEFAULT_EXPIRE_MINUTES,
    SasTokenRequest,
    compose_sas_url,
    generate_container_sas_token,
)
from .streams import stream_to_string


class BlobContainer(StorageFacade):
    """Facade for working with blob containers in an Azure storage account."""

    service = "blob"

    def _create_client(self, account_url: str, sdk_credential: Any) -> BlobServiceClient:
        return BlobServiceClient(account_url=account_url, credential=sdk_credential)

    @storage_operation("create_container")
    async def create_container(self, container_name: str) -> Optional[str]:
        """
        Create a new blob container.

        Args:
            container_name: Name of the container

        Returns:
            The request id of the create call

        Raises:
            ConflictError: If the container already exists
        """
        recorder = RequestIdRecorder()
        container_client = self.client.get_container_client(container_name)
        response = await container_client.create_container(raw_response_hook=recorder)

        request_id = recorder.resolve(response)
        self.logger.info(
            f"Created container {container_name}",
            extra={"container_name": container_name, "request_id": request_id}
        )
        return request_id

    async def list_containers(self) -> List[str]:
        """
        List all blob containers in the storage account.

        All result pages are fetched before returning; use ``iter_containers``
        for accounts with many containers.

        Returns:
            Container names
        """
        return [name async for name in self.iter_containers()]

    async def iter_containers(self) -> AsyncIterator[str]:
        """Yield container names page by page as they are fetched."""
        with storage_error_boundary(self.logger, "iter_containers"):
            async for container in self.client.list_containers():
                yield container.name

    @storage_operation("create_blob")
    async def create_blob(self, container_name: str, blob_name: str, content: Union[str, bytes]) -> Optional[str]:
        """
        Upload content as a block blob, replacing any blob with the same name.

        Args:
            container_name: Name of the container
            blob_name: Name of the blob to create
            content: Text (stored as UTF-8) or bytes

        Returns:
            The request id of the upload call
        """
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)

        recorder = RequestIdRecorder()
        blob_client = self.client.get_blob_client(container=container_name, blob=blob_name)
        response = await blob_client.upload_blob(
            data,
            length=len(data),
            overwrite=True,
            raw_response_hook=recorder
        )

        request_id = recorder.resolve(response)
        self.logger.info(
            f"Uploaded block blob {blob_name}",
            extra={
                "container_name": container_name,
                "blob_name": blob_name,
                "size": len(data),
                "request_id": request_id
            }
        )
        return request_id

    async def list_blobs(self, container_name: str) -> List[BlobProperties]:
        """
        List all blobs in a container (flat listing).

        Args:
            container_name: Name of the container

        Returns:
            Blob descriptors, each with a ``name``
        """
        return [blob async for blob in self.iter_blobs(container_name)]

    async def iter_blobs(self, container_name: str) -> AsyncIterator[BlobProperties]:
        """Yield blob descriptors of a container page by page."""
        with storage_error_boundary(self.logger, "iter_blobs", container_name=container_name):
            container_client = self.client.get_container_client(container_name)
            async for blob in container_client.list_blobs():
                yield blob

    @storage_operation("get_blob_content")
    async def get_blob_content(self, container_name: str, blob_name: str, encoding: str = "utf-8") -> str:
        """
        Download a whole blob and return it as text.

        Args:
            container_name: Name of the container
            blob_name: Name of the blob
            encoding: Text encoding of the blob content

        Returns:
            The blob content from offset 0 to the end
        """
        blob_client = self.client.get_blob_client(container=container_name, blob=blob_name)
        downloader = await blob_client.download_blob(offset=0)
        return await stream_to_string(downloader, encoding)

    @storage_operation("delete_container")
    async def delete_container(self, container_name: str) -> bool:
        """
        Delete a container together with all its blobs.

        Returns:
            True; failures raise instead
        """
        container_client = self.client.get_container_client(container_name)
        await container_client.delete_container()
        self.logger.info(f"Deleted container {container_name}", extra={"container_name": container_name})
        return True

    @storage_operation("delete_blob")
    async def delete_blob(self, container_name: str, blob_name: str) -> bool:
        """
        Delete a blob with all its snapshots.

        Returns:
            True; failures raise instead
        """
        blob_client = self.client.get_blob_client(container=container_name, blob=blob_name)
        await blob_client.delete_blob(delete_snapshots="include")
        self.logger.info(
            f"Deleted blob {blob_name}",
            extra={"container_name": container_name, "blob_name": blob_name}
        )
        return True

    def generate_sas_token(
        self,
        container_name: str,
        blob_name: Optional[str] = None,
        permissions: Optional[str] = None,
        expire_minutes: float = DEFAULT_EXPIRE_MINUTES,
        clock_skew_margin_minutes: float = DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
        ip: Optional[str] = None,
        protocol: Optional[str] = None
    ) -> str:
        """
        Generate a SAS token for a container, or for a single blob in it.

        Args:
            container_name: Name of the container
            blob_name: Restrict the token to this blob
            permissions: Permission letters such as ``"rw"``, read only when omitted
            expire_minutes: Validity after now
            clock_skew_margin_minutes: The token starts this many minutes before now
            ip: Optional IP address or range allowed to use the token
            protocol: ``"https"`` or ``"https,http"``

        Returns:
            The token as query string, without leading ``?``

        Raises:
            AuthenticationError: If the facade was created from a SAS token
            ValidationError: On unsupported permission letters or an invalid validity window
            StorageError: If signing fails, for example on a malformed account key
        """
        with storage_error_boundary(self.logger, "generate_sas_token",
                                    container_name=container_name, blob_name=blob_name):
            return self._sign(
                container_name, blob_name, permissions, expire_minutes, clock_skew_margin_minutes, ip, protocol
            )

    def get_sas_url(self, container_name: str, blob_name: Optional[str] = None, **sas_options: Any) -> str:
        """Return the container (or blob) URL with a freshly generated SAS token."""
        with storage_error_boundary(self.logger, "get_sas_url",
                                    container_name=container_name, blob_name=blob_name):
            token = self._sign(container_name, blob_name, **sas_options)
            if blob_name:
                resource_url = self.client.get_blob_client(container=container_name, blob=blob_name).url
            else:
                resource_url = self.client.get_container_client(container_name).url
            return compose_sas_url(resource_url, token)

    def _sign(
        self,
        container_name: str,
        blob_name: Optional[str] = None,
        permissions: Optional[str] = None,
        expire_minutes: float = DEFAULT_EXPIRE_MINUTES,
        clock_skew_margin_minutes: float = DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
        ip: Optional[str] = None,
        protocol: Optional[str] = None
    ) -> str:
        request = SasTokenRequest(
            resource_name=container_name,
            sub_resource_name=blob_name,
            permissions=permissions,
            expire_minutes=expire_minutes,
            clock_skew_margin_minutes=clock_skew_margin_minutes,
            ip=ip,
            protocol=protocol
        )
        return generate_container_sas_token(self.credential, request)
