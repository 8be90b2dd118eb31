"""
Azure Queue Storage facade.
"""

from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from azure.storage.queue import QueueMessage
from azure.storage.queue.aio import QueueServiceClient

from .base import StorageFacade, storage_error_boundary, storage_operation
from .exceptions import ValidationError
from .responses import RequestIdRecorder
from .sas import (
    DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
    DEFAULT_EXPIRE_MINUTES,
    SasTokenRequest,
    compose_sas_url,
    generate_queue_sas_token,
)

MIN_VISIBILITY_TIMEOUT = 1
MAX_VISIBILITY_TIMEOUT = 7 * 24 * 60 * 60


@dataclass
class SendMessageResult:
    message_id: str
    request_id: Optional[str]


class StorageQueue(StorageFacade):
    """Facade for working with queues in an Azure storage account."""

    service = "queue"

    def _create_client(self, account_url: str, sdk_credential: Any) -> QueueServiceClient:
        return QueueServiceClient(account_url=account_url, credential=sdk_credential)

    @storage_operation("create_queue")
    async def create(self, queue_name: str) -> Optional[str]:
        """
        Create a new queue.

        Returns:
            The request id of the create call
        """
        recorder = RequestIdRecorder()
        queue_client = self.client.get_queue_client(queue_name)
        response = await queue_client.create_queue(raw_response_hook=recorder)

        request_id = recorder.resolve(response)
        self.logger.info(
            f"Created queue {queue_name}",
            extra={"queue_name": queue_name, "request_id": request_id}
        )
        return request_id

    async def list(self, prefix: Optional[str] = None) -> List[str]:
        """
        List the queues in the storage account.

        Args:
            prefix: Only return queues whose name starts with this prefix

        Returns:
            Queue names
        """
        return [name async for name in self.iter_queues(prefix)]

    async def iter_queues(self, prefix: Optional[str] = None) -> AsyncIterator[str]:
        """Yield queue names page by page as they are fetched."""
        options: Dict[str, Any] = {}
        if prefix:
            options["name_starts_with"] = prefix

        with storage_error_boundary(self.logger, "list_queues", prefix=prefix):
            async for queue in self.client.list_queues(**options):
                yield queue.name

    @storage_operation("delete_queue")
    async def delete(self, queue_name: str) -> Optional[str]:
        """
        Delete a queue and the messages in it.

        Returns:
            The request id of the delete call
        """
        recorder = RequestIdRecorder()
        queue_client = self.client.get_queue_client(queue_name)
        response = await queue_client.delete_queue(raw_response_hook=recorder)

        request_id = recorder.resolve(response)
        self.logger.info(
            f"Deleted queue {queue_name}",
            extra={"queue_name": queue_name, "request_id": request_id}
        )
        return request_id

    @storage_operation("send_message")
    async def send_message(
        self,
        queue_name: str,
        message: str,
        time_to_live: Optional[int] = None,
        visibility_timeout: Optional[int] = None
    ) -> SendMessageResult:
        """
        Send a message to a queue.

        The message may be up to 64KB and must be valid in an XML request with
        UTF-8 encoding; the service enforces both.

        Args:
            queue_name: Name of the queue
            message: Message content
            time_to_live: Time-to-live of the message in seconds
            visibility_timeout: Seconds before the message becomes visible,
                between 1 second and 7 days; visible immediately when omitted

        Returns:
            The assigned message id and the request id

        Raises:
            ValidationError: If visibility_timeout is out of range
        """
        options: Dict[str, Any] = {}
        if time_to_live is not None:
            options["time_to_live"] = time_to_live
        if visibility_timeout is not None:
            if not MIN_VISIBILITY_TIMEOUT <= visibility_timeout <= MAX_VISIBILITY_TIMEOUT:
                raise ValidationError(
                    400,
                    f"visibility_timeout must be between {MIN_VISIBILITY_TIMEOUT} and "
                    f"{MAX_VISIBILITY_TIMEOUT} seconds, got {visibility_timeout}"
                )
            options["visibility_timeout"] = visibility_timeout

        recorder = RequestIdRecorder()
        queue_client = self.client.get_queue_client(queue_name)
        sent = await queue_client.send_message(message, raw_response_hook=recorder, **options)

        return SendMessageResult(message_id=sent.id, request_id=recorder.resolve())

    @storage_operation("peek_messages")
    async def peek_messages(self, queue_name: str, max_messages: Optional[int] = None) -> List[QueueMessage]:
        """Return messages from the front of the queue without changing their visibility."""
        queue_client = self.client.get_queue_client(queue_name)
        return list(await queue_client.peek_messages(max_messages=max_messages))

    def generate_sas_token(
        self,
        queue_name: str,
        permissions: Optional[str] = None,
        expire_minutes: float = DEFAULT_EXPIRE_MINUTES,
        clock_skew_margin_minutes: float = DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
        ip: Optional[str] = None,
        protocol: Optional[str] = None
    ) -> str:
        """
        Generate a SAS token for a queue.

        Permissions default to read (``"r"``); other letters are
        ``a`` (add), ``u`` (update) and ``p`` (process).

        Raises:
            AuthenticationError: If the facade was created from a SAS token
            ValidationError: On unsupported permission letters or an invalid validity window
            StorageError: If signing fails, for example on a malformed account key
        """
        with storage_error_boundary(self.logger, "generate_sas_token", queue_name=queue_name):
            return self._sign(queue_name, permissions, expire_minutes, clock_skew_margin_minutes, ip, protocol)

    def get_sas_url(self, queue_name: str, **sas_options: Any) -> str:
        """Return the queue URL with a freshly generated SAS token."""
        with storage_error_boundary(self.logger, "get_sas_url", queue_name=queue_name):
            token = self._sign(queue_name, **sas_options)
            return compose_sas_url(self.client.get_queue_client(queue_name).url, token)

    def _sign(
        self,
        queue_name: str,
        permissions: Optional[str] = None,
        expire_minutes: float = DEFAULT_EXPIRE_MINUTES,
        clock_skew_margin_minutes: float = DEFAULT_CLOCK_SKEW_MARGIN_MINUTES,
        ip: Optional[str] = None,
        protocol: Optional[str] = None
    ) -> str:
        request = SasTokenRequest(
            resource_name=queue_name,
            permissions=permissions,
            expire_minutes=expire_minutes,
            clock_skew_margin_minutes=clock_skew_margin_minutes,
            ip=ip,
            protocol=protocol
        )
        return generate_queue_sas_token(self.credential, request)
