"""
Tests for the BlobContainer facade.
"""

import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from azure.core.credentials import AzureNamedKeyCredential
from azure.core.exceptions import HttpResponseError, ResourceExistsError, ResourceNotFoundError

from storagelib.config.settings import StorageSettings
from storagelib.storage.blob_container import BlobContainer
from storagelib.storage.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from fakes import (
    ACCOUNT_KEY,
    ACCOUNT_NAME,
    SAS_TOKEN,
    AsyncItems,
    FakeDownloader,
    InMemoryBlobService,
    azure_error,
    respond_with_request_id,
)


class TestBlobContainerConstruction:
    """Test cases for credential handling when the facade is created."""

    def test_shared_key_client(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

        call_kwargs = mock_blob_service_client.call_args.kwargs
        assert call_kwargs["account_url"] == f"https://{ACCOUNT_NAME}.blob.core.windows.net"
        assert isinstance(call_kwargs["credential"], AzureNamedKeyCredential)
        assert container.client is mock_blob_service_client.return_value
        assert container.account_name == ACCOUNT_NAME

    def test_sas_token_client(self, mock_blob_service_client):
        BlobContainer(account_name=ACCOUNT_NAME, sas_token=SAS_TOKEN)

        call_kwargs = mock_blob_service_client.call_args.kwargs
        assert call_kwargs["account_url"] == f"https://{ACCOUNT_NAME}.blob.core.windows.net?{SAS_TOKEN}"
        assert call_kwargs["credential"] is None

    def test_missing_authentication(self, mock_blob_service_client):
        with pytest.raises(AuthenticationError) as exc_info:
            BlobContainer(account_name=ACCOUNT_NAME)

        assert exc_info.value.code == 401
        assert exc_info.value.message == "Missing authentication"
        mock_blob_service_client.assert_not_called()

    def test_sdk_construction_error(self, mock_blob_service_client):
        mock_blob_service_client.side_effect = ValueError("Invalid URL")

        with pytest.raises(StorageError) as exc_info:
            BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

        assert exc_info.value.code == 500
        assert exc_info.value.message == "Invalid URL"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_from_settings(self, mock_blob_service_client):
        settings = StorageSettings(
            storage_account_name=ACCOUNT_NAME,
            storage_account_key=ACCOUNT_KEY,
            storage_endpoint_suffix="core.usgovcloudapi.net"
        )

        BlobContainer.from_settings(settings)

        call_kwargs = mock_blob_service_client.call_args.kwargs
        assert call_kwargs["account_url"] == f"https://{ACCOUNT_NAME}.blob.core.usgovcloudapi.net"

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_client(self, mock_blob_service_client):
        client = mock_blob_service_client.return_value
        client.close = AsyncMock()

        async with BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY) as container:
            assert container.client is client

        client.close.assert_awaited_once()


class TestBlobContainerOperations:
    """Test cases for container and blob operations against a mocked SDK."""

    @pytest.fixture
    def blob_container(self, mock_blob_service_client):
        return BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

    @pytest.fixture
    def mock_container_client(self, blob_container):
        container_client = MagicMock()
        blob_container.client.get_container_client.return_value = container_client
        return container_client

    @pytest.fixture
    def mock_blob_client(self, blob_container):
        blob_client = MagicMock()
        blob_container.client.get_blob_client.return_value = blob_client
        return blob_client

    @pytest.mark.asyncio
    async def test_create_container(self, blob_container, mock_container_client):
        mock_container_client.create_container = AsyncMock(side_effect=respond_with_request_id("req-1"))

        request_id = await blob_container.create_container("reports")

        assert request_id == "req-1"
        blob_container.client.get_container_client.assert_called_once_with("reports")
        mock_container_client.create_container.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_container_request_id_from_headers(self, blob_container, mock_container_client):
        mock_container_client.create_container = AsyncMock(return_value={"request_id": "req-2"})

        assert await blob_container.create_container("reports") == "req-2"

    @pytest.mark.asyncio
    async def test_create_existing_container(self, blob_container, mock_container_client):
        mock_container_client.create_container = AsyncMock(
            side_effect=azure_error(ResourceExistsError, "The specified container already exists.", 409)
        )

        with pytest.raises(ConflictError) as exc_info:
            await blob_container.create_container("reports")

        assert exc_info.value.code == 409

    @pytest.mark.asyncio
    async def test_list_containers(self, blob_container):
        blob_container.client.list_containers.return_value = AsyncItems(
            [SimpleNamespace(name="logs"), SimpleNamespace(name="reports")]
        )

        assert await blob_container.list_containers() == ["logs", "reports"]

    @pytest.mark.asyncio
    async def test_list_containers_error_while_paging(self, blob_container):
        blob_container.client.list_containers.return_value = AsyncItems(
            [SimpleNamespace(name="logs")],
            error=azure_error(HttpResponseError, "Server busy", 503)
        )

        with pytest.raises(StorageError) as exc_info:
            await blob_container.list_containers()

        assert exc_info.value.code == 503

    @pytest.mark.asyncio
    async def test_iter_containers_is_lazy(self, blob_container):
        blob_container.client.list_containers.return_value = AsyncItems(
            [SimpleNamespace(name="first")],
            error=azure_error(HttpResponseError, "Server busy", 503)
        )

        iterator = blob_container.iter_containers()
        assert await iterator.__anext__() == "first"
        with pytest.raises(StorageError):
            await iterator.__anext__()

    @pytest.mark.asyncio
    async def test_create_blob_uses_byte_length(self, blob_container, mock_blob_client):
        mock_blob_client.upload_blob = AsyncMock(side_effect=respond_with_request_id("req-3"))
        content = "naïve;café\n"

        request_id = await blob_container.create_blob("reports", "a.csv", content)

        assert request_id == "req-3"
        blob_container.client.get_blob_client.assert_called_once_with(container="reports", blob="a.csv")
        args, kwargs = mock_blob_client.upload_blob.call_args
        assert args[0] == content.encode("utf-8")
        assert kwargs["length"] == len(content.encode("utf-8"))
        assert kwargs["length"] > len(content)
        assert kwargs["overwrite"] is True

    @pytest.mark.asyncio
    async def test_create_blob_from_bytes(self, blob_container, mock_blob_client):
        mock_blob_client.upload_blob = AsyncMock(return_value={"request_id": "req-4"})

        await blob_container.create_blob("reports", "image.png", b"\x89PNG")

        args, kwargs = mock_blob_client.upload_blob.call_args
        assert args[0] == b"\x89PNG"
        assert kwargs["length"] == 4

    @pytest.mark.asyncio
    async def test_create_blob_missing_container(self, blob_container, mock_blob_client):
        mock_blob_client.upload_blob = AsyncMock(
            side_effect=azure_error(ResourceNotFoundError, "The specified container does not exist.", 404)
        )

        with pytest.raises(NotFoundError):
            await blob_container.create_blob("missing", "a.csv", "x")

    @pytest.mark.asyncio
    async def test_list_blobs(self, blob_container, mock_container_client):
        blobs = [SimpleNamespace(name="a.csv", size=8), SimpleNamespace(name="b.csv", size=3)]
        mock_container_client.list_blobs.return_value = AsyncItems(blobs)

        result = await blob_container.list_blobs("reports")

        assert [blob.name for blob in result] == ["a.csv", "b.csv"]
        mock_container_client.list_blobs.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_get_blob_content(self, blob_container, mock_blob_client):
        mock_blob_client.download_blob = AsyncMock(return_value=FakeDownloader(b"x,y\n", b"1,2\n"))

        content = await blob_container.get_blob_content("reports", "a.csv")

        assert content == "x,y\n1,2\n"
        mock_blob_client.download_blob.assert_awaited_once_with(offset=0)

    @pytest.mark.asyncio
    async def test_get_missing_blob(self, blob_container, mock_blob_client):
        mock_blob_client.download_blob = AsyncMock(
            side_effect=azure_error(ResourceNotFoundError, "The specified blob does not exist.", 404)
        )

        with pytest.raises(NotFoundError) as exc_info:
            await blob_container.get_blob_content("reports", "missing.csv")

        assert exc_info.value.code == 404

    @pytest.mark.asyncio
    async def test_get_blob_forbidden(self, blob_container, mock_blob_client):
        mock_blob_client.download_blob = AsyncMock(
            side_effect=azure_error(HttpResponseError, "AuthorizationPermissionMismatch", 403)
        )

        with pytest.raises(ForbiddenError):
            await blob_container.get_blob_content("reports", "a.csv")

    @pytest.mark.asyncio
    async def test_delete_container(self, blob_container, mock_container_client):
        mock_container_client.delete_container = AsyncMock(return_value=None)

        assert await blob_container.delete_container("reports") is True
        mock_container_client.delete_container.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_blob_includes_snapshots(self, blob_container, mock_blob_client):
        mock_blob_client.delete_blob = AsyncMock(return_value=None)

        assert await blob_container.delete_blob("reports", "a.csv") is True
        mock_blob_client.delete_blob.assert_awaited_once_with(delete_snapshots="include")

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_storage_error(self, blob_container, mock_blob_client):
        mock_blob_client.delete_blob = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(StorageError) as exc_info:
            await blob_container.delete_blob("reports", "a.csv")

        assert exc_info.value.code == 500
        assert exc_info.value.message == "boom"

    @pytest.mark.asyncio
    async def test_failures_logged_to_injected_logger(self, mock_blob_service_client, caplog):
        logger = logging.getLogger("tests.injected")
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY, logger=logger)
        container_client = MagicMock()
        container_client.delete_container = AsyncMock(
            side_effect=azure_error(ResourceNotFoundError, "The specified container does not exist.", 404)
        )
        container.client.get_container_client.return_value = container_client

        with caplog.at_level(logging.ERROR, logger="tests.injected"):
            with pytest.raises(NotFoundError):
                await container.delete_container("missing")

        records = [r for r in caplog.records if r.name == "tests.injected"]
        assert len(records) == 1
        assert records[0].operation == "delete_container"
        assert records[0].status_code == 404


class TestBlobContainerSas:
    """Test cases for SAS token generation on the facade."""

    def test_container_token(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

        params = parse_qs(container.generate_sas_token("reports", expire_minutes=10))

        assert params["sr"] == ["c"]
        assert params["sp"] == ["r"]

    def test_blob_token(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

        params = parse_qs(container.generate_sas_token("reports", "a.csv", permissions="rw"))

        assert params["sr"] == ["b"]
        assert params["sp"] == ["rw"]

    def test_sas_authenticated_facade_cannot_sign(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, sas_token=SAS_TOKEN)

        with pytest.raises(AuthenticationError):
            container.generate_sas_token("reports")

    def test_get_sas_url(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)
        blob_url = f"https://{ACCOUNT_NAME}.blob.core.windows.net/reports/a.csv"
        container.client.get_blob_client.return_value = SimpleNamespace(url=blob_url)

        url = container.get_sas_url("reports", "a.csv", expire_minutes=10)

        parsed = urlparse(url)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == blob_url
        assert parse_qs(parsed.query)["sr"] == ["b"]

    def test_get_container_sas_url(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)
        container_url = f"https://{ACCOUNT_NAME}.blob.core.windows.net/reports"
        container.client.get_container_client.return_value = SimpleNamespace(url=container_url)

        url = container.get_sas_url("reports")

        assert url.startswith(f"{container_url}?")
        assert "sr=c" in url

    def test_malformed_account_key(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key="not base64!!")

        with pytest.raises(StorageError) as exc_info:
            container.generate_sas_token("reports")

        assert exc_info.value.code == 500
        assert exc_info.value.original_error is not None

    def test_malformed_account_key_in_sas_url(self, mock_blob_service_client, caplog):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key="not base64!!")

        with caplog.at_level(logging.ERROR, logger="storagelib"):
            with pytest.raises(StorageError) as exc_info:
                container.get_sas_url("reports", "a.csv")

        assert exc_info.value.code == 500
        failures = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(failures) == 1
        assert failures[0].operation == "get_sas_url"
        assert failures[0].blob_name == "a.csv"

    def test_unsupported_permission(self, mock_blob_service_client):
        container = BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

        with pytest.raises(ValidationError) as exc_info:
            container.generate_sas_token("reports", permissions="zz")

        assert exc_info.value.code == 400
        assert exc_info.value.message == "Invalid permission: z"


class TestBlobContainerRoundTrip:
    """Scenario tests against an in-memory blob service."""

    @pytest.fixture
    def blob_container(self):
        with patch('storagelib.storage.blob_container.BlobServiceClient', return_value=InMemoryBlobService()):
            yield BlobContainer(account_name=ACCOUNT_NAME, account_key=ACCOUNT_KEY)

    @pytest.mark.asyncio
    async def test_upload_download_delete(self, blob_container):
        await blob_container.create_container("c1")
        await blob_container.create_blob("c1", "a.csv", "x,y\n1,2\n")

        assert await blob_container.get_blob_content("c1", "a.csv") == "x,y\n1,2\n"

        assert await blob_container.delete_blob("c1", "a.csv") is True
        assert await blob_container.list_blobs("c1") == []

    @pytest.mark.asyncio
    async def test_content_round_trip_is_exact(self, blob_container):
        content = "date;description\n2020-05-01 00:00:00Z;Line 1 – ünïcode ✓\n"
        await blob_container.create_container("c1")
        await blob_container.create_blob("c1", "testblob.csv", content)

        assert await blob_container.get_blob_content("c1", "testblob.csv") == content

    @pytest.mark.asyncio
    async def test_blob_count_follows_creates_and_deletes(self, blob_container):
        await blob_container.create_container("c1")
        for i in range(3):
            await blob_container.create_blob("c1", f"blob{i}.csv", f"line {i}\n")

        assert len(await blob_container.list_blobs("c1")) == 3

        await blob_container.delete_blob("c1", "blob1.csv")
        names = [blob.name for blob in await blob_container.list_blobs("c1")]
        assert names == ["blob0.csv", "blob2.csv"]

    @pytest.mark.asyncio
    async def test_deleted_container_loses_its_blobs(self, blob_container):
        await blob_container.create_container("c1")
        await blob_container.create_blob("c1", "a.csv", "x")
        await blob_container.delete_container("c1")

        assert "c1" not in await blob_container.list_containers()
        with pytest.raises(NotFoundError):
            await blob_container.list_blobs("c1")

    @pytest.mark.asyncio
    async def test_recreating_container_conflicts(self, blob_container):
        await blob_container.create_container("c1")

        with pytest.raises(ConflictError):
            await blob_container.create_container("c1")

    @pytest.mark.asyncio
    async def test_create_returns_request_ids(self, blob_container):
        assert await blob_container.create_container("c1")
        assert await blob_container.create_blob("c1", "a.csv", "x")
