"""
Shared fixtures for storagelib tests.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest


@pytest.fixture
def test_logger():
    return logging.getLogger("storagelib.tests")


@pytest.fixture
def mock_blob_service_client():
    """Patch the aio BlobServiceClient used by BlobContainer."""
    with patch('storagelib.storage.blob_container.BlobServiceClient') as mock_client_class:
        mock_client_class.return_value = MagicMock()
        yield mock_client_class


@pytest.fixture
def mock_queue_service_client():
    """Patch the aio QueueServiceClient used by StorageQueue."""
    with patch('storagelib.storage.storage_queue.QueueServiceClient') as mock_client_class:
        mock_client_class.return_value = MagicMock()
        yield mock_client_class
