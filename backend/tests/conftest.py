"""
Test configuration and fixtures.
The storage client is a MagicMock; provider errors are real botocore ClientErrors.
"""
import os

# Keep a developer .env from leaking into tests
os.environ["S3_BUCKET"] = "test-bucket"
os.environ["CDN_URL"] = "https://cdn.example.com"
os.environ["ENVIRONMENT"] = "test"

import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

from filemanager.services.file_manager import FileManager


BUCKET = "test-bucket"
CDN_URL = "https://cdn.example.com"
BASE_PATH = "/uploads"


def client_error(code: str, operation: str = "HeadObject") -> ClientError:
    """Build a botocore ClientError carrying a provider error code."""
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} message"}},
        operation
    )


@pytest.fixture
def s3_client() -> MagicMock:
    """Storage client mock with empty-bucket defaults."""
    client = MagicMock()
    client.put_object.return_value = {}
    client.head_object.return_value = {}
    client.delete_object.return_value = {}
    client.list_objects_v2.return_value = {"KeyCount": 0, "IsTruncated": False}
    return client


@pytest.fixture
def file_manager(s3_client: MagicMock) -> FileManager:
    """File manager bound to the mock storage client."""
    return FileManager(
        s3_client,
        BUCKET,
        CDN_URL,
        base_path=BASE_PATH,
        max_file_size=32 << 20,
    )


@pytest.fixture
def make_client_error():
    """Factory fixture for botocore ClientErrors."""
    return client_error
