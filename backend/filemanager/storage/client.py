"""
S3-compatible storage client.

ObjectStoreClient names the four S3 operations the file manager needs,
spelled the way boto3 spells them, so a plain ``boto3.client("s3")``
satisfies it without an adapter. Tests bind it to a MagicMock.

The client must be safe for concurrent use from several threads: directory
removal runs its delete tasks through asyncio.to_thread. boto3 clients are.
"""
import logging
from typing import Any, Mapping, Protocol, runtime_checkable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError

from filemanager.config import Settings
from filemanager.errors import InvalidConfigError

logger = logging.getLogger(__name__)


@runtime_checkable
class ObjectStoreClient(Protocol):
    """Capability interface over an S3-compatible object store."""

    def put_object(self, **kwargs: Any) -> Mapping[str, Any]:
        """Bucket, Key, Body, ContentType, ACL."""
        ...

    def list_objects_v2(self, **kwargs: Any) -> Mapping[str, Any]:
        """Bucket, Prefix and, for later pages, ContinuationToken."""
        ...

    def head_object(self, **kwargs: Any) -> Mapping[str, Any]:
        """Bucket, Key. Metadata-only existence probe."""
        ...

    def delete_object(self, **kwargs: Any) -> Mapping[str, Any]:
        """Bucket, Key."""
        ...


def build_s3_client(settings: Settings) -> ObjectStoreClient:
    """
    Create a boto3 S3 client from settings.

    Endpoint and credentials may be left unset, in which case boto3 falls
    back to its usual resolution chain (env vars, shared config, IAM role).

    Raises:
        InvalidConfigError: if botocore rejects the client configuration
    """
    try:
        client = boto3.client(
            's3',
            endpoint_url=settings.s3_endpoint or None,
            aws_access_key_id=settings.s3_access_key or None,
            aws_secret_access_key=settings.s3_secret_key or None,
            region_name=settings.s3_region or None,
            config=Config(signature_version='s3v4')
        )
    except (BotoCoreError, ValueError) as e:
        logger.error(f"Failed to initialize S3 client: {e}")
        raise InvalidConfigError() from e

    logger.info(f"S3 client initialized for bucket: {settings.s3_bucket}")
    return client
