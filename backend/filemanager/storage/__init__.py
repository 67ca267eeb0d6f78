"""
Storage module for S3-compatible object storage.

The file manager depends only on the ObjectStoreClient capability
interface; build_s3_client() binds it to boto3.
"""
from filemanager.storage.client import ObjectStoreClient, build_s3_client

__all__ = ["ObjectStoreClient", "build_s3_client"]
