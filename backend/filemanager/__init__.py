"""
S3-compatible file manager.

Uploads files to a bucket, derives their public CDN URLs, and removes
objects one by one or by prefix.
"""
from filemanager.config import FileManagerConfig, Settings
from filemanager.errors import (
    FailedToCheckIfFileExistsError,
    FailedToRemoveFileError,
    FailedToRemoveFilesError,
    FailedToUploadFileError,
    FailedToUploadFileFromMultipartFormError,
    FailedToUploadFileFromURLError,
    FileManagerError,
    InvalidCDNURLError,
    InvalidConfigError,
    MissedBucketNameError,
    MissedCDNURLError,
    MissedStorageClientError,
    NotFoundError,
    UnexpectedError,
    translate_storage_error,
)
from filemanager.services.file_manager import FileManager, get_file_manager
from filemanager.storage.client import ObjectStoreClient, build_s3_client

__version__ = "0.1.0"

__all__ = [
    "FileManager",
    "FileManagerConfig",
    "Settings",
    "ObjectStoreClient",
    "build_s3_client",
    "get_file_manager",
    "translate_storage_error",
    "FileManagerError",
    "InvalidConfigError",
    "MissedBucketNameError",
    "MissedStorageClientError",
    "MissedCDNURLError",
    "InvalidCDNURLError",
    "NotFoundError",
    "UnexpectedError",
    "FailedToCheckIfFileExistsError",
    "FailedToUploadFileError",
    "FailedToUploadFileFromURLError",
    "FailedToUploadFileFromMultipartFormError",
    "FailedToRemoveFileError",
    "FailedToRemoveFilesError",
]
