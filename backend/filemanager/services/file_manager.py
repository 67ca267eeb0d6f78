"""
File manager service.

Uploads files to an S3-compatible bucket and serves them from a CDN:
- upload() / upload_from_multipart_form() / upload_from_url()
  return the public CDN URL of the stored object
- remove() deletes one object by its public URL
- remove_directory() deletes every object under a key prefix

Storage calls are blocking boto3 calls, dispatched to worker threads with
asyncio.to_thread. Only remove_directory() fans out; everything else runs
sequentially within one call.
"""
import asyncio
import logging
import os
import time
from pathlib import PurePosixPath
from typing import BinaryIO, Optional, Tuple, Union

import httpx
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from filemanager.config import (
    DEFAULT_ACL,
    DEFAULT_BASE_PATH,
    DEFAULT_HTTP_TIMEOUT,
    FileManagerConfig,
    Settings,
)
from filemanager.errors import (
    FailedToCheckIfFileExistsError,
    FailedToRemoveFileError,
    FailedToRemoveFilesError,
    FailedToUploadFileError,
    FailedToUploadFileFromMultipartFormError,
    FailedToUploadFileFromURLError,
    InvalidConfigError,
    MissedBucketNameError,
    MissedStorageClientError,
    NotFoundError,
    UnexpectedError,
    translate_storage_error,
)
from filemanager.storage.client import ObjectStoreClient, build_s3_client
from filemanager.utils.logging import (
    log_directory_removed,
    log_file_removed,
    log_file_uploaded,
    log_storage_failure,
)
from filemanager.utils.metrics import (
    directory_removals_total,
    files_removed_total,
    files_uploaded_total,
)
from filemanager.utils.paths import (
    basename_from_url,
    file_absolute_path,
    filename_from_url,
    normalize_prefix,
)
from filemanager.utils.storage_metrics import track_storage_operation

logger = logging.getLogger(__name__)

FileContent = Union[bytes, BinaryIO]

# Room for boundaries, part headers and small form fields around the file
MULTIPART_OVERHEAD = 64 << 10


class FileManager:
    """
    File manager bound to one bucket and one CDN origin.

    Construction validates the configuration and raises InvalidConfigError
    (caused by MissedBucketNameError, MissedStorageClientError,
    MissedCDNURLError or InvalidCDNURLError) before any operation can run.

    The storage client and HTTP client are shared by all in-flight calls
    and must be safe for concurrent use.
    """

    def __init__(
        self,
        client: Optional[ObjectStoreClient],
        bucket: str,
        cdn_url: str,
        *,
        base_path: Optional[str] = DEFAULT_BASE_PATH,
        max_file_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        if not bucket:
            raise InvalidConfigError() from MissedBucketNameError()
        if client is None:
            raise InvalidConfigError() from MissedStorageClientError()

        self._config = FileManagerConfig.build(
            bucket=bucket,
            cdn_url=cdn_url,
            base_path=base_path,
            max_file_size=max_file_size,
            max_concurrency=max_concurrency,
        )
        self._s3 = client
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._http_timeout = http_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "FileManager":
        """Build a file manager backed by a boto3 S3 client."""
        return cls(
            build_s3_client(settings),
            settings.s3_bucket,
            settings.cdn_url,
            base_path=settings.base_path,
            max_file_size=settings.max_file_size,
            max_concurrency=settings.max_concurrency,
            http_timeout=settings.http_timeout,
        )

    @property
    def config(self) -> FileManagerConfig:
        return self._config

    @property
    def bucket(self) -> str:
        return self._config.bucket

    async def aclose(self) -> None:
        """Close the HTTP client if this file manager created it."""
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "FileManager":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def file_url(self, key: str) -> str:
        """Public CDN URL of an object key."""
        return file_absolute_path(self._config.cdn_url, self._config.base_path, key)

    def key_from_url(self, file_url: str) -> str:
        """Object key of a public CDN URL; foreign URLs are returned unchanged."""
        return filename_from_url(self._config.cdn_url, file_url, self._config.base_path)

    # ========================================================================
    # Uploads
    # ========================================================================

    @track_storage_operation("upload")
    async def upload(
        self,
        content: FileContent,
        key: str,
        content_type: Optional[str] = None,
        *,
        source: str = "bytes",
    ) -> str:
        """
        Upload content to the bucket with the default public-read ACL.

        Args:
            content: Bytes or a seekable binary file object
            key: Object key (surrounding slashes are trimmed)
            content_type: MIME type stored with the object
            source: Upload source label for logs and metrics

        Returns:
            Public CDN URL of the uploaded object

        Raises:
            FailedToUploadFileError: caused by the storage client error
        """
        key = key.strip("/")
        params = {
            "ACL": DEFAULT_ACL,
            "Body": content,
            "Bucket": self.bucket,
            "Key": key,
        }
        if content_type:
            params["ContentType"] = content_type

        start_time = time.time()
        try:
            await asyncio.to_thread(self._s3.put_object, **params)
        except Exception as e:
            log_storage_failure(logger, "upload", e, bucket=self.bucket, key=key)
            raise FailedToUploadFileError(f"failed to upload file: {key}") from e

        url = self.file_url(key)
        files_uploaded_total.labels(source=source).inc()
        log_file_uploaded(
            logger,
            bucket=self.bucket,
            key=key,
            url=url,
            source=source,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return url

    async def upload_from_multipart_form(self, request: Request, field_name: str) -> str:
        """
        Upload the file sent in one field of a multipart form.

        The file is limited to max_file_size. A declared request body larger
        than max_file_size plus MULTIPART_OVERHEAD is rejected before parsing.
        The object key is the client-supplied filename with any directory
        components stripped.

        Args:
            request: Starlette/FastAPI request carrying multipart/form-data
            field_name: Name of the form field that holds the file

        Returns:
            Public CDN URL of the uploaded object

        Raises:
            FailedToUploadFileFromMultipartFormError: on any parse or upload failure
        """
        max_file_size = self._config.max_file_size

        declared_length = _parse_content_length(request.headers.get("content-length"))
        max_body_size = max_file_size + MULTIPART_OVERHEAD
        if declared_length is not None and declared_length > max_body_size:
            raise FailedToUploadFileFromMultipartFormError(
                f"request body of {declared_length} bytes exceeds limit of {max_body_size} bytes"
            )

        try:
            async with request.form() as form:
                upload_file = form.get(field_name)
                if not isinstance(upload_file, UploadFile):
                    raise FailedToUploadFileFromMultipartFormError(
                        f"no file in form field {field_name!r}"
                    )

                size = upload_file.size
                if size is None:
                    size = await asyncio.to_thread(_stream_size, upload_file.file)
                if size > max_file_size:
                    raise FailedToUploadFileFromMultipartFormError(
                        f"file of {size} bytes exceeds limit of {max_file_size} bytes"
                    )

                filename = _client_basename(upload_file.filename)
                if not filename:
                    raise FailedToUploadFileFromMultipartFormError(
                        f"missing filename in form field {field_name!r}"
                    )

                await upload_file.seek(0)
                try:
                    return await self.upload(
                        upload_file.file,
                        filename,
                        upload_file.content_type,
                        source="multipart",
                    )
                except FailedToUploadFileError as e:
                    raise FailedToUploadFileFromMultipartFormError() from e
        except (MultiPartException, HTTPException) as e:
            raise FailedToUploadFileFromMultipartFormError(
                f"failed to parse multipart form: {e}"
            ) from e

    async def upload_from_url(self, file_url: str) -> str:
        """
        Download a remote file and upload it to the bucket.

        Redirects are followed, also on a caller-supplied http client. The
        body is buffered in memory and the read stops once it passes
        max_file_size. The object key is the last segment of the URL path;
        the content type is taken from the response.

        Raises:
            FailedToUploadFileFromURLError: if the download fails, returns a
                non-2xx status, is empty, is larger than max_file_size, does
                not match its declared Content-Length, or the upload fails
        """
        key = basename_from_url(file_url)
        if not key:
            raise FailedToUploadFileFromURLError(f"no filename in URL {file_url!r}")

        content, content_type = await self._download(file_url)

        try:
            return await self.upload(content, key, content_type, source="url")
        except FailedToUploadFileError as e:
            raise FailedToUploadFileFromURLError() from e

    async def _download(self, file_url: str) -> Tuple[bytes, Optional[str]]:
        max_file_size = self._config.max_file_size
        client = self._get_http_client()

        try:
            async with client.stream("GET", file_url, follow_redirects=True) as response:
                response.raise_for_status()

                declared_length = _parse_content_length(response.headers.get("content-length"))
                if declared_length is not None and declared_length > max_file_size:
                    raise FailedToUploadFileFromURLError(
                        f"remote file of {declared_length} bytes exceeds limit of {max_file_size} bytes"
                    )

                chunks = []
                received = 0
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > max_file_size:
                        raise FailedToUploadFileFromURLError(
                            f"remote file of more than {max_file_size} bytes exceeds limit"
                        )
                    chunks.append(chunk)
                content = b"".join(chunks)
                content_type = response.headers.get("content-type")
                # Content-Length counts encoded bytes; httpx hands back decoded ones
                encoded = response.headers.get("content-encoding", "identity") != "identity"
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            log_storage_failure(logger, "download", e, url=file_url)
            raise FailedToUploadFileFromURLError(f"failed to download {file_url}: {e}") from e

        if not content:
            raise FailedToUploadFileFromURLError(f"remote file {file_url} is empty")
        if declared_length is not None and not encoded and declared_length != len(content):
            raise FailedToUploadFileFromURLError(
                f"remote file {file_url} declared {declared_length} bytes, got {len(content)}"
            )

        return content, content_type

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._http_timeout,
                follow_redirects=True
            )
        return self._http_client

    # ========================================================================
    # Removal
    # ========================================================================

    @track_storage_operation("exists")
    async def exists(self, key: str) -> bool:
        """
        Check if an object exists in the bucket.

        A missing object is not an error.

        Raises:
            FailedToCheckIfFileExistsError: caused by the translated storage error
        """
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=self.bucket, Key=key)
        except Exception as e:
            err = translate_storage_error(e)
            if isinstance(err, NotFoundError):
                return False
            raise FailedToCheckIfFileExistsError(
                f"failed to check if file exists: {key}"
            ) from err
        return True

    async def remove(self, file_url: str) -> None:
        """
        Remove an object by its public CDN URL.

        Removing an object that does not exist succeeds.
        """
        await self.remove_one(self.key_from_url(file_url))

    @track_storage_operation("remove")
    async def remove_one(self, key: str) -> None:
        """
        Remove an object by key.

        Idempotent: a missing object is a no-op. The existence check and the
        delete are two separate calls, not an atomic operation.

        Raises:
            FailedToRemoveFileError: caused by the existence check or delete error
        """
        if not key:
            return

        try:
            found = await self.exists(key)
        except FailedToCheckIfFileExistsError as e:
            raise FailedToRemoveFileError(f"failed to remove file: {key}") from e

        if not found:
            log_file_removed(logger, bucket=self.bucket, key=key, existed=False)
            return

        try:
            await asyncio.to_thread(self._s3.delete_object, Bucket=self.bucket, Key=key)
        except Exception as e:
            err = translate_storage_error(e)
            if isinstance(err, NotFoundError):
                # Deleted by someone else since the existence check
                log_file_removed(logger, bucket=self.bucket, key=key, existed=False)
                return
            raise FailedToRemoveFileError(f"failed to remove file: {key}") from err

        files_removed_total.inc()
        log_file_removed(logger, bucket=self.bucket, key=key)

    @track_storage_operation("remove_directory")
    async def remove_directory(self, prefix: str) -> None:
        """
        Remove every object whose key starts with prefix.

        All keys are listed first, then removed concurrently, at most
        max_concurrency at a time. Every removal runs to completion even when
        others fail; a missing prefix or an empty listing is a success.

        Raises:
            FailedToRemoveFilesError: listing failed (caused by the translated
                error), or one or more removals failed (every failure is in
                ``errors``)
        """
        prefix = normalize_prefix(prefix)
        start_time = time.time()

        try:
            keys = await self._list_keys(prefix)
        except Exception as e:
            err = translate_storage_error(e)
            if not isinstance(err, NotFoundError):
                directory_removals_total.labels(status="failed").inc()
                log_storage_failure(logger, "list", err, bucket=self.bucket, prefix=prefix)
                raise FailedToRemoveFilesError(
                    f"failed to list files under {prefix!r}"
                ) from err
            keys = ()  # directory does not exist, nothing to remove

        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def remove_key(key: str) -> None:
            async with semaphore:
                await self.remove_one(key)

        # Each coroutine gets its own key as an argument
        results = await asyncio.gather(
            *(remove_key(key) for key in keys),
            return_exceptions=True
        )
        errors = [result for result in results if isinstance(result, BaseException)]

        log_directory_removed(
            logger,
            bucket=self.bucket,
            prefix=prefix,
            total=len(keys),
            failed=len(errors),
            duration_ms=(time.time() - start_time) * 1000,
        )

        if errors:
            directory_removals_total.labels(status="failed").inc()
            raise FailedToRemoveFilesError(errors=errors)

        directory_removals_total.labels(status="success").inc()

    async def _list_keys(self, prefix: str) -> Tuple[str, ...]:
        """List every key under prefix, following continuation tokens."""
        keys = []
        params = {"Bucket": self.bucket, "Prefix": prefix}

        while True:
            response = await asyncio.to_thread(self._s3.list_objects_v2, **params)
            keys.extend(obj["Key"] for obj in response.get("Contents", []))

            if not response.get("IsTruncated"):
                break

            token = response.get("NextContinuationToken")
            if not token:
                raise UnexpectedError(
                    f"listing of {prefix!r} is truncated but has no continuation token"
                )
            params["ContinuationToken"] = token

        return tuple(keys)


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _stream_size(fileobj: BinaryIO) -> int:
    position = fileobj.tell()
    fileobj.seek(0, os.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(position)
    return size


def _client_basename(filename: Optional[str]) -> str:
    # Some browsers send the full client path, with either separator
    return PurePosixPath((filename or "").replace("\\", "/")).name


# Singleton instance
_file_manager: Optional[FileManager] = None


def get_file_manager() -> FileManager:
    """
    Get the process-wide file manager built from settings.

    Raises:
        InvalidConfigError: if settings are incomplete
    """
    global _file_manager
    if _file_manager is None:
        from filemanager.config import settings

        _file_manager = FileManager.from_settings(settings)
    return _file_manager
