"""
File manager error taxonomy.

Every error raised by the file manager derives from FileManagerError.
Underlying causes are attached with ``raise ... from ...`` and never
discarded, so callers can ask "is this error of kind X" without losing
the original diagnostic:

    try:
        await fm.remove_directory("avatars/42")
    except FailedToRemoveFilesError as e:
        if e.matches(UnexpectedError):
            ...
"""
from typing import Iterable, Optional, Type

from botocore.exceptions import ClientError


# Codes botocore surfaces for a missing object. "NotFound" is what the
# S3 HEAD endpoint reports on most providers; "404" is what botocore falls
# back to when the HEAD response has no body; "NoSuchKey" comes from GET/DELETE.
NOT_FOUND_CODES = frozenset({"NotFound", "404", "NoSuchKey"})


class FileManagerError(Exception):
    """Base class for all file manager errors."""

    default_message = "file manager error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)

    def matches(self, kind: Type[BaseException]) -> bool:
        """
        Check whether this error, or anything it wraps, is of the given kind.

        Walks the ``__cause__`` chain. Aggregate errors also check every
        child failure.
        """
        return _matches(self, kind)


# ============================================================================
# Configuration errors
# ============================================================================

class InvalidConfigError(FileManagerError):
    default_message = "invalid S3 client config"


class ConfigFieldError(FileManagerError):
    """A single configuration field is missing or invalid."""

    default_message = "invalid config field"


class MissedBucketNameError(ConfigFieldError):
    default_message = "missed bucket name"


class MissedStorageClientError(ConfigFieldError):
    default_message = "missed storage client"


class MissedCDNURLError(ConfigFieldError):
    default_message = "missed CDN URL"


class InvalidCDNURLError(ConfigFieldError):
    default_message = "invalid CDN URL, must start with http:// or https://"


# ============================================================================
# Storage errors
# ============================================================================

class NotFoundError(FileManagerError):
    default_message = "not found"


class UnexpectedError(FileManagerError):
    default_message = "unexpected error"


class FailedToCheckIfFileExistsError(FileManagerError):
    default_message = "failed to check if file exists"


class FailedToUploadFileError(FileManagerError):
    default_message = "failed to upload file"


class FailedToUploadFileFromURLError(FailedToUploadFileError):
    default_message = "failed to upload file from URL"


class FailedToUploadFileFromMultipartFormError(FailedToUploadFileError):
    default_message = "failed to upload file from multipart form"


class FailedToRemoveFileError(FileManagerError):
    default_message = "failed to remove file"


class FailedToRemoveFilesError(FileManagerError):
    """
    Batch removal failure.

    Holds every failed removal task in ``errors``, not only the first one.
    """

    default_message = "failed to remove files"

    def __init__(self, message: Optional[str] = None, errors: Iterable[BaseException] = ()):
        self.errors = tuple(errors)
        if message is None and self.errors:
            message = f"{self.default_message}: {len(self.errors)} task(s) failed"
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        details = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        return f"{base} [{details}]"


def _matches(exc: Optional[BaseException], kind: Type[BaseException]) -> bool:
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, kind):
            return True
        if isinstance(exc, FailedToRemoveFilesError):
            if any(_matches(child, kind) for child in exc.errors):
                return True
        exc = exc.__cause__
    return False


def error_code(exc: BaseException) -> Optional[str]:
    """Return the provider error code of a botocore ClientError, if any."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def translate_storage_error(exc: BaseException) -> BaseException:
    """
    Map an error returned by the storage client onto the internal taxonomy.

    - provider error with a not-found code -> NotFoundError
    - any other provider error -> UnexpectedError caused by the original
    - anything else (transport errors etc.) is returned unchanged
    """
    if not isinstance(exc, ClientError):
        return exc

    code = error_code(exc)
    if code in NOT_FOUND_CODES:
        translated: FileManagerError = NotFoundError()
    else:
        translated = UnexpectedError(f"unexpected error: {code}")
    translated.__cause__ = exc
    return translated
