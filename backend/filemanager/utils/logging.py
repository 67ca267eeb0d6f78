"""
Structured JSON logging for the file manager.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- bucket
- key
- prefix
- duration_ms

Usage:
    from filemanager.utils.logging import configure_logging, log_file_uploaded

    configure_logging('filemanager', 'INFO')
    log_file_uploaded(logger, bucket='media', key='a.png', url=url, duration_ms=45.2)
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""

    _service_name = None
    _configured = False

    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO", stream=None):
        """
        Configure structured JSON logging for the process.

        Args:
            service_name: Service identifier added to every record
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            stream: Output stream (default: stdout)
        """
        if cls._configured:
            return  # Already configured

        cls._service_name = service_name

        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []

        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )

        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(formatter)

        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

        # Add service name to all log records via filter
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True

        handler.addFilter(ServiceFilter())
        cls._configured = True

    @classmethod
    def reset(cls):
        """Forget the current configuration so configure() applies again."""
        cls._service_name = None
        cls._configured = False


def _build_log_extra(
    event: str,
    bucket: Optional[str] = None,
    key: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.

    Args:
        event: Event name (mandatory)
        bucket: Optional bucket name
        key: Optional object key
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields

    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }

    if bucket:
        extra["bucket"] = bucket
    if key:
        extra["key"] = key
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    return extra


def log_file_uploaded(
    logger: logging.Logger,
    bucket: str,
    key: str,
    url: str,
    source: str = "bytes",
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a completed upload.

    Args:
        logger: Logger instance
        bucket: Bucket name (required)
        key: Object key (required)
        url: Public URL of the uploaded object (required)
        source: bytes, multipart or url
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="file_uploaded",
        bucket=bucket,
        key=key,
        duration_ms=duration_ms,
        url=url,
        source=source,
        **kwargs
    )

    logger.info(f"File uploaded: {key}", extra=extra)


def log_file_removed(
    logger: logging.Logger,
    bucket: str,
    key: str,
    existed: bool = True,
    **kwargs
):
    """Log a single-object removal (or the no-op removal of a missing object)."""
    extra = _build_log_extra(
        event="file_removed",
        bucket=bucket,
        key=key,
        existed=existed,
        **kwargs
    )

    if existed:
        logger.debug(f"File removed: {key}", extra=extra)
    else:
        logger.debug(f"File not found, nothing to remove: {key}", extra=extra)


def log_directory_removed(
    logger: logging.Logger,
    bucket: str,
    prefix: str,
    total: int,
    failed: int = 0,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log the outcome of a directory removal.

    Logs at INFO when every object was removed, ERROR otherwise.
    """
    extra = _build_log_extra(
        event="directory_removed" if not failed else "directory_removal_failed",
        bucket=bucket,
        duration_ms=duration_ms,
        prefix=prefix,
        total=total,
        failed=failed,
        **kwargs
    )

    if failed:
        logger.error(
            f"Directory removal failed: {prefix} ({failed} of {total} objects failed)",
            extra=extra
        )
    else:
        logger.info(f"Directory removed: {prefix} ({total} objects)", extra=extra)


def log_storage_failure(
    logger: logging.Logger,
    operation: str,
    error: BaseException,
    bucket: Optional[str] = None,
    key: Optional[str] = None,
    include_traceback: bool = False,
    **kwargs
):
    """
    Log a failed storage operation.

    Args:
        logger: Logger instance
        operation: Operation name (upload, remove, list, ...) (required)
        error: The raised error (required)
        bucket: Optional bucket name
        key: Optional object key
        include_traceback: Whether to include stack trace (default: False)
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="storage_failure",
        bucket=bucket,
        key=key,
        operation=operation,
        error=str(error),
        error_type=type(error).__name__,
        **kwargs
    )

    message = f"Storage failure: {operation} - {error}"
    if include_traceback:
        logger.error(message, extra=extra, exc_info=error)
    else:
        logger.error(message, extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO", stream=None):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level, stream)
