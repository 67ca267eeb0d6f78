"""
Decorator for tracking storage operation metrics.
"""
import time
import functools
from filemanager.utils.metrics import (
    storage_errors_total,
    storage_operation_duration_seconds
)


def track_storage_operation(operation: str):
    """
    Decorator to track latency and failures of an async storage operation.

    Args:
        operation: Operation name (exists, remove, remove_directory, upload, ...)
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                storage_errors_total.labels(error_type=type(e).__name__).inc()
                raise
            finally:
                storage_operation_duration_seconds.labels(
                    operation=operation
                ).observe(time.time() - start_time)

        return wrapper
    return decorator
