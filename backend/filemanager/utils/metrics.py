"""
Prometheus metrics definitions for the file manager.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# Upload metrics
files_uploaded_total = Counter(
    'filemanager_files_uploaded_total',
    'Total files uploaded',
    ['source']
)

# Removal metrics
files_removed_total = Counter(
    'filemanager_files_removed_total',
    'Total objects deleted from storage'
)

directory_removals_total = Counter(
    'filemanager_directory_removals_total',
    'Total directory removals',
    ['status']
)

# Error metrics
storage_errors_total = Counter(
    'filemanager_storage_errors_total',
    'Total storage errors',
    ['error_type']
)

# Latency
storage_operation_duration_seconds = Histogram(
    'filemanager_storage_operation_duration_seconds',
    'Storage operation duration in seconds',
    ['operation'],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)
