"""
Path and URL helpers for object keys.

Pure string functions, no I/O.
"""
from pathlib import PurePosixPath
from urllib.parse import urlsplit


def normalize_prefix(prefix: str) -> str:
    """Trim leading and trailing path separators."""
    return (prefix or "").strip("/")


def file_absolute_path(cdn_url: str, base_path: str, key: str) -> str:
    """
    Build the public URL of an object.

    Pattern: {cdn_url}/{base_path}/{key}, every separator exactly once.
    An empty base path is skipped.

    Args:
        cdn_url: CDN origin, e.g. https://cdn.example.com
        base_path: URL path prefix under the origin, e.g. uploads
        key: Object key in the bucket

    Returns:
        Public URL string
    """
    parts = [cdn_url.rstrip("/")]
    for segment in (base_path, key):
        segment = segment.strip("/")
        if segment:
            parts.append(segment)
    return "/".join(parts)


def filename_from_url(cdn_url: str, file_url: str, base_path: str = "") -> str:
    """
    Recover the object key from a public URL built by file_absolute_path().

    Strips the CDN origin, then the base path segment when present.
    A URL not served from cdn_url is returned unchanged.
    """
    cdn_url = cdn_url.rstrip("/")
    if not cdn_url or not file_url.startswith(cdn_url):
        return file_url

    path = file_url[len(cdn_url):]
    if path and not path.startswith("/"):
        # https://cdn.example.com vs https://cdn.example.community
        return file_url

    path = path.strip("/")
    base_path = base_path.strip("/")
    if base_path and path.startswith(base_path + "/"):
        path = path[len(base_path) + 1:]
    return path.strip("/")


def basename_from_url(url: str) -> str:
    """Last path segment of a URL; query string and fragment are ignored."""
    return PurePosixPath(urlsplit(url).path).name
