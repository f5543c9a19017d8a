"""Storage integration using fsspec for filesystem abstraction.

Provides unified access to local filesystem and cloud storage (S3, GCS)
through fsspec's protocol detection. Used for persisted interview
snapshots and exported calculation notes. All operations are synchronous
and bounded; async callers wrap them in ``asyncio.to_thread``.
"""

import os
from datetime import datetime, timezone
from urllib.parse import urlparse

import fsspec


def get_filesystem(url: str) -> fsspec.AbstractFileSystem:
    """Get filesystem for URL, auto-detecting protocol.

    Args:
        url: Storage URL (file://, s3://, gs://, memory://, or local path)

    Returns:
        Filesystem instance for the protocol

    Examples:
        get_filesystem("s3://bucket/path") -> S3FileSystem
        get_filesystem("/local/path") -> LocalFileSystem
        get_filesystem("file:///local/path") -> LocalFileSystem
    """
    parsed = urlparse(url)

    if not parsed.scheme or parsed.scheme == "file":
        return fsspec.filesystem("file")

    return fsspec.filesystem(parsed.scheme)


def _is_local(url: str) -> bool:
    parsed = urlparse(url)
    return not parsed.scheme or parsed.scheme == "file"


def build_full_path(url: str, path: str) -> str:
    """Build full path from base URL and relative path.

    Args:
        url: Base storage URL
        path: Relative path within storage

    Returns:
        Full path for filesystem operations
    """
    parsed = urlparse(url)

    if _is_local(url):
        base = parsed.path if parsed.path else url
        if path:
            return os.path.join(base, path)
        return base

    # Remote storage - combine netloc and path
    base = f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path
    if path:
        return f"{base.rstrip('/')}/{path.lstrip('/')}"
    return base


def read_bytes(url: str, path: str = "") -> bytes:
    """Read file bytes from storage.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)
    with fs.open(full_path, "rb") as f:
        return f.read()


def write_bytes(url: str, path: str, content: bytes) -> str:
    """Write file bytes to storage, creating parent directories.

    Returns:
        Full storage path written to.
    """
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)
    directory = os.path.dirname(full_path) if _is_local(url) else full_path.rsplit("/", 1)[0]
    if directory:
        fs.makedirs(directory, exist_ok=True)
    with fs.open(full_path, "wb") as f:
        f.write(content)
    return full_path


def exists(url: str, path: str = "") -> bool:
    return get_filesystem(url).exists(build_full_path(url, path))


def delete(url: str, path: str) -> bool:
    """Delete a file. Returns False when it did not exist."""
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)
    if not fs.exists(full_path):
        return False
    fs.rm(full_path)
    return True


def list_files(url: str, path: str = "") -> list[dict]:
    """List files in storage path.

    Args:
        url: Base storage URL
        path: Subdirectory path (optional)

    Returns:
        List of file info dicts with name, path, size, type, mtime
    """
    fs = get_filesystem(url)
    full_path = build_full_path(url, path)

    if not fs.exists(full_path):
        return []

    try:
        items = fs.ls(full_path, detail=True)
    except FileNotFoundError:
        return []

    result = []
    for item in items:
        if item.get("type") == "directory":
            continue

        item_path = item.get("name", "")
        name = os.path.basename(item_path)

        mtime = item.get("mtime") or item.get("created")
        if isinstance(mtime, (int, float)):
            mtime = datetime.fromtimestamp(mtime, tz=timezone.utc)
        elif mtime is None:
            mtime = datetime.now(timezone.utc)

        result.append(
            {
                "name": name,
                "path": item_path,
                "size": item.get("size", 0),
                "type": "file",
                "mtime": mtime,
            }
        )

    return sorted(result, key=lambda entry: entry["name"])
