"""Integrations module for external storage.

Provides unified access to storage systems through fsspec abstraction.
"""

from taxlogic.integrations.storage import (
    delete,
    exists,
    get_filesystem,
    list_files,
    read_bytes,
    write_bytes,
)

__all__ = [
    "delete",
    "exists",
    "get_filesystem",
    "list_files",
    "read_bytes",
    "write_bytes",
]
