"""Utility functions for the Dropbox files client."""

from __future__ import annotations

import hashlib
import os
from datetime import datetime, timezone
from typing import IO, Optional, Union

from .exceptions import DropboxFileAccessError, DropboxReadError

# =============================================================================
# Constants
# =============================================================================

# Block size used by the remote content hash (4 MiB)
HASH_BLOCK_SIZE: int = 4 * 1024 * 1024

# Chunk size for streaming downloads to disk
DEFAULT_DOWNLOAD_CHUNK_SIZE: int = 64 * 1024

# Uploads through /files/upload are limited to 150 MB
MAX_SIMPLE_UPLOAD_SIZE: int = 150 * 1024 * 1024


# =============================================================================
# Content hash
# =============================================================================


class ContentHasher:
    """Incremental content hash with a hashlib-like interface.

    Data is split into 4 MiB blocks regardless of how it is fed in. Each
    block is SHA-256 digested and the block digests are fed into a
    second SHA-256, whose hex digest is the content hash.

    Examples:
        >>> h = ContentHasher()
        >>> h.update(b"")
        >>> h.hexdigest() == hashlib.sha256(b"").hexdigest()
        True
    """

    name = "dropbox-content-hash"
    digest_size = 32
    block_size = HASH_BLOCK_SIZE

    def __init__(self) -> None:
        self._result = hashlib.sha256()
        self._block = hashlib.sha256()
        self._block_len = 0

    def update(self, data: bytes | bytearray | memoryview) -> None:
        view = memoryview(data).cast("B")
        while view:
            take = min(len(view), HASH_BLOCK_SIZE - self._block_len)
            self._block.update(view[:take])
            self._block_len += take
            view = view[take:]
            if self._block_len == HASH_BLOCK_SIZE:
                self._result.update(self._block.digest())
                self._block = hashlib.sha256()
                self._block_len = 0

    def digest(self) -> bytes:
        # A partial trailing block is folded in on a copy so update() can
        # still be called afterwards.
        result = self._result.copy()
        if self._block_len:
            result.update(self._block.digest())
        return result.digest()

    def hexdigest(self) -> str:
        return self.digest().hex()


def content_hash(stream: IO[bytes]) -> str:
    """Compute the content hash of a readable byte stream.

    The stream is read until a read returns no data. Short reads are
    fine; blocks are assembled internally, so the result only depends on
    the bytes produced by the stream.

    Args:
        stream: Any object with a ``read(size)`` method returning bytes

    Returns:
        Lowercase hex digest (64 characters)

    Raises:
        DropboxReadError: If reading from the stream fails
    """
    hasher = ContentHasher()
    while True:
        try:
            chunk = stream.read(HASH_BLOCK_SIZE)
        except Exception as e:
            raise DropboxReadError(f"Failed to read stream: {e}") from e
        if not chunk:
            break
        hasher.update(chunk)
    return hasher.hexdigest()


def file_content_hash(path: Union[str, "os.PathLike[str]"]) -> str:
    """Compute the content hash of a local file.

    Args:
        path: Path to a regular file

    Returns:
        Lowercase hex digest (64 characters)

    Raises:
        DropboxFileAccessError: If the file cannot be opened
        DropboxReadError: If reading the file fails
    """
    try:
        f = open(path, "rb")
    except OSError as e:
        raise DropboxFileAccessError(
            os.fspath(path), f"Cannot open file {os.fspath(path)}: {e}"
        ) from e

    with f:
        return content_hash(f)


# =============================================================================
# Path utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize a remote path so "/" can be used for the root folder.

    The API addresses the root folder as the empty string.

    Examples:
        >>> normalize_path("/")
        ''
        >>> normalize_path("/Photos")
        '/Photos'
    """
    if path == "/":
        return ""
    return path


# =============================================================================
# Timestamp utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from the API.

    Args:
        timestamp_str: Timestamp string (e.g., "2025-01-15T10:30:00Z")

    Returns:
        Timezone-aware datetime in UTC, or None if parsing fails
    """
    if not timestamp_str:
        return None

    # The 'Z' suffix indicates UTC time
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(timestamp_str)
    except (ValueError, TypeError):
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime the way the API expects (UTC, second precision).

    Examples:
        >>> format_timestamp(datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc))
        '2025-01-15T10:30:00Z'
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
