"""pydbx - typed client for the Dropbox files API."""

from .api import DownloadResult, DropboxClient, ResponseStream
from .exceptions import (
    DropboxAPIError,
    DropboxAuthenticationError,
    DropboxConfigError,
    DropboxDownloadError,
    DropboxError,
    DropboxFileAccessError,
    DropboxInvalidResponseError,
    DropboxNetworkError,
    DropboxRateLimitError,
    DropboxReadError,
    DropboxUploadError,
    ErrorTag,
)
from .files import Files
from .utils import HASH_BLOCK_SIZE, ContentHasher, content_hash, file_content_hash

__all__ = [
    "DropboxClient",
    "DownloadResult",
    "ResponseStream",
    "Files",
    "DropboxError",
    "DropboxAPIError",
    "DropboxAuthenticationError",
    "DropboxConfigError",
    "DropboxDownloadError",
    "DropboxFileAccessError",
    "DropboxInvalidResponseError",
    "DropboxNetworkError",
    "DropboxRateLimitError",
    "DropboxReadError",
    "DropboxUploadError",
    "ErrorTag",
    "HASH_BLOCK_SIZE",
    "ContentHasher",
    "content_hash",
    "file_content_hash",
]
