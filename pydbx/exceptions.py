"""Custom exceptions for the Dropbox files client."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional


class ErrorTag(str, Enum):
    """Error tags returned by the remote API in ``error[".tag"]``."""

    OTHER = "other"
    INTERNAL_ERROR = "internal_error"
    NOT_FOUND = "not_found"
    NO_PERMISSION = "no_permission"
    NOT_FILE = "not_file"
    NOT_FOLDER = "not_folder"
    RESTRICTED_CONTENT = "restricted_content"
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    FILE = "file"
    FOLDER = "folder"
    FILE_ANCESTOR = "file_ancestor"
    NO_WRITE_PERMISSION = "no_write_permission"
    INSUFFICIENT_SPACE = "insufficient_space"
    DISALLOWED_NAME = "disallowed_name"
    TEAM_FOLDER = "team_folder"
    TOO_MANY_WRITE_OPERATIONS = "too_many_write_operations"
    TOO_MANY_FILES = "too_many_files"


class DropboxError(Exception):
    """Base exception for all pydbx errors."""


class DropboxConfigError(DropboxError):
    """Raised when configuration is missing or invalid."""


class DropboxNetworkError(DropboxError):
    """Raised when the transport fails before a response arrives."""


class DropboxInvalidResponseError(DropboxError):
    """Raised when the server returns a body we cannot decode."""


class DropboxAPIError(DropboxError):
    """Error returned by an API endpoint.

    Endpoint errors carry a summary string and a tag naming the error
    variant, e.g. ``{"error_summary": "path/not_found/..",
    "error": {".tag": "path", ...}}``.
    """

    def __init__(
        self,
        summary: str,
        status: str = "",
        status_code: int = 0,
        tag: str = "",
    ):
        super().__init__(summary)
        self.summary = summary
        self.status = status
        self.status_code = status_code
        self.tag = tag

    def __str__(self) -> str:
        return self.summary

    def has_tag(self, tag: str | ErrorTag) -> bool:
        """Check whether the error carries the given tag."""
        value = tag.value if isinstance(tag, ErrorTag) else tag
        return self.tag == value

    def is_not_found(self) -> bool:
        return self.has_tag(ErrorTag.NOT_FOUND)

    def is_no_permission(self) -> bool:
        return self.has_tag(ErrorTag.NO_PERMISSION)

    @classmethod
    def from_response(
        cls, status_code: int, reason: str, body: bytes | str
    ) -> "DropboxAPIError":
        """Build an error from a failed HTTP response.

        Args:
            status_code: HTTP status code
            reason: HTTP reason phrase (e.g. "Conflict")
            body: Raw response body

        Returns:
            DropboxAPIError with summary and tag filled in where the
            body is the usual JSON error envelope
        """
        text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
        status = f"{status_code} {reason}".strip()
        summary = text.strip() or status
        tag = ""

        try:
            data: Any = json.loads(text) if text else None
        except ValueError:
            data = None

        if isinstance(data, dict):
            summary = data.get("error_summary") or summary
            error = data.get("error")
            if isinstance(error, dict):
                tag = error.get(".tag", "") or ""

        return cls(summary, status=status, status_code=status_code, tag=tag)


class DropboxAuthenticationError(DropboxAPIError):
    """Raised when the access token is rejected (HTTP 401)."""


class DropboxRateLimitError(DropboxAPIError):
    """Raised when the API rate limit is hit (HTTP 429)."""

    def __init__(
        self,
        summary: str,
        status: str = "",
        status_code: int = 429,
        tag: str = "",
        retry_after: Optional[float] = None,
    ):
        super().__init__(summary, status=status, status_code=status_code, tag=tag)
        self.retry_after = retry_after


class DropboxReadError(DropboxError):
    """Raised when reading an input stream fails."""


class DropboxFileAccessError(DropboxError):
    """Raised when a local file cannot be opened."""

    def __init__(self, path: str, message: str = ""):
        self.path = path
        super().__init__(message or f"Cannot open file: {path}")


class DropboxUploadError(DropboxError):
    """Raised when an upload cannot be completed or verified."""


class DropboxDownloadError(DropboxError):
    """Raised when a download cannot be written locally."""
