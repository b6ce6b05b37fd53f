"""HTTP client for the Dropbox API v2."""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from typing import IO, TYPE_CHECKING, Any, Callable, Iterable, Iterator, Optional, Union

import httpx

from .config import config
from .exceptions import (
    DropboxAPIError,
    DropboxAuthenticationError,
    DropboxConfigError,
    DropboxInvalidResponseError,
    DropboxNetworkError,
    DropboxRateLimitError,
    DropboxReadError,
)
from .models import Metadata

if TYPE_CHECKING:
    from .files import Files

logger = logging.getLogger(__name__)

UploadContent = Union[bytes, bytearray, memoryview, IO[bytes], Iterable[bytes]]

# Chunk size for streaming request bodies read from file objects
UPLOAD_CHUNK_SIZE = 64 * 1024


class ResponseStream:
    """Readable byte stream over a streaming HTTP response.

    Supports ``read(size)`` so it can be passed to anything expecting a
    binary file object (including :func:`pydbx.utils.content_hash`).
    The underlying connection is released by :meth:`close`.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._iterator: Optional[Iterator[bytes]] = None
        self._buffer = bytearray()

    def _next_chunk(self) -> bytes:
        if self._iterator is None:
            self._iterator = self._response.iter_bytes()
        try:
            return next(self._iterator, b"")
        except httpx.RequestError as e:
            raise DropboxNetworkError(f"Network error while reading response: {e}") from e

    def read(self, size: Optional[int] = -1) -> bytes:
        """Read up to ``size`` bytes; read everything when size is negative."""
        if size is None or size < 0:
            while True:
                chunk = self._next_chunk()
                if not chunk:
                    break
                self._buffer += chunk
            data = bytes(self._buffer)
            self._buffer.clear()
            return data

        while len(self._buffer) < size:
            chunk = self._next_chunk()
            if not chunk:
                break
            self._buffer += chunk

        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def iter_bytes(self, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                break
            yield chunk

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def close(self) -> None:
        self._response.close()

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


@dataclass
class DownloadResult:
    """Result of a content endpoint call."""

    body: ResponseStream
    """Streaming response body; close it (or use it as a context manager)"""

    length: Optional[int] = None
    """Content length in bytes, None if the server did not send one"""

    api_result: Optional[dict[str, Any]] = None
    """Decoded ``Dropbox-API-Result`` header, if present"""

    @property
    def metadata(self) -> Optional[Metadata]:
        """Metadata of the downloaded file, taken from the result header."""
        if not self.api_result:
            return None
        return Metadata.from_dict(self.api_result)

    def json(self) -> Any:
        """Read the whole body and decode it as JSON, then close it."""
        with self.body:
            content = self.body.read()
        if not content:
            return None
        try:
            return json.loads(content)
        except ValueError as e:
            raise DropboxInvalidResponseError("Invalid JSON response from server") from e


def _iter_file(f: IO[bytes]) -> Iterator[bytes]:
    while True:
        try:
            chunk = f.read(UPLOAD_CHUNK_SIZE)
        except Exception as e:
            raise DropboxReadError(f"Failed to read upload content: {e}") from e
        if not chunk:
            break
        yield chunk


def _content_factory(
    content: Optional[UploadContent],
) -> tuple[Optional[Callable[[], Any]], bool]:
    """Build a callable producing the request body for each attempt.

    Returns:
        Tuple of (factory or None, whether the body can be resent)
    """
    if content is None:
        return None, True

    if isinstance(content, (bytes, bytearray, memoryview)):
        data = bytes(content)
        return (lambda: data), True

    if hasattr(content, "read"):
        f: Any = content
        seekable = bool(getattr(f, "seekable", lambda: False)())
        start = f.tell() if seekable else 0

        def _from_file() -> Iterator[bytes]:
            if seekable:
                f.seek(start)
            return _iter_file(f)

        return _from_file, seekable

    # Plain iterables can only be consumed once
    iterable = content
    return (lambda: iterable), False


class DropboxClient:
    """Client for the Dropbox API v2.

    Provides the two transport primitives the operation set is built on:
    :meth:`call` for RPC endpoints (JSON in, JSON out) and
    :meth:`download` for content endpoints (arguments in a header, binary
    body in and/or out).
    """

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        content_url: str | None = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            access_token: Optional access token (uses config if not provided)
            api_url: Base URL for RPC endpoints (uses config if not provided)
            content_url: Base URL for content endpoints (uses config if not
                provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.access_token = access_token or config.access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.content_url = (content_url or config.content_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.access_token:
            raise DropboxConfigError(
                "Access token not configured. "
                "Please set DROPBOX_ACCESS_TOKEN environment variable."
            )

        self._client: httpx.Client | None = None
        self._files: Files | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> "DropboxClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def files(self) -> Files:
        """Operations on files and folders."""
        if self._files is None:
            from .files import Files

            self._files = Files(self)
        return self._files

    # =========================
    # Retry handling
    # =========================

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            error: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        if isinstance(error, (DropboxNetworkError, DropboxRateLimitError)):
            return True

        if isinstance(error, DropboxAPIError):
            return 500 <= error.status_code < 600

        return False

    def _calculate_retry_delay(self, attempt: int, error: Exception | None = None) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)
            error: The error that triggered the retry

        Returns:
            Delay in seconds
        """
        if isinstance(error, DropboxRateLimitError) and error.retry_after is not None:
            return error.retry_after

        base_delay = self.retry_delay * (2**attempt)
        # Jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _error_from_response(self, response: httpx.Response) -> DropboxAPIError:
        status_code = response.status_code
        error_cls: type[DropboxAPIError] = DropboxAPIError
        if status_code == 401:
            error_cls = DropboxAuthenticationError
        elif status_code == 429:
            error_cls = DropboxRateLimitError

        error = error_cls.from_response(
            status_code, response.reason_phrase, response.content
        )
        if isinstance(error, DropboxRateLimitError):
            retry_after = response.headers.get("Retry-After", "")
            if retry_after.isdigit():
                error.retry_after = float(retry_after)
        return error

    def _sleep_before_retry(self, url: str, attempt: int, error: Exception) -> None:
        delay = self._calculate_retry_delay(attempt, error)
        logger.debug("Retrying %s in %.2fs after: %s", url, delay, error)
        time.sleep(delay)

    def _send(
        self,
        url: str,
        headers: dict[str, str],
        content_factory: Optional[Callable[[], Any]],
        stream: bool = False,
        retryable: bool = True,
    ) -> httpx.Response:
        """POST a request with retry logic.

        Args:
            url: Full request URL
            headers: Extra request headers
            content_factory: Callable returning the body for each attempt
            stream: Whether to return without reading the response body
            retryable: Whether the body can be sent more than once

        Returns:
            Successful response (still open when ``stream`` is True)

        Raises:
            DropboxAPIError: If the request fails after all retries
            DropboxNetworkError: If the transport fails after all retries
        """
        client = self._get_client()
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            content = content_factory() if content_factory is not None else None
            request = client.build_request("POST", url, headers=headers, content=content)
            logger.debug("POST %s (attempt %d)", url, attempt + 1)

            try:
                response = client.send(request, stream=stream)
                if not response.is_success:
                    try:
                        response.read()
                    finally:
                        response.close()
            except httpx.RequestError as e:
                network_error = DropboxNetworkError(f"Network error: {e}")
                last_error = network_error
                if retryable and self._should_retry(network_error, attempt):
                    self._sleep_before_retry(url, attempt, network_error)
                    continue
                raise network_error from e

            if response.is_success:
                return response

            api_error = self._error_from_response(response)
            last_error = api_error
            if retryable and self._should_retry(api_error, attempt):
                self._sleep_before_retry(url, attempt, api_error)
                continue
            raise api_error

        # Only reached when max_retries is negative
        if last_error:
            raise last_error
        raise DropboxAPIError("Request failed after all retry attempts")

    # =========================
    # Transport primitives
    # =========================

    def call(self, endpoint: str, payload: Any = None) -> Any:
        """Call an RPC endpoint.

        Args:
            endpoint: Endpoint path, e.g. "/files/get_metadata"
            payload: JSON-serializable request body

        Returns:
            Decoded JSON response, or None for an empty body

        Raises:
            DropboxAPIError: If the endpoint returns an error
            DropboxInvalidResponseError: If the response is not JSON
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        body = json.dumps(payload).encode("utf-8")
        response = self._send(
            url, headers={"Content-Type": "application/json"}, content_factory=lambda: body
        )

        if not response.content:
            return None

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise DropboxInvalidResponseError(f"Unexpected response type: {content_type}")

        try:
            return response.json()
        except ValueError as e:
            raise DropboxInvalidResponseError("Invalid JSON response from server") from e

    def download(
        self,
        endpoint: str,
        args: Any,
        content: Optional[UploadContent] = None,
    ) -> DownloadResult:
        """Call a content endpoint.

        Used for downloads (no request body) as well as uploads (request
        body taken from ``content``).

        Args:
            endpoint: Endpoint path, e.g. "/files/download"
            args: JSON-serializable arguments sent in the Dropbox-API-Arg header
            content: Optional request body (bytes, binary file object or
                iterable of bytes). File objects that cannot seek and
                plain iterables are sent once and never retried.

        Returns:
            DownloadResult with the open response body

        Raises:
            DropboxAPIError: If the endpoint returns an error
        """
        url = f"{self.content_url}/{endpoint.lstrip('/')}"
        # ensure_ascii keeps the header value HTTP-safe
        headers = {"Dropbox-API-Arg": json.dumps(args, ensure_ascii=True)}
        if content is not None:
            headers["Content-Type"] = "application/octet-stream"

        content_factory, retryable = _content_factory(content)
        response = self._send(
            url, headers, content_factory, stream=True, retryable=retryable
        )

        api_result: Optional[dict[str, Any]] = None
        raw_result = response.headers.get("Dropbox-API-Result")
        if raw_result:
            try:
                api_result = json.loads(raw_result)
            except ValueError as e:
                response.close()
                raise DropboxInvalidResponseError(
                    "Invalid Dropbox-API-Result header"
                ) from e

        length_header = response.headers.get("Content-Length")
        length = int(length_header) if length_header and length_header.isdigit() else None

        return DownloadResult(
            body=ResponseStream(response), length=length, api_result=api_result
        )
