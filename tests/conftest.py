"""Shared fixtures for pydbx tests."""

import json
from typing import Any, Callable

import httpx
import pytest

from pydbx.api import DropboxClient


class RecordingHandler:
    """httpx.MockTransport handler that replays queued responses."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: list[Any] = []

    def add(self, response: Any) -> None:
        """Queue an httpx.Response, an exception or a callable(request)."""
        self.responses.append(response)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


def error_response(
    tag: str, summary: str = "", status_code: int = 409
) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"error_summary": summary or f"path/{tag}/..", "error": {".tag": tag}},
    )


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def make_client(handler: RecordingHandler) -> Callable[..., DropboxClient]:
    """Factory for clients talking to the recording handler."""

    def _make(**kwargs: Any) -> DropboxClient:
        kwargs.setdefault("access_token", "test_token")
        kwargs.setdefault("api_url", "https://api.test/2")
        kwargs.setdefault("content_url", "https://content.test/2")
        kwargs.setdefault("retry_delay", 0.0)
        return DropboxClient(transport=httpx.MockTransport(handler), **kwargs)

    return _make


@pytest.fixture
def client(make_client: Callable[..., DropboxClient]) -> DropboxClient:
    return make_client()
