"""Shared pytest fixtures for mcp-lucid-import tests."""

import json
from typing import Callable, List

import httpx
import pytest

from mcp_lucid_import import server
from mcp_lucid_import.config import LucidSettings
from mcp_lucid_import.context import LucidService


class Recorder:
    """httpx.MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code: int = 200, payload=None, text: str = None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.text = text
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def settings() -> LucidSettings:
    return LucidSettings(
        _env_file=None,
        client_id="client-123",
        client_secret="secret-456",
        redirect_uri="https://example.com/callback",
    )


@pytest.fixture
def make_recorder() -> Callable[..., Recorder]:
    return Recorder


@pytest.fixture
def configured_service(settings):
    """Install a LucidService backed by a recorder; yields (service, recorder)."""

    def install(recorder: Recorder, token: str = None) -> LucidService:
        service = LucidService(settings, transport=recorder.transport())
        if token:
            service.oauth.set_access_token(token)
        server.configure(service)
        return service

    yield install
    server.configure(None)


def multipart_field(body: bytes, name: str) -> bytes:
    """Raw value of a multipart form field (good enough for simple test bodies)."""
    marker = f'name="{name}"'.encode()
    start = body.index(marker)
    value_start = body.index(b"\r\n\r\n", start) + 4
    value_end = body.index(b"\r\n--", value_start)
    return body[value_start:value_end]


def json_body(request: httpx.Request):
    return json.loads(request.content)
