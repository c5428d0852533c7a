"""Test utilities for strata pipelines.

Stand-ins for the framework's request and response objects, so pipelines
can be exercised without a server::

    from strata.testing import create_mocks, mock_server_context

    result = await get_server_side_props(mock_server_context(cookies={"USER": "u1"}))

    request, response = create_mocks(cookies={"USER": "u1"})
    await api_handler(request, response)
    assert response.status_code == 200
    assert response.json_body == {"user": "u1"}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from strata.context import ServerContext, StaticContext


@dataclass(slots=True)
class MockRequest:
    """A minimal request: method, URL, headers, cookies, query, body."""

    __test__ = False

    method: str = "GET"
    url: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None


class MockResponse:
    """A mutable response that records what handlers write to it.

    Chainable like the response objects API handlers usually get::

        response.status(404).write("user not found")
        response.status(200).json({"ok": True})
    """

    __test__ = False
    __slots__ = ("_chunks", "finished", "headers", "status_code")

    def __init__(self) -> None:
        self.status_code = 200
        self.headers: dict[str, str] = {}
        self.finished = False
        self._chunks: list[str] = []

    def status(self, code: int) -> MockResponse:
        self.status_code = code
        return self

    def set_header(self, name: str, value: str) -> MockResponse:
        self.headers[name.lower()] = value
        return self

    def write(self, chunk: str) -> MockResponse:
        self._chunks.append(chunk)
        return self

    def json(self, payload: Any) -> MockResponse:
        self.set_header("Content-Type", "application/json")
        self._chunks = [json.dumps(payload)]
        return self.end()

    def end(self, chunk: str | None = None) -> MockResponse:
        if chunk is not None:
            self._chunks.append(chunk)
        self.finished = True
        return self

    @property
    def text(self) -> str:
        """Everything written so far."""
        return "".join(self._chunks)

    @property
    def json_body(self) -> Any:
        """The body parsed as JSON."""
        return json.loads(self.text)

    def __repr__(self) -> str:
        return f"<MockResponse {self.status_code} finished={self.finished}>"


def create_mocks(**request_fields: Any) -> tuple[MockRequest, MockResponse]:
    """A fresh ``(request, response)`` pair for an API handler."""
    return MockRequest(**request_fields), MockResponse()


def mock_server_context(
    *,
    params: dict[str, str] | None = None,
    query: dict[str, str] | None = None,
    resolved_url: str = "",
    locale: str | None = None,
    **request_fields: Any,
) -> ServerContext:
    """A ``ServerContext`` around a fresh mock request/response pair."""
    request, response = create_mocks(**request_fields)
    return ServerContext(
        request=request,
        response=response,
        params=params or {},
        query=query or {},
        resolved_url=resolved_url,
        locale=locale,
    )


def mock_static_context(
    *,
    params: dict[str, str] | None = None,
    preview: bool = False,
    locale: str | None = None,
) -> StaticContext:
    """A ``StaticContext`` for static props pipelines."""
    return StaticContext(params=params or {}, preview=preview, locale=locale)
