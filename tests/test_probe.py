from __future__ import annotations

import httpx

from atk_lib.probe import USER_AGENT, probe_url


def test_probe_reachable() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(302, headers={"Location": "https://login.microsoftonline.com/"})

    result = probe_url("https://foo-3978.app.github.dev", transport=httpx.MockTransport(handler))

    assert result.reachable
    assert result.status_code == 302
    assert seen[0].headers["User-Agent"] == USER_AGENT


def test_probe_server_error_is_unreachable() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502))
    result = probe_url("https://foo-3978.app.github.dev", transport=transport)
    assert not result.reachable
    assert result.describe() == "https://foo-3978.app.github.dev answered HTTP 502"


def test_probe_connection_error_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = probe_url("http://localhost:3978", transport=httpx.MockTransport(handler))

    assert not result.reachable
    assert result.status_code is None
    assert result.describe() == "http://localhost:3978 unreachable: connection refused"
