from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from fastapi import Request

from gio_relay import HttpForward
from gio_relay.forwarder import BodyReadError, forward_completion, read_body


@pytest.mark.parametrize("path", ["/completion", "/v1/chat/completions"])
def test_forwards_envelope_to_rollup(client, rollup, path) -> None:
    response = client.post(path, content=b'{"a":1}')

    assert response.status_code == 200
    assert len(rollup.requests) == 1
    sent = rollup.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == "http://rollup.test/gio"
    assert sent.headers["content-type"] == "application/json"
    envelope = json.loads(sent.content)
    assert envelope["domain"] == 39
    assert bytes.fromhex(envelope["id"]) == b'{"a":1}'


def test_non_json_body_is_forwarded_verbatim(client, rollup) -> None:
    client.post("/completion", content=b"hello, rollup", headers={"content-type": "text/plain"})

    envelope = json.loads(rollup.requests[0].content)
    assert envelope == {"domain": 39, "id": b"hello, rollup".hex()}


def test_invalid_utf8_is_replaced_by_default(client, rollup) -> None:
    client.post("/completion", content=b"\xff")

    assert json.loads(rollup.requests[0].content)["id"] == "efbfbd"


def test_raw_encoding_forwards_exact_bytes(make_client, rollup) -> None:
    make_client(payload_encoding="raw").post("/completion", content=b"\xff\x00")

    assert json.loads(rollup.requests[0].content)["id"] == "ff00"


def test_trailing_slash_in_base_url(make_client, rollup) -> None:
    make_client("http://rollup.test/").post("/completion", content=b"{}")

    assert str(rollup.requests[0].url) == "http://rollup.test/gio"


def test_success_passes_upstream_response_through(client, rollup) -> None:
    rollup.status_code = 202
    rollup.content = b"accepted"
    rollup.headers = {"content-type": "text/plain"}

    response = client.post("/completion", content=b"{}")

    assert response.status_code == 202
    assert response.text == "accepted"
    assert response.headers["content-type"].startswith("text/plain")


def test_upstream_failure_status_is_surfaced(client, rollup) -> None:
    rollup.status_code = 503
    rollup.content = b"busy"

    response = client.post("/completion", content=b"{}")

    assert response.status_code == 503
    assert response.text == "Failed to forward request. Upstream status: 503 Service Unavailable"


def test_unreachable_upstream_is_bad_gateway(client, rollup) -> None:
    rollup.error = httpx.ConnectError("connection refused")

    response = client.post("/completion", content=b"{}")

    assert response.status_code == 502
    assert response.text == "Error forwarding: connection refused"


def test_missing_upstream_fails_without_network_call(make_client, rollup) -> None:
    response = make_client(None).post("/completion", content=b'{"a":1}')

    assert response.status_code == 500
    assert response.text == "ROLLUP_HTTP_SERVER_URL not set"
    assert rollup.requests == []


@pytest.mark.parametrize("base_url", ["ftp://rollup.test", "not a url", "http://"])
def test_unusable_upstream_fails_without_network_call(make_client, rollup, base_url) -> None:
    response = make_client(base_url).post("/completion", content=b"{}")

    assert response.status_code == 500
    assert response.text.startswith("Invalid ROLLUP_HTTP_SERVER_URL")
    assert rollup.requests == []


def test_direct_dispatch_acknowledges_in_process(direct_client) -> None:
    response = direct_client.post("/v1/chat/completions", content=b'{"messages": []}')

    assert response.status_code == 200
    assert response.json() == {"status": "success"}


def disconnected_request() -> Request:
    async def receive() -> dict:
        return {"type": "http.disconnect"}

    scope = {"type": "http", "method": "POST", "path": "/completion", "headers": [], "query_string": b""}
    return Request(scope, receive)


def test_read_body_reports_disconnect() -> None:
    with pytest.raises(BodyReadError) as excinfo:
        asyncio.run(read_body(disconnected_request()))

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Could not read request body"


def test_unreadable_body_is_never_forwarded(rollup) -> None:
    strategy = HttpForward(base_url="http://rollup.test")

    with pytest.raises(BodyReadError):
        asyncio.run(forward_completion(disconnected_request(), strategy, transport=rollup.transport))

    assert rollup.requests == []
