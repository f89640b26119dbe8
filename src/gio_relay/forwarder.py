from __future__ import annotations

import logging

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.requests import ClientDisconnect

from .acceptor import accept_envelope
from .config import UPSTREAM_URL_ENV, DirectDispatch, DispatchStrategy, HttpForward
from .models import GIO_DOMAIN, Envelope, PayloadEncoding

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Failure that ends a completion request with a plain-text response."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BodyReadError(RelayError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Could not read request body")


class UpstreamConfigError(RelayError):
    status_code = 500


class UpstreamUnavailableError(RelayError):
    status_code = 502


class UpstreamStatusError(RelayError):
    def __init__(self, response: httpx.Response) -> None:
        status = f"{response.status_code} {response.reason_phrase}".rstrip()
        super().__init__(
            f"Failed to forward request. Upstream status: {status}",
            status_code=response.status_code,
        )


async def read_body(request: Request) -> bytes:
    try:
        return await request.body()
    except ClientDisconnect as exc:
        logger.warning("error reading body: client disconnected")
        raise BodyReadError() from exc


def encode_payload(body: bytes, encoding: PayloadEncoding = "utf8-lossy") -> str:
    if encoding == "raw":
        return body.hex()
    return body.decode("utf-8", errors="replace").encode("utf-8").hex()


def build_envelope(body: bytes, encoding: PayloadEncoding = "utf8-lossy") -> Envelope:
    return Envelope(domain=GIO_DOMAIN, id=encode_payload(body, encoding))


def resolve_gio_url(strategy: HttpForward) -> httpx.URL:
    gio_url = strategy.gio_url
    if gio_url is None:
        logger.error("%s not set", UPSTREAM_URL_ENV)
        raise UpstreamConfigError(f"{UPSTREAM_URL_ENV} not set")

    try:
        url = httpx.URL(gio_url)
    except httpx.InvalidURL as exc:
        logger.error("invalid %s=%r: %s", UPSTREAM_URL_ENV, strategy.base_url, exc)
        raise UpstreamConfigError(f"Invalid {UPSTREAM_URL_ENV}: {strategy.base_url}") from exc

    if url.scheme not in ("http", "https") or not url.host:
        logger.error("invalid %s=%r: expected an http(s) base url", UPSTREAM_URL_ENV, strategy.base_url)
        raise UpstreamConfigError(f"Invalid {UPSTREAM_URL_ENV}: {strategy.base_url}")
    return url


async def forward_http(
    envelope: Envelope,
    strategy: HttpForward,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Response:
    url = resolve_gio_url(strategy)

    try:
        async with httpx.AsyncClient(timeout=None, transport=transport) as client:
            response = await client.post(url, json=envelope.model_dump())
    except httpx.RequestError as exc:
        logger.warning("error sending request to rollup server %s: %s", url, exc)
        raise UpstreamUnavailableError(f"Error forwarding: {exc}") from exc

    if not response.is_success:
        error = UpstreamStatusError(response)
        logger.warning("%s", error.message)
        raise error

    logger.debug("forwarded envelope to %s status=%d", url, response.status_code)
    headers = {}
    content_type = response.headers.get("content-type")
    if content_type:
        headers["content-type"] = content_type
    return Response(content=response.content, status_code=response.status_code, headers=headers)


def dispatch_direct(envelope: Envelope) -> Response:
    ack = accept_envelope(envelope.model_dump_json().encode("utf-8"))
    return JSONResponse(ack.body, status_code=ack.status_code)


async def forward_completion(
    request: Request,
    strategy: DispatchStrategy,
    encoding: PayloadEncoding = "utf8-lossy",
    transport: httpx.AsyncBaseTransport | None = None,
) -> Response:
    body = await read_body(request)
    envelope = build_envelope(body, encoding)

    if isinstance(strategy, DirectDispatch):
        return dispatch_direct(envelope)
    return await forward_http(envelope, strategy, transport=transport)
