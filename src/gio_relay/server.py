from __future__ import annotations

import argparse
import logging

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .acceptor import accept_envelope, body_read_failure
from .config import DISPATCH_MODES, LOG_LEVELS, PAYLOAD_ENCODINGS, UPSTREAM_URL_ENV, HttpForward, Settings, build_dispatch, load_settings
from .forwarder import BodyReadError, RelayError, forward_completion, read_body

logger = logging.getLogger(__name__)

COMPLETION_PATHS = ("/completion", "/v1/chat/completions")
GIO_PATH = "/gio"


def not_found() -> PlainTextResponse:
    return PlainTextResponse("Not Found", status_code=404)


def create_app(settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="GIO Relay", docs_url=None, redoc_url=None, openapi_url=None)
    # "/gio/" is an unknown path, not a redirect to "/gio".
    app.router.redirect_slashes = False
    app.state.settings = settings

    @app.exception_handler(RelayError)
    async def on_relay_error(request: Request, exc: RelayError) -> PlainTextResponse:
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> Response:
        # Unknown paths and wrong methods on known paths look the same to callers.
        if exc.status_code in (404, 405):
            return not_found()
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code)

    async def completion(request: Request) -> Response:
        return await forward_completion(
            request,
            settings.dispatch,
            encoding=settings.payload_encoding,
            transport=transport,
        )

    for path in COMPLETION_PATHS:
        app.add_api_route(path, completion, methods=["POST"])

    @app.post(GIO_PATH)
    async def gio(request: Request) -> JSONResponse:
        try:
            body = await read_body(request)
        except BodyReadError:
            ack = body_read_failure()
        else:
            ack = accept_envelope(body)
        return JSONResponse(ack.body, status_code=ack.status_code)

    return app


def describe_upstream(settings: Settings) -> str:
    if isinstance(settings.dispatch, HttpForward):
        return settings.dispatch.gio_url or f"<{UPSTREAM_URL_ENV} not set>"
    return "in-process acceptor"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Relay completion requests to a rollup node's GIO endpoint")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument("--dispatch", choices=DISPATCH_MODES, default=None)
    parser.add_argument("--upstream-url", default=None, help=f"overrides {UPSTREAM_URL_ENV}")
    parser.add_argument("--payload-encoding", choices=PAYLOAD_ENCODINGS, default=None)
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None)
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    dispatch = base.dispatch
    if args.dispatch is not None or args.upstream_url is not None:
        mode = args.dispatch or base.dispatch_mode
        if mode == "direct" and args.upstream_url is not None:
            raise ValueError("--upstream-url has no effect with direct dispatch")
        upstream_url = args.upstream_url
        if upstream_url is None and isinstance(base.dispatch, HttpForward):
            upstream_url = base.dispatch.base_url
        dispatch = build_dispatch(mode, upstream_url)

    return Settings(
        dispatch=dispatch,
        payload_encoding=args.payload_encoding or base.payload_encoding,
        host=args.host or base.host,
        port=args.port if args.port is not None else base.port,
        log_level=args.log_level or base.log_level,
    )


def start_server(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    if isinstance(settings.dispatch, HttpForward) and settings.dispatch.base_url is None:
        logger.warning("%s not set; completion requests will fail until it is configured", UPSTREAM_URL_ENV)

    app = create_app(settings)
    logger.info(
        "gio-relay running at http://%s:%d dispatch=%s upstream=%s",
        settings.host,
        settings.port,
        settings.dispatch_mode,
        describe_upstream(settings),
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    try:
        settings = settings_from_args(args, load_settings())
    except ValueError as exc:
        parser.error(str(exc))
    start_server(settings)


if __name__ == "__main__":
    main()
