from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import get_args

from .models import PayloadEncoding

UPSTREAM_URL_ENV = "ROLLUP_HTTP_SERVER_URL"


@dataclass(frozen=True, slots=True)
class DirectDispatch:
    """Hand envelopes to the in-process acceptor."""


@dataclass(frozen=True, slots=True)
class HttpForward:
    """POST envelopes to ``<base_url>/gio``.

    ``base_url`` stays ``None`` when the upstream is not configured; every
    completion request then fails with a server error instead of falling back
    to a guessed address.
    """

    base_url: str | None = None

    @property
    def gio_url(self) -> str | None:
        if not self.base_url:
            return None
        return f"{self.base_url.rstrip('/')}/gio"


DispatchStrategy = DirectDispatch | HttpForward

DISPATCH_MODES = ("http", "direct")
PAYLOAD_ENCODINGS: tuple[str, ...] = get_args(PayloadEncoding)
LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass(frozen=True, slots=True)
class Settings:
    dispatch: DispatchStrategy = field(default_factory=HttpForward)
    payload_encoding: PayloadEncoding = "utf8-lossy"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"

    @property
    def dispatch_mode(self) -> str:
        return "direct" if isinstance(self.dispatch, DirectDispatch) else "http"


def build_dispatch(mode: str, upstream_url: str | None) -> DispatchStrategy:
    if mode == "direct":
        return DirectDispatch()
    if mode == "http":
        return HttpForward(base_url=upstream_url or None)
    raise ValueError(f"unsupported dispatch mode: {mode!r} (expected one of {', '.join(DISPATCH_MODES)})")


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    encoding = env.get("GIO_RELAY_PAYLOAD_ENCODING", "utf8-lossy")
    if encoding not in PAYLOAD_ENCODINGS:
        raise ValueError(
            f"unsupported payload encoding: {encoding!r} (expected one of {', '.join(PAYLOAD_ENCODINGS)})"
        )

    log_level = env.get("GIO_RELAY_LOG_LEVEL", "info").lower()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"unsupported log level: {log_level!r} (expected one of {', '.join(LOG_LEVELS)})")

    raw_port = env.get("GIO_RELAY_PORT", "8080")
    try:
        port = int(raw_port)
    except ValueError as exc:
        raise ValueError(f"invalid GIO_RELAY_PORT: {raw_port!r}") from exc

    return Settings(
        dispatch=build_dispatch(env.get("GIO_RELAY_DISPATCH", "http"), env.get(UPSTREAM_URL_ENV)),
        payload_encoding=encoding,
        host=env.get("GIO_RELAY_HOST", "0.0.0.0"),
        port=port,
        log_level=log_level,
    )
