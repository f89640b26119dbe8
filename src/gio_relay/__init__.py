from .acceptor import accept_envelope
from .config import DirectDispatch, HttpForward, Settings, load_settings
from .forwarder import build_envelope, encode_payload
from .models import GIO_DOMAIN, Envelope, GioAck
from .server import create_app, start_server

__all__ = [
    "GIO_DOMAIN",
    "DirectDispatch",
    "Envelope",
    "GioAck",
    "HttpForward",
    "Settings",
    "accept_envelope",
    "build_envelope",
    "create_app",
    "encode_payload",
    "load_settings",
    "start_server",
]
