from __future__ import annotations

import logging

from pydantic import ValidationError

from .models import Envelope, GioAck

logger = logging.getLogger(__name__)

ID_PREVIEW_CHARS = 32


def parse_envelope(raw: bytes) -> Envelope:
    return Envelope.model_validate_json(raw)


def accept_envelope(raw: bytes) -> GioAck:
    """Validate a GIO envelope and acknowledge it.

    This is the terminal sink of the pipeline: the envelope is logged and
    dropped. It never calls out.
    """
    try:
        envelope = parse_envelope(raw)
    except ValidationError as exc:
        logger.warning("rejected gio envelope: %s", exc.errors(include_url=False))
        return GioAck(status_code=400, body={"error": "Invalid JSON"})

    preview = envelope.id[:ID_PREVIEW_CHARS]
    if len(envelope.id) > ID_PREVIEW_CHARS:
        preview += "..."
    logger.info("received gio envelope domain=%#x id_len=%d id=%s", envelope.domain, len(envelope.id), preview)
    return GioAck(status_code=200, body={"status": "success"})


def body_read_failure() -> GioAck:
    return GioAck(status_code=400, body={"error": "Could not read request body"})
