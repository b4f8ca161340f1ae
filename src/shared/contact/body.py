"""Request body acquisition and parsing for the contact endpoint."""

import json
import logging
from typing import Any, Dict
from urllib.parse import parse_qs

from fastapi import Request

from src.shared.contact.errors import InvalidBodyError, PayloadTooLargeError


MAX_BODY_BYTES = 1 * 1024 * 1024  # 1 MiB

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


async def read_body_capped(request: Request, limit: int = MAX_BODY_BYTES) -> bytes:
    """
    Reads the request body, refusing anything larger than ``limit`` bytes.

    A declared Content-Length above the cap is refused before reading. A
    streamed body is abandoned as soon as it crosses the cap, so nothing past
    the limit is buffered.
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(limit)

    chunks = []
    total = 0
    async for chunk in request.stream():
        total += len(chunk)
        if total > limit:
            raise PayloadTooLargeError(limit)
        chunks.append(chunk)
    return b"".join(chunks)


def _as_record(value: Any) -> Dict[str, Any]:
    # Arrays, strings and numbers carry no named fields.
    return value if isinstance(value, dict) else {}


def parse_body(raw: bytes, content_type: str) -> Dict[str, Any]:
    """
    Parses a body according to its declared content type.

    Three cases:
    - declared JSON: must parse, otherwise InvalidBodyError;
    - declared URL-encoded form: decoded, a repeated key yields a list;
    - anything else: best-effort JSON that degrades to an empty record.
    """
    text = raw.decode("utf-8", errors="replace")
    content_type = (content_type or "").lower()

    if JSON_CONTENT_TYPE in content_type:
        try:
            return _as_record(json.loads(text or "{}"))
        except (ValueError, RecursionError) as e:
            raise InvalidBodyError() from e

    if FORM_CONTENT_TYPE in content_type:
        # A repeated key keeps all its values, joined later like a JSON list
        return {
            key: values[0] if len(values) == 1 else values
            for key, values in parse_qs(text, keep_blank_values=True).items()
        }

    try:
        return _as_record(json.loads(text or "{}"))
    except (ValueError, RecursionError):
        logging.debug("Undeclared body is not JSON, treating it as empty")
        return {}


async def read_submission_payload(request: Request) -> Dict[str, Any]:
    """Reads and parses the body of a contact request."""
    raw = await read_body_capped(request)
    return parse_body(raw, request.headers.get("content-type", ""))
