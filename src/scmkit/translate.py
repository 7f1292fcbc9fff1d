"""
Translation of raw HTTP responses into the canonical error taxonomy.
"""

import json
import logging
from typing import Any

from .exceptions import (
    ClientError,
    DecodeError,
    HTTPStatusError,
    NotFoundError,
    RateLimitError,
    ServerError,
    UnauthorizedError,
)
from .pagination import parse_rate
from .transport import RawResponse

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


def _message_from_json(data: Any) -> str:
    if isinstance(data, str):
        return data
    if not isinstance(data, dict):
        return ""

    for key in ("message", "error_description", "error"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
        if isinstance(value, dict):
            nested = _message_from_json(value)
            if nested:
                return nested

    # Bitbucket Server: {"errors": [{"message": ...}]}
    errors = data.get("errors")
    if isinstance(errors, list):
        messages = [_message_from_json(item) for item in errors]
        return "; ".join(m for m in messages if m)
    return ""


def extract_message(raw: RawResponse) -> str:
    """
    Best-effort extraction of a human-readable error message.

    Tries the common JSON error shapes first, then the plain-text body,
    then the HTTP reason phrase.
    """
    text = raw.text.strip()
    if text:
        try:
            message = _message_from_json(json.loads(text))
        except ValueError:
            message = text
        if message:
            return message[:MAX_MESSAGE_LENGTH]
    return raw.reason or f"HTTP {raw.status}"


def raise_for_status(raw: RawResponse) -> None:
    """
    Raise the canonical error for a non-2xx response.

    Raises:
        NotFoundError: 404
        UnauthorizedError: 401, or 403 without rate limit exhaustion
        RateLimitError: 429, or 403 with an exhausted rate limit
        ClientError: other 4xx
        ServerError: 5xx
        HTTPStatusError: any other non-2xx status
    """
    if raw.ok:
        return

    message = extract_message(raw)
    logger.debug(f"HTTP {raw.status} from {raw.url}: {message}")

    if raw.status == 404:
        raise NotFoundError(message)

    if raw.status in (403, 429):
        rate = parse_rate(raw.headers)
        if raw.status == 429 or (rate is not None and rate.remaining == 0):
            raise RateLimitError(raw.status, message, rate.reset if rate else None)

    if raw.status in (401, 403):
        raise UnauthorizedError(raw.status, message)

    if 400 <= raw.status < 500:
        raise ClientError(raw.status, message)

    if raw.status >= 500:
        raise ServerError(raw.status, message)

    raise HTTPStatusError(raw.status, message)


def decode_json(raw: RawResponse, allow_empty: bool = False) -> Any:
    """
    Check the status and parse a JSON body.

    Args:
        raw: Response to decode
        allow_empty: Return None for an empty body instead of failing

    Raises:
        HTTPStatusError: For non-2xx responses
        DecodeError: If the body is not valid JSON
    """
    raise_for_status(raw)
    if not raw.body.strip():
        if allow_empty:
            return None
        raise DecodeError(f"empty body from {raw.url or 'server'}")
    try:
        return json.loads(raw.body)
    except ValueError as e:
        raise DecodeError(f"invalid JSON: {e}") from e
