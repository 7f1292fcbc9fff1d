"""
Plumbing shared by the concrete driver services.

Ties the transport, error translator, pagination normalizer and capability
gate together in the order every operation uses them.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from . import capabilities
from .capabilities import Operation
from .exceptions import InputValidationError
from .models import ContentParams, ListOptions, Page, PullRequestInput, Response
from .pagination import normalize, parse_rate
from .provider import ProviderType
from .translate import decode_json, raise_for_status
from .transport import RawResponse, ServerProbe, Transport

logger = logging.getLogger(__name__)


class BaseService:
    """Common state and helpers for one provider's service implementation."""

    provider: ProviderType

    def __init__(self, transport: Transport, probe: ServerProbe | None = None) -> None:
        self.transport = transport
        self.probe = probe

    def _require(self, operation: Operation) -> None:
        capabilities.require(self.provider, operation)

    async def _before_request(self) -> None:
        """Hook run before every request; drivers use it to warm the probe."""

    async def _execute(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json: Any = None,
        content: bytes | None = None,
    ) -> RawResponse:
        await self._before_request()
        return await self.transport.execute(
            method,
            path,
            params=params,
            headers=headers,
            json=json,
            content=content,
        )

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> tuple[Any, RawResponse]:
        raw = await self._execute("GET", path, params=params)
        return decode_json(raw), raw

    async def _send(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Response:
        """Issue a write whose success body, if any, is not decoded."""
        raw = await self._execute(method, path, params=params, json=json)
        raise_for_status(raw)
        return self._response(raw)

    def _response(self, raw: RawResponse, page: Page | None = None) -> Response:
        return Response(
            status=raw.status,
            headers=raw.headers,
            page=page or Page(),
            rate=parse_rate(raw.headers),
        )

    def _page(
        self,
        raw: RawResponse,
        body: Any,
        options: ListOptions | None,
    ) -> Page:
        return normalize(raw.headers, body, options)

    @staticmethod
    def _parse_datetime(value: Any) -> datetime | None:
        """Parse an ISO 8601 string or epoch-milliseconds timestamp."""
        if value is None or value == "":
            return None
        try:
            if isinstance(value, int | float):
                return datetime.fromtimestamp(value / 1000, tz=UTC)
            value = str(value)
            if value.endswith("Z"):
                value = value[:-1] + "+00:00"
            return datetime.fromisoformat(value)
        except (ValueError, TypeError, OverflowError):
            logger.warning(f"Failed to parse datetime: {value}")
            return None

    @staticmethod
    def _validate_number(number: int) -> None:
        if number <= 0:
            raise InputValidationError(f"Invalid pull request number: {number}")

    @staticmethod
    def _validate_pull_request_input(data: PullRequestInput) -> None:
        missing = [name for name in ("title", "head", "base") if not getattr(data, name).strip()]
        if missing:
            raise InputValidationError(
                f"Missing required pull request fields: {', '.join(missing)}",
            )
        if data.head == data.base:
            raise InputValidationError(
                f"Head and base branch are both '{data.head}'",
                "A pull request needs two different branches",
            )

    @staticmethod
    def _validate_content_params(path: str, params: ContentParams | None) -> ContentParams:
        if not path.strip("/"):
            raise InputValidationError("A file path is required")
        if params is None:
            raise InputValidationError("Content parameters are required")
        if not params.message.strip():
            raise InputValidationError("A commit message is required")
        return params

    def _text_payload(self, data: bytes) -> str:
        """Carry already-encoded bytes in a JSON string field unchanged."""
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InputValidationError(
                f"Content data for {self.provider.value} must be encoded text",
                "Encode the file with base64.b64encode() before sending it",
            ) from e
