"""
HTTP transport adapter and lazy server capability probe.

The transport performs exactly one round trip per call and hands the raw
status, headers and body back to the driver. Non-2xx responses are not
errors at this layer.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from .exceptions import RequestTimeoutError, ScmError, TransportError
from .models import ServerInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawResponse:
    """Unprocessed HTTP response."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> str:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return ""


class Transport:
    """
    Thin wrapper around ``httpx.AsyncClient`` bound to one API root.

    Authentication is attached to every request; paths are relative to
    ``base_url`` and must already be URL-encoded by the caller.
    """

    DEFAULT_TIMEOUT = 60  # seconds

    def __init__(
        self,
        base_url: str,
        token: str = "",
        auth_scheme: str = "token",
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = "scmkit",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            base_url: API root, e.g. ``https://gitea.example.com/api/v1``
            token: API token; omitted from requests when empty
            auth_scheme: Authorization scheme (``token`` or ``Bearer``)
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header value
            client: Pre-configured client to use instead of creating one
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.auth_scheme = auth_scheme
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client

    def _default_headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.token:
            headers["Authorization"] = f"{self.auth_scheme} {self.token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def execute(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json: Any = None,
        content: bytes | None = None,
    ) -> RawResponse:
        """
        Issue a single HTTP request.

        Args:
            method: HTTP method
            path: Path relative to ``base_url``
            params: Query parameters
            headers: Extra request headers
            json: JSON-serializable request body
            content: Raw request body

        Returns:
            RawResponse with status, headers and body

        Raises:
            RequestTimeoutError: If the transport deadline elapsed
            TransportError: If no response was received
        """
        client = await self._get_client()
        url = f"{self.base_url}/{path.lstrip('/')}"
        request_headers = self._default_headers()
        if headers:
            request_headers.update(headers)

        try:
            response = await client.request(
                method,
                url,
                params=params,
                headers=request_headers,
                json=json,
                content=content,
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.timeout) from e
        except httpx.TransportError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        logger.debug(f"{method} {path} -> {response.status_code}")
        return RawResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body=response.content,
            url=str(response.url),
            reason=response.reason_phrase,
        )


class ServerProbe:
    """
    One-time, lazily issued query of the server's version/edition.

    The result (or the failure) is cached for the lifetime of the instance.
    Concurrent first callers share a single probe request.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[ServerInfo]],
    ) -> None:
        """
        Initialize the probe.

        Args:
            fetch: Coroutine factory performing the probe request
        """
        self._fetch = fetch
        self._lock: asyncio.Lock | None = None
        self._done = False
        self._info: ServerInfo | None = None
        self._error: ScmError | None = None

    @property
    def done(self) -> bool:
        return self._done

    async def get(self, required: bool = False) -> ServerInfo | None:
        """
        Return the cached server info, probing on first use.

        Args:
            required: Raise instead of degrading when the probe failed

        Returns:
            ServerInfo, or None when the probe failed and is not required

        Raises:
            TransportError: If ``required`` and the probe failed
        """
        if not self._done:
            if self._lock is None:
                self._lock = asyncio.Lock()
            async with self._lock:
                if not self._done:
                    try:
                        self._info = await self._fetch()
                    except ScmError as e:
                        logger.warning(f"Server capability probe failed: {e.message}")
                        self._error = e
                    self._done = True

        if self._error is not None and required:
            raise TransportError(
                f"server capability probe failed: {self._error.message}"
            ) from self._error
        return self._info
