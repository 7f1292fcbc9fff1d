"""
Exception hierarchy for scmkit.

Every error raised by a driver belongs to one canonical kind so that calling
code can branch on ``err.kind`` regardless of which provider is active.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of canonical error kinds."""

    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DECODE = "decode"
    UNSUPPORTED = "unsupported"
    VALIDATION = "validation"


class ScmError(Exception):
    """Base exception for all scmkit errors."""

    kind: ErrorKind

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


# Transport Errors


class TransportError(ScmError):
    """No response was received (DNS, connect, TLS or protocol failure)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, details: str = "", hint: str | None = None) -> None:
        message = "Network error communicating with the SCM server"
        if details:
            message = f"{message}: {details}"
        super().__init__(
            message,
            hint or "Check the server URL and your network connection",
        )


class RequestTimeoutError(TransportError):
    """The request did not complete within the transport deadline."""

    def __init__(self, timeout: float | None = None) -> None:
        details = f"timed out after {timeout:g} seconds" if timeout else "timed out"
        super().__init__(details, "Increase the timeout or try again later")
        self.timeout = timeout


# HTTP Status Errors


class HTTPStatusError(ScmError):
    """The server answered with a non-2xx status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(
        self,
        status_code: int,
        message: str,
        hint: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = message
        super().__init__(f"SCM API error (HTTP {status_code}): {message}", hint)


class ClientError(HTTPStatusError):
    """The server rejected the request (4xx)."""


class NotFoundError(ClientError):
    """The requested resource does not exist (404)."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(
            404,
            message,
            "Check that the repository exists and you have access to it",
        )


class UnauthorizedError(ClientError):
    """Authentication failed or access is forbidden (401/403)."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(
            status_code,
            message,
            "Check that the API token is valid and has the required scopes",
        )


class RateLimitError(ClientError):
    """The provider's API rate limit is exhausted."""

    def __init__(self, status_code: int, message: str, reset: int | None = None) -> None:
        hint = "Wait a few minutes and try again"
        if reset:
            hint = f"Rate limit resets at epoch {reset}. Wait and try again."
        super().__init__(status_code, message, hint)
        self.reset = reset


class ServerError(HTTPStatusError):
    """The server failed to fulfil a valid request (5xx)."""


# Decode Errors


class DecodeError(ScmError):
    """A successful response body could not be decoded."""

    kind = ErrorKind.DECODE

    def __init__(self, details: str) -> None:
        super().__init__(
            f"Failed to decode response: {details}",
            "The provider API may have changed; check the server version",
        )


# Capability Errors


class NotSupportedError(ScmError):
    """The operation is outside the active provider's capability set."""

    kind = ErrorKind.UNSUPPORTED

    def __init__(self, provider: str, operation: str) -> None:
        self.provider = provider
        self.operation = operation
        super().__init__(f"Operation '{operation}' is not supported by {provider}")


# Validation Errors


class InputValidationError(ScmError):
    """Caller supplied empty or contradictory arguments."""

    kind = ErrorKind.VALIDATION


class InvalidRepositoryError(InputValidationError):
    """Invalid repository format."""

    def __init__(self, repo: str) -> None:
        super().__init__(
            f"Invalid repository format: '{repo}'",
            "Use format 'owner/repo', e.g., 'octocat/Hello-World'",
        )


class ConfigError(InputValidationError):
    """Client configuration is incomplete or invalid."""
