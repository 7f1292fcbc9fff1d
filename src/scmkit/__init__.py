"""
scmkit: one async interface over multiple source-code-hosting services.

This package normalizes pull request and repository content operations
across Gitea, Bitbucket Server and GitHub into a single canonical model,
pagination descriptor and error taxonomy.
"""

from .capabilities import Operation, check
from .config import ClientConfig, create_client
from .exceptions import (
    ClientError,
    DecodeError,
    ErrorKind,
    HTTPStatusError,
    InputValidationError,
    NotFoundError,
    NotSupportedError,
    ScmError,
    ServerError,
    TransportError,
)
from .models import (
    Change,
    Content,
    ContentParams,
    ListOptions,
    Page,
    PullRequest,
    PullRequestInput,
    PullRequestListOptions,
    PullRequestMergeOptions,
    PullRequestState,
    Response,
    Signature,
)
from .log import LogLevel, setup_logging
from .provider import Client, ProviderType

__version__ = "1.0.0"

__all__ = [
    "Change",
    "Client",
    "ClientConfig",
    "ClientError",
    "Content",
    "ContentParams",
    "DecodeError",
    "ErrorKind",
    "HTTPStatusError",
    "InputValidationError",
    "ListOptions",
    "LogLevel",
    "NotFoundError",
    "NotSupportedError",
    "Operation",
    "Page",
    "ProviderType",
    "PullRequest",
    "PullRequestInput",
    "PullRequestListOptions",
    "PullRequestMergeOptions",
    "PullRequestState",
    "Response",
    "ScmError",
    "ServerError",
    "Signature",
    "TransportError",
    "check",
    "create_client",
    "setup_logging",
    "__version__",
]
