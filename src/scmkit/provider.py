"""
Abstract service interfaces shared by every driver.

Each provider supplies one concrete implementation of every service, so
calling code never branches on the active provider. Operations a provider
cannot perform still exist and fail uniformly with ``NotSupportedError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from .models import (
    Change,
    Content,
    ContentInfo,
    ContentParams,
    ListOptions,
    Page,
    PullRequest,
    PullRequestInput,
    PullRequestListOptions,
    PullRequestMergeOptions,
    Response,
    ServerInfo,
)
from .transport import ServerProbe, Transport


class ProviderType(str, Enum):
    """Supported SCM providers."""

    GITEA = "gitea"
    STASH = "stash"
    GITHUB = "github"


class PullRequestService(ABC):
    """Pull request operations."""

    @abstractmethod
    async def find(self, repo: str, number: int) -> PullRequest:
        """
        Fetch a single pull request.

        Args:
            repo: Repository path (``owner/name`` or ``PROJECT/repo``)
            number: Pull request number

        Raises:
            NotFoundError: If the pull request does not exist
        """
        ...

    @abstractmethod
    async def list(
        self,
        repo: str,
        options: PullRequestListOptions | None = None,
    ) -> tuple[list[PullRequest], Page]:
        """
        List one page of pull requests in provider order.

        Returns:
            The pull requests and the pagination descriptor
        """
        ...

    @abstractmethod
    async def create(self, repo: str, data: PullRequestInput) -> PullRequest:
        """
        Open a new pull request.

        Raises:
            InputValidationError: If title/head/base are empty or head == base
        """
        ...

    @abstractmethod
    async def close(self, repo: str, number: int) -> Response:
        """Transition an open pull request to closed."""
        ...

    @abstractmethod
    async def reopen(self, repo: str, number: int) -> Response:
        """Transition a closed pull request back to open."""
        ...

    @abstractmethod
    async def merge(
        self,
        repo: str,
        number: int,
        options: PullRequestMergeOptions | None = None,
    ) -> Response:
        """Merge a pull request; an empty success body is valid."""
        ...

    @abstractmethod
    async def list_changes(
        self,
        repo: str,
        number: int,
        options: ListOptions | None = None,
    ) -> list[Change]:
        """Fetch the pull request's patch text and parse it per file."""
        ...


class ContentService(ABC):
    """Repository file operations."""

    @abstractmethod
    async def find(self, repo: str, path: str, ref: str) -> Content:
        """
        Read a file at a revision.

        Raises:
            NotFoundError: If the path does not exist at ``ref``
        """
        ...

    @abstractmethod
    async def list(
        self,
        repo: str,
        path: str,
        ref: str,
        options: ListOptions | None = None,
    ) -> tuple[list[ContentInfo], Page]:
        """List the entries of a directory."""
        ...

    @abstractmethod
    async def create(self, repo: str, path: str, params: ContentParams) -> Response:
        """Create a new file; ``params.data`` is sent unmodified."""
        ...

    @abstractmethod
    async def update(self, repo: str, path: str, params: ContentParams) -> Response:
        """Update an existing file."""
        ...

    @abstractmethod
    async def delete(self, repo: str, path: str, params: ContentParams) -> Response:
        """Delete a file."""
        ...


class Client:
    """
    A provider's full set of services bound to one transport.

    The optional capability probe is scoped to this instance; construct a
    new client to refresh it.
    """

    def __init__(
        self,
        provider: ProviderType,
        transport: Transport,
        pull_requests: PullRequestService,
        contents: ContentService,
        probe: ServerProbe | None = None,
    ) -> None:
        self.provider = provider
        self.transport = transport
        self.pull_requests = pull_requests
        self.contents = contents
        self.probe = probe

    @property
    def base_url(self) -> str:
        return self.transport.base_url

    async def server_info(self, required: bool = False) -> ServerInfo | None:
        """Return the probed server info, or None for providers without a probe."""
        if self.probe is None:
            return None
        return await self.probe.get(required=required)

    async def close(self) -> None:
        """Close any resources held by the client."""
        await self.transport.close()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
