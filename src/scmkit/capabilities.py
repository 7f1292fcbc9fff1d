"""
Static per-provider capability policy.

Operations missing from a provider's set fail with ``NotSupportedError``
before any network I/O takes place.
"""

from dataclasses import dataclass
from enum import Enum

from .exceptions import NotSupportedError
from .provider import ProviderType


class Operation(str, Enum):
    """Canonical service operations."""

    PR_FIND = "pull_requests.find"
    PR_LIST = "pull_requests.list"
    PR_CREATE = "pull_requests.create"
    PR_CLOSE = "pull_requests.close"
    PR_REOPEN = "pull_requests.reopen"
    PR_MERGE = "pull_requests.merge"
    PR_LIST_CHANGES = "pull_requests.list_changes"
    CONTENT_FIND = "contents.find"
    CONTENT_LIST = "contents.list"
    CONTENT_CREATE = "contents.create"
    CONTENT_UPDATE = "contents.update"
    CONTENT_DELETE = "contents.delete"


@dataclass(frozen=True)
class CapabilitySet:
    """Immutable set of operations a provider supports."""

    operations: frozenset[Operation]

    def supports(self, operation: Operation) -> bool:
        return operation in self.operations

    def __contains__(self, operation: object) -> bool:
        return operation in self.operations


ALL_OPERATIONS = frozenset(Operation)

CAPABILITIES: dict[ProviderType, CapabilitySet] = {
    ProviderType.GITEA: CapabilitySet(ALL_OPERATIONS),
    ProviderType.GITHUB: CapabilitySet(ALL_OPERATIONS),
    # Bitbucket Server only exposes a single "browse" write endpoint.
    ProviderType.STASH: CapabilitySet(
        ALL_OPERATIONS - {Operation.CONTENT_UPDATE, Operation.CONTENT_DELETE}
    ),
}


def check(provider: ProviderType, operation: Operation) -> bool:
    """Return whether ``provider`` supports ``operation``."""
    capabilities = CAPABILITIES.get(provider)
    return capabilities is not None and capabilities.supports(operation)


def require(provider: ProviderType, operation: Operation) -> None:
    """
    Fail fast for unsupported operations.

    Raises:
        NotSupportedError: If ``provider`` lacks ``operation``
    """
    if not check(provider, operation):
        raise NotSupportedError(provider.value, operation.value)
