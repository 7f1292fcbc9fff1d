"""
Pydantic models for the canonical SCM domain.

Every driver decodes provider payloads into these types, and every read
operation returns freshly constructed, immutable instances.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .exceptions import InvalidRepositoryError


def split_repo(repo: str) -> tuple[str, str]:
    """Split an ``owner/name`` repository path into its two parts."""
    parts = repo.split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidRepositoryError(repo)
    return parts[0], parts[1]


class User(BaseModel):
    """Account that authored a pull request or commit."""

    model_config = ConfigDict(frozen=True)

    login: str
    name: str = ""
    email: str = ""
    avatar: str = ""


class Signature(BaseModel):
    """Commit author identity."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""


class PullRequestState(str, Enum):
    """Pull request lifecycle state."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class PullRequestBranch(BaseModel):
    """One side (base or head) of a pull request."""

    model_config = ConfigDict(frozen=True)

    ref: str = ""
    sha: str = ""
    repo: str = ""


class PullRequest(BaseModel):
    """
    Snapshot of a pull request.

    ``source``/``target`` are branch names, ``ref`` is the provider's
    read-only ref for the head commit (e.g. ``refs/pull/1/head``).
    """

    model_config = ConfigDict(frozen=True)

    number: int
    title: str
    body: str = ""
    state: PullRequestState = PullRequestState.OPEN
    sha: str = ""
    ref: str = ""
    source: str = ""
    target: str = ""
    base: PullRequestBranch = Field(default_factory=PullRequestBranch)
    head: PullRequestBranch = Field(default_factory=PullRequestBranch)
    fork: str = ""
    link: str = ""
    diff_link: str = ""
    closed: bool = False
    merged: bool = False
    mergeable: bool = False
    merge_sha: str = ""
    author: User = Field(default_factory=lambda: User(login=""))
    labels: list[str] = Field(default_factory=list)
    created: datetime | None = None
    updated: datetime | None = None


class PullRequestInput(BaseModel):
    """Fields needed to open a pull request."""

    model_config = ConfigDict(frozen=True)

    title: str
    body: str = ""
    head: str
    base: str


class ListOptions(BaseModel):
    """Requested page of a list operation; providers may ignore fields."""

    model_config = ConfigDict(frozen=True)

    page: int = 0
    size: int = 0


class PullRequestListOptions(ListOptions):
    """List options with pull request state filters."""

    open: bool = False
    closed: bool = False
    labels: list[str] = Field(default_factory=list)


class MergeMethod(str, Enum):
    """Merge strategies understood by at least one provider."""

    MERGE = "merge"
    SQUASH = "squash"
    REBASE = "rebase"
    REBASE_MERGE = "rebase-merge"
    FAST_FORWARD_ONLY = "fast-forward-only"


class PullRequestMergeOptions(BaseModel):
    """Optional merge parameters."""

    model_config = ConfigDict(frozen=True)

    method: MergeMethod = MergeMethod.MERGE
    commit_title: str = ""
    commit_message: str = ""
    sha: str = ""
    delete_source_branch: bool = False
    # Optimistic-locking version required by Bitbucket Server transitions.
    version: int | None = None


class Change(BaseModel):
    """One file section of a parsed patch."""

    model_config = ConfigDict(frozen=True)

    path: str
    previous_path: str = ""
    added: bool = False
    renamed: bool = False
    deleted: bool = False
    binary: bool = False
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str = ""


class Content(BaseModel):
    """File contents read at a given revision."""

    model_config = ConfigDict(frozen=True)

    path: str
    data: bytes = b""
    sha: str = ""
    blob_id: str = ""


class ContentKind(str, Enum):
    """Type of a directory entry."""

    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"
    GITLINK = "gitlink"


class ContentInfo(BaseModel):
    """Directory listing entry."""

    model_config = ConfigDict(frozen=True)

    path: str
    sha: str = ""
    blob_id: str = ""
    kind: ContentKind = ContentKind.FILE


class ContentParams(BaseModel):
    """
    Request descriptor for content writes.

    ``data`` is sent exactly as given; callers apply any encoding the
    provider requires (e.g. base64) beforehand.
    """

    model_config = ConfigDict(frozen=True)

    message: str = ""
    data: bytes = b""
    branch: str = ""
    ref: str = ""
    sha: str = ""
    signature: Signature = Field(default_factory=Signature)


class Page(BaseModel):
    """
    Normalized pagination state of a list response.

    ``total`` is advisory only; continuation is signalled by ``next``.
    """

    model_config = ConfigDict(frozen=True)

    page: int = 0
    size: int = 0
    next: int | None = None
    prev: int | None = None
    first: int | None = None
    last: int | None = None
    total: int | None = None
    next_url: str = ""
    hints: dict[str, str] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        """Whether the provider signalled a further page."""
        return self.next is not None or bool(self.next_url)


class Rate(BaseModel):
    """API rate limit snapshot."""

    model_config = ConfigDict(frozen=True)

    limit: int = 0
    remaining: int = 0
    reset: int = 0


class Response(BaseModel):
    """Metadata of a completed request."""

    model_config = ConfigDict(frozen=True)

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    page: Page = Field(default_factory=Page)
    rate: Rate | None = None


class ServerInfo(BaseModel):
    """Cached result of the server capability probe."""

    model_config = ConfigDict(frozen=True)

    version: str = ""
    edition: str = ""
    raw: dict[str, str] = Field(default_factory=dict)

    @property
    def version_tuple(self) -> tuple[int, ...]:
        """Numeric version components, e.g. ``(1, 21, 3)``."""
        numbers: list[int] = []
        for part in self.version.lstrip("v").split("+")[0].split("-")[0].split("."):
            if not part.isdigit():
                break
            numbers.append(int(part))
        return tuple(numbers)

    def at_least(self, *version: int) -> bool:
        """Check whether the server version is >= ``version``."""
        return bool(self.version_tuple) and self.version_tuple >= version
