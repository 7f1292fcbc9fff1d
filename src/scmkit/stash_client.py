"""
Bitbucket Server (Stash) driver.

Repository paths take the form ``PROJECT/repo``. List endpoints page with
``start``/``limit`` and report continuation in the response envelope.
Bitbucket Server has no endpoint for updating or deleting file contents,
so those operations are gated as unsupported.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .capabilities import Operation
from .diff import parse_patch
from .exceptions import DecodeError, NotSupportedError
from .models import (
    Change,
    Content,
    ContentInfo,
    ContentKind,
    ContentParams,
    ListOptions,
    MergeMethod,
    Page,
    PullRequest,
    PullRequestBranch,
    PullRequestInput,
    PullRequestListOptions,
    PullRequestMergeOptions,
    PullRequestState,
    Response,
    User,
    split_repo,
)
from .provider import Client, ContentService, ProviderType, PullRequestService
from .service import BaseService
from .translate import decode_json, raise_for_status
from .transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60  # seconds

# Page size the server applies when no limit is sent.
DEFAULT_PAGE_LIMIT = 25

MERGE_STRATEGIES = {
    MergeMethod.SQUASH: "squash",
    MergeMethod.REBASE: "rebase-ff-only",
    MergeMethod.REBASE_MERGE: "rebase-no-ff",
    MergeMethod.FAST_FORWARD_ONLY: "ff-only",
}


def _repo_path(repo: str) -> str:
    project, name = split_repo(repo)
    return f"projects/{quote(project, safe='~')}/repos/{quote(name, safe='')}"


def _file_path(path: str) -> str:
    return quote(path.strip("/"), safe="/")


def _page_params(options: ListOptions) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if options.size:
        params["limit"] = options.size
    if options.page > 1:
        params["start"] = (options.page - 1) * (options.size or DEFAULT_PAGE_LIMIT)
    return params


def _values(data: Any) -> list[Any]:
    if not isinstance(data, dict) or not isinstance(data.get("values"), list):
        raise DecodeError("expected a paged response with 'values'")
    return data["values"]


class _StashService(BaseService):
    provider = ProviderType.STASH


class StashPullRequestService(_StashService, PullRequestService):
    """Bitbucket Server implementation of PullRequestService."""

    @staticmethod
    def _parse_user(data: dict[str, Any] | None) -> User:
        user = (data or {}).get("user") or {}
        return User(
            login=user.get("slug") or user.get("name", ""),
            name=user.get("displayName", ""),
            email=user.get("emailAddress", ""),
        )

    @staticmethod
    def _parse_ref(data: dict[str, Any] | None) -> PullRequestBranch:
        if not data:
            return PullRequestBranch()
        repository = data.get("repository") or {}
        project = (repository.get("project") or {}).get("key", "")
        slug = repository.get("slug", "")
        return PullRequestBranch(
            ref=data.get("displayId", ""),
            sha=data.get("latestCommit", ""),
            repo=f"{project}/{slug}" if project and slug else "",
        )

    def _parse_pull_request(self, data: Any) -> PullRequest:
        """Parse pull request JSON from the Bitbucket Server API."""
        if not isinstance(data, dict) or "id" not in data:
            raise DecodeError("expected a pull request object")

        state_str = str(data.get("state", "OPEN")).upper()
        if state_str == "MERGED":
            state = PullRequestState.MERGED
        elif state_str == "DECLINED":
            state = PullRequestState.CLOSED
        else:
            state = PullRequestState.OPEN

        head = self._parse_ref(data.get("fromRef"))
        base = self._parse_ref(data.get("toRef"))
        links = (data.get("links") or {}).get("self") or [{}]
        link = links[0].get("href", "")
        number = data["id"]

        return PullRequest(
            number=number,
            title=data.get("title", ""),
            body=data.get("description") or "",
            state=state,
            sha=head.sha,
            ref=f"refs/pull-requests/{number}/from",
            source=head.ref,
            target=base.ref,
            base=base,
            head=head,
            fork=head.repo,
            link=link,
            diff_link=f"{link}/diff" if link else "",
            closed=bool(data.get("closed")),
            merged=state == PullRequestState.MERGED,
            mergeable=bool(data.get("open")) and not data.get("locked", False),
            author=self._parse_user(data.get("author")),
            created=self._parse_datetime(data.get("createdDate")),
            updated=self._parse_datetime(data.get("updatedDate")),
        )

    async def find(self, repo: str, number: int) -> PullRequest:
        self._require(Operation.PR_FIND)
        self._validate_number(number)
        data, _ = await self._get_json(f"{_repo_path(repo)}/pull-requests/{number}")
        return self._parse_pull_request(data)

    async def list(
        self,
        repo: str,
        options: PullRequestListOptions | None = None,
    ) -> tuple[list[PullRequest], Page]:
        self._require(Operation.PR_LIST)
        options = options or PullRequestListOptions()
        params = _page_params(options)
        params["state"] = "ALL"
        if options.open and not options.closed:
            params["state"] = "OPEN"
        elif options.closed and not options.open:
            params["state"] = "DECLINED"

        data, raw = await self._get_json(f"{_repo_path(repo)}/pull-requests", params=params)
        pulls = [self._parse_pull_request(item) for item in _values(data)]
        return pulls, self._page(raw, data, options)

    @staticmethod
    def _ref(repo: str, branch: str) -> dict[str, Any]:
        project, name = split_repo(repo)
        return {
            "id": branch if branch.startswith("refs/") else f"refs/heads/{branch}",
            "repository": {"slug": name, "project": {"key": project}},
        }

    async def create(self, repo: str, data: PullRequestInput) -> PullRequest:
        self._require(Operation.PR_CREATE)
        self._validate_pull_request_input(data)
        logger.info(f"Creating pull request in {repo}: {data.head} -> {data.base}")
        raw = await self._execute(
            "POST",
            f"{_repo_path(repo)}/pull-requests",
            json={
                "title": data.title,
                "description": data.body,
                "fromRef": self._ref(repo, data.head),
                "toRef": self._ref(repo, data.base),
            },
        )
        return self._parse_pull_request(decode_json(raw))

    async def _version(self, repo: str, number: int, version: int | None = None) -> int:
        """Return the optimistic-lock version, reading it when not supplied."""
        if version is not None:
            return version
        data, _ = await self._get_json(f"{_repo_path(repo)}/pull-requests/{number}")
        if not isinstance(data, dict) or "version" not in data:
            raise DecodeError("pull request has no 'version' field")
        return int(data["version"])

    async def _transition(
        self,
        repo: str,
        number: int,
        action: str,
        version: int | None = None,
        json: dict[str, Any] | None = None,
    ) -> Response:
        self._validate_number(number)
        version = await self._version(repo, number, version)
        logger.info(f"Pull request {repo}#{number}: {action} (version {version})")
        return await self._send(
            "POST",
            f"{_repo_path(repo)}/pull-requests/{number}/{action}",
            params={"version": version},
            json=json,
        )

    async def close(self, repo: str, number: int) -> Response:
        self._require(Operation.PR_CLOSE)
        return await self._transition(repo, number, "decline")

    async def reopen(self, repo: str, number: int) -> Response:
        self._require(Operation.PR_REOPEN)
        return await self._transition(repo, number, "reopen")

    async def merge(
        self,
        repo: str,
        number: int,
        options: PullRequestMergeOptions | None = None,
    ) -> Response:
        self._require(Operation.PR_MERGE)
        options = options or PullRequestMergeOptions()
        payload: dict[str, Any] = {}
        if options.commit_message:
            payload["message"] = options.commit_message
        if options.method in MERGE_STRATEGIES:
            payload["strategyId"] = MERGE_STRATEGIES[options.method]
        if options.delete_source_branch:
            logger.warning("Bitbucket Server does not delete source branches on merge")
        return await self._transition(
            repo,
            number,
            "merge",
            version=options.version,
            json=payload or None,
        )

    async def list_changes(
        self,
        repo: str,
        number: int,
        options: ListOptions | None = None,
    ) -> list[Change]:
        self._require(Operation.PR_LIST_CHANGES)
        self._validate_number(number)
        raw = await self._execute(
            "GET",
            f"{_repo_path(repo)}/pull-requests/{number}.diff",
            headers={"Accept": "text/plain"},
        )
        raise_for_status(raw)
        return parse_patch(raw.body)


class StashContentService(_StashService, ContentService):
    """Bitbucket Server implementation of ContentService."""

    async def find(self, repo: str, path: str, ref: str) -> Content:
        self._require(Operation.CONTENT_FIND)
        params = {"at": ref} if ref else None
        raw = await self._execute(
            "GET",
            f"{_repo_path(repo)}/raw/{_file_path(path)}",
            params=params,
        )
        raise_for_status(raw)
        return Content(path=path, data=raw.body, sha=ref)

    async def list(
        self,
        repo: str,
        path: str,
        ref: str,
        options: ListOptions | None = None,
    ) -> tuple[list[ContentInfo], Page]:
        self._require(Operation.CONTENT_LIST)
        options = options or ListOptions()
        params = _page_params(options)
        if ref:
            params["at"] = ref
        directory = _file_path(path)
        data, raw = await self._get_json(f"{_repo_path(repo)}/files/{directory}", params=params)
        prefix = f"{directory}/" if directory else ""
        entries = [
            ContentInfo(path=f"{prefix}{name}", sha=ref, kind=ContentKind.FILE)
            for name in _values(data)
        ]
        return entries, self._page(raw, data, options)

    async def create(self, repo: str, path: str, params: ContentParams) -> Response:
        self._require(Operation.CONTENT_CREATE)
        params = self._validate_content_params(path, params)
        payload: dict[str, Any] = {
            "message": params.message,
            "content": self._text_payload(params.data),
            "author": {
                "name": params.signature.name,
                "email": params.signature.email,
            },
        }
        branch = params.branch or params.ref
        if branch:
            payload["branch"] = branch
        if params.sha:
            payload["sourceCommitId"] = params.sha
        logger.info(f"Creating {path} in {repo}")
        return await self._send(
            "PUT",
            f"{_repo_path(repo)}/browse/{_file_path(path)}",
            json=payload,
        )

    async def update(self, repo: str, path: str, params: ContentParams) -> Response:
        raise NotSupportedError(self.provider.value, Operation.CONTENT_UPDATE.value)

    async def delete(self, repo: str, path: str, params: ContentParams) -> Response:
        raise NotSupportedError(self.provider.value, Operation.CONTENT_DELETE.value)


def new_client(
    base_url: str,
    token: str = "",
    timeout: float = DEFAULT_TIMEOUT,
    http_client: httpx.AsyncClient | None = None,
) -> Client:
    """
    Create a Bitbucket Server client.

    Args:
        base_url: Base URL of the server (e.g., http://example.com:7990)
        token: HTTP access token
        timeout: Request timeout in seconds
        http_client: Pre-configured httpx client (e.g. for tests)

    Returns:
        Client bound to the Bitbucket Server services
    """
    transport = Transport(
        f"{base_url.rstrip('/')}/rest/api/1.0",
        token=token,
        auth_scheme="Bearer",
        timeout=timeout,
        client=http_client,
    )
    return Client(
        provider=ProviderType.STASH,
        transport=transport,
        pull_requests=StashPullRequestService(transport),
        contents=StashContentService(transport),
    )
