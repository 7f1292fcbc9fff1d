"""
Gitea driver.

Implements the pull request and content services against the Gitea REST
API (``/api/v1``). The server version is probed once per client, lazily,
before the first request, and selects merge payload variants.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .capabilities import Operation
from .diff import parse_patch
from .exceptions import DecodeError, InputValidationError, NotSupportedError
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
    ServerInfo,
    User,
    split_repo,
)
from .provider import Client, ContentService, ProviderType, PullRequestService
from .service import BaseService
from .translate import decode_json, raise_for_status
from .transport import ServerProbe, Transport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60  # seconds

# First releases accepting the given merge payload features.
DELETE_BRANCH_AFTER_MERGE_SINCE = (1, 17)
FAST_FORWARD_ONLY_SINCE = (1, 21)


def _repo_path(repo: str) -> str:
    owner, name = split_repo(repo)
    return f"repos/{quote(owner, safe='')}/{quote(name, safe='')}"


def _file_path(path: str) -> str:
    return quote(path.strip("/"), safe="/")


class _GiteaService(BaseService):
    provider = ProviderType.GITEA

    async def _before_request(self) -> None:
        if self.probe is not None:
            await self.probe.get()

    @staticmethod
    def _parse_user(data: dict[str, Any] | None) -> User:
        if not data:
            return User(login="")
        return User(
            login=data.get("login") or data.get("username", ""),
            name=data.get("full_name", ""),
            email=data.get("email", ""),
            avatar=data.get("avatar_url", ""),
        )


class GiteaPullRequestService(_GiteaService, PullRequestService):
    """Gitea implementation of PullRequestService."""

    def _parse_branch(self, data: dict[str, Any] | None) -> PullRequestBranch:
        if not data:
            return PullRequestBranch()
        repo = data.get("repo") or {}
        return PullRequestBranch(
            ref=data.get("ref", ""),
            sha=data.get("sha", ""),
            repo=repo.get("full_name", ""),
        )

    def _parse_pull_request(self, data: Any) -> PullRequest:
        """Parse pull request JSON from the Gitea API."""
        if not isinstance(data, dict) or "number" not in data:
            raise DecodeError("expected a pull request object")

        merged = bool(data.get("merged"))
        closed = (data.get("state") or "open").lower() == "closed"
        if merged:
            state = PullRequestState.MERGED
        elif closed:
            state = PullRequestState.CLOSED
        else:
            state = PullRequestState.OPEN

        base = self._parse_branch(data.get("base"))
        head = self._parse_branch(data.get("head"))
        number = data["number"]

        return PullRequest(
            number=number,
            title=data.get("title", ""),
            body=data.get("body") or "",
            state=state,
            sha=head.sha,
            ref=f"refs/pull/{number}/head",
            source=head.ref,
            target=base.ref,
            base=base,
            head=head,
            fork=head.repo,
            link=data.get("html_url", ""),
            diff_link=data.get("diff_url", ""),
            closed=closed or merged,
            merged=merged,
            mergeable=bool(data.get("mergeable")),
            merge_sha=data.get("merge_commit_sha") or "",
            author=self._parse_user(data.get("user")),
            labels=[label.get("name", "") for label in data.get("labels") or []],
            created=self._parse_datetime(data.get("created_at")),
            updated=self._parse_datetime(data.get("updated_at")),
        )

    async def find(self, repo: str, number: int) -> PullRequest:
        self._require(Operation.PR_FIND)
        self._validate_number(number)
        data, _ = await self._get_json(f"{_repo_path(repo)}/pulls/{number}")
        return self._parse_pull_request(data)

    async def list(
        self,
        repo: str,
        options: PullRequestListOptions | None = None,
    ) -> tuple[list[PullRequest], Page]:
        self._require(Operation.PR_LIST)
        options = options or PullRequestListOptions()
        params: dict[str, Any] = {"state": "all"}
        if options.open and not options.closed:
            params["state"] = "open"
        elif options.closed and not options.open:
            params["state"] = "closed"
        if options.page:
            params["page"] = options.page
        if options.size:
            params["limit"] = options.size

        data, raw = await self._get_json(f"{_repo_path(repo)}/pulls", params=params)
        if not isinstance(data, list):
            raise DecodeError("expected a list of pull requests")
        return [self._parse_pull_request(item) for item in data], self._page(raw, data, options)

    async def create(self, repo: str, data: PullRequestInput) -> PullRequest:
        self._require(Operation.PR_CREATE)
        self._validate_pull_request_input(data)
        logger.info(f"Creating pull request in {repo}: {data.head} -> {data.base}")
        raw = await self._execute(
            "POST",
            f"{_repo_path(repo)}/pulls",
            json={
                "title": data.title,
                "body": data.body,
                "head": data.head,
                "base": data.base,
            },
        )
        return self._parse_pull_request(decode_json(raw))

    async def _set_state(self, repo: str, number: int, state: str) -> Response:
        self._validate_number(number)
        logger.info(f"Setting pull request {repo}#{number} state to {state}")
        return await self._send(
            "PATCH",
            f"{_repo_path(repo)}/pulls/{number}",
            json={"state": state},
        )

    async def close(self, repo: str, number: int) -> Response:
        self._require(Operation.PR_CLOSE)
        return await self._set_state(repo, number, "closed")

    async def reopen(self, repo: str, number: int) -> Response:
        self._require(Operation.PR_REOPEN)
        return await self._set_state(repo, number, "open")

    async def _merge_payload(self, options: PullRequestMergeOptions) -> dict[str, Any]:
        payload: dict[str, Any] = {"Do": options.method.value}
        if options.commit_title:
            payload["MergeTitleField"] = options.commit_title
        if options.commit_message:
            payload["MergeMessageField"] = options.commit_message
        if options.sha:
            payload["head_commit_id"] = options.sha

        if options.method == MergeMethod.FAST_FORWARD_ONLY:
            info = await self.probe.get(required=True) if self.probe else None
            if info is None or not info.at_least(*FAST_FORWARD_ONLY_SINCE):
                version = info.version if info else "unknown"
                raise NotSupportedError(f"gitea {version}", "fast-forward-only merge")

        if options.delete_source_branch:
            info = await self.probe.get() if self.probe else None
            if info is not None and info.at_least(*DELETE_BRANCH_AFTER_MERGE_SINCE):
                payload["delete_branch_after_merge"] = True
            else:
                logger.warning("Server version unknown or too old; not requesting branch deletion")
        return payload

    async def merge(
        self,
        repo: str,
        number: int,
        options: PullRequestMergeOptions | None = None,
    ) -> Response:
        self._require(Operation.PR_MERGE)
        self._validate_number(number)
        payload = await self._merge_payload(options or PullRequestMergeOptions())
        logger.info(f"Merging pull request {repo}#{number} ({payload['Do']})")
        return await self._send("POST", f"{_repo_path(repo)}/pulls/{number}/merge", json=payload)

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
            f"{_repo_path(repo)}/pulls/{number}.patch",
            headers={"Accept": "text/plain"},
        )
        raise_for_status(raw)
        return parse_patch(raw.body)


class GiteaContentService(_GiteaService, ContentService):
    """Gitea implementation of ContentService."""

    KINDS = {
        "file": ContentKind.FILE,
        "dir": ContentKind.DIR,
        "symlink": ContentKind.SYMLINK,
        "submodule": ContentKind.GITLINK,
    }

    async def find(self, repo: str, path: str, ref: str) -> Content:
        self._require(Operation.CONTENT_FIND)
        params = {"ref": ref} if ref else None
        data, _ = await self._get_json(
            f"{_repo_path(repo)}/contents/{_file_path(path)}",
            params=params,
        )
        if not isinstance(data, dict) or data.get("type") != "file":
            raise DecodeError(f"'{path}' is not a file")

        encoded = data.get("content") or ""
        if data.get("encoding", "base64") != "base64":
            raise DecodeError(f"unexpected content encoding '{data.get('encoding')}'")
        try:
            decoded = base64.b64decode(encoded)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"invalid base64 content for '{path}': {e}") from e

        return Content(
            path=data.get("path", path),
            data=decoded,
            sha=data.get("last_commit_sha") or ref,
            blob_id=data.get("sha", ""),
        )

    async def list(
        self,
        repo: str,
        path: str,
        ref: str,
        options: ListOptions | None = None,
    ) -> tuple[list[ContentInfo], Page]:
        self._require(Operation.CONTENT_LIST)
        params = {"ref": ref} if ref else None
        data, raw = await self._get_json(
            f"{_repo_path(repo)}/contents/{_file_path(path)}",
            params=params,
        )
        if not isinstance(data, list):
            raise DecodeError(f"'{path}' is not a directory")
        entries = [
            ContentInfo(
                path=item.get("path", ""),
                sha=item.get("last_commit_sha") or "",
                blob_id=item.get("sha", ""),
                kind=self.KINDS.get(item.get("type", "file"), ContentKind.FILE),
            )
            for item in data
        ]
        return entries, self._page(raw, data, options)

    def _write_payload(self, params: ContentParams, include_data: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": params.message}
        if include_data:
            payload["content"] = self._text_payload(params.data)
        if params.branch:
            payload["branch"] = params.branch
        if params.sha:
            payload["sha"] = params.sha
        if params.signature.name or params.signature.email:
            author = {"name": params.signature.name, "email": params.signature.email}
            payload["author"] = author
            payload["committer"] = author
        return payload

    async def create(self, repo: str, path: str, params: ContentParams) -> Response:
        self._require(Operation.CONTENT_CREATE)
        params = self._validate_content_params(path, params)
        logger.info(f"Creating {path} in {repo}")
        return await self._send(
            "POST",
            f"{_repo_path(repo)}/contents/{_file_path(path)}",
            json=self._write_payload(params),
        )

    async def update(self, repo: str, path: str, params: ContentParams) -> Response:
        self._require(Operation.CONTENT_UPDATE)
        params = self._validate_content_params(path, params)
        if not params.sha:
            raise InputValidationError("Updating a file on Gitea requires the blob sha")
        logger.info(f"Updating {path} in {repo}")
        return await self._send(
            "PUT",
            f"{_repo_path(repo)}/contents/{_file_path(path)}",
            json=self._write_payload(params),
        )

    async def delete(self, repo: str, path: str, params: ContentParams) -> Response:
        self._require(Operation.CONTENT_DELETE)
        params = self._validate_content_params(path, params)
        if not params.sha:
            raise InputValidationError("Deleting a file on Gitea requires the blob sha")
        logger.info(f"Deleting {path} in {repo}")
        return await self._send(
            "DELETE",
            f"{_repo_path(repo)}/contents/{_file_path(path)}",
            json=self._write_payload(params, include_data=False),
        )


def new_client(
    base_url: str,
    token: str = "",
    timeout: float = DEFAULT_TIMEOUT,
    http_client: httpx.AsyncClient | None = None,
) -> Client:
    """
    Create a Gitea client.

    Args:
        base_url: Base URL of the Gitea instance (e.g., https://gitea.example.com)
        token: API token for authentication
        timeout: Request timeout in seconds
        http_client: Pre-configured httpx client (e.g. for tests)

    Returns:
        Client bound to the Gitea services
    """
    transport = Transport(
        f"{base_url.rstrip('/')}/api/v1",
        token=token,
        auth_scheme="token",
        timeout=timeout,
        client=http_client,
    )

    async def fetch_version() -> ServerInfo:
        data = decode_json(await transport.execute("GET", "version"))
        if not isinstance(data, dict) or not data.get("version"):
            raise DecodeError("version response has no 'version' field")
        return ServerInfo(version=str(data["version"]), edition="gitea")

    probe = ServerProbe(fetch_version)
    return Client(
        provider=ProviderType.GITEA,
        transport=transport,
        pull_requests=GiteaPullRequestService(transport, probe),
        contents=GiteaContentService(transport, probe),
        probe=probe,
    )
