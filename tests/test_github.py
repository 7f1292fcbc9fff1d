"""Tests for the GitHub driver."""

import json
from datetime import UTC, datetime

import pytest
from conftest import MockServer

from scmkit import github_client
from scmkit.exceptions import DecodeError, ErrorKind, InputValidationError, NotSupportedError, RateLimitError
from scmkit.models import (
    ContentParams,
    MergeMethod,
    PullRequestListOptions,
    PullRequestMergeOptions,
    PullRequestState,
)
from scmkit.provider import Client

BASE = "/repos/octocat/hello-world"


@pytest.fixture
def client(server: MockServer) -> Client:
    return github_client.new_client(token="ghp_secret", http_client=server.client())


class TestNewClient:
    """Tests for github_client.new_client."""

    def test_default_url(self) -> None:
        assert github_client.new_client().base_url == "https://api.github.com"

    @pytest.mark.parametrize("url", ["https://github.example.com", "https://github.example.com/api/v3/"])
    def test_enterprise_url(self, url: str) -> None:
        assert github_client.new_client(url).base_url == "https://github.example.com/api/v3"

    async def test_no_probe(self, client: Client) -> None:
        assert await client.server_info() is None


class TestPullRequests:
    """Tests for GitHubPullRequestService."""

    async def test_find(self, server: MockServer, client: Client) -> None:
        server.add("GET", f"{BASE}/pulls/1347", fixture="github/pr.json")

        pr = await client.pull_requests.find("octocat/hello-world", 1347)

        assert pr.number == 1347
        assert pr.state == PullRequestState.MERGED
        assert pr.merged
        assert pr.closed
        assert not pr.mergeable
        assert pr.ref == "refs/pull/1347/head"
        assert pr.source == "new-topic"
        assert pr.target == "master"
        assert pr.merge_sha == "e5bd3914e2e596debea16f433f57875b5b90bcd6"
        assert pr.labels == ["bug"]
        assert pr.author.login == "octocat"
        assert pr.created == datetime(2011, 1, 26, 19, 1, 12, tzinfo=UTC)

        request = server.last_request
        assert request.headers["Authorization"] == "Bearer ghp_secret"
        assert request.headers["Accept"] == "application/vnd.github+json"

    async def test_list(self, server: MockServer, client: Client) -> None:
        link = '<https://api.github.com/repositories/1300192/pulls?per_page=1&page=2>; rel="next"'
        server.add("GET", f"{BASE}/pulls", content=b"[]", headers={"Link": link})

        pulls, page = await client.pull_requests.list(
            "octocat/hello-world",
            PullRequestListOptions(size=1, closed=True),
        )

        assert pulls == []
        assert page.next == 2
        assert page.next_url.startswith("https://api.github.com/repositories/1300192/pulls")
        params = server.last_request.url.params
        assert params["per_page"] == "1"
        assert params["state"] == "closed"

    async def test_merge(self, server: MockServer, client: Client) -> None:
        server.add("PUT", f"{BASE}/pulls/1347/merge", json={"merged": True, "message": "Pull Request successfully merged"})

        response = await client.pull_requests.merge(
            "octocat/hello-world",
            1347,
            PullRequestMergeOptions(method=MergeMethod.REBASE),
        )

        assert response.status == 200
        assert json.loads(server.last_request.content) == {"merge_method": "rebase"}

    async def test_merge_unsupported_method(self, server: MockServer, client: Client) -> None:
        with pytest.raises(NotSupportedError):
            await client.pull_requests.merge(
                "octocat/hello-world",
                1347,
                PullRequestMergeOptions(method=MergeMethod.FAST_FORWARD_ONLY),
            )
        assert server.requests == []

    async def test_rate_limited(self, server: MockServer, client: Client) -> None:
        server.add(
            "GET",
            f"{BASE}/pulls/1",
            status=403,
            json={"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Limit": "60", "X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1372700873"},
        )

        with pytest.raises(RateLimitError) as exc_info:
            await client.pull_requests.find("octocat/hello-world", 1)
        assert exc_info.value.reset == 1372700873

    async def test_list_changes(self, server: MockServer, client: Client) -> None:
        server.add("GET", f"{BASE}/pulls/1347", fixture="stash/pr_changes.diff")

        changes = await client.pull_requests.list_changes("octocat/hello-world", 1347)

        assert [c.path for c in changes] == ["README.md", "logo.png"]
        assert server.last_request.headers["Accept"] == "application/vnd.github.v3.diff"


class TestContents:
    """Tests for GitHubContentService."""

    async def test_find(self, server: MockServer, client: Client) -> None:
        server.add("GET", f"{BASE}/contents/README.md", fixture="github/content.json")

        content = await client.contents.find("octocat/hello-world", "README.md", "master")

        assert content.data == b"Hello World\n"
        assert content.sha == "master"
        assert content.blob_id == "3d21ec53a331a6f037a91c368710b99387d012c1"

    async def test_find_is_idempotent(self, server: MockServer, client: Client) -> None:
        server.add("GET", f"{BASE}/contents/README.md", fixture="github/content.json")

        first = await client.contents.find("octocat/hello-world", "README.md", "master")
        second = await client.contents.find("octocat/hello-world", "README.md", "master")

        assert first == second

    async def test_find_large_file(self, server: MockServer, client: Client) -> None:
        server.add(
            "GET",
            f"{BASE}/contents/big.bin",
            json={"type": "file", "encoding": "none", "content": "", "path": "big.bin", "sha": "x"},
        )

        with pytest.raises(DecodeError) as exc_info:
            await client.contents.find("octocat/hello-world", "big.bin", "master")
        assert exc_info.value.kind == ErrorKind.DECODE

    async def test_update(self, server: MockServer, client: Client, content_params: ContentParams) -> None:
        server.add("PUT", f"{BASE}/contents/README.md", json={"content": {}, "commit": {}})
        params = content_params.model_copy(update={"sha": "3d21ec53a331a6f037a91c368710b99387d012c1"})

        await client.contents.update("octocat/hello-world", "README.md", params)

        assert json.loads(server.last_request.content) == {
            "message": "my commit message",
            "content": "bXkgbmV3IGZpbGUgY29udGVudHM=",
            "sha": "3d21ec53a331a6f037a91c368710b99387d012c1",
            "committer": {"name": "Zaki", "email": "zaki@example.com"},
        }

    async def test_delete_requires_sha(self, server: MockServer, client: Client) -> None:
        with pytest.raises(InputValidationError):
            await client.contents.delete("octocat/hello-world", "README.md", ContentParams(message="rm"))
        assert server.requests == []
