"""Tests for the capability gate."""

import pytest

from scmkit.capabilities import CAPABILITIES, Operation, check, require
from scmkit.exceptions import ErrorKind, NotSupportedError
from scmkit.provider import ProviderType


class TestCapabilities:
    """Tests for the static capability policy."""

    @pytest.mark.parametrize("provider", [ProviderType.GITEA, ProviderType.GITHUB])
    def test_full_support(self, provider: ProviderType) -> None:
        assert all(check(provider, op) for op in Operation)

    def test_stash_content_writes(self) -> None:
        assert check(ProviderType.STASH, Operation.CONTENT_CREATE)
        assert not check(ProviderType.STASH, Operation.CONTENT_UPDATE)
        assert not check(ProviderType.STASH, Operation.CONTENT_DELETE)

    def test_contains(self) -> None:
        assert Operation.PR_MERGE in CAPABILITIES[ProviderType.STASH]
        assert Operation.CONTENT_DELETE not in CAPABILITIES[ProviderType.STASH]

    def test_require_passes(self) -> None:
        require(ProviderType.STASH, Operation.CONTENT_FIND)

    def test_require_raises(self) -> None:
        with pytest.raises(NotSupportedError) as exc_info:
            require(ProviderType.STASH, Operation.CONTENT_UPDATE)
        err = exc_info.value
        assert err.kind == ErrorKind.UNSUPPORTED
        assert err.provider == "stash"
        assert err.operation == "contents.update"
        assert "not supported" in str(err)
