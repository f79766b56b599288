"""Shared pytest fixtures for changelog generator tests.

Fixtures are organized by category:
- Commit fixtures: factories for RawCommit and ReleaseInfo values
- Host fixtures: a mocked VCS host client with empty default answers
"""

import datetime
import hashlib
from typing import Callable, Optional
from unittest.mock import MagicMock

import pytest

from changelog_generator.errors import HostNotFoundError
from changelog_generator.models import CommitAuthor, RawCommit, ReleaseInfo

HOST_METHODS = [
    "get_ref",
    "get_tag_object",
    "get_commit",
    "list_commits",
    "get_oldest_commits",
    "compare_commits",
    "get_default_branch",
    "list_releases",
    "list_tags",
    "tag_url",
]

# =============================================================================
# Commit Fixtures
# =============================================================================


@pytest.fixture
def make_commit() -> Callable[..., RawCommit]:
    """Return a factory for RawCommit values.

    The SHA defaults to the SHA-1 of the message so
    distinct messages give distinct commits.
    """

    def factory(
        message: str,
        sha: Optional[str] = None,
        date: Optional[datetime.datetime] = None,
        login: Optional[str] = "octocat",
    ) -> RawCommit:
        sha = sha if sha is not None else hashlib.sha1(message.encode()).hexdigest()
        return RawCommit(
            sha=sha,
            message=message,
            date=date or datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc),
            author=CommitAuthor(name="Octo Cat", email="octo@example.com", login=login),
            url=f"https://github.com/o/r/commit/{sha}",
        )

    return factory


@pytest.fixture
def sha() -> Callable[[str], str]:
    """Return a factory producing a full 40-hex SHA from a short hex seed."""

    def factory(seed: str) -> str:
        return (seed * 40)[:40]

    return factory


@pytest.fixture
def make_release(sha: Callable[[str], str]) -> Callable[..., ReleaseInfo]:
    """Return a factory for release items whose target is a full SHA."""

    def factory(tag_name: str, seed: str, body: Optional[str] = None, **kwargs) -> ReleaseInfo:
        return ReleaseInfo(
            tag_name=tag_name,
            target_commitish=sha(seed),
            url=f"https://github.com/o/r/releases/tag/{tag_name}",
            body=body,
            **kwargs,
        )

    return factory


# =============================================================================
# Host Fixtures
# =============================================================================


@pytest.fixture
def host() -> MagicMock:
    """Create a mocked host client.

    Listing and compare return nothing, refs are not found, and the
    repository exists with a ``main`` default branch.
    """
    mock = MagicMock(spec=HOST_METHODS)
    mock.list_commits.return_value = []
    mock.compare_commits.return_value = []
    mock.get_oldest_commits.return_value = []
    mock.get_default_branch.return_value = "main"
    mock.get_ref.side_effect = HostNotFoundError("get ref: not found", status=404)
    mock.list_releases.return_value = []
    mock.list_tags.return_value = []
    return mock
