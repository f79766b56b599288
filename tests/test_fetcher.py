"""Unit tests for the commit range fetcher."""

import threading

import pytest

from changelog_generator.errors import HostError, RangeUnavailableError
from changelog_generator.fetcher import EMPTY_TREE_SHA, STRATEGIES, CommitRangeFetcher
from changelog_generator.models import Boundary

HEAD_SHA = "a" * 40
BASE_SHA = "b" * 40


@pytest.fixture
def head() -> Boundary:
    return Boundary(name="v2.0.0", commit_sha=HEAD_SHA)


@pytest.fixture
def base() -> Boundary:
    return Boundary(name="v1.0.0", commit_sha=BASE_SHA)


@pytest.fixture
def fetcher(host) -> CommitRangeFetcher:
    return CommitRangeFetcher(host)


class TestStrategyOrder:
    """Tests for strategy fallthrough."""

    def test_strategy_names(self) -> None:
        assert [name for name, _ in STRATEGIES] == ["ref-listing", "compare", "sha-listing", "single-commit"]

    def test_ref_listing_wins(self, fetcher, host, head, base, make_commit) -> None:
        commits = [make_commit("feat: one"), make_commit("fix: two")]
        host.list_commits.return_value = commits

        assert fetcher.fetch_range("o", "r", head, base) == commits
        host.list_commits.assert_called_once_with("o", "r", sha="v2.0.0", per_page=100)
        host.compare_commits.assert_not_called()
        host.get_commit.assert_not_called()

    def test_compare_used_when_listing_empty(self, fetcher, host, head, base, make_commit) -> None:
        commits = [make_commit("feat: one")]
        host.compare_commits.return_value = commits

        assert fetcher.fetch_range("o", "r", head, base) == commits
        host.compare_commits.assert_called_once_with("o", "r", BASE_SHA, HEAD_SHA)
        assert host.list_commits.call_count == 1
        host.get_commit.assert_not_called()

    def test_sha_listing_after_failures(self, fetcher, host, head, base, make_commit) -> None:
        commits = [make_commit("fix: one")]
        host.list_commits.side_effect = [HostError("rate limited", status=403), commits]
        host.compare_commits.side_effect = HostError("compare failed", status=404)

        assert fetcher.fetch_range("o", "r", head, base) == commits
        assert host.list_commits.call_args_list[1].kwargs == {"sha": HEAD_SHA, "per_page": 100}
        host.get_commit.assert_not_called()

    def test_single_commit_fallback(self, fetcher, host, head, base, make_commit) -> None:
        tip = make_commit("Tip", sha=HEAD_SHA)
        host.list_commits.side_effect = HostError("boom")
        host.compare_commits.side_effect = HostError("boom")
        host.get_commit.return_value = tip

        assert fetcher.fetch_range("o", "r", head, base) == [tip]
        host.get_commit.assert_called_once_with("o", "r", HEAD_SHA)

    def test_all_strategies_fail(self, fetcher, host, head, base) -> None:
        host.list_commits.side_effect = HostError("boom")
        host.compare_commits.side_effect = HostError("boom")
        host.get_commit.side_effect = HostError("commit gone")

        with pytest.raises(RangeUnavailableError, match="commit gone"):
            fetcher.fetch_range("o", "r", head, base)

    def test_unexpected_exception_falls_through(self, fetcher, host, head, make_commit) -> None:
        commits = [make_commit("one")]
        host.list_commits.side_effect = [RuntimeError("bad payload"), []]
        host.compare_commits.return_value = commits

        assert fetcher.fetch_range("o", "r", head) == commits

    def test_list_limit(self, host, head, make_commit) -> None:
        host.list_commits.return_value = [make_commit("one")]
        CommitRangeFetcher(host, list_limit=25).fetch_range("o", "r", head)

        host.list_commits.assert_called_once_with("o", "r", sha="v2.0.0", per_page=25)


class TestBoundaries:
    """Tests for base and head edge cases."""

    def test_no_base_uses_empty_tree(self, fetcher, host, head, make_commit) -> None:
        host.compare_commits.return_value = [make_commit("init")]
        fetcher.fetch_range("o", "r", head, None)

        host.compare_commits.assert_called_once_with("o", "r", EMPTY_TREE_SHA, HEAD_SHA)

    def test_base_without_sha_uses_empty_tree(self, fetcher, host, head, make_commit) -> None:
        host.compare_commits.return_value = [make_commit("init")]
        fetcher.fetch_range("o", "r", head, Boundary(name="v0", commit_sha=""))

        host.compare_commits.assert_called_once_with("o", "r", EMPTY_TREE_SHA, HEAD_SHA)

    def test_null_base_matches_explicit_empty_tree(self, fetcher, host, head, make_commit) -> None:
        history = [make_commit("feat: b"), make_commit("init")]

        def compare(owner, repo, base_sha, head_sha):
            return history if base_sha == EMPTY_TREE_SHA else history[:1]

        host.compare_commits.side_effect = compare
        explicit = Boundary(name="", commit_sha=EMPTY_TREE_SHA, is_tag=False)

        assert fetcher.fetch_range("o", "r", head, None) == fetcher.fetch_range("o", "r", head, explicit)
        assert fetcher.fetch_range("o", "r", head, None) == history

    def test_head_without_name_lists_by_sha(self, fetcher, host, make_commit) -> None:
        host.list_commits.return_value = [make_commit("one")]
        fetcher.fetch_range("o", "r", Boundary(name="", commit_sha=HEAD_SHA))

        host.list_commits.assert_called_once_with("o", "r", sha=HEAD_SHA, per_page=100)

    def test_head_without_sha_skips_sha_strategies(self, fetcher, host) -> None:
        with pytest.raises(RangeUnavailableError):
            fetcher.fetch_range("o", "r", Boundary(name="v1.0.0", commit_sha=""))

        host.list_commits.assert_called_once()
        host.compare_commits.assert_not_called()
        host.get_commit.assert_not_called()


class TestCancellation:
    """Tests for the cancellation signal."""

    def test_cancelled_before_start(self, fetcher, host, head) -> None:
        event = threading.Event()
        event.set()

        with pytest.raises(RangeUnavailableError, match="cancelled"):
            fetcher.fetch_range("o", "r", head, cancel_event=event)
        host.list_commits.assert_not_called()

    def test_cancelled_mid_chain(self, fetcher, host, head) -> None:
        event = threading.Event()

        def fail_and_cancel(*args, **kwargs):
            event.set()
            raise HostError("timeout")

        host.list_commits.side_effect = fail_and_cancel

        with pytest.raises(RangeUnavailableError, match="cancelled before strategy compare"):
            fetcher.fetch_range("o", "r", head, cancel_event=event)
        host.compare_commits.assert_not_called()
        host.get_commit.assert_not_called()
