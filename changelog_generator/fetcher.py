"""
Commit range fetching module.

Retrieves the raw commits that make up one release by trying a fixed,
ordered list of strategies against the host. The first strategy that
returns a non-empty list wins; failures are logged and fall through to the
next strategy without retrying.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import RangeUnavailableError
from .log import EntryLogAdapter
from .models import Boundary, RawCommit

logger = logging.getLogger("changelog-generator.fetcher")

# Git's empty tree object: comparing against it yields the full history of head
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

DEFAULT_LIST_LIMIT = 100


@dataclass(frozen=True)
class RangeRequest:
    """Arguments shared by every strategy."""
    owner: str
    repo: str
    head: Boundary
    base: Optional[Boundary] = None
    limit: int = DEFAULT_LIST_LIMIT

    @property
    def base_sha(self) -> str:
        if self.base is not None and self.base.commit_sha:
            return self.base.commit_sha
        return EMPTY_TREE_SHA


def _require_head_sha(request: RangeRequest) -> str:
    if not request.head.commit_sha:
        raise ValueError(f"no commit SHA known for {request.head.name}")
    return request.head.commit_sha


def list_by_ref(host, request: RangeRequest) -> List[RawCommit]:
    """Commits reachable from the head ref name. Not bounded by base."""
    ref = request.head.name or _require_head_sha(request)
    return host.list_commits(request.owner, request.repo, sha=ref, per_page=request.limit)


def compare_range(host, request: RangeRequest) -> List[RawCommit]:
    """Commits between base (or the empty tree) and head."""
    head_sha = _require_head_sha(request)
    return host.compare_commits(request.owner, request.repo, request.base_sha, head_sha)


def list_by_sha(host, request: RangeRequest) -> List[RawCommit]:
    """Commits reachable from the head SHA, skipping name resolution."""
    head_sha = _require_head_sha(request)
    return host.list_commits(request.owner, request.repo, sha=head_sha, per_page=request.limit)


def single_commit(host, request: RangeRequest) -> List[RawCommit]:
    """The head commit alone."""
    head_sha = _require_head_sha(request)
    return [host.get_commit(request.owner, request.repo, head_sha)]


Strategy = Callable[[object, RangeRequest], List[RawCommit]]

STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("ref-listing", list_by_ref),
    ("compare", compare_range),
    ("sha-listing", list_by_sha),
    ("single-commit", single_commit),
)


class CommitRangeFetcher:
    """
    Fetch the raw commits of one release.

    Args:
        host: VCS host client
        list_limit: Cap for listing strategies
        strategies: Ordered (name, function) pairs; defaults to STRATEGIES
    """

    def __init__(
        self,
        host,
        list_limit: int = DEFAULT_LIST_LIMIT,
        strategies: Sequence[Tuple[str, Strategy]] = STRATEGIES,
    ) -> None:
        self.host = host
        self.list_limit = list_limit
        self.strategies = tuple(strategies)

    def fetch_range(
        self,
        owner: str,
        repo: str,
        head: Boundary,
        base: Optional[Boundary] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[RawCommit]:
        """
        Return the commits for ``head``, bounded below by ``base`` where the strategy allows.

        Raises:
            RangeUnavailableError: Every strategy failed or returned nothing,
                or ``cancel_event`` was set before the chain finished
        """
        request = RangeRequest(owner=owner, repo=repo, head=head, base=base, limit=self.list_limit)
        log = EntryLogAdapter(logger, owner=owner, repo=repo, version=head.name)
        last_error: Optional[str] = None

        for name, strategy in self.strategies:
            if cancel_event is not None and cancel_event.is_set():
                log.warning("Cancelled before strategy %s", name)
                raise RangeUnavailableError(f"cancelled before strategy {name}")

            slog = log.bind(strategy=name)
            try:
                commits = strategy(self.host, request)
            except Exception as e:
                last_error = f"{name}: {e}"
                slog.warning("Strategy %s failed: %s", name, e)
                continue

            if commits:
                slog.info("Strategy %s found %d commits (base=%s, head=%s)",
                          name, len(commits), request.base_sha, head.commit_sha or head.name)
                return list(commits)
            slog.debug("Strategy %s returned no commits", name)

        raise RangeUnavailableError(
            f"all strategies exhausted for {head.name or head.commit_sha}"
            + (f" (last error: {last_error})" if last_error else "")
        )
