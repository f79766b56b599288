"""
GitHub host client module.

This module handles all GitHub API interactions needed by the changelog
pipeline using PyGithub: refs, tags, commits, comparisons, releases.
Every PyGithub object is converted into the typed models of
``changelog_generator.models`` before leaving this module, and every
PyGithub or transport failure is translated into ``HostError``.
"""

import contextlib
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional
from urllib.parse import quote

import requests
from github import Github, GithubException, UnknownObjectException

from .errors import HostError, HostNotFoundError
from .models import CommitAuthor, RawCommit, ReleaseInfo

# Set up logging
logger = logging.getLogger("changelog-generator.host")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_WEB_URL = "https://github.com"


@dataclass(frozen=True)
class RefTarget:
    """The object a git ref points at."""
    sha: str
    type: str = "commit"


@dataclass(frozen=True)
class TagObject:
    """An annotated tag object."""
    commit_sha: Optional[str]
    tagger_date: Optional[Any] = None


@contextlib.contextmanager
def _host_errors(action: str) -> Iterator[None]:
    """Translate PyGithub and transport exceptions raised inside the block."""
    try:
        yield
    except UnknownObjectException as e:
        raise HostNotFoundError(f"{action}: not found", status=404) from e
    except GithubException as e:
        message = e.data.get("message") if isinstance(e.data, dict) else e.data
        raise HostError(f"{action}: {e.status} {message or ''}".rstrip(), status=e.status) from e
    except requests.exceptions.RequestException as e:
        raise HostError(f"{action}: {e}") from e


def _attr(obj: Any, name: str) -> Any:
    """Read an optional attribute from a host object."""
    if obj is None:
        return None
    return getattr(obj, name, None)


def to_raw_commit(c: Any) -> RawCommit:
    """
    Convert a PyGithub commit into a RawCommit.

    All defensive field access for host commits lives here: the message may
    be missing, the git author may be missing, and the host account is None
    for commits whose email is not linked to a user.
    """
    commit_obj = _attr(c, "commit")
    git_author = _attr(commit_obj, "author")
    git_committer = _attr(commit_obj, "committer")
    account = _attr(c, "author")

    date = _attr(git_author, "date") or _attr(git_committer, "date")

    return RawCommit(
        sha=_attr(c, "sha") or "",
        message=_attr(commit_obj, "message") or "",
        date=date,
        author=CommitAuthor(
            name=_attr(git_author, "name"),
            email=_attr(git_author, "email"),
            login=_attr(account, "login"),
            avatar_url=_attr(account, "avatar_url"),
        ),
        url=_attr(c, "html_url") or "",
    )


class GitHubHost:
    """
    VCS host client backed by PyGithub.

    Args:
        token: Personal access token (or None for unauthenticated, but rate-limited).
        base_url: API base URL, for GitHub Enterprise installations.
        timeout: Per-request timeout in seconds.
        retries: Retry count handed to PyGithub; the pipeline does not retry.
        per_page: Page size for listing calls.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = 15,
        retries: int = 3,
        per_page: int = 100,
    ) -> None:
        self.base_url = (base_url or DEFAULT_API_URL).rstrip("/")
        self.per_page = per_page
        kwargs = dict(base_url=self.base_url, timeout=timeout, retry=retries, per_page=per_page)
        try:
            self._g = Github(login_or_token=token, **kwargs) if token else Github(**kwargs)
            logger.debug("GitHub client initialized (authenticated=%s, base_url=%s)", bool(token), self.base_url)
        except Exception as e:
            logger.error("Failed to initialize GitHub client: %s", e)
            raise RuntimeError(f"GitHub client initialization failed: {e}") from e

    def _repo(self, owner: str, repo: str) -> Any:
        return self._g.get_repo(f"{owner}/{repo}", lazy=True)

    def _window(self, commits: Any, start: int, size: int) -> List[Any]:
        """Return ``size`` items of a paginated listing starting at offset ``start``."""
        index, offset = divmod(start, self.per_page)
        window: List[Any] = []
        while len(window) < size:
            items = commits.get_page(index)
            window.extend(items[offset:])
            if len(items) < self.per_page:
                break
            index, offset = index + 1, 0
        return window[:size]

    def get_default_branch(self, owner: str, repo: str) -> str:
        """Return the repository's default branch; 404 means the repository is unknown."""
        with _host_errors(f"get repository {owner}/{repo}"):
            repository = self._g.get_repo(f"{owner}/{repo}")
            return repository.default_branch or ""

    def get_ref(self, owner: str, repo: str, ref_path: str) -> RefTarget:
        """Return the object a ref such as ``tags/v1.0.0`` points at."""
        with _host_errors(f"get ref {ref_path}"):
            ref = self._repo(owner, repo).get_git_ref(ref_path)
            obj = ref.object
            return RefTarget(sha=_attr(obj, "sha") or "", type=_attr(obj, "type") or "commit")

    def get_tag_object(self, owner: str, repo: str, tag_sha: str) -> TagObject:
        """Return an annotated tag object: the tagged commit and tagger date."""
        with _host_errors(f"get tag object {tag_sha}"):
            tag = self._repo(owner, repo).get_git_tag(tag_sha)
            return TagObject(
                commit_sha=_attr(tag.object, "sha"),
                tagger_date=_attr(tag.tagger, "date"),
            )

    def get_commit(self, owner: str, repo: str, sha: str) -> RawCommit:
        """Return one commit by SHA."""
        with _host_errors(f"get commit {sha}"):
            return to_raw_commit(self._repo(owner, repo).get_commit(sha))

    def list_commits(
        self,
        owner: str,
        repo: str,
        sha: Optional[str] = None,
        per_page: int = 100,
        page: Optional[int] = None,
    ) -> List[RawCommit]:
        """
        List commits reachable from ``sha`` (default branch when None), newest first.

        Args:
            sha: Branch, tag or commit SHA to start listing from
            per_page: Maximum number of commits to return
            page: 1-based page to return instead of the first ``per_page`` commits
        """
        with _host_errors(f"list commits from {sha or 'default branch'}"):
            repository = self._repo(owner, repo)
            commits = repository.get_commits(sha=sha) if sha else repository.get_commits()
            if page is not None:
                return [to_raw_commit(c) for c in self._window(commits, (page - 1) * per_page, per_page)]

            result: List[RawCommit] = []
            for c in commits:
                if len(result) >= per_page:
                    break
                result.append(to_raw_commit(c))
            return result

    def get_oldest_commits(self, owner: str, repo: str, ref: str) -> List[RawCommit]:
        """Return the single oldest page of history reachable from ``ref``, newest first."""
        with _host_errors(f"list oldest commits from {ref}"):
            commits = self._repo(owner, repo).get_commits(sha=ref)
            total = commits.totalCount
            if not total:
                return []
            last_page = (total - 1) // self.per_page
            return [to_raw_commit(c) for c in commits.get_page(last_page)]

    def compare_commits(self, owner: str, repo: str, base: str, head: str) -> List[RawCommit]:
        """Return the commits reachable from ``head`` but not from ``base``."""
        with _host_errors(f"compare {base}...{head}"):
            comparison = self._repo(owner, repo).compare(base, head)
            return [to_raw_commit(c) for c in comparison.commits]

    def list_releases(self, owner: str, repo: str, limit: int) -> List[ReleaseInfo]:
        """List up to ``limit`` releases, newest first."""
        result: List[ReleaseInfo] = []
        with _host_errors(f"list releases of {owner}/{repo}"):
            for r in self._repo(owner, repo).get_releases():
                if len(result) >= limit:
                    break
                result.append(ReleaseInfo(
                    tag_name=r.tag_name,
                    name=r.title or None,
                    target_commitish=r.target_commitish or None,
                    published_at=r.published_at,
                    url=r.html_url or "",
                    body=r.body,
                    prerelease=bool(r.prerelease),
                    draft=bool(r.draft),
                ))
        logger.info("Fetched %d releases from %s/%s", len(result), owner, repo)
        return result

    def list_tags(self, owner: str, repo: str, limit: int) -> List[ReleaseInfo]:
        """List up to ``limit`` tags as release items, newest first."""
        result: List[ReleaseInfo] = []
        with _host_errors(f"list tags of {owner}/{repo}"):
            for t in self._repo(owner, repo).get_tags():
                if len(result) >= limit:
                    break
                result.append(ReleaseInfo(
                    tag_name=t.name,
                    commit_sha=_attr(t.commit, "sha"),
                    url=self.tag_url(owner, repo, t.name),
                    is_tag=True,
                ))
        logger.info("Fetched %d tags from %s/%s", len(result), owner, repo)
        return result

    def tag_url(self, owner: str, repo: str, tag_name: str) -> str:
        """Web URL of a tag's release page."""
        return f"{self.web_url}/{owner}/{repo}/releases/tag/{quote(tag_name, safe='')}"

    @property
    def web_url(self) -> str:
        if self.base_url == DEFAULT_API_URL:
            return DEFAULT_WEB_URL
        # GitHub Enterprise serves the API under /api/v3
        return re.sub(r"/api/v3$", "", self.base_url)
