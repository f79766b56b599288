"""
Changelog generation module.

This module contains the ChangelogGenerator class, which builds one
changelog entry per release or tag by resolving the release boundaries,
fetching the commits between them, classifying those commits and rendering
them as markdown. It also renders a list of entries as a CHANGELOG document.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .errors import HostError, OriginNotFoundError, RefNotFoundError, RepositoryAccessError
from .fetcher import DEFAULT_LIST_LIMIT, CommitRangeFetcher
from .log import EntryLogAdapter
from .models import (
    CATEGORY_ORDER,
    DOCS,
    FEATURE,
    FIX,
    IMPROVEMENT,
    OTHER,
    Boundary,
    ChangelogEntry,
    ChangelogSummary,
    ClassificationResult,
    RawCommit,
    ReleaseInfo,
)
from .parser import CommitClassifier
from .resolver import RefResolver

logger = logging.getLogger("changelog-generator.generator")

NO_CHANGES = "No changes found for this release."
ERROR_PREFIX = "Could not fetch complete commit history for this release"

SECTION_HEADINGS = {
    FEATURE: "🚀 Features",
    FIX: "🐞 Bug Fixes",
    IMPROVEMENT: "🔧 Improvements",
    DOCS: "📝 Documentation",
    OTHER: "🔄 Other Changes",
}


class ReleaseWindow(NamedTuple):
    """Releases to build entries for, plus the release preceding the oldest one."""
    items: List[ReleaseInfo]
    previous: Optional[ReleaseInfo]


def render_body(result: ClassificationResult) -> str:
    """
    Render classified commits as markdown, one section per non-empty category.

    Returns:
        Markdown text, or NO_CHANGES when there are no commits
    """
    sections: List[str] = []
    for category in CATEGORY_ORDER:
        commits = [c for c in result.commits if c.category == category]
        if not commits:
            continue
        bullets = "\n".join(f"- {c.title} ([{c.short_sha}]({c.url}))" for c in commits)
        sections.append(f"### {SECTION_HEADINGS[category]}\n\n{bullets}")
    return "\n\n".join(sections) or NO_CHANGES


def render_changelog(entries: Sequence[ChangelogEntry], title: str = "Changelog") -> str:
    """
    Build a markdown CHANGELOG document from entries, newest first as given.
    """
    lines: List[str] = [f"# {title}", ""]

    for entry in entries:
        heading = f"## [{entry.display_name}]({entry.url})" if entry.url else f"## {entry.display_name}"
        if entry.published_at:
            heading += f" - {entry.published_at.strftime('%Y-%m-%d')}"
        labels = []
        if entry.is_latest:
            labels.append("Latest")
        if entry.prerelease:
            labels.append("Pre-release")
        if entry.draft:
            labels.append("Draft")
        if labels:
            heading += " (" + ", ".join(labels) + ")"
        lines.append(heading)
        lines.append("")

        if entry.formatted_body.strip():
            lines.append(entry.formatted_body.strip())
            lines.append("")
        if entry.error:
            lines.append(f"> ⚠️ {entry.error}")
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


class ChangelogGenerator:
    """
    Build changelog entries for releases and tags.

    Args:
        host: VCS host client (see ``changelog_generator.host.GitHubHost``)
        classifier: Commit classifier; defaults to the built-in rules
        list_limit: Cap for listing strategies
        anchor_to_origin: For the oldest release, compare against the
                          repository's first commit instead of the empty tree
        max_workers: Entries built in parallel by ``build_changelog``
    """

    def __init__(
        self,
        host,
        classifier: Optional[CommitClassifier] = None,
        list_limit: int = DEFAULT_LIST_LIMIT,
        anchor_to_origin: bool = False,
        max_workers: int = 1,
    ) -> None:
        self.host = host
        self.classifier = classifier or CommitClassifier()
        self.resolver = RefResolver(host)
        self.fetcher = CommitRangeFetcher(host, list_limit=list_limit)
        self.anchor_to_origin = anchor_to_origin
        self.max_workers = max(1, max_workers)

    def build_entry(
        self,
        owner: str,
        repo: str,
        current: ReleaseInfo,
        previous: Optional[ReleaseInfo],
        is_latest: bool,
        cancel_event: Optional[threading.Event] = None,
    ) -> ChangelogEntry:
        """
        Build the changelog entry for ``current``.

        Never raises: when the commits cannot be retrieved or processed the entry is
        returned with no commits, a zero summary and ``error`` set.
        """
        log = EntryLogAdapter(logger, owner=owner, repo=repo, version=current.tag_name)
        host_body = current.body or ""

        try:
            head = self.resolver.resolve_boundary(owner, repo, current)
            base = self._resolve_base(owner, repo, previous, log)
            raw_commits = self.fetcher.fetch_range(owner, repo, head, base, cancel_event=cancel_event)

            result = self.classifier.classify(raw_commits)
            generated = render_body(result)

            published_at = current.published_at
            if published_at is None and current.is_tag:
                published_at = self._tag_published_at(owner, repo, current, head, raw_commits)
        except Exception as e:
            log.error("Failed to generate changelog: %s", e)
            return self._error_entry(current, is_latest, e)

        if host_body.strip():
            formatted_body, description = host_body, generated
        else:
            formatted_body, description = generated, generated

        log.info("Built entry with %d commits", result.summary.total_commits)
        return ChangelogEntry(
            version=current.tag_name,
            display_name=current.display_name,
            is_latest=is_latest,
            published_at=published_at,
            url=current.url,
            prerelease=current.prerelease,
            draft=current.draft,
            commits=result.commits,
            summary=result.summary,
            description=description,
            formatted_body=formatted_body,
        )

    def build_changelog(
        self,
        owner: str,
        repo: str,
        items: Sequence[ReleaseInfo],
        previous: Optional[ReleaseInfo] = None,
    ) -> List[ChangelogEntry]:
        """
        Build one entry per item, in input order.

        Args:
            items: Releases or tags, newest first
            previous: Release preceding the oldest item, used as its base

        Raises:
            RepositoryAccessError: The host rejects the repository itself
        """
        if not items:
            return []
        self._check_repository(owner, repo)

        jobs: List[Tuple[ReleaseInfo, Optional[ReleaseInfo], bool]] = []
        for i, item in enumerate(items):
            prev = items[i + 1] if i + 1 < len(items) else previous
            jobs.append((item, prev, i == 0))

        logger.info("Building %d changelog entries for %s/%s", len(jobs), owner, repo)
        if self.max_workers == 1 or len(jobs) == 1:
            return [self.build_entry(owner, repo, *job) for job in jobs]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(lambda job: self.build_entry(owner, repo, *job), jobs))

    def collect_releases(self, owner: str, repo: str, count: int = 5, latest: bool = False) -> ReleaseWindow:
        """
        List the releases to build, falling back to tags when there are none.

        One extra item is requested so the oldest listed release still gets
        its real predecessor as base.
        """
        wanted = 1 if latest else max(1, count)
        try:
            items = self.host.list_releases(owner, repo, wanted + 1)
            if not items:
                logger.info("No releases in %s/%s, using tags", owner, repo)
                items = self.host.list_tags(owner, repo, wanted + 1)
        except HostError as e:
            raise self._access_error(owner, repo, e) from e
        return ReleaseWindow(items=items[:wanted], previous=items[wanted] if len(items) > wanted else None)

    def generate(self, owner: str, repo: str, count: int = 5, latest: bool = False) -> List[ChangelogEntry]:
        """Collect releases and build their entries."""
        window = self.collect_releases(owner, repo, count=count, latest=latest)
        return self.build_changelog(owner, repo, window.items, previous=window.previous)

    def _resolve_base(
        self,
        owner: str,
        repo: str,
        previous: Optional[ReleaseInfo],
        log: EntryLogAdapter,
    ) -> Optional[Boundary]:
        if previous is not None:
            try:
                return self.resolver.resolve_boundary(owner, repo, previous)
            except RefNotFoundError as e:
                log.warning("Previous release %s did not resolve, comparing from the start of history: %s",
                            previous.tag_name, e)
                return None

        if not self.anchor_to_origin:
            return None
        try:
            origin = self.resolver.resolve_repository_origin(owner, repo)
        except OriginNotFoundError as e:
            log.warning("Could not determine repository origin, using the empty tree: %s", e)
            return None
        return Boundary(name="", commit_sha=origin, is_tag=False)

    def _tag_published_at(
        self,
        owner: str,
        repo: str,
        current: ReleaseInfo,
        head: Boundary,
        raw_commits: Sequence[RawCommit],
    ):
        tagger_date = self.resolver.tag_date(owner, repo, current.tag_name)
        if tagger_date is not None:
            return tagger_date
        for c in raw_commits:
            if c.sha == head.commit_sha:
                return c.date
        return None

    def _check_repository(self, owner: str, repo: str) -> None:
        try:
            self.host.get_default_branch(owner, repo)
        except HostError as e:
            if e.status in (401, 403, 404):
                raise self._access_error(owner, repo, e) from e
            logger.warning("Could not verify repository %s/%s: %s", owner, repo, e)

    @staticmethod
    def _error_entry(current: ReleaseInfo, is_latest: bool, error: Exception) -> ChangelogEntry:
        host_body = current.body or ""
        return ChangelogEntry(
            version=current.tag_name,
            display_name=current.display_name,
            is_latest=is_latest,
            published_at=current.published_at,
            url=current.url,
            prerelease=current.prerelease,
            draft=current.draft,
            commits=[],
            summary=ChangelogSummary(),
            description=host_body,
            formatted_body=host_body,
            error=f"{ERROR_PREFIX}: {str(error) or type(error).__name__}",
        )

    @staticmethod
    def _access_error(owner: str, repo: str, error: HostError) -> RepositoryAccessError:
        return RepositoryAccessError(f"Cannot access repository {owner}/{repo}: {error}")
