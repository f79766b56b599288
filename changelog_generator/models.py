"""
Data models for the changelog generator.

This module contains the shared data structures used across all modules.
"""

import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Commit categories, in precedence order
FEATURE = "feature"
FIX = "fix"
IMPROVEMENT = "improvement"
DOCS = "docs"
OTHER = "other"

CATEGORY_ORDER = (FEATURE, FIX, IMPROVEMENT, DOCS, OTHER)


def _isoformat(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Boundary:
    """One edge of a commit range."""
    name: str
    commit_sha: str
    is_tag: bool = True


@dataclass(frozen=True)
class CommitAuthor:
    """Author details merged from the git commit and the host account."""
    name: Optional[str] = None
    email: Optional[str] = None
    login: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "email": self.email,
            "login": self.login,
            "avatarUrl": self.avatar_url,
        }


@dataclass(frozen=True)
class RawCommit:
    """A host commit after ingestion. Built only by the host adapter."""
    sha: str
    message: str
    date: Optional[datetime.datetime] = None
    author: CommitAuthor = field(default_factory=CommitAuthor)
    url: str = ""


@dataclass(frozen=True)
class ClassifiedCommit:
    """Normalized commit record placed in a changelog entry."""
    sha: str
    short_sha: str
    title: str
    full_message: str
    date: Optional[datetime.datetime]
    author: CommitAuthor
    url: str
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sha": self.sha,
            "shortSha": self.short_sha,
            "title": self.title,
            "fullMessage": self.full_message,
            "date": _isoformat(self.date),
            "author": self.author.to_dict(),
            "url": self.url,
            "category": self.category,
        }


@dataclass(frozen=True)
class ChangelogSummary:
    """Per-category commit counts."""
    features: int = 0
    fixes: int = 0
    improvements: int = 0
    docs: int = 0
    others: int = 0
    total_commits: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "features": self.features,
            "fixes": self.fixes,
            "improvements": self.improvements,
            "docs": self.docs,
            "others": self.others,
            "totalCommits": self.total_commits,
        }


@dataclass(frozen=True)
class ClassificationResult:
    """Output of one classification pass."""
    commits: List[ClassifiedCommit]
    summary: ChangelogSummary


@dataclass(frozen=True)
class ReleaseInfo:
    """
    A release or tag as listed by the host.

    Tags carry the tagged commit in ``commit_sha``; releases usually carry
    a branch name or SHA in ``target_commitish`` instead.
    """
    tag_name: str
    name: Optional[str] = None
    commit_sha: Optional[str] = None
    target_commitish: Optional[str] = None
    published_at: Optional[datetime.datetime] = None
    url: str = ""
    body: Optional[str] = None
    prerelease: bool = False
    draft: bool = False
    is_tag: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.tag_name


@dataclass(frozen=True)
class ChangelogEntry:
    """One changelog entry per release or tag."""
    version: str
    display_name: str
    is_latest: bool
    published_at: Optional[datetime.datetime]
    url: str
    prerelease: bool
    draft: bool
    commits: List[ClassifiedCommit]
    summary: ChangelogSummary
    description: str
    formatted_body: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-ready mapping of the entry."""
        return {
            "version": self.version,
            "name": self.display_name,
            "isLatest": self.is_latest,
            "publishedAt": _isoformat(self.published_at),
            "url": self.url,
            "prerelease": self.prerelease,
            "draft": self.draft,
            "commits": [c.to_dict() for c in self.commits],
            "summary": self.summary.to_dict(),
            "description": self.description,
            "formattedBody": self.formatted_body,
            "error": self.error,
        }
