"""
Changelog Generator - builds categorized changelog entries from GitHub releases and commit history.
"""

from .models import (
    Boundary,
    ChangelogEntry,
    ChangelogSummary,
    ClassifiedCommit,
    CommitAuthor,
    RawCommit,
    ReleaseInfo,
)
from .errors import (
    ChangelogError,
    HostError,
    HostNotFoundError,
    OriginNotFoundError,
    RangeUnavailableError,
    RefNotFoundError,
    RepositoryAccessError,
)
from .host import GitHubHost
from .resolver import RefResolver
from .fetcher import EMPTY_TREE_SHA, CommitRangeFetcher
from .parser import ClassificationRule, CommitClassifier, CommitParser
from .generator import ChangelogGenerator, render_body, render_changelog
from .main import main

__all__ = [
    'Boundary',
    'ChangelogEntry',
    'ChangelogSummary',
    'ClassifiedCommit',
    'CommitAuthor',
    'RawCommit',
    'ReleaseInfo',
    'ChangelogError',
    'HostError',
    'HostNotFoundError',
    'OriginNotFoundError',
    'RangeUnavailableError',
    'RefNotFoundError',
    'RepositoryAccessError',
    'GitHubHost',
    'RefResolver',
    'EMPTY_TREE_SHA',
    'CommitRangeFetcher',
    'ClassificationRule',
    'CommitClassifier',
    'CommitParser',
    'ChangelogGenerator',
    'render_body',
    'render_changelog',
    'main',
]
