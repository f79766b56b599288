"""
Commit parsing and classification module.

This module extracts display titles from commit messages and classifies
commits into changelog categories using an ordered list of rules. The
first rule that matches wins, so the order of the list is the category
precedence.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import (
    CATEGORY_ORDER,
    DOCS,
    FEATURE,
    FIX,
    IMPROVEMENT,
    OTHER,
    ChangelogSummary,
    ClassificationResult,
    ClassifiedCommit,
    RawCommit,
)


@dataclass(frozen=True)
class ClassificationRule:
    """
    Map commit messages to a category.

    A rule matches when the title starts with one of ``title_prefixes`` or
    the full message contains one of ``message_tokens``. Both tests ignore case.
    """
    category: str
    title_prefixes: Tuple[str, ...] = ()
    message_tokens: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.category not in CATEGORY_ORDER or self.category == OTHER:
            raise ValueError(f"Invalid rule category: {self.category!r}")

    def matches(self, title: str, message: str) -> bool:
        lowered_title = title.lower()
        if any(lowered_title.startswith(p.lower()) for p in self.title_prefixes):
            return True
        lowered = message.lower()
        return any(t.lower() in lowered for t in self.message_tokens)


DEFAULT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        FEATURE,
        title_prefixes=("feat", "feature", "add", "enhance", "new"),
        message_tokens=("feat:", "feature:"),
    ),
    ClassificationRule(
        FIX,
        title_prefixes=("fix", "bug", "issue", "resolve", "close"),
        message_tokens=("fix:", "bug:"),
    ),
    ClassificationRule(
        IMPROVEMENT,
        title_prefixes=("refactor", "perf", "improve", "update", "optimize", "chore"),
        message_tokens=("refactor:", "perf:", "improve:", "update:"),
    ),
    ClassificationRule(
        DOCS,
        title_prefixes=("doc", "readme", "changelog"),
        message_tokens=("doc:", "docs:", "readme:"),
    ),
)


def rules_from_config(data: Iterable[Mapping[str, Any]]) -> Tuple[ClassificationRule, ...]:
    """
    Build an ordered rule list from config mappings.

    Example (YAML):
        rules:
          - category: fix
            title_prefixes: [fix, hotfix]
            message_tokens: ["fix:"]

    Raises:
        ValueError: Unknown category or malformed entry
    """
    rules = []
    for item in data:
        if not isinstance(item, Mapping) or "category" not in item:
            raise ValueError(f"Invalid classification rule: {item!r}")
        rules.append(ClassificationRule(
            category=str(item["category"]).lower(),
            title_prefixes=tuple(str(p) for p in item.get("title_prefixes") or ()),
            message_tokens=tuple(str(t) for t in item.get("message_tokens") or ()),
        ))
    return tuple(rules)


class CommitParser:
    """
    Extract display text from commit messages.
    """

    CONVENTIONAL_RE = re.compile(
        r"^(feat|fix|docs|style|refactor|perf|test|chore|ci|build|revert)(\([^)]*\))?!?:\s*", re.I
    )
    SKIP_CI_RE = re.compile(r"\[(skip ci|ci skip)\]", re.I)

    @staticmethod
    def title(message: str) -> str:
        """First line of the message, trimmed."""
        lines = message.splitlines()
        return lines[0].strip() if lines else ""

    @staticmethod
    def clean_title(title: str) -> str:
        """
        Strip a ``type(scope):`` prefix and CI-skip markers, then capitalize.

        "fix(api): handle empty body [skip ci]" -> "Handle empty body"
        """
        cleaned = CommitParser.CONVENTIONAL_RE.sub("", title, count=1)
        cleaned = CommitParser.SKIP_CI_RE.sub("", cleaned)
        cleaned = re.sub(r"\s{2,}", " ", cleaned).strip()
        return cleaned[:1].upper() + cleaned[1:]

    @staticmethod
    def short_sha(sha: str) -> str:
        return sha[:7] if sha else ""


class CommitClassifier:
    """
    Classify raw commits into changelog categories.

    Pure: no I/O, and the same input list always yields the same result.
    """

    def __init__(self, rules: Optional[Sequence[ClassificationRule]] = None) -> None:
        self.rules = tuple(DEFAULT_RULES if rules is None else rules)

    def categorize(self, title: str, message: str) -> str:
        """Return the category of the first matching rule, or OTHER."""
        for rule in self.rules:
            if rule.matches(title, message):
                return rule.category
        return OTHER

    def classify_commit(self, raw: RawCommit) -> ClassifiedCommit:
        title = CommitParser.title(raw.message)
        return ClassifiedCommit(
            sha=raw.sha,
            short_sha=CommitParser.short_sha(raw.sha),
            title=CommitParser.clean_title(title),
            full_message=raw.message,
            date=raw.date,
            author=raw.author,
            url=raw.url,
            category=self.categorize(title, raw.message),
        )

    def classify(self, raw_commits: Sequence[RawCommit]) -> ClassificationResult:
        """
        Classify every commit and compute the summary.

        Returns:
            Commits stable-sorted by category precedence, and their counts
        """
        classified = [self.classify_commit(c) for c in raw_commits]

        counts: Dict[str, int] = {category: 0 for category in CATEGORY_ORDER}
        for c in classified:
            counts[c.category] += 1

        rank = {category: i for i, category in enumerate(CATEGORY_ORDER)}
        ordered: List[ClassifiedCommit] = sorted(classified, key=lambda c: rank[c.category])

        summary = ChangelogSummary(
            features=counts[FEATURE],
            fixes=counts[FIX],
            improvements=counts[IMPROVEMENT],
            docs=counts[DOCS],
            others=counts[OTHER],
            total_commits=len(raw_commits),
        )
        return ClassificationResult(commits=ordered, summary=summary)
