"""
Ref resolution module.

Turns tag and release names into commit SHAs, and finds the repository's
earliest commit for releases that have no predecessor.
"""

import datetime
import logging
import re
from typing import Optional

from .errors import HostError, HostNotFoundError, OriginNotFoundError, RefNotFoundError
from .models import Boundary, ReleaseInfo

logger = logging.getLogger("changelog-generator.resolver")

FULL_SHA_RE = re.compile(r"^[0-9a-f]{40}$", re.I)


class RefResolver:
    """
    Resolve refs against a VCS host client.

    Args:
        host: Host client exposing get_ref, get_tag_object,
              get_default_branch and get_oldest_commits.
    """

    def __init__(self, host) -> None:
        self.host = host

    def resolve_tag_sha(self, owner: str, repo: str, tag_name: str) -> str:
        """
        Resolve ``tags/{tag_name}`` to a commit SHA.

        Annotated tags point at a tag object; those are dereferenced to the
        tagged commit when the host allows it.

        Raises:
            RefNotFoundError: The ref does not exist or carries no SHA
        """
        try:
            target = self.host.get_ref(owner, repo, f"tags/{tag_name}")
        except HostNotFoundError as e:
            raise RefNotFoundError(f"Tag {tag_name} not found in {owner}/{repo}") from e
        except HostError as e:
            raise RefNotFoundError(f"Could not read tag {tag_name}: {e}") from e

        if not target.sha:
            raise RefNotFoundError(f"Could not find commit SHA for tag {tag_name}")

        if target.type != "tag":
            return target.sha

        try:
            tag = self.host.get_tag_object(owner, repo, target.sha)
        except HostError as e:
            logger.debug("Could not dereference annotated tag %s: %s", tag_name, e)
            return target.sha
        return tag.commit_sha or target.sha

    def resolve_repository_origin(self, owner: str, repo: str) -> str:
        """
        Return the SHA of the oldest commit on the default branch.

        Raises:
            OriginNotFoundError: No default branch, no commits, or the host failed
        """
        try:
            branch = self.host.get_default_branch(owner, repo)
            if not branch:
                raise OriginNotFoundError("Could not determine default branch")
            commits = self.host.get_oldest_commits(owner, repo, branch)
        except HostError as e:
            raise OriginNotFoundError(f"Could not read history of {owner}/{repo}: {e}") from e

        if not commits or not commits[-1].sha:
            raise OriginNotFoundError("No commits found in the repository")
        logger.debug("Origin of %s/%s is %s", owner, repo, commits[-1].sha)
        return commits[-1].sha

    def resolve_boundary(self, owner: str, repo: str, item: ReleaseInfo) -> Boundary:
        """
        Resolve a release or tag into a Boundary.

        Precedence: a full SHA in ``target_commitish``, the commit SHA from a
        tag listing, the tag ref, and finally a branch-like
        ``target_commitish``.

        Raises:
            RefNotFoundError: No commit identifier could be found
        """
        commitish = item.target_commitish or ""
        if FULL_SHA_RE.match(commitish):
            return Boundary(name=item.tag_name, commit_sha=commitish, is_tag=item.is_tag)
        if item.commit_sha:
            return Boundary(name=item.tag_name, commit_sha=item.commit_sha, is_tag=item.is_tag)

        try:
            sha = self.resolve_tag_sha(owner, repo, item.tag_name)
        except RefNotFoundError:
            if not commitish:
                raise
            logger.warning("Tag %s did not resolve, using target %s", item.tag_name, commitish)
            sha = commitish
        return Boundary(name=item.tag_name, commit_sha=sha, is_tag=item.is_tag)

    def tag_date(self, owner: str, repo: str, tag_name: str) -> Optional[datetime.datetime]:
        """Best-effort tagger date of an annotated tag; None for lightweight tags or failures."""
        try:
            target = self.host.get_ref(owner, repo, f"tags/{tag_name}")
            if target.type != "tag" or not target.sha:
                return None
            return self.host.get_tag_object(owner, repo, target.sha).tagger_date
        except Exception as e:
            logger.debug("No tagger date for %s: %s", tag_name, e)
            return None
