#!/usr/bin/env python3
"""
Main driver script for the changelog generator.

This script provides the command-line interface: it loads configuration,
lists the repository's releases (or tags), builds one changelog entry per
release and writes the result as markdown or JSON.

Usage (example):
    python -m changelog_generator.main --user octocat --repo Hello-World --token GITHUB_TOKEN --output CHANGELOG.md
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .config import OUTPUT_FORMATS, ChangelogConfig, load_config
from .generator import ChangelogGenerator, render_changelog
from .host import GitHubHost
from .log import setup_logging
from .models import ChangelogEntry
from .parser import CommitClassifier

logger = logging.getLogger("changelog-generator")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a changelog from GitHub releases and commit history.")
    parser.add_argument("--user", "-u", required=True, help="GitHub owner/username")
    parser.add_argument("--repo", "-r", required=True, help="Repository name")
    parser.add_argument("--token", "-t", help="GitHub token (recommended to avoid rate limits)")
    parser.add_argument("--output", "-o", help="Output filename ('-' for stdout)")
    parser.add_argument("--format", "-f", choices=OUTPUT_FORMATS, help="Output format")
    parser.add_argument("--count", "-n", type=int, help="Number of releases to include")
    parser.add_argument("--latest", action="store_true", default=None, help="Only include the latest release")
    parser.add_argument("--workers", type=int, help="Entries built in parallel")
    parser.add_argument("--anchor-origin", action="store_true", default=None,
                        help="Compare the oldest release against the repository's first commit")
    parser.add_argument("--config", "-c", type=Path, help="Path to a YAML config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    return parser


def apply_overrides(config: ChangelogConfig, args: argparse.Namespace) -> ChangelogConfig:
    """Return ``config`` with the CLI flags that were given applied on top."""
    overrides = {
        "token": args.token,
        "output": args.output,
        "format": args.format,
        "count": args.count,
        "latest": args.latest,
        "max_workers": args.workers,
        "anchor_to_origin": args.anchor_origin,
    }
    return dataclasses.replace(config, **{k: v for k, v in overrides.items() if v is not None})


def render(entries: List[ChangelogEntry], output_format: str, owner: str, repo: str) -> str:
    if output_format == "json":
        return json.dumps({"changelogs": [e.to_dict() for e in entries]}, indent=2, ensure_ascii=False) + "\n"
    return render_changelog(entries, title=f"{owner}/{repo} Changelog")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main entry point for the changelog generator.

    Exits with status 1 when the repository cannot be accessed or the
    configuration is invalid. Entries that could not fetch their commits
    carry an error and do not change the exit status.
    """
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, json_output=args.log_json)

    try:
        config = apply_overrides(load_config(args.config), args)

        logger.info("Starting changelog generation for %s/%s", args.user, args.repo)
        host = GitHubHost(
            token=config.token,
            base_url=config.base_url,
            timeout=config.timeout,
            retries=config.retries,
            per_page=config.list_limit,
        )
        generator = ChangelogGenerator(
            host,
            classifier=CommitClassifier(config.rules),
            list_limit=config.list_limit,
            anchor_to_origin=config.anchor_to_origin,
            max_workers=config.max_workers,
        )

        entries = generator.generate(args.user, args.repo, count=config.count, latest=config.latest)
        if not entries:
            logger.warning("No releases or tags found for repository %s/%s", args.user, args.repo)
            print(f"Warning: No releases or tags found for repository {args.user}/{args.repo}")
            return

        content = render(entries, config.format, args.user, args.repo)
        if config.output == "-":
            sys.stdout.write(content)
        else:
            logger.info("Writing changelog to %s", config.output)
            with open(config.output, "w", encoding="utf-8") as f:
                f.write(content)

        failed = [e.version for e in entries if e.error]
        if failed:
            logger.warning("Incomplete commit history for: %s", ", ".join(failed))
        if config.output != "-":
            print(f"✓ Changelog generated successfully: {config.output}")
            print(f"  Repository: {args.user}/{args.repo}")
            print(f"  Entries: {len(entries)} ({len(failed)} incomplete)")

    except KeyboardInterrupt:
        logger.info("Changelog generation interrupted by user")
        print("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        logger.error("Changelog generation failed: %s", e)
        print(f"Error: Changelog generation failed - {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
