"""
Configuration for the changelog generator.

Configuration is YAML-based with CLI overrides. Supports environment
variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.changelog.yaml
3. ./changelog.yaml

Example:
    github:
      token: ${GITHUB_TOKEN}
      timeout: 15
    changelog:
      count: 5
      max_workers: 4
    output:
      path: CHANGELOG.md
      format: markdown
    rules:
      - category: feature
        title_prefixes: [feat, add]
        message_tokens: ["feat:"]
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .fetcher import DEFAULT_LIST_LIMIT
from .parser import ClassificationRule, rules_from_config

TOKEN_ENV_VAR = "GITHUB_TOKEN"
OUTPUT_FORMATS = ("markdown", "json")
CONFIG_CANDIDATES = (".changelog.yaml", "changelog.yaml")


@dataclass
class ChangelogConfig:
    """
    Changelog generator configuration.

    Attributes:
        token: GitHub token (falls back to $GITHUB_TOKEN)
        base_url: API base URL; None for github.com
        timeout: Per-request timeout in seconds
        retries: Host client retry count
        count: Number of releases to build entries for
        latest: Build only the latest release
        list_limit: Cap for commit listing strategies
        max_workers: Entries built in parallel
        anchor_to_origin: Compare the oldest release against the first commit
        output: Output file path
        format: Output format (markdown, json)
        rules: Classification rules; None keeps the built-in rules
    """

    token: Optional[str] = None
    base_url: Optional[str] = None
    timeout: int = 15
    retries: int = 3
    count: int = 5
    latest: bool = False
    list_limit: int = DEFAULT_LIST_LIMIT
    max_workers: int = 1
    anchor_to_origin: bool = False
    output: str = "CHANGELOG_GENERATED.md"
    format: str = "markdown"
    rules: Optional[Tuple[ClassificationRule, ...]] = None
    config_path: Optional[Path] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.format not in OUTPUT_FORMATS:
            raise ValueError(f"Invalid output format: {self.format}. Valid: {OUTPUT_FORMATS}")
        if self.count < 1:
            raise ValueError(f"count must be at least 1 (got {self.count})")
        if not 1 <= self.list_limit <= 100:
            raise ValueError(f"list_limit must be between 1 and 100 (got {self.list_limit})")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1 (got {self.max_workers})")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive (got {self.timeout})")
        if self.token is None:
            self.token = os.environ.get(TOKEN_ENV_VAR) or None


ENV_REF_RE = re.compile(r"\$\{([^}]+)\}")


def _expand(text: str, strict: bool) -> Optional[str]:
    missing = [name for name in ENV_REF_RE.findall(text) if name not in os.environ]
    if missing:
        if strict:
            raise ValueError(f"Environment variable not set: {missing[0]}")
        return None
    return ENV_REF_RE.sub(lambda m: os.environ[m.group(1)], text)


def substitute_env_vars(value: Any, strict: bool = True) -> Any:
    """
    Expand ${VAR} references in strings, recursing into mappings and lists.

    With ``strict`` off, a string referencing an unset variable becomes None.

    Raises:
        ValueError: ``strict`` is on and a referenced variable is not set
    """
    if isinstance(value, str):
        return _expand(value, strict)
    if isinstance(value, dict):
        return {k: substitute_env_vars(v, strict) for k, v in value.items()}
    if isinstance(value, list):
        return [substitute_env_vars(v, strict) for v in value]
    return value


def find_config_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """Return the first config file found in ``start_path`` (default: cwd)."""
    start_path = (start_path or Path.cwd()).resolve()
    for name in CONFIG_CANDIDATES:
        candidate = start_path / name
        if candidate.exists():
            return candidate
    return None


def load_config_from_dict(data: Dict[str, Any]) -> ChangelogConfig:
    """
    Build a ChangelogConfig from a parsed config mapping.

    The token is optional, so an unset variable in ``github.token`` leaves it
    unset instead of failing; every other reference must resolve.
    """
    github = dict(data.get("github") or {})
    token = substitute_env_vars(github.pop("token", None), strict=False)
    data = substitute_env_vars({**data, "github": github})
    github = data["github"]
    changelog = data.get("changelog") or {}
    output = data.get("output") or {}
    defaults = ChangelogConfig.__dataclass_fields__

    def pick(section: Dict[str, Any], key: str, name: Optional[str] = None) -> Any:
        return section.get(key, defaults[name or key].default)

    def flag(section: Dict[str, Any], key: str) -> bool:
        value = pick(section, key)
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false (got {value!r})")
        return value

    rules = rules_from_config(data["rules"]) if data.get("rules") else None

    return ChangelogConfig(
        token=token or None,
        base_url=github.get("base_url") or None,
        timeout=int(pick(github, "timeout")),
        retries=int(pick(github, "retries")),
        count=int(pick(changelog, "count")),
        latest=flag(changelog, "latest"),
        list_limit=int(pick(changelog, "list_limit")),
        max_workers=int(pick(changelog, "max_workers")),
        anchor_to_origin=flag(changelog, "anchor_to_origin"),
        output=str(pick(output, "path", "output")),
        format=str(pick(output, "format")),
        rules=rules,
    )


def load_config(config_path: Optional[Path] = None, auto_discover: bool = True) -> ChangelogConfig:
    """
    Load configuration from file, or defaults when there is none.

    Raises:
        FileNotFoundError: ``config_path`` was given but does not exist
        ValueError: The file contains invalid values
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path: Optional[Path] = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is None:
        return ChangelogConfig()

    with open(found_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {found_path}")
    config = load_config_from_dict(data)
    config.config_path = found_path
    return config
