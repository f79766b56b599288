"""
Logging helpers for the changelog generator.

Records emitted while building an entry carry the owner, repository,
version and (when relevant) the fetch strategy being attempted, both as a
``[owner/repo@version]`` message prefix and as structured ``extra_data``
that the JSON formatter writes out.

Output modes:
 - Human mode: [LEVEL] message
 - Verbose mode: [LEVEL][HH:MM:SS] name: message
 - JSON mode: {"level": "...", "ts": "...", "logger": "...", "msg": "...", ...}
"""

import datetime
import json
import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, TextIO, Tuple

ROOT_LOGGER = "changelog-generator"


class EntryLogAdapter(logging.LoggerAdapter):
    """
    Attach entry-build context to every record.

    Context keys: owner, repo, version, strategy (all optional).
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        super().__init__(logger, {k: v for k, v in context.items() if v is not None})

    def bind(self, **context: Any) -> "EntryLogAdapter":
        """Return a new adapter with additional context."""
        merged = dict(self.extra)
        merged.update(context)
        return EntryLogAdapter(self.logger, **merged)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        data = dict(self.extra)
        extra = dict(kwargs.get("extra") or {})
        data.update(extra.pop("extra_data", {}))
        extra["extra_data"] = data
        kwargs["extra"] = extra
        return f"{self._prefix()}{msg}", kwargs

    def _prefix(self) -> str:
        owner = self.extra.get("owner")
        repo = self.extra.get("repo")
        if not owner or not repo:
            return ""
        version = self.extra.get("version")
        target = f"{owner}/{repo}@{version}" if version else f"{owner}/{repo}"
        return f"[{target}] "


class HumanFormatter(logging.Formatter):
    """Format: [LEVEL] message"""

    def format(self, record: logging.LogRecord) -> str:
        text = f"[{record.levelname}] {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class VerboseFormatter(logging.Formatter):
    """Format: [LEVEL][HH:MM:SS] logger: message"""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        text = f"[{record.levelname}][{timestamp}] {record.name}: {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class JSONFormatter(logging.Formatter):
    """Formatter for JSON lines output, including structured context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "level": record.levelname,
            "ts": datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc).isoformat(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_entry.update(extra_data)
        if record.exc_info:
            log_entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(
    verbose: bool = False,
    json_output: bool = False,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure the package root logger.

    Args:
        verbose: Enable DEBUG level and timestamps
        json_output: Emit JSON lines instead of human-readable text
        stream: Output stream (default: stderr)
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    if json_output:
        formatter: logging.Formatter = JSONFormatter()
    elif verbose:
        formatter = VerboseFormatter()
    else:
        formatter = HumanFormatter()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
