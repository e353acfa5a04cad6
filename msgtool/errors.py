"""Error taxonomy for the msg pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class MsgError(Exception):
    """Base exception for all msg errors."""


class ConfigError(MsgError):
    """Settings document is unreadable, not YAML, or fails validation. Fatal."""


class LoadError(MsgError):
    """A single source file is unreadable or not a JSON array. Recovered."""

    def __init__(self, source: Path, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"{source.name}: {reason}")


class ValidationError(MsgError):
    """A single record failed validation and was skipped. Recovered."""

    def __init__(self, source: Path, position: int, reason: str, record_id: Optional[str] = None) -> None:
        self.source = source
        self.position = position
        self.reason = reason
        self.record_id = record_id
        label = f"record #{position}" if record_id is None else f"record #{position} ({record_id})"
        super().__init__(f"{source.name}: {label}: {reason}")


class EmptyCorpusError(MsgError):
    """No valid entry survived loading. Fatal."""


class StemmingUnavailable(MsgError):
    """Stemming capability is missing or disabled; matching degrades to substrings."""


class RendererUnavailable(MsgError):
    """Rich rendering (or the raw fallback) could not produce output."""
