"""Error taxonomy for unit alias resolution.

None of these are fatal to the host process. The store and the OTA decoders
catch them at their public boundary, log them, and keep the last known-good
state.
"""

from __future__ import annotations


class UnitTagsError(Exception):
    """Base class for unit tag errors."""


class ConfigError(UnitTagsError, ValueError):
    """Missing/unreadable rule or log file, or an invalid config value."""


class TagParseError(UnitTagsError, ValueError):
    """A row in a rule file or learned-alias log could not be parsed."""


class PatternError(TagParseError):
    """A rule pattern or alias template failed to compile."""


class IntegrityError(UnitTagsError):
    """OTA payload checksum did not match the computed CRC."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"checksum mismatch: payload=0x{expected:04X} computed=0x{actual:04X}")
        self.expected = expected
        self.actual = actual


class LogWriteError(UnitTagsError, OSError):
    """Appending to or rewriting the learned-alias log failed."""


class RenameError(LogWriteError):
    """The final rename of an atomic log rewrite failed.

    The original log is stale but intact; in-memory state stays authoritative.
    """


__all__ = [
    "ConfigError",
    "IntegrityError",
    "LogWriteError",
    "PatternError",
    "RenameError",
    "TagParseError",
    "UnitTagsError",
]
