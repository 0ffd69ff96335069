"""Shared data types for unit alias resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from unittags.errors import ConfigError


class ResolutionMode(str, Enum):
    """Which alias source(s) find_unit_tag consults, and in what order."""
    NONE = "none"              # Never resolve
    USER_ONLY = "user_only"    # Operator rules only
    USER_FIRST = "user_first"  # Rules, fall back to learned
    OTA_FIRST = "ota_first"    # Learned, fall back to rules

    @classmethod
    def parse(cls, value: ResolutionMode | str) -> ResolutionMode:
        """Parse a mode from its value, its name or a short form.

        Accepts e.g. "ota_first", "OTA_FIRST", "ota-first", "user", "ota".
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        if key in _MODE_SHORT_FORMS:
            return _MODE_SHORT_FORMS[key]
        for mode in cls:
            if key == mode.value:
                return mode
        raise ConfigError(f"Unknown unit tag resolution mode: {value!r}")


_MODE_SHORT_FORMS: dict[str, ResolutionMode] = {
    "off": ResolutionMode.NONE,
    "user": ResolutionMode.USER_ONLY,
    "ota": ResolutionMode.OTA_FIRST,
}


@dataclass
class LearnedAlias:
    """One fact: unit X is known as alias Y, observed via source at time T.

    Attributes:
        unit_id: Radio unit identifier
        alias: Alias text
        source: Decoder identity (e.g. "MotoP25_FDMA") or "manual"
        timestamp: Unix timestamp (seconds) of the observation
        wacn: WACN as hex text, empty when unknown
        sys: System ID as hex text, empty when unknown
        talkgroup_id: Talkgroup the alias was heard on, 0 when unknown
    """
    unit_id: int
    alias: str
    source: str = ""
    timestamp: int = 0
    wacn: str = ""
    sys: str = ""
    talkgroup_id: int = 0

    @property
    def needs_enrichment(self) -> bool:
        """True while network context is missing (legacy or manual rows)."""
        return not self.wacn

    def enrich(self, wacn: str, sys: str, talkgroup_id: int, timestamp: int) -> None:
        """Fill in network context from a later observation."""
        self.wacn = wacn
        self.sys = sys
        self.talkgroup_id = talkgroup_id
        self.timestamp = timestamp

    def to_row(self) -> list[str]:
        """Extended log schema row."""
        return [
            str(self.unit_id),
            self.alias,
            self.source,
            str(self.timestamp),
            self.wacn,
            self.sys,
            str(self.talkgroup_id),
        ]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "unitId": self.unit_id,
            "alias": self.alias,
            "source": self.source,
            "timestamp": self.timestamp,
            "wacn": self.wacn,
            "sys": self.sys,
            "talkgroupId": self.talkgroup_id,
            "needsEnrichment": self.needs_enrichment,
        }


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of an OTA alias decode, consumed by UnitTagStore.add_ota."""
    success: bool
    radio_id: int = 0
    alias: str = ""
    source: str = ""
    wacn: str = ""
    sys: str = ""
    talkgroup_id: int = 0

    @classmethod
    def failed(cls, source: str = "") -> DecodeResult:
        return cls(success=False, source=source)
