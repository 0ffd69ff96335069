"""Unit alias store.

Merges two alias sources behind one lookup:

- operator rules (rule file plus manual overrides), first match wins
- aliases learned from OTA announcements, newest first

The resolution mode picks which source is consulted and in what order.
Learned aliases are persisted to a CSV log that is appended as aliases change
and rewritten atomically when loading finds superseded rows.

One lock guards both collections, the mode and every log write, so a lookup
never sees a half-applied update and concurrent OTA results for the same unit
cannot append conflicting rows.

Example:
    store = UnitTagStore(ResolutionMode.USER_FIRST)
    store.load_rules("unit_tags.csv")
    store.load_learned("unit_tags_ota.csv")

    result = decode_motorola_alias(fragments, count)
    store.add_ota(result)

    name = store.find_unit_tag(1234567)
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Any

from unittags.errors import ConfigError, LogWriteError, PatternError, RenameError
from unittags.learned_log import (
    append_learned_record,
    deduplicate,
    read_csv_rows,
    read_learned_log,
    rewrite_learned_log,
)
from unittags.models import DecodeResult, LearnedAlias, ResolutionMode
from unittags.patterns import TagRule, compile_literal_rule, compile_rule

if TYPE_CHECKING:
    from unittags.config import UnitTagsConfig

logger = logging.getLogger(__name__)

MANUAL_SOURCE = "manual"


class UnitTagStore:
    """Thread-safe unit ID → alias resolver with a persisted learned log."""

    def __init__(self, mode: ResolutionMode | str = ResolutionMode.USER_FIRST) -> None:
        self._lock = Lock()
        self._mode = ResolutionMode.parse(mode)
        self._rules: list[TagRule] = []
        # Insertion order; lookups scan from the end
        self._learned: list[LearnedAlias] = []
        self._learned_path: str = ""

    @classmethod
    def from_config(cls, cfg: UnitTagsConfig) -> UnitTagStore:
        """Create a store and load the configured rule file and learned log."""
        store = cls(cfg.mode)
        store.load_rules(cfg.file)
        store.load_learned(cfg.ota_file)
        return store

    # ------------------------------------------------------------------
    # Mode
    # ------------------------------------------------------------------

    def set_mode(self, mode: ResolutionMode | str) -> None:
        parsed = ResolutionMode.parse(mode)
        with self._lock:
            if parsed != self._mode:
                logger.info(f"Unit tag mode: {self._mode.value} -> {parsed.value}")
            self._mode = parsed

    def get_mode(self) -> ResolutionMode:
        with self._lock:
            return self._mode

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_rules(self, path: str | Path) -> int:
        """Append rules from a headerless ``pattern,alias`` CSV file.

        Rows with fewer than two fields or an invalid pattern are skipped.
        A file that cannot be read leaves the existing rules untouched.

        Returns:
            Number of rules added
        """
        if not path:
            return 0

        with self._lock:
            try:
                rows = read_csv_rows(path)
            except ConfigError as e:
                logger.error(f"Error reading unit tag file: {e}")
                return 0

            staged: list[TagRule] = []
            for line_no, fields in enumerate(rows, start=1):
                if len(fields) < 2:
                    logger.debug(f"Skipping unit tag row {line_no} in {path}: expected 2 fields")
                    continue
                try:
                    staged.append(compile_rule(fields[0], fields[1]))
                except PatternError as e:
                    logger.warning(f"Skipping unit tag row {line_no} in {path}: {e}")

            self._rules.extend(staged)
            logger.info(f"Read {len(staged)} unit tags from {path}")
            return len(staged)

    def load_learned(self, path: str | Path) -> int:
        """Load the learned-alias log and remember it for future appends.

        The path is kept even if the file does not exist yet. After loading,
        entries are deduplicated per unit; if anything was dropped the log is
        rewritten atomically with only the surviving rows.

        Returns:
            Number of rows loaded
        """
        path = str(path or "")
        with self._lock:
            self._learned_path = path
            if not path:
                return 0
            if not Path(path).exists():
                logger.debug(f"Learned alias log {path} does not exist yet")
                return 0

            try:
                loaded = read_learned_log(path)
            except ConfigError as e:
                logger.error(f"Error reading learned alias log: {e}")
                return 0

            combined = self._learned + loaded
            survivors = deduplicate(combined)
            self._learned = survivors

            if loaded:
                logger.info(f"Loaded {len(loaded)} OTA unit tags from {path}")
            dropped = len(combined) - len(survivors)
            if dropped:
                logger.info(f"Removed {dropped} superseded learned aliases, rewriting {path}")
                self._rewrite_log_locked()
            return len(loaded)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_unit_tag(self, unit_id: int) -> str:
        """Best-known alias for ``unit_id`` under the current mode, or ""."""
        with self._lock:
            return self._resolve_locked(unit_id, self._mode)

    def _resolve_locked(self, unit_id: int, mode: ResolutionMode) -> str:
        if mode == ResolutionMode.NONE:
            return ""
        if mode == ResolutionMode.USER_ONLY:
            return self._find_rule_locked(unit_id)
        if mode == ResolutionMode.OTA_FIRST:
            return self._find_learned_locked(unit_id) or self._find_rule_locked(unit_id)
        return self._find_rule_locked(unit_id) or self._find_learned_locked(unit_id)

    def _find_rule_locked(self, unit_id: int) -> str:
        text = str(unit_id)
        for rule in self._rules:
            if not rule.match(text):
                continue
            try:
                return rule.rewrite(text)
            except PatternError as e:
                logger.warning(f"Unit tag rule {rule.raw!r} failed for {unit_id}: {e}")
        return ""

    def _find_learned_locked(self, unit_id: int) -> str:
        entry = self._latest_learned_locked(unit_id)
        return entry.alias if entry else ""

    def _latest_learned_locked(self, unit_id: int) -> LearnedAlias | None:
        for entry in reversed(self._learned):
            if entry.unit_id == unit_id:
                return entry
        return None

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def add_rule(self, pattern: str, alias: str) -> bool:
        """Append one rule at the end of the rule list."""
        try:
            rule = compile_rule(pattern, alias)
        except PatternError as e:
            logger.warning(f"Ignoring unit tag {pattern!r}: {e}")
            return False
        with self._lock:
            self._rules.append(rule)
        return True

    def add_front(self, unit_id: int, alias: str, source: str = MANUAL_SOURCE) -> bool:
        """Assert an alias for one unit ahead of every existing rule.

        Returns:
            False if the unit already resolves to ``alias``, True otherwise
        """
        with self._lock:
            rule = compile_literal_rule(str(unit_id), alias)
            mode = self._mode if self._mode != ResolutionMode.NONE else ResolutionMode.USER_FIRST
            existing = self._resolve_locked(unit_id, mode)
            if existing == alias:
                logger.debug(f"Unit {unit_id} has existing alias: '{alias}', skipping")
                return False
            if existing:
                logger.info(f"Unit {unit_id} alias updated: '{existing}' -> '{alias}' ({source})")
            else:
                logger.info(f"Unit {unit_id} alias set: '{alias}' ({source})")

            self._rules.insert(0, rule)
            self._append_log_locked(
                LearnedAlias(unit_id=unit_id, alias=alias, source=source, timestamp=int(time.time()))
            )
            return True

    def add_ota(self, result: DecodeResult) -> bool:
        """Record an OTA decode result.

        Returns:
            True if the store was modified
        """
        if not result.success:
            return False

        now = int(time.time())
        with self._lock:
            if self._mode == ResolutionMode.NONE:
                return False

            existing = self._latest_learned_locked(result.radio_id)
            if existing is None:
                entry = _learned_from_result(result, now)
                self._learned.append(entry)
                logger.info(
                    f"Unit {result.radio_id} OTA alias learned: '{result.alias}' ({result.source})"
                )
                self._append_log_locked(entry)
                return True

            if existing.alias == result.alias:
                if existing.needs_enrichment and result.wacn:
                    existing.enrich(result.wacn, result.sys, result.talkgroup_id, now)
                    logger.info(
                        f"Unit {result.radio_id} OTA alias '{result.alias}' enriched: "
                        f"wacn={result.wacn} sys={result.sys} tg={result.talkgroup_id}"
                    )
                    self._append_log_locked(existing)
                    return True
                return False

            entry = _learned_from_result(result, now)
            self._learned.append(entry)
            logger.info(
                f"Unit {result.radio_id} OTA alias updated: "
                f"'{existing.alias}' -> '{result.alias}' ({result.source})"
            )
            self._append_log_locked(entry)
            return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _append_log_locked(self, entry: LearnedAlias) -> None:
        if not self._learned_path:
            return
        try:
            append_learned_record(self._learned_path, entry)
        except LogWriteError as e:
            logger.error(str(e))

    def _rewrite_log_locked(self) -> None:
        try:
            rewrite_learned_log(self._learned_path, self._learned)
        except RenameError as e:
            logger.critical(f"Learned alias log left stale: {e}")
        except LogWriteError as e:
            logger.error(f"Learned alias log not rewritten: {e}")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def learned_aliases(self) -> list[LearnedAlias]:
        """Copies of the learned aliases, newest first."""
        with self._lock:
            return [replace(entry) for entry in reversed(self._learned)]

    def rule_count(self) -> int:
        with self._lock:
            return len(self._rules)

    @property
    def learned_path(self) -> str:
        with self._lock:
            return self._learned_path

    def stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "mode": self._mode.value,
                "ruleCount": len(self._rules),
                "learnedCount": len(self._learned),
                "needsEnrichment": sum(1 for e in self._learned if e.needs_enrichment),
                "learnedPath": self._learned_path,
            }


def _learned_from_result(result: DecodeResult, timestamp: int) -> LearnedAlias:
    return LearnedAlias(
        unit_id=result.radio_id,
        alias=result.alias,
        source=result.source,
        timestamp=timestamp,
        wacn=result.wacn,
        sys=result.sys,
        talkgroup_id=result.talkgroup_id,
    )
