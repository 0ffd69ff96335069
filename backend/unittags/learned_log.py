"""Learned-alias log file I/O.

The log is a headerless CSV file. Two row layouts are accepted on read:

    legacy:   unit_id, alias, source, timestamp
    extended: unit_id, alias, source, timestamp, wacn, sys, talkgroup_id

Rows are always written in the extended layout. The file is appended to as
aliases are learned and rewritten wholesale (temp file + rename) when
deduplication drops superseded rows.
"""

from __future__ import annotations

import csv
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable

from unittags.errors import ConfigError, LogWriteError, RenameError, TagParseError
from unittags.models import LearnedAlias

logger = logging.getLogger(__name__)


def read_csv_rows(path: str | Path) -> list[list[str]]:
    """Read a headerless CSV file into trimmed rows, skipping blank lines.

    Raises:
        ConfigError: if the file is missing, unreadable or not valid CSV
    """
    try:
        # utf-8-sig drops a byte-order mark left by spreadsheet exports
        with open(path, newline="", encoding="utf-8-sig") as f:
            rows = []
            for row in csv.reader(f, skipinitialspace=True):
                fields = [field.strip() for field in row]
                if not any(fields):
                    continue
                rows.append(fields)
            return rows
    except FileNotFoundError as e:
        raise ConfigError(f"File not found: {path}") from e
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ConfigError(f"Error reading {path}: {e}") from e


def parse_learned_row(fields: list[str]) -> LearnedAlias:
    """Parse one legacy or extended log row.

    Raises:
        TagParseError: if the row has fewer than two fields or a bad unit ID
    """
    if len(fields) < 2:
        raise TagParseError(f"expected at least 2 fields, got {len(fields)}")
    try:
        unit_id = int(fields[0])
    except ValueError as e:
        raise TagParseError(f"invalid unit ID {fields[0]!r}") from e

    def get(index: int) -> str:
        return fields[index] if index < len(fields) else ""

    return LearnedAlias(
        unit_id=unit_id,
        alias=fields[1],
        source=get(2),
        timestamp=_parse_int(get(3)),
        wacn=get(4),
        sys=get(5),
        talkgroup_id=_parse_int(get(6)),
    )


def read_learned_log(path: str | Path) -> list[LearnedAlias]:
    """Load every parseable row from the learned-alias log, in file order.

    Raises:
        ConfigError: on file-level read failures
    """
    entries: list[LearnedAlias] = []
    for line_no, fields in enumerate(read_csv_rows(path), start=1):
        try:
            entries.append(parse_learned_row(fields))
        except TagParseError as e:
            logger.debug(f"Skipping learned alias row {line_no} in {path}: {e}")
    return entries


def deduplicate(entries: Iterable[LearnedAlias]) -> list[LearnedAlias]:
    """Keep the best entry per unit ID.

    The survivor has the greatest timestamp; ties go to the entry with a
    WACN, then to the later entry. Survivors keep their relative order.
    """
    ordered = list(entries)
    best: dict[int, int] = {}  # unit_id -> index into ordered
    for index, entry in enumerate(ordered):
        current = best.get(entry.unit_id)
        if current is None or _rank(entry) >= _rank(ordered[current]):
            best[entry.unit_id] = index
    keep = set(best.values())
    return [entry for index, entry in enumerate(ordered) if index in keep]


def _rank(entry: LearnedAlias) -> tuple[int, bool]:
    return (entry.timestamp, bool(entry.wacn))


def append_learned_record(path: str | Path, entry: LearnedAlias) -> None:
    """Append one extended-layout row.

    Raises:
        LogWriteError: if the file cannot be opened or written
    """
    try:
        with open(path, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(entry.to_row())
    except OSError as e:
        raise LogWriteError(f"Error writing to learned alias log {path}: {e}") from e


def rewrite_learned_log(path: str | Path, entries: Iterable[LearnedAlias]) -> None:
    """Atomically replace the log with ``entries``.

    The rows go to a temporary file in the same directory, which is flushed,
    fsynced and closed before it is renamed over the original. If anything
    fails the temporary file is removed and the original is left untouched.

    Raises:
        LogWriteError: if the temporary file could not be written
        RenameError: if the final rename failed
    """
    target = Path(path)
    directory = target.parent
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=directory
        )
    except OSError as e:
        raise LogWriteError(f"Cannot create temporary file for {target}: {e}") from e

    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            for entry in entries:
                writer.writerow(entry.to_row())
            f.flush()
            os.fsync(f.fileno())
        if target.exists():
            shutil.copymode(target, tmp_name)
    except OSError as e:
        _discard(tmp_name)
        raise LogWriteError(f"Error writing temporary log {tmp_name}: {e}") from e

    try:
        os.replace(tmp_name, target)
    except OSError as e:
        _discard(tmp_name)
        raise RenameError(f"Cannot rename {tmp_name} over {target}: {e}") from e


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {tmp_name}: {e}")


def _parse_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0
