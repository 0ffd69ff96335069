"""Shared pytest fixtures for unittags tests."""

from pathlib import Path
from typing import Callable

import pytest

from unittags.models import ResolutionMode
from unittags.store import UnitTagStore


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[[str, str], Path]:
    """Factory writing a CSV file under tmp_path and returning its path."""
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def rules_file(write_csv: Callable[[str, str], Path]) -> Path:
    """Operator rule file with a literal, a regex and a constant range."""
    return write_csv(
        "unit_tags.csv",
        "100,Dispatch\n"
        "/(12)(\\d{4})/,Car $2\n"
        "/9\\d\\d/,Supervisor\n",
    )


@pytest.fixture
def ota_file(tmp_path: Path) -> Path:
    """Path for a learned-alias log that does not exist yet."""
    return tmp_path / "unit_tags_ota.csv"


@pytest.fixture
def store(rules_file: Path, ota_file: Path) -> UnitTagStore:
    """USER_FIRST store with rules loaded and an empty learned log."""
    s = UnitTagStore(ResolutionMode.USER_FIRST)
    s.load_rules(rules_file)
    s.load_learned(ota_file)
    return s
