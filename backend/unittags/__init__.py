from typing import TYPE_CHECKING, Any

from .decoders import decode_motorola_alias, decode_motorola_alias_p2
from .errors import (
    ConfigError,
    IntegrityError,
    LogWriteError,
    PatternError,
    RenameError,
    TagParseError,
    UnitTagsError,
)
from .models import DecodeResult, LearnedAlias, ResolutionMode
from .patterns import TagRule, compile_rule
from .store import UnitTagStore

__all__ = [
    "__version__",
    "ConfigError",
    "DecodeResult",
    "IntegrityError",
    "LearnedAlias",
    "LogWriteError",
    "PatternError",
    "RenameError",
    "ResolutionMode",
    "TagParseError",
    "TagRule",
    "UnitTagStore",
    "UnitTagsError",
    "compile_rule",
    "create_app",
    "decode_motorola_alias",
    "decode_motorola_alias_p2",
]

__version__ = "0.1.0"

if TYPE_CHECKING:
    from fastapi import FastAPI


# Lazy import to avoid requiring FastAPI for store and decoder usage
def create_app(*args: Any, **kwargs: Any) -> "FastAPI":
    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)
