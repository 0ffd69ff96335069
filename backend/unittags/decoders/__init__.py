"""Decoders for over-the-air unit alias announcements."""

from .moto_alias import (
    MAX_FRAGMENTS,
    SOURCE_FDMA,
    SOURCE_TDMA,
    decode_motorola_alias,
    decode_motorola_alias_p2,
)

__all__ = [
    "MAX_FRAGMENTS",
    "SOURCE_FDMA",
    "SOURCE_TDMA",
    "decode_motorola_alias",
    "decode_motorola_alias_p2",
]
