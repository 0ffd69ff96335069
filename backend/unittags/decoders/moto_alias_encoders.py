"""Encoders for Motorola OTA talker alias announcements.

Build the fragment buffers a receiver would hand to the decoders in
moto_alias, using the same field layouts. They keep the framing consistent so
encode→decode tests can exercise the decoders without captured traffic.
"""

from __future__ import annotations

from unittags.decoders.moto_alias import (
    ALIAS_HEADER_FIELDS,
    ALIAS_SYMBOL_BITS,
    MAX_FRAGMENTS,
    MOTOROLA_MFID,
    OPCODE_P1_HEADER,
    PHASE1_FRAMING,
    PHASE2_FRAMING,
)
from unittags.utils.packing import crc16_ccitt, pack_bit_fields, pack_symbols

UNIT_ID_MAX = 0xFFFFFF
WACN_MAX = 0xFFFFF
SYSTEM_ID_MAX = 0xFFF
TGID_MAX = 0xFFFF

# Phase 1 fragments are full 10-byte TSBK bodies
PHASE1_FRAGMENT_LENGTH = 10


def encode_alias_text(alias: str) -> bytes:
    """Pack alias text into the scrambled 7-bit stream (inverse of decode_alias_text)."""
    if not alias:
        raise ValueError("alias must not be empty")
    if any(not 0x20 <= ord(c) <= 0x7E for c in alias):
        raise ValueError(f"alias {alias!r} must be printable ASCII")

    plain = pack_symbols([ord(c) for c in alias], ALIAS_SYMBOL_BITS)
    if len(plain) > 0xFF:
        raise ValueError(f"alias {alias!r} is too long to encode")

    acc = len(plain) & 0xFF
    out = bytearray()
    for byte in plain:
        encoded = (byte + acc) & 0xFF
        out.append(encoded)
        acc = (acc + encoded) & 0xFF
    return bytes(out)


def build_alias_body(radio_id: int, alias: str, *, wacn: int = 0, system_id: int = 0) -> bytes:
    """Encode WACN/SYS/RADIO/LEN followed by the encoded alias."""
    _require_range(radio_id, 1, UNIT_ID_MAX, "radio_id")
    _require_range(wacn, 0, WACN_MAX, "wacn")
    _require_range(system_id, 0, SYSTEM_ID_MAX, "system_id")

    encoded = encode_alias_text(alias)
    header = pack_bit_fields(
        ALIAS_HEADER_FIELDS,
        {"wacn": wacn, "system": system_id, "radio": radio_id, "length": len(encoded)},
    )
    return header + encoded


def build_phase1_fragments(
    radio_id: int,
    alias: str,
    *,
    wacn: int = 0,
    system_id: int = 0,
    talkgroup: int = 0,
    sequence: int = 0,
) -> list[bytes]:
    """Build Phase 1 header + data block fragments for one announcement."""
    _require_range(talkgroup, 0, TGID_MAX, "talkgroup")
    body = build_alias_body(radio_id, alias, wacn=wacn, system_id=system_id)
    payload = body + crc16_ccitt(body).to_bytes(2, "big")

    chunks = _split(payload, PHASE1_FRAMING.chunk_length)
    if len(chunks) + 1 > MAX_FRAGMENTS:
        raise ValueError(f"alias {alias!r} needs {len(chunks) + 1} fragments (max {MAX_FRAGMENTS})")

    header = bytes([
        OPCODE_P1_HEADER,
        MOTOROLA_MFID,
        talkgroup >> 8,
        talkgroup & 0xFF,
        len(chunks),
        sequence & 0xFF,
    ]).ljust(PHASE1_FRAGMENT_LENGTH, b"\x00")
    fragments = [header]
    for block_number, chunk in enumerate(chunks, start=1):
        fragments.append(bytes([PHASE1_FRAMING.data_opcode, MOTOROLA_MFID, block_number]) + chunk)
    return fragments


def build_phase2_fragments(
    radio_id: int,
    alias: str,
    *,
    wacn: int = 0,
    system_id: int = 0,
    talkgroup: int = 0,
) -> list[bytes]:
    """Build Phase 2 MAC message fragments for one announcement."""
    _require_range(talkgroup, 0, TGID_MAX, "talkgroup")
    covered = talkgroup.to_bytes(2, "big") + build_alias_body(
        radio_id, alias, wacn=wacn, system_id=system_id
    )
    payload = crc16_ccitt(covered).to_bytes(2, "big") + covered

    chunks = _split(payload, PHASE2_FRAMING.chunk_length)
    if len(chunks) < PHASE2_FRAMING.min_fragments:
        # Short aliases still span the minimum fragment count
        chunks.append(bytes(PHASE2_FRAMING.chunk_length))
    if len(chunks) > MAX_FRAGMENTS:
        raise ValueError(f"alias {alias!r} needs {len(chunks)} fragments (max {MAX_FRAGMENTS})")

    return [
        bytes([
            PHASE2_FRAMING.data_opcode,
            MOTOROLA_MFID,
            PHASE2_FRAMING.fragment_length,
            index,
        ]) + chunk
        for index, chunk in enumerate(chunks)
    ]


def _split(payload: bytes, size: int) -> list[bytes]:
    """Split into fixed-size chunks, zero-padding the last one."""
    return [
        payload[i:i + size].ljust(size, b"\x00")
        for i in range(0, len(payload), size)
    ]


def _require_range(value: int, low: int, high: int, name: str) -> None:
    if not low <= int(value) <= high:
        raise ValueError(f"{name} out of range {low}-{high} (got {value})")


__all__ = [
    "build_alias_body",
    "build_phase1_fragments",
    "build_phase2_fragments",
    "encode_alias_text",
]
